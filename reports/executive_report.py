from __future__ import annotations

"""
Render the /dashboard/executive-report payload as Markdown.

The Markdown is the input of ``reports.render_pdf.build_pdf``; keep to the
subset it understands: ``#`` headings, ``- `` bullets, pipe tables and
``_italic_`` lines.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from utils.formatting import format_datetime, format_number
from utils.logging_utils import get_logger
from views.transforms import kpi_cards, kpi_progress


logger = get_logger(__name__)

INDICATOR_LABELS = {
    "seguridad": "Seguridad",
    "eficiencia": "Eficiencia",
    "cumplimiento": "Cumplimiento",
}
PERFORMANCE_LABELS = {
    "inspeccionesDiarias": "Inspecciones diarias",
    "tiempoPromedio": "Tiempo promedio",
    "completitud": "Completitud",
    "calidad": "Calidad",
}


def _cell(value: Any) -> str:
    if value is None or value == "":
        return "-"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    return str(value).replace("|", "/")


def _table(header: List[str], rows: Iterable[List[Any]]) -> List[str]:
    lines = ["| " + " | ".join(header) + " |", "| " + " | ".join("---" for _ in header) + " |"]
    for row in rows:
        lines.append("| " + " | ".join(_cell(value) for value in row) + " |")
    lines.append("")
    return lines


def _bullets(items: Iterable[Any]) -> List[str]:
    lines = [f"- {item}" for item in items or []]
    if lines:
        lines.append("")
    return lines


def build_executive_markdown(report: Mapping[str, Any], kpis: Optional[Mapping[str, Any]] = None) -> str:
    metadata = report.get("metadata") or {}
    period = metadata.get("periodo") or {}
    lines = ["# Reporte Ejecutivo de Inspecciones", ""]

    description = period.get("descripcion")
    if period.get("inicio") or period.get("fin"):
        span = f"{period.get('inicio', '-')} a {period.get('fin', '-')}"
        lines.append(f"_Período: {description} ({span})_" if description else f"_Período: {span}_")
    if metadata.get("generado"):
        lines.append(f"_Generado: {format_datetime(metadata['generado'])}_")
    lines.append("")

    body_start = len(lines)

    summary = report.get("resumenEjecutivo") or {}
    if summary:
        lines.extend(["## Resumen", ""])
        if summary.get("mensaje"):
            lines.extend([summary["mensaje"], ""])
        lines.extend(_bullets(summary.get("puntosDestacados")))

    indicators: Dict[str, Any] = report.get("indicadoresClave") or {}
    if indicators:
        lines.extend(["## Indicadores clave", ""])
        rows = []
        for key, values in indicators.items():
            values = values or {}
            rows.append(
                [INDICATOR_LABELS.get(key, key), values.get("valor"), values.get("meta"), values.get("tendencia")]
            )
        lines.extend(_table(["Indicador", "Valor", "Meta", "Tendencia"], rows))

    if kpis:
        lines.extend(["## KPIs vs metas", ""])
        rows = []
        for card in kpi_cards(kpis):
            progress = kpi_progress(card["current"], card["target"])
            suffix = "%" if card["percent"] else ""
            rows.append(
                [
                    card["title"],
                    f"{format_number(card['current'])}{suffix}",
                    f"{format_number(card['target'])}{suffix}",
                    f"{format_number(progress['percentage'], 1)}%",
                    "Sí" if progress["on_target"] else "No",
                ]
            )
        lines.extend(_table(["KPI", "Actual", "Meta", "Avance", "Cumple"], rows))

    risks = report.get("analisisRiesgos") or {}
    if risks:
        lines.extend(["## Análisis de riesgos", ""])
        if risks.get("nivelGeneral"):
            lines.extend([f"**Nivel general:** {risks['nivelGeneral']}", ""])
        if risks.get("principales_riesgos"):
            lines.extend(["### Principales riesgos", ""])
            lines.extend(_bullets(risks["principales_riesgos"]))
        if risks.get("recomendaciones"):
            lines.extend(["### Mitigación", ""])
            lines.extend(_bullets(risks["recomendaciones"]))

    performance = report.get("rendimientoOperacional") or {}
    if performance:
        lines.extend(["## Rendimiento operacional", ""])
        rows = [[PERFORMANCE_LABELS.get(key, key), value] for key, value in performance.items()]
        lines.extend(_table(["Métrica", "Valor"], rows))

    comparisons = report.get("comparaciones")
    if comparisons:
        lines.extend(["## Comparación con el período anterior", ""])
        if comparisons.get("mejoraGeneral"):
            lines.append(f"- Mejora general: {comparisons['mejoraGeneral']}")
        if comparisons.get("areasMejor"):
            lines.append("- Áreas que mejoraron: " + ", ".join(comparisons["areasMejor"]))
        if comparisons.get("areasPeor"):
            lines.append("- Áreas a reforzar: " + ", ".join(comparisons["areasPeor"]))
        lines.append("")

    recommendations = report.get("recomendacionesEstrategicas") or []
    if recommendations:
        lines.extend(["## Recomendaciones estratégicas", ""])
        rows = [[r.get("area"), r.get("recomendacion"), r.get("impacto"), r.get("plazo")] for r in recommendations]
        lines.extend(_table(["Área", "Recomendación", "Impacto", "Plazo"], rows))

    annexes = report.get("anexos") or {}
    next_steps = annexes.get("proximasAcciones") or []
    if next_steps:
        lines.extend(["## Próximas acciones", ""])
        rows = [[s.get("accion"), s.get("responsable"), s.get("plazo"), s.get("prioridad")] for s in next_steps]
        lines.extend(_table(["Acción", "Responsable", "Plazo", "Prioridad"], rows))
    if annexes.get("metodologia"):
        lines.extend([f"_Metodología: {annexes['metodologia']}_", ""])
    if annexes.get("limitaciones"):
        lines.extend([f"_Limitaciones: {annexes['limitaciones']}_", ""])

    if len(lines) == body_start:
        lines.extend(["_No hay datos disponibles._", ""])
    return "\n".join(lines).rstrip() + "\n"


def write_executive_report(
    report: Mapping[str, Any], report_path: Path, kpis: Optional[Mapping[str, Any]] = None
) -> Path:
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(build_executive_markdown(report, kpis), encoding="utf-8")
    logger.info("Markdown report written to %s", report_path)
    return report_path

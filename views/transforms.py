from __future__ import annotations

"""
Client-side re-shaping of API payloads for the views: filtering, paging and
chart series. No Streamlit imports here.
"""

import math
from typing import Any, Dict, Iterable, List, Mapping, Sequence

import pandas as pd

from utils.formatting import calculate_percentage, format_number

ROWS_PER_PAGE_OPTIONS = (10, 25, 50, 100)

FATIGUE_CATEGORIES = (
    ("medicamentos", "Medicamentos", "#d32f2f"),
    ("suenoInsuficiente", "Sueño Insuficiente", "#ed6c02"),
    ("sintomasFatiga", "Síntomas Fatiga", "#f57c00"),
    ("noAptos", "No Aptos", "#c62828"),
)
NO_PROBLEMS_LABEL = "Sin Problemas"
NO_PROBLEMS_COLOR = "#2e7d32"


def paginate(rows: Sequence[Any], page: int, rows_per_page: int) -> List[Any]:
    start = max(page, 0) * rows_per_page
    return list(rows[start:start + rows_per_page])


def page_count(total: int, rows_per_page: int) -> int:
    if rows_per_page <= 0:
        return 1
    return max(1, math.ceil(total / rows_per_page))


def filter_alerts(
    alerts: Iterable[Mapping[str, Any]], tipo: str = "TODAS", estado: str = "TODAS"
) -> List[Mapping[str, Any]]:
    return [
        alert
        for alert in alerts
        if (tipo == "TODAS" or alert.get("tipo") == tipo)
        and (estado == "TODAS" or alert.get("estado") == estado)
    ]


def alert_stats(alerts: Sequence[Mapping[str, Any]]) -> Dict[str, int]:
    def count(key: str, value: str) -> int:
        return sum(1 for alert in alerts if alert.get(key) == value)

    return {
        "total": len(alerts),
        "criticas": count("tipo", "CRITICA"),
        "advertencias": count("tipo", "ADVERTENCIA"),
        "activas": count("estado", "ACTIVA"),
        "enRevision": count("estado", "EN_REVISION"),
        "resueltas": count("estado", "RESUELTA"),
    }


def filter_drivers(drivers: Iterable[Mapping[str, Any]], term: str = "") -> List[Mapping[str, Any]]:
    needle = (term or "").strip()
    if not needle:
        return list(drivers)
    lowered = needle.lower()
    return [
        driver
        for driver in drivers
        if lowered in str(driver.get("nombre", "")).lower() or needle in str(driver.get("cedula", ""))
    ]


def driver_buckets(drivers: Sequence[Mapping[str, Any]]) -> Dict[str, int]:
    return {
        "total": len(drivers),
        "altaEficiencia": sum(1 for d in drivers if _num(d.get("eficiencia")) >= 90),
        "bajaEficiencia": sum(1 for d in drivers if _num(d.get("eficiencia")) < 75),
        "conAlertas": sum(1 for d in drivers if _num(d.get("alertasRojas")) > 0),
    }


def filter_vehicles(
    vehicles: Iterable[Mapping[str, Any]], term: str = "", estado: str = "todos"
) -> List[Mapping[str, Any]]:
    lowered = (term or "").strip().lower()
    return [
        vehicle
        for vehicle in vehicles
        if lowered in str(vehicle.get("placa", "")).lower()
        and (estado == "todos" or vehicle.get("estado") == estado)
    ]


def vehicle_buckets(vehicles: Sequence[Mapping[str, Any]]) -> Dict[str, int]:
    return {
        "total": len(vehicles),
        "operativos": sum(1 for v in vehicles if v.get("estado") == "operativo"),
        "mantenimiento": sum(1 for v in vehicles if v.get("mantenimientoRequerido")),
        "criticos": sum(1 for v in vehicles if v.get("estado") == "critico"),
    }


def fatigue_breakdown(summary: Mapping[str, Any] | None) -> pd.DataFrame:
    """Pie slices per fatigue category plus the remainder without problems; empty slices dropped."""
    columns = ["name", "value", "color"]
    if not summary:
        return pd.DataFrame(columns=columns)
    rows = [
        {"name": label, "value": _num(summary.get(key)), "color": color}
        for key, label, color in FATIGUE_CATEGORIES
    ]
    flagged = sum(row["value"] for row in rows)
    rows.append(
        {
            "name": NO_PROBLEMS_LABEL,
            "value": _num(summary.get("totalInspecciones")) - flagged,
            "color": NO_PROBLEMS_COLOR,
        }
    )
    return pd.DataFrame([row for row in rows if row["value"] > 0], columns=columns)


def fatigue_rates(summary: Mapping[str, Any] | None) -> pd.DataFrame:
    columns = ["categoria", "casos", "porcentaje"]
    if not summary:
        return pd.DataFrame(columns=columns)
    total = _num(summary.get("totalInspecciones"))
    rows = []
    for key, label, _ in FATIGUE_CATEGORIES:
        cases = _num(summary.get(key))
        rows.append({"categoria": label, "casos": cases, "porcentaje": calculate_percentage(cases, total)})
    return pd.DataFrame(rows, columns=columns)


def fatigue_trend_rows(trends: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    columns = ["fecha", "medicamentos", "suenoInsuficiente", "sintomasFatiga", "noAptos", "total"]
    rows = []
    for item in trends or []:
        row = {key: _num(item.get(key)) for key, _, _ in FATIGUE_CATEGORIES}
        row["fecha"] = item.get("fecha")
        row["total"] = sum(row[key] for key, _, _ in FATIGUE_CATEGORIES)
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def kpi_progress(current: float, target: float) -> Dict[str, Any]:
    current = _num(current)
    target = _num(target)
    percentage = current / target * 100 if target > 0 else 0.0
    on_target = current >= target
    if on_target:
        level = "success"
    elif percentage >= 80:
        level = "warning"
    else:
        level = "error"
    return {"percentage": percentage, "bar": min(percentage, 100.0), "on_target": on_target, "level": level}


def kpi_cards(kpis: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """KPI cards comparing current operational/fatigue metrics with their targets."""
    operational = kpis.get("operacionales") or {}
    safety = kpis.get("seguridad") or {}
    fatigue = kpis.get("fatiga") or {}
    targets = kpis.get("metas") or {}
    compliance = kpis.get("cumplimiento") or {}
    return [
        {
            "title": "Eficiencia",
            "current": _num(operational.get("eficiencia")),
            "target": _num(targets.get("eficienciaObjetivo")),
            "percent": True,
            "met": compliance.get("eficiencia"),
        },
        {
            "title": "Puntaje Promedio",
            "current": _num(operational.get("puntajePromedio")),
            "target": _num(targets.get("puntajeMinimoObjetivo")),
            "percent": False,
            "met": compliance.get("puntaje"),
        },
        {
            "title": "Tasa Alertas Rojas",
            "current": _num(safety.get("tasaAlertasRojas")),
            "target": _num(targets.get("tasaAlertasMaxima")),
            "percent": True,
            "met": compliance.get("alertas"),
        },
        {
            "title": "Índice de Fatiga",
            "current": _num(fatigue.get("indiceFatiga")),
            "target": _num(targets.get("indiceFatigaMaximo")),
            "percent": True,
            "met": compliance.get("fatiga"),
        },
    ]


def recurring_problem_labels(problems: Iterable[Any] | None) -> List[str]:
    """Driver-history recurring problems as "name (12 · 34,5%)"; plain strings pass through."""
    labels = []
    for item in problems or []:
        if not isinstance(item, Mapping):
            labels.append(str(item))
            continue
        name = item.get("problem") or item.get("problema") or "-"
        details = []
        if item.get("count") is not None:
            details.append(format_number(_num(item["count"])))
        if item.get("percentage") is not None:
            details.append(format_number(_num(item["percentage"]), 1) + "%")
        labels.append(f"{name} ({' · '.join(details)})" if details else str(name))
    return labels


def summary_rows(summary: Any) -> List[Dict[str, Any]]:
    """Normalise summary payloads (list, {items: [...]}, or keyed dict) into rows."""
    if summary is None:
        return []
    if isinstance(summary, list):
        return [dict(row) for row in summary if isinstance(row, Mapping)]
    if isinstance(summary, Mapping):
        for key in ("items", "conductores", "vehiculos", "contratos", "data"):
            value = summary.get(key)
            if isinstance(value, list):
                return [dict(row) for row in value if isinstance(row, Mapping)]
        if summary and all(isinstance(value, Mapping) for value in summary.values()):
            return [{"id": key, **value} for key, value in summary.items()]
    return []


def inspections_frame(inspections: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    columns = [
        "fecha",
        "conductor_nombre",
        "conductor_cedula",
        "placa_vehiculo",
        "contrato",
        "campo",
        "turno",
        "puntaje_total",
        "tiene_alerta_roja",
        "tiene_advertencias",
    ]
    df = pd.DataFrame(list(inspections or []))
    if df.empty:
        return pd.DataFrame(columns=columns + ["estado"])
    for column in columns:
        if column not in df.columns:
            df[column] = None
    df = df[columns].copy()
    df["estado"] = [
        "ALERTA" if alert else "ADVERTENCIA" if warning else "OK"
        for alert, warning in zip(df["tiene_alerta_roja"].map(_flag), df["tiene_advertencias"].map(_flag))
    ]
    return df


def _num(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) else number


def _flag(value: Any) -> bool:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return False
    return bool(value)

from reports.executive_report import build_executive_markdown, write_executive_report
from reports.render_pdf import _is_alignment_row, build_pdf, convert_inline, parse_table_row

REPORT = {
    "metadata": {
        "generado": "2025-03-07T15:04:00Z",
        "periodo": {"inicio": "2025-02-07", "fin": "2025-03-07", "descripcion": "Último mes"},
        "tipo": "ejecutivo",
    },
    "resumenEjecutivo": {
        "mensaje": "Resumen ejecutivo del período",
        "puntosDestacados": ["Sistema de fatiga implementado", "Detección de alertas rojas funcionando"],
    },
    "indicadoresClave": {
        "seguridad": {"valor": 95, "meta": 98, "tendencia": "mejorando"},
        "eficiencia": {"valor": 87, "meta": 90, "tendencia": "estable"},
    },
    "analisisRiesgos": {
        "nivelGeneral": "MEDIO",
        "principales_riesgos": ["Fatiga en turno nocturno"],
        "recomendaciones": ["Implementar descansos obligatorios"],
    },
    "rendimientoOperacional": {"inspeccionesDiarias": 45, "completitud": "97%"},
    "comparaciones": {"mejoraGeneral": "5%", "areasMejor": ["Eficiencia"], "areasPeor": ["Alertas de fatiga"]},
    "recomendacionesEstrategicas": [
        {"area": "Seguridad", "recomendacion": "Expandir detección de fatiga", "impacto": "Alto", "plazo": "Corto"}
    ],
    "anexos": {
        "metodologia": "Inspecciones preoperacionales",
        "proximasAcciones": [
            {"accion": "Expandir detección de fatiga", "responsable": "Coordinador", "plazo": "Corto", "prioridad": "Alto"}
        ],
    },
}

KPIS = {
    "operacionales": {"eficiencia": 88, "puntajePromedio": 91},
    "metas": {"eficienciaObjetivo": 90, "puntajeMinimoObjetivo": 85},
}


def test_markdown_has_every_section():
    md = build_executive_markdown(REPORT)
    assert md.startswith("# Reporte Ejecutivo de Inspecciones\n")
    assert "_Período: Último mes (2025-02-07 a 2025-03-07)_" in md
    for heading in (
        "## Resumen",
        "## Indicadores clave",
        "## Análisis de riesgos",
        "## Rendimiento operacional",
        "## Comparación con el período anterior",
        "## Recomendaciones estratégicas",
        "## Próximas acciones",
    ):
        assert heading in md
    assert "- Sistema de fatiga implementado" in md
    assert "| Seguridad | 95 | 98 | mejorando |" in md
    assert "| Inspecciones diarias | 45 |" in md
    assert "**Nivel general:** MEDIO" in md
    assert "## KPIs vs metas" not in md


def test_markdown_kpi_table():
    md = build_executive_markdown(REPORT, KPIS)
    assert "## KPIs vs metas" in md
    assert "| Eficiencia | 88% | 90% | 97,8% | No |" in md
    assert "| Puntaje Promedio | 91 | 85 | 107,1% | Sí |" in md


def test_markdown_empty_report():
    md = build_executive_markdown({})
    assert "_No hay datos disponibles._" in md


def test_write_and_render_pdf(tmp_path):
    md_path = write_executive_report(REPORT, tmp_path / "out" / "ejecutivo.md", KPIS)
    assert md_path.read_text(encoding="utf-8").startswith("# Reporte Ejecutivo")

    pdf_path = tmp_path / "out" / "ejecutivo.pdf"
    build_pdf(md_path, pdf_path)
    assert pdf_path.read_bytes().startswith(b"%PDF")


def test_table_helpers():
    assert parse_table_row("| Área | Valor |") == ["Área", "Valor"]
    assert parse_table_row("| Plazo |  |") == ["Plazo", ""]
    assert _is_alignment_row(["---", ":---:"])
    assert not _is_alignment_row(["---", "x"])


def test_convert_inline_escapes_markup():
    assert convert_inline("**Nivel:** A & B") == "<b>Nivel:</b> A &amp; B"
    assert convert_inline("<script>") == "&lt;script&gt;"

from __future__ import annotations

"""
PDF report center. Every report is rendered by the backend; this page only
collects the parameters and hands the returned blob to a download button.
"""

from datetime import date
from typing import Callable

import streamlit as st

from api.client import ApiError
from api.models import PERIODS
from api.services import Services
from utils.formatting import custom_filename, daily_filename, executive_filename, fatigue_filename
from utils.logging_utils import get_logger
from views.theme import clear_flash, flash, render_flash, render_page_title, render_section_header

logger = get_logger(__name__)

SCOPE = "reports"
EXECUTIVE_PERIODS = {
    "1week": "Última semana",
    "1month": "Último mes",
    "3months": "Últimos 3 meses",
    "6months": "Últimos 6 meses",
    "1year": "Último año",
}
FATIGUE_PERIODS = {"7days": "7 días", "30days": "30 días", "90days": "90 días"}
CUSTOM_SECTIONS = {
    "stats": "Estadísticas generales",
    "alerts": "Alertas",
    "trends": "Tendencias",
    "fatigue": "Fatiga",
    "drivers": "Conductores",
    "vehicles": "Vehículos",
}


def _generate(key: str, label: str, build: Callable[[], bytes], file_name: str) -> None:
    """Button that fetches a PDF into session_state, then a download button for it."""
    if st.button(label, key=f"{key}_generate", type="primary"):
        clear_flash(SCOPE)
        with st.spinner("Generando reporte..."):
            try:
                st.session_state[f"{key}_blob"] = (build(), file_name)
            except ApiError as exc:
                logger.error("Report %s failed: %s", key, exc)
                st.session_state.pop(f"{key}_blob", None)
                flash("error", f"Error al generar el reporte: {exc.message}", SCOPE)
            else:
                flash("success", "Reporte generado correctamente.", SCOPE)

    stored = st.session_state.get(f"{key}_blob")
    if stored:
        blob, stored_name = stored
        st.download_button(
            "⬇️ Descargar PDF",
            data=blob,
            file_name=stored_name,
            mime="application/pdf",
            key=f"{key}_download",
        )


def render_daily(services: Services) -> None:
    render_section_header("📅", "Reporte diario", "Inspecciones y alertas de una fecha")
    left, right = st.columns(2)
    with left:
        fecha = st.date_input("Fecha", value=date.today(), key="daily_date").isoformat()
        include_charts = st.checkbox("Incluir gráficos", value=True, key="daily_charts")
    with right:
        contrato = st.text_input("Contrato (opcional)", key="daily_contract").strip() or None
        campo = st.text_input("Campo (opcional)", key="daily_field").strip() or None
    _generate(
        "daily",
        "Generar reporte diario",
        lambda: services.dashboard.download_daily_report(
            fecha=fecha, include_charts=include_charts, contrato=contrato, campo=campo
        ),
        daily_filename(fecha),
    )


def render_executive(services: Services) -> None:
    render_section_header("📊", "Resumen ejecutivo", "KPIs, comparativos y proyecciones")
    periodo = st.selectbox(
        "Período", tuple(EXECUTIVE_PERIODS), index=1, format_func=EXECUTIVE_PERIODS.get, key="exec_period"
    )
    left, right = st.columns(2)
    with left:
        comparisons = st.checkbox("Incluir comparativos", value=True, key="exec_comparisons")
    with right:
        projections = st.checkbox("Incluir proyecciones", value=False, key="exec_projections")
    _generate(
        "executive",
        "Generar resumen ejecutivo",
        lambda: services.dashboard.download_executive_summary(
            periodo=periodo, include_comparisons=comparisons, include_projections=projections
        ),
        executive_filename(periodo),
    )


def render_fatigue(services: Services) -> None:
    render_section_header("😴", "Análisis de fatiga", "Detalle por conductor y recomendaciones")
    periodo = st.selectbox(
        "Período", PERIODS, index=1, format_func=FATIGUE_PERIODS.get, key="fatigue_report_period"
    )
    left, right = st.columns(2)
    with left:
        details = st.checkbox("Detalle por conductor", value=True, key="fatigue_report_details")
    with right:
        recommendations = st.checkbox("Incluir recomendaciones", value=True, key="fatigue_report_recs")
    _generate(
        "fatigue_report",
        "Generar análisis de fatiga",
        lambda: services.dashboard.download_fatigue_analysis(
            periodo=periodo, include_driver_details=details, include_recommendations=recommendations
        ),
        fatigue_filename(periodo),
    )


def render_custom(services: Services) -> None:
    render_section_header("🛠️", "Reporte personalizado", "Secciones y filtros a elección")
    title = st.text_input("Título", key="custom_title")
    sections = st.multiselect(
        "Secciones",
        tuple(CUSTOM_SECTIONS),
        default=["stats", "alerts"],
        format_func=CUSTOM_SECTIONS.get,
        key="custom_sections",
    )
    left, right = st.columns(2)
    with left:
        start = st.date_input("Desde", value=None, key="custom_start")
        include_charts = st.checkbox("Incluir gráficos", value=True, key="custom_charts")
    with right:
        end = st.date_input("Hasta", value=None, key="custom_end")
        include_data = st.checkbox("Incluir datos", value=False, key="custom_data")
    filtros = {
        "fechaInicio": start.isoformat() if start else None,
        "fechaFin": end.isoformat() if end else None,
    }
    filtros = {key: value for key, value in filtros.items() if value}

    if not sections:
        st.info("Seleccione al menos una sección.")
        return
    _generate(
        "custom",
        "Generar reporte personalizado",
        lambda: services.dashboard.generate_custom_report(
            titulo=title or None,
            filtros=filtros or None,
            secciones=sections,
            formato="pdf",
            include_charts=include_charts,
            include_data=include_data,
        ),
        custom_filename(title),
    )


def render(services: Services, settings) -> None:
    render_page_title("Reportes PDF", "Reportes generados por el servidor, listos para descargar.")
    banner = st.container()
    daily_tab, exec_tab, fatigue_tab, custom_tab = st.tabs(
        ["Diario", "Ejecutivo", "Fatiga", "Personalizado"]
    )
    with daily_tab:
        render_daily(services)
    with exec_tab:
        render_executive(services)
    with fatigue_tab:
        render_fatigue(services)
    with custom_tab:
        render_custom(services)
    # After the tabs: their handlers may queue banners during this run.
    with banner:
        render_flash(SCOPE)

from __future__ import annotations

"""
Operations overview: today's widgets, recent alerts, common problems and KPI
compliance. Refreshes itself every five minutes.
"""

from datetime import datetime

import pandas as pd
import plotly.express as px
import streamlit as st
from streamlit_autorefresh import st_autorefresh

from api.client import ApiError
from api.services import Services
from utils.formatting import format_number, problem_level
from utils.logging_utils import get_logger
from utils.settings import Settings
from views.theme import (
    LEVEL_COLORS,
    THEME,
    flash,
    render_flash,
    render_metric_card,
    render_metric_row,
    render_page_title,
    render_section_header,
    show_chart,
    status_pill,
)
from views.transforms import kpi_cards, kpi_progress

logger = get_logger(__name__)

SCOPE = "overview"
STATUS_LEVELS = {"green": "success", "yellow": "warning", "red": "error"}


def load_overview(services: Services) -> None:
    try:
        widgets = services.dashboard.get_widgets()
        kpis = services.dashboard.get_kpis(periodo="30days")
    except ApiError as exc:
        logger.error("Overview load failed: %s", exc)
        flash("error", exc.message, SCOPE)
        return
    st.session_state["overview_widgets"] = widgets
    st.session_state["overview_kpis"] = kpis
    st.session_state["overview_updated"] = datetime.now()


def render_today(widgets: dict) -> None:
    today = widgets.get("resumenHoy") or {}
    render_metric_row(
        [
            ("Inspecciones Hoy", format_number(today.get("inspecciones", 0)), "Registradas hoy"),
            ("Alertas Rojas", format_number(today.get("alertasRojas", 0)), "Requieren acción", "error"),
            ("Advertencias", format_number(today.get("advertencias", 0)), "En seguimiento", "warning"),
        ]
    )
    render_metric_row(
        [
            ("Conductores", format_number(today.get("conductores", 0)), "Inspeccionados hoy", "info"),
            ("Vehículos", format_number(today.get("vehiculos", 0)), "Inspeccionados hoy", "info"),
            ("Eficiencia", f"{format_number(today.get('eficiencia', 0))}%", "Sin alertas ni advertencias"),
        ]
    )


def render_recent_alerts(alerts: list) -> None:
    render_section_header("🚨", "Alertas Recientes", "Últimas cinco alertas críticas")
    if not alerts:
        st.info("No hay alertas recientes.")
        return
    for alert in alerts[:5]:
        st.markdown(
            f"**{alert.get('conductor_nombre', '-')}** · {alert.get('placa_vehiculo', '-')} "
            f"· _{alert.get('timeAgo', '')}_  \n{alert.get('observaciones') or 'Sin observaciones'}"
        )


def render_common_problems(problems: list) -> None:
    render_section_header("🩺", "Problemas Más Comunes", "Últimos 7 días")
    if not problems:
        st.info("Sin problemas registrados.")
        return
    df = pd.DataFrame(problems)
    df["nivel"] = df["percentage"].map(problem_level)
    fig = px.bar(
        df,
        x="percentage",
        y="problema",
        orientation="h",
        color="nivel",
        color_discrete_map=LEVEL_COLORS,
        hover_data=["count"],
        labels={"percentage": "% de inspecciones", "problema": "Problema", "count": "Casos"},
    )
    fig.update_layout(showlegend=False, height=320, yaxis={"categoryorder": "total ascending"})
    show_chart(fig)


def render_kpis(kpis: dict) -> None:
    render_section_header("🎯", "Indicadores Clave", "Comparación contra metas (30 días)")
    cards = kpi_cards(kpis)
    columns = st.columns(len(cards))
    for col, card in zip(columns, cards):
        progress = kpi_progress(card["current"], card["target"])
        unit = "%" if card["percent"] else ""
        met = card["met"] if card["met"] is not None else progress["on_target"]
        with col:
            render_metric_card(
                card["title"],
                f"{format_number(card['current'])}{unit}",
                f"Meta: {format_number(card['target'])}{unit} · {'Cumplido' if met else 'Pendiente'}",
                progress["level"],
            )
            st.progress(int(progress["bar"]))

    compliance = (kpis.get("cumplimiento") or {}).get("general")
    if compliance is not None:
        st.markdown(
            status_pill("Cumplimiento general" if compliance else "Metas pendientes", "success" if compliance else "warning"),
            unsafe_allow_html=True,
        )


def render(services: Services, settings: Settings) -> None:
    st_autorefresh(interval=settings.dashboard_refresh_ms, key="overview_autorefresh")
    render_page_title(
        "Centro de Operaciones",
        "Inspecciones preoperacionales y fatiga del conductor. Se actualiza cada 5 minutos.",
    )

    if st.button("🔄 Actualizar", key="overview_refresh"):
        st.session_state.pop("overview_widgets", None)

    if "overview_widgets" not in st.session_state or _stale(settings):
        load_overview(services)

    render_flash(SCOPE)
    widgets = st.session_state.get("overview_widgets")
    kpis = st.session_state.get("overview_kpis")
    if not widgets:
        st.warning("No hay datos del dashboard disponibles.")
        return

    indicators = widgets.get("indicadores") or {}
    status = STATUS_LEVELS.get(indicators.get("statusGeneral", ""), "default")
    updated = st.session_state.get("overview_updated")
    st.markdown(
        status_pill(f"Estado general: {indicators.get('statusGeneral', 'N/D')}", status)
        + (f"&nbsp;&nbsp;<span style='color:{THEME['text_secondary']}'>Actualizado {updated:%H:%M:%S}</span>" if updated else ""),
        unsafe_allow_html=True,
    )

    render_today(widgets)

    left, right = st.columns([1.2, 1])
    with left:
        render_recent_alerts(widgets.get("ultimasAlertas") or [])
    with right:
        render_common_problems(widgets.get("problemasComunes") or [])

    if kpis:
        render_kpis(kpis)


def _stale(settings: Settings) -> bool:
    updated = st.session_state.get("overview_updated")
    if updated is None:
        return True
    return (datetime.now() - updated).total_seconds() * 1000 >= settings.dashboard_refresh_ms

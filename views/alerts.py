from __future__ import annotations

"""
Active alert board. Polls the backend every 30 seconds, filters by type and
status, and pages through the result client-side.
"""

import pandas as pd
import streamlit as st
from streamlit_autorefresh import st_autorefresh

from api.client import ApiError
from api.services import Services
from utils.formatting import format_datetime, format_number
from utils.logging_utils import get_logger
from utils.settings import Settings
from views.paging import paged
from views.theme import flash, render_flash, render_metric_row, render_page_title
from views.transforms import alert_stats, filter_alerts

logger = get_logger(__name__)

SCOPE = "alerts"
TYPE_OPTIONS = ("TODAS", "CRITICA", "ADVERTENCIA")
STATUS_OPTIONS = ("ACTIVA", "EN_REVISION", "RESUELTA", "TODAS")


def load_alerts(services: Services, tipo: str, estado: str) -> list:
    try:
        return services.search.get_active_alerts(
            tipo=None if tipo == "TODAS" else tipo,
            estado=None if estado == "TODAS" else estado,
        )
    except ApiError as exc:
        logger.error("Alert load failed: %s", exc)
        flash("error", exc.message, SCOPE)
        return []


def alerts_frame(alerts: list) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Tipo": a.get("tipo"),
                "Prioridad": a.get("prioridad"),
                "Estado": a.get("estado"),
                "Fecha": format_datetime(a.get("fecha")),
                "Conductor": a.get("conductor"),
                "Vehículo": a.get("vehiculo"),
                "Descripción": a.get("descripcion"),
            }
            for a in alerts
        ],
        columns=["Tipo", "Prioridad", "Estado", "Fecha", "Conductor", "Vehículo", "Descripción"],
    )


def _highlight(row: pd.Series) -> list[str]:
    if row.get("Tipo") == "CRITICA":
        return ["background-color: rgba(255, 107, 107, 0.22);"] * len(row)
    if row.get("Tipo") == "ADVERTENCIA":
        return ["background-color: rgba(245, 158, 11, 0.16);"] * len(row)
    return [""] * len(row)


def render(services: Services, settings: Settings) -> None:
    refresh_count = st_autorefresh(interval=settings.alerts_refresh_ms, key="alerts_autorefresh")
    render_page_title("Centro de Alertas", "Alertas críticas y advertencias. Se actualiza cada 30 segundos.")

    type_col, status_col = st.columns(2)
    with type_col:
        tipo = st.selectbox("Tipo", TYPE_OPTIONS, key="alerts_type")
    with status_col:
        estado = st.selectbox("Estado", STATUS_OPTIONS, key="alerts_status")

    signature = (tipo, estado, refresh_count)
    if st.session_state.get("alerts_signature") != signature:
        st.session_state["alerts_data"] = load_alerts(services, tipo, estado)
        st.session_state["alerts_signature"] = signature
    render_flash(SCOPE)

    alerts = st.session_state.get("alerts_data", [])
    stats = alert_stats(alerts)
    render_metric_row(
        [
            ("Total", format_number(stats["total"]), "Recibidas", "info"),
            ("Críticas", format_number(stats["criticas"]), "Tipo CRITICA", "error"),
            ("Advertencias", format_number(stats["advertencias"]), "Tipo ADVERTENCIA", "warning"),
        ]
    )
    render_metric_row(
        [
            ("Activas", format_number(stats["activas"]), "Sin atender", "error"),
            ("En Revisión", format_number(stats["enRevision"]), "En proceso", "warning"),
            ("Resueltas", format_number(stats["resueltas"]), "Cerradas"),
        ]
    )

    visible = filter_alerts(alerts, tipo, estado)
    if not visible:
        st.success("No hay alertas con los filtros seleccionados.")
        return
    page = paged(visible, "alerts")
    st.dataframe(alerts_frame(page).style.apply(_highlight, axis=1), use_container_width=True, hide_index=True)

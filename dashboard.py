#!/usr/bin/env python3
"""
Inspection & Fatigue Operations Dashboard

Streamlit entry point: sidebar navigation across the operational pages,
with a critical-alert badge polled every 30 seconds.

    streamlit run dashboard.py
"""

from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st
from streamlit_autorefresh import st_autorefresh

# Ensure project root is on sys.path when running as a script
_script_dir = Path(__file__).resolve().parent
if str(_script_dir) not in sys.path:
    sys.path.insert(0, str(_script_dir))

from api.client import ApiError
from api.services import Services, build_services
from utils.logging_utils import get_logger, set_log_level
from utils.settings import Settings
from views import alerts, drivers, fatigue, overview, reports, search, upload, vehicles
from views.theme import THEME, inject_theme

logger = get_logger(__name__)

PAGES = {
    "dashboard": ("📊 Dashboard", overview.render),
    "search": ("🔎 Búsqueda", search.render),
    "drivers": ("🧑‍✈️ Conductores", drivers.render),
    "vehicles": ("🚚 Vehículos", vehicles.render),
    "fatigue": ("😴 Fatiga", fatigue.render),
    "alerts": ("🚨 Alertas", alerts.render),
    "reports": ("📄 Reportes", reports.render),
    "upload": ("📤 Carga de Datos", upload.render),
}


@st.cache_resource
def get_settings() -> Settings:
    settings = Settings.from_env()
    set_log_level(settings.log_level)
    return settings


@st.cache_resource
def get_services(_settings: Settings) -> Services:
    logger.info("Connecting to %s", _settings.api_url)
    return build_services(_settings)


def critical_alert_count(services: Services) -> int | None:
    try:
        return len(services.search.get_active_alerts(tipo="CRITICA", estado="ACTIVA"))
    except ApiError as exc:
        logger.warning("Alert badge unavailable: %s", exc)
        return None


def render_sidebar(services: Services, settings: Settings) -> str:
    st_autorefresh(interval=settings.alerts_refresh_ms, key="badge_autorefresh")
    st.sidebar.markdown(
        f"<h2 style='color: {THEME['accent']}; margin-bottom: 0;'>Inspecciones</h2>"
        f"<p style='color: {THEME['text_secondary']};'>Monitoreo de vehículos y fatiga</p>",
        unsafe_allow_html=True,
    )

    keys = list(PAGES)
    requested = st.query_params.get("page", "dashboard")
    page = st.sidebar.radio(
        "Navegación",
        keys,
        index=keys.index(requested) if requested in keys else 0,
        format_func=lambda key: PAGES[key][0],
        key="nav_page",
    )
    if st.query_params.get("page") != page:
        st.query_params["page"] = page

    count = critical_alert_count(services)
    if count is None:
        st.sidebar.caption("Alertas críticas: sin conexión")
    elif count:
        st.sidebar.error(f"🚨 {count} alertas críticas activas")
    else:
        st.sidebar.success("Sin alertas críticas activas")
    st.sidebar.caption(f"API: {settings.api_url}")
    return page


def main() -> None:
    st.set_page_config(
        page_title="Inspecciones & Fatiga",
        layout="wide",
        initial_sidebar_state="expanded",
    )
    inject_theme()

    settings = get_settings()
    services = get_services(settings)
    page = render_sidebar(services, settings)
    PAGES[page][1](services, settings)


if __name__ == "__main__":
    main()

from __future__ import annotations

"""
Driver management: summary list with search and paging, and a per-driver
history view (opened from the table or through ``?driver=<cedula>``).
"""

import pandas as pd
import plotly.express as px
import streamlit as st

from api.client import ApiError
from api.models import PERIODS
from api.services import Services
from utils.formatting import efficiency_level, format_date, format_number, inspection_status
from utils.logging_utils import get_logger
from views.paging import paged
from views.theme import (
    flash,
    render_flash,
    render_metric_row,
    render_page_title,
    render_section_header,
    show_chart,
    status_pill,
)
from views.transforms import driver_buckets, filter_drivers, recurring_problem_labels, summary_rows

logger = get_logger(__name__)

SCOPE = "drivers"
TREND_LEVELS = {"mejorando": "success", "estable": "default", "empeorando": "error"}


def load_drivers(services: Services, timeframe: str) -> list:
    try:
        summary = services.search.get_summary("conductores", timeframe=timeframe, limit=500)
    except ApiError as exc:
        logger.error("Driver summary failed: %s", exc)
        flash("error", exc.message, SCOPE)
        return []
    return summary_rows(summary)


def render_driver_table(drivers: list) -> None:
    rows = [
        {
            "Cédula": d.get("cedula"),
            "Nombre": d.get("nombre"),
            "Inspecciones": d.get("totalInspecciones", 0),
            "Alertas Rojas": d.get("alertasRojas", 0),
            "Advertencias": d.get("advertencias", 0),
            "Eficiencia": d.get("eficiencia", 0),
            "Última Inspección": format_date(d.get("ultimaInspeccion")),
            "Tendencia": d.get("tendencia", "-"),
            "Problemas": ", ".join((d.get("problemasRecurrentes") or [])[:2]),
        }
        for d in drivers
    ]
    st.dataframe(
        pd.DataFrame(rows),
        column_config={
            "Eficiencia": st.column_config.ProgressColumn("Eficiencia", min_value=0, max_value=100, format="%.1f%%"),
        },
        use_container_width=True,
        hide_index=True,
    )


def render_driver_details(history: dict) -> None:
    driver = history.get("conductor") or {}
    stats = history.get("estadisticas") or {}
    fatigue = history.get("alertasFatiga") or {}
    trend = stats.get("tendencia", "estable")

    st.markdown(
        f"""<div class="detail-card">
            <div class="detail-title">{driver.get('nombre', '-')}</div>
            <div class="detail-subtitle">Cédula {driver.get('cedula', '-')} · Última inspección {format_date(driver.get('ultimaInspeccion'))}</div>
            {status_pill(trend, TREND_LEVELS.get(trend, 'default'))}
        </div>""",
        unsafe_allow_html=True,
    )
    efficiency = float(stats.get("eficiencia") or 0)
    render_metric_row(
        [
            ("Inspecciones", format_number(driver.get("totalInspecciones", 0)), "Totales"),
            ("Alertas Rojas", format_number(driver.get("alertasRojas", 0)), "Históricas", "error"),
            ("Advertencias", format_number(driver.get("advertencias", 0)), "Históricas", "warning"),
            ("Eficiencia", f"{format_number(efficiency)}%", "Inspecciones limpias", efficiency_level(efficiency)),
        ]
    )

    left, right = st.columns(2)
    with left:
        fatigue_df = pd.DataFrame(
            {
                "Categoría": ["Medicamentos", "Sueño insuficiente", "Síntomas de fatiga", "No apto"],
                "Casos": [
                    fatigue.get("medicamentos", 0),
                    fatigue.get("suenoInsuficiente", 0),
                    fatigue.get("sintomasFatiga", 0),
                    fatigue.get("noApto", 0),
                ],
            }
        )
        fig = px.bar(fatigue_df, x="Categoría", y="Casos", title="Alertas de fatiga")
        show_chart(fig)
    with right:
        st.markdown("**Problemas recurrentes**")
        problems = recurring_problem_labels(stats.get("problemasRecurrentes"))
        if problems:
            for problem in problems:
                st.markdown(f"- {problem}")
        else:
            st.caption("Sin problemas recurrentes.")

        st.markdown("**Últimas inspecciones**")
        for inspection in (history.get("historial") or [])[:5]:
            level = inspection_status(inspection)
            st.markdown(
                f"{format_date(inspection.get('fecha'))} · {inspection.get('placa_vehiculo', '-')} · "
                f"{status_pill(str(inspection.get('puntaje_total', '-')) + '/100', level)}",
                unsafe_allow_html=True,
            )


def render(services: Services, settings) -> None:
    render_page_title("Gestión de Conductores", "Resumen por conductor e historial de inspecciones.")

    timeframe = st.selectbox("Período", PERIODS, index=1, key="drivers_timeframe")
    cache_key = f"drivers_{timeframe}"
    if st.button("🔄 Actualizar", key="drivers_refresh") or cache_key not in st.session_state:
        st.session_state[cache_key] = load_drivers(services, timeframe)
    render_flash(SCOPE)

    term = st.text_input("Buscar conductor", placeholder="Nombre o cédula...", key="drivers_term")
    drivers = filter_drivers(st.session_state.get(cache_key, []), term)
    buckets = driver_buckets(drivers)
    render_metric_row(
        [
            ("Total Conductores", format_number(buckets["total"]), "Con el filtro actual", "info"),
            ("Alta Eficiencia", format_number(buckets["altaEficiencia"]), "≥ 90%"),
            ("Baja Eficiencia", format_number(buckets["bajaEficiencia"]), "< 75%", "warning"),
            ("Con Alertas", format_number(buckets["conAlertas"]), "Al menos una alerta roja", "error"),
        ]
    )

    if drivers:
        render_driver_table(paged(drivers, "drivers"))
    else:
        st.info("No hay conductores para mostrar.")

    render_section_header("👤", "Detalle del Conductor", "Historial completo de un conductor")
    options = [""] + [str(d.get("cedula")) for d in drivers if d.get("cedula")]
    preset = st.query_params.get("driver", "")
    if preset and preset not in options:
        options.append(preset)
    selected = st.selectbox("Cédula", options, index=options.index(preset), key="drivers_selected")
    if not selected:
        return
    try:
        history = services.search.get_driver_history(selected)
    except ApiError as exc:
        st.error(exc.message)
        return
    st.query_params["driver"] = selected
    render_driver_details(history)

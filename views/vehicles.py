from __future__ import annotations

"""
Vehicle management: fleet summary with plate search and status filter, plus
per-vehicle inspection history (``?placa=<plate>`` opens it directly).
"""

import pandas as pd
import streamlit as st

from api.client import ApiError
from api.models import PERIODS
from api.services import Services
from utils.formatting import VEHICLE_STATUS_LEVELS, efficiency_level, format_date, format_number, inspection_status
from utils.logging_utils import get_logger
from views.paging import paged
from views.theme import flash, render_flash, render_metric_row, render_page_title, render_section_header, status_pill
from views.transforms import filter_vehicles, summary_rows, vehicle_buckets

logger = get_logger(__name__)

SCOPE = "vehicles"
STATUS_OPTIONS = ("todos", "operativo", "mantenimiento", "critico")


def load_vehicles(services: Services, timeframe: str) -> list:
    try:
        summary = services.search.get_summary("vehiculos", timeframe=timeframe, limit=500)
    except ApiError as exc:
        logger.error("Vehicle summary failed: %s", exc)
        flash("error", exc.message, SCOPE)
        return []
    return summary_rows(summary)


def render_vehicle_table(vehicles: list) -> None:
    rows = [
        {
            "Placa": v.get("placa"),
            "Estado": str(v.get("estado", "-")).capitalize(),
            "Inspecciones": v.get("totalInspecciones", 0),
            "Alertas Rojas": v.get("alertasRojas", 0),
            "Advertencias": v.get("advertencias", 0),
            "Eficiencia": v.get("eficiencia", 0),
            "Conductores": v.get("conductoresAsignados", 0),
            "Mantenimiento": "Sí" if v.get("mantenimientoRequerido") else "No",
            "Última Inspección": format_date(v.get("ultimaInspeccion")),
            "Problemas": ", ".join((v.get("problemasRecurrentes") or [])[:2]),
        }
        for v in vehicles
    ]
    st.dataframe(
        pd.DataFrame(rows),
        column_config={
            "Eficiencia": st.column_config.ProgressColumn("Eficiencia", min_value=0, max_value=100, format="%.1f%%"),
        },
        use_container_width=True,
        hide_index=True,
    )


def render_vehicle_details(history: dict) -> None:
    vehicle = history.get("vehiculo") or {}
    stats = history.get("estadisticas") or {}
    maintenance = bool(stats.get("mantenimientoRequerido"))

    st.markdown(
        f"""<div class="detail-card">
            <div class="detail-title">{vehicle.get('placa', '-')}</div>
            <div class="detail-subtitle">Última inspección {format_date(vehicle.get('ultimaInspeccion'))}</div>
            {status_pill('Mantenimiento requerido' if maintenance else 'Operativo', 'warning' if maintenance else 'success')}
        </div>""",
        unsafe_allow_html=True,
    )
    efficiency = float(stats.get("eficiencia") or 0)
    render_metric_row(
        [
            ("Inspecciones", format_number(vehicle.get("totalInspecciones", 0)), "Totales"),
            ("Alertas Rojas", format_number(vehicle.get("alertasRojas", 0)), "Históricas", "error"),
            ("Advertencias", format_number(vehicle.get("advertencias", 0)), "Históricas", "warning"),
            ("Eficiencia", f"{format_number(efficiency)}%", "Inspecciones limpias", efficiency_level(efficiency)),
        ]
    )

    left, right = st.columns(2)
    with left:
        st.markdown("**Conductores asignados**")
        drivers = history.get("conductoresAsignados") or []
        if drivers:
            st.dataframe(
                pd.DataFrame(drivers).rename(
                    columns={"nombre": "Nombre", "cedula": "Cédula", "inspecciones": "Inspecciones"}
                ),
                use_container_width=True,
                hide_index=True,
            )
        else:
            st.caption("Sin conductores registrados.")
        st.markdown("**Problemas recurrentes**")
        for problem in stats.get("problemasRecurrentes") or []:
            st.markdown(f"- {problem}")
    with right:
        st.markdown("**Últimas inspecciones**")
        for inspection in (history.get("historial") or [])[:5]:
            st.markdown(
                f"{format_date(inspection.get('fecha'))} · {inspection.get('conductor_nombre', '-')} · "
                f"{status_pill(str(inspection.get('puntaje_total', '-')) + '/100', inspection_status(inspection))}",
                unsafe_allow_html=True,
            )


def render(services: Services, settings) -> None:
    render_page_title("Gestión de Vehículos", "Estado de la flota a partir de las inspecciones preoperacionales.")

    timeframe = st.selectbox("Período", PERIODS, index=1, key="vehicles_timeframe")
    cache_key = f"vehicles_{timeframe}"
    if st.button("🔄 Actualizar", key="vehicles_refresh") or cache_key not in st.session_state:
        st.session_state[cache_key] = load_vehicles(services, timeframe)
    render_flash(SCOPE)

    term_col, status_col = st.columns([3, 1])
    with term_col:
        term = st.text_input("Buscar vehículo", placeholder="Placa...", key="vehicles_term")
    with status_col:
        status = st.selectbox("Estado", STATUS_OPTIONS, key="vehicles_status")

    vehicles = filter_vehicles(st.session_state.get(cache_key, []), term, status)
    buckets = vehicle_buckets(vehicles)
    render_metric_row(
        [
            ("Total Vehículos", format_number(buckets["total"]), "Con el filtro actual", "info"),
            ("Operativos", format_number(buckets["operativos"]), "Sin restricciones", VEHICLE_STATUS_LEVELS["operativo"]),
            ("Mantenimiento", format_number(buckets["mantenimiento"]), "Requieren revisión", "warning"),
            ("Críticos", format_number(buckets["criticos"]), "Fuera de servicio sugerido", "error"),
        ]
    )

    if vehicles:
        render_vehicle_table(paged(vehicles, "vehicles"))
    else:
        st.info("No hay vehículos para mostrar.")

    render_section_header("🚚", "Detalle del Vehículo", "Historial de inspecciones por placa")
    options = [""] + [str(v.get("placa")) for v in vehicles if v.get("placa")]
    preset = st.query_params.get("placa", "")
    if preset and preset not in options:
        options.append(preset)
    selected = st.selectbox("Placa", options, index=options.index(preset), key="vehicles_selected")
    if not selected:
        return
    try:
        history = services.search.get_vehicle_history(selected)
    except ApiError as exc:
        st.error(exc.message)
        return
    st.query_params["placa"] = selected
    render_vehicle_details(history)

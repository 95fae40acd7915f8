from __future__ import annotations

"""
Inspection search: basic and advanced filters, server-side paging and export.
"""

import json
from dataclasses import replace
from datetime import date
from typing import Optional

import streamlit as st

from api.client import ApiError
from api.models import EXPORT_FORMATS, PROBLEM_TYPES, SEVERITIES, SORT_FIELDS, AdvancedSearchFilters, SearchFilters
from api.services import Services
from utils.formatting import export_filename, format_number
from utils.logging_utils import get_logger
from views.theme import clear_flash, flash, render_flash, render_page_title, render_section_header
from views.transforms import ROWS_PER_PAGE_OPTIONS, inspections_frame

logger = get_logger(__name__)

SCOPE = "search"
EXPORT_MIME = {
    "json": "application/json",
    "csv": "text/csv",
    "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pdf": "application/pdf",
}


def _date_or_none(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _tri_state(label: str, key: str) -> Optional[bool]:
    choice = st.selectbox(label, ("Todos", "Sí", "No"), key=key)
    return None if choice == "Todos" else choice == "Sí"


def collect_basic_filters() -> SearchFilters:
    col1, col2, col3 = st.columns(3)
    with col1:
        start = st.date_input("Fecha inicio", value=None, key="search_start")
        contrato = st.text_input("Contrato", key="search_contrato")
        alerts = _tri_state("Con alertas rojas", "search_alerts")
    with col2:
        end = st.date_input("Fecha fin", value=None, key="search_end")
        campo = st.text_input("Campo", key="search_campo")
        warnings = _tri_state("Con advertencias", "search_warnings")
    with col3:
        conductor = st.text_input("Conductor (nombre o cédula)", key="search_conductor")
        placa = st.text_input("Placa", key="search_placa")
        fatigue_only = st.checkbox("Solo problemas de fatiga", key="search_fatigue")
    return SearchFilters(
        fechaInicio=_date_or_none(start),
        fechaFin=_date_or_none(end),
        contrato=contrato or None,
        campo=campo or None,
        conductor=conductor or None,
        placa=placa or None,
        tieneAlertas=alerts,
        tieneAdvertencias=warnings,
        soloFatiga=fatigue_only or None,
    )


def collect_advanced_filters(basic: SearchFilters) -> AdvancedSearchFilters:
    col1, col2, col3 = st.columns(3)
    with col1:
        min_score = st.number_input("Puntaje mínimo", min_value=0, max_value=100, value=None, key="adv_min")
        max_score = st.number_input("Puntaje máximo", min_value=0, max_value=100, value=None, key="adv_max")
    with col2:
        problem = st.selectbox("Tipo de problema", ("",) + PROBLEM_TYPES, key="adv_problem")
        severity = st.selectbox("Severidad", ("",) + SEVERITIES, key="adv_severity")
    with col3:
        sort_by = st.selectbox("Ordenar por", SORT_FIELDS, key="adv_sort")
        order = st.radio("Orden", ("desc", "asc"), horizontal=True, key="adv_order")
    return AdvancedSearchFilters.from_basic(
        basic,
        puntajeMinimo=min_score,
        puntajeMaximo=max_score,
        tipoProblema=problem or None,
        severidad=severity or None,
        ordenarPor=sort_by,
        orden=order,
    )


def run_search(services: Services, filters: SearchFilters, advanced: bool) -> None:
    try:
        if advanced:
            results = services.search.advanced_search(filters)
        else:
            results = services.search.search_inspections(filters)
    except ApiError as exc:
        logger.error("Search failed: %s", exc)
        flash("error", exc.message, SCOPE)
        return
    clear_flash(SCOPE)
    st.session_state["search_results"] = results
    st.session_state["search_last"] = (filters, advanced)


def _resize(services: Services, advanced: bool) -> None:
    filters, _ = st.session_state["search_last"]
    run_search(services, replace(filters, page=0, limit=st.session_state["search_size"]), advanced)


def render_results(services: Services) -> None:
    results = st.session_state.get("search_results")
    if not results:
        st.info("Configure los filtros y ejecute la búsqueda.")
        return

    filters, advanced = st.session_state["search_last"]
    total = int(results.get("totalFound") or 0)
    total_pages = max(int(results.get("totalPages") or 1), 1)
    render_section_header("📋", f"Resultados · {format_number(total)}", f"Página {int(filters.page or 0) + 1} de {total_pages}")

    df = inspections_frame(results.get("inspecciones") or [])
    st.dataframe(
        df.rename(
            columns={
                "fecha": "Fecha",
                "conductor_nombre": "Conductor",
                "conductor_cedula": "Cédula",
                "placa_vehiculo": "Placa",
                "contrato": "Contrato",
                "campo": "Campo",
                "turno": "Turno",
                "puntaje_total": "Puntaje",
                "estado": "Estado",
            }
        ).drop(columns=["tiene_alerta_roja", "tiene_advertencias"]),
        column_config={"Puntaje": st.column_config.ProgressColumn("Puntaje", min_value=0, max_value=100, format="%d")},
        use_container_width=True,
        hide_index=True,
    )

    prev_col, next_col, size_col = st.columns([1, 1, 2])
    page = int(filters.page or 0)
    with prev_col:
        if st.button("◀ Anterior", disabled=page <= 0, key="search_prev"):
            run_search(services, replace(filters, page=page - 1), advanced)
            st.rerun()
    with next_col:
        if st.button("Siguiente ▶", disabled=page + 1 >= total_pages, key="search_next"):
            run_search(services, replace(filters, page=page + 1), advanced)
            st.rerun()
    with size_col:
        current = filters.limit if filters.limit in ROWS_PER_PAGE_OPTIONS else 25
        st.selectbox(
            "Filas por página",
            ROWS_PER_PAGE_OPTIONS,
            index=ROWS_PER_PAGE_OPTIONS.index(current),
            key="search_size",
            on_change=_resize,
            args=(services, advanced),
        )

    render_export(services, filters)


def render_export(services: Services, filters: SearchFilters) -> None:
    render_section_header("📤", "Exportar", "Descargue los resultados en el formato requerido")
    export_format = st.radio("Formato", EXPORT_FORMATS, horizontal=True, key="search_export_format")
    filename = export_filename(export_format)
    if st.button("Preparar exportación", key="search_export"):
        try:
            payload = services.search.export_search_results(filters, export_format, filename=filename)
        except ApiError as exc:
            flash("error", f"Error exportando: {exc.message}", SCOPE)
            st.rerun()
            return
        if export_format == "json":
            payload = json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")
        st.session_state["search_export_blob"] = (filename, payload, EXPORT_MIME[export_format])

    blob = st.session_state.get("search_export_blob")
    if blob:
        name, data, mime = blob
        st.download_button(f"Descargar {name}", data=data, file_name=name, mime=mime, key="search_download")


def render(services: Services, settings) -> None:
    render_page_title("Búsqueda de Inspecciones", "Filtre inspecciones por fecha, contrato, conductor o vehículo.")
    render_flash(SCOPE)

    with st.expander("Búsqueda rápida", expanded=False):
        type_col, query_col = st.columns([1, 3])
        with type_col:
            quick_type = st.selectbox(
                "Buscar en",
                ("conductores", "vehiculos", "contratos"),
                format_func={"conductores": "Conductores", "vehiculos": "Vehículos", "contratos": "Contratos"}.get,
                key="quick_type",
            )
        with query_col:
            query = st.text_input("Nombre, cédula, placa o contrato", key="quick_query")
        if query and len(query) >= 2:
            suggestions = services.search.quick_search(query, quick_type)
            if suggestions:
                st.table([{"Tipo": s["type"], "Valor": s["label"], "Detalle": s.get("extra") or ""} for s in suggestions])
            else:
                st.caption("Sin coincidencias.")

    basic = collect_basic_filters()
    advanced = st.toggle("Búsqueda avanzada", key="search_advanced")
    filters: SearchFilters = basic
    if advanced:
        try:
            filters = collect_advanced_filters(basic)
        except ValueError as exc:
            st.error(str(exc))
            return

    search_col, clear_col = st.columns([1, 1])
    with search_col:
        if st.button("🔍 Buscar", type="primary", key="search_run"):
            filters.page = 0
            filters.limit = st.session_state.get("search_size", 25)
            run_search(services, filters, advanced)
            st.rerun()
    with clear_col:
        if st.button("🧹 Limpiar", key="search_clear"):
            for key in ("search_results", "search_last", "search_export_blob"):
                st.session_state.pop(key, None)
            clear_flash(SCOPE)
            st.rerun()

    render_results(services)

from __future__ import annotations

"""
Excel ingestion page.

The flow mirrors what the backend expects: a local name/size pre-check,
a server-side validation pass, then the actual upload with a progress bar.
History, revert/retry, statistics, templates and cleanup live below.
"""

import pandas as pd
import streamlit as st

from api.client import ApiError
from api.services import Services
from api.upload_service import validate_file_format
from utils.formatting import UPLOAD_STATUS_LEVELS, format_datetime, format_number
from utils.logging_utils import get_logger
from views.theme import (
    clear_flash,
    flash,
    render_flash,
    render_metric_row,
    render_page_title,
    render_section_header,
    status_pill,
)

logger = get_logger(__name__)

SCOPE = "upload"
HISTORY_LIMIT = 10
REVERT_REASON = "Revertido por el usuario"


def history_frame(uploads: list) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "ID": u.get("id"),
                "Archivo": u.get("fileName"),
                "Fecha": format_datetime(u.get("uploadDate")),
                "Registros": u.get("totalRecords"),
                "Nuevos": u.get("newRecords"),
                "Duplicados": u.get("duplicateRecords"),
                "Tiempo (ms)": u.get("processingTime"),
                "Estado": u.get("status"),
            }
            for u in uploads
        ],
        columns=["ID", "Archivo", "Fecha", "Registros", "Nuevos", "Duplicados", "Tiempo (ms)", "Estado"],
    )


def load_history(services: Services) -> None:
    try:
        history = services.upload.get_upload_history(limit=HISTORY_LIMIT)
    except ApiError as exc:
        logger.error("Upload history failed: %s", exc)
        st.session_state["upload_history"] = []
        return
    uploads = history.get("uploads") if isinstance(history, dict) else None
    st.session_state["upload_history"] = uploads if isinstance(uploads, list) else []


def render_validation(result: dict) -> None:
    if result.get("isValid"):
        st.success("Archivo válido")
    else:
        st.error("Archivo con errores")
    if result.get("estimatedRecords"):
        st.write(f"Registros estimados: {format_number(result['estimatedRecords'])}")
    if result.get("detectedYear"):
        months = ", ".join(str(m) for m in result.get("detectedMonths") or [])
        st.write(f"Año detectado: {result['detectedYear']}" + (f" | Meses: {months}" if months else ""))
    for error in result.get("errors") or []:
        st.markdown(f"- ❌ {error}")
    for warning in result.get("warnings") or []:
        st.markdown(f"- ⚠️ {warning}")
    for tip in result.get("recommendations") or []:
        st.markdown(f"- 💡 {tip}")


def render_upload_result(result: dict) -> None:
    render_metric_row(
        [
            ("Registros", format_number(result.get("totalRecords")), result.get("fileName", ""), "info"),
            ("Nuevos", format_number(result.get("newRecords")), "Agregados"),
            ("Duplicados", format_number(result.get("duplicateRecords")), "Omitidos", "warning"),
            ("Tiempo", f"{format_number(result.get('processingTime'))} ms", "Procesamiento", "info"),
        ]
    )
    for warning in result.get("warnings") or []:
        st.warning(warning)


def render_file_section(services: Services) -> None:
    render_section_header("📤", "Cargar archivo Excel", "Formatos .xlsx / .xls, máximo 50MB")
    uploaded = st.file_uploader("Archivo", type=["xlsx", "xls"], key="upload_file")
    if uploaded is None:
        st.session_state.pop("upload_validation", None)
        return

    check = validate_file_format(uploaded.name, uploaded.size)
    if not check.is_valid:
        st.error(", ".join(check.errors))
        return

    if st.session_state.get("upload_selected") != (uploaded.name, uploaded.size):
        st.session_state["upload_selected"] = (uploaded.name, uploaded.size)
        st.session_state.pop("upload_validation", None)
        st.session_state.pop("upload_result", None)
        clear_flash(SCOPE)

    overwrite = st.checkbox("Sobrescribir duplicados", value=False, key="upload_overwrite")
    validate_col, upload_col = st.columns(2)
    with validate_col:
        if st.button("🔍 Validar", key="upload_validate"):
            with st.spinner("Validando archivo..."):
                try:
                    result = services.upload.validate_file(uploaded)
                except ApiError as exc:
                    flash("error", exc.message or "Error validando archivo", SCOPE)
                else:
                    st.session_state["upload_validation"] = result
                    if result.get("isValid"):
                        flash("success", "Archivo validado correctamente", SCOPE)
                    else:
                        flash("error", "El archivo tiene errores de validación", SCOPE)

    validation = st.session_state.get("upload_validation")
    blocked = bool(validation) and not validation.get("isValid")
    with upload_col:
        start = st.button("🚀 Procesar", key="upload_process", type="primary", disabled=blocked)

    if start:
        bar = st.progress(0, text="Subiendo archivo...")
        try:
            result = services.upload.upload_excel_file(
                uploaded,
                overwrite_duplicates=overwrite,
                on_progress=lambda pct: bar.progress(pct, text=f"Subiendo archivo... {pct}%"),
            )
        except ApiError as exc:
            logger.error("Upload of %s failed: %s", uploaded.name, exc)
            flash("error", exc.message or "Error procesando archivo", SCOPE)
        else:
            st.session_state["upload_result"] = result
            flash(
                "success",
                f"Archivo procesado exitosamente. {result.get('newRecords', 0)} registros nuevos agregados.",
                SCOPE,
            )
            load_history(services)
        bar.empty()

    if validation:
        render_validation(validation)
    if st.session_state.get("upload_result"):
        render_upload_result(st.session_state["upload_result"])


def render_history(services: Services) -> None:
    render_section_header("🕘", "Historial", f"Últimas {HISTORY_LIMIT} cargas")
    if "upload_history" not in st.session_state or st.button("🔄 Actualizar historial", key="upload_history_refresh"):
        load_history(services)
    uploads = st.session_state.get("upload_history", [])
    if not uploads:
        st.info("No hay cargas registradas.")
        return

    st.dataframe(history_frame(uploads), use_container_width=True, hide_index=True)

    by_id = {u.get("id"): u for u in uploads if u.get("id")}
    selected = st.selectbox(
        "Carga",
        list(by_id),
        format_func=lambda fid: f"{by_id[fid].get('fileName')} ({by_id[fid].get('status')})",
        key="upload_selected_id",
    )
    if not selected:
        return
    upload = by_id[selected]
    status = upload.get("status", "")
    st.markdown(status_pill(status, UPLOAD_STATUS_LEVELS.get(status, "default")), unsafe_allow_html=True)

    details_col, revert_col, retry_col = st.columns(3)
    with details_col:
        if st.button("Ver detalles", key="upload_details"):
            try:
                st.session_state["upload_details"] = services.upload.get_upload_details(selected)
            except ApiError as exc:
                flash("error", exc.message, SCOPE)
    with revert_col:
        if st.button("↩️ Revertir", key="upload_revert", disabled=status != "PROCESADO"):
            try:
                reverted = services.upload.revert_upload(selected, REVERT_REASON)
            except ApiError as exc:
                logger.error("Revert of %s failed: %s", selected, exc)
                reverted = False
            if reverted:
                flash("success", "Upload revertido exitosamente", SCOPE)
                load_history(services)
            else:
                flash("error", "Error al revertir el upload", SCOPE)
            st.rerun()
    with retry_col:
        if st.button("🔁 Reintentar", key="upload_retry", disabled=status != "ERROR"):
            try:
                result = services.upload.retry_failed_upload(selected)
            except ApiError as exc:
                flash("error", exc.message, SCOPE)
            else:
                flash("success", f"Reprocesado: {result.get('newRecords', 0)} registros nuevos.", SCOPE)
                load_history(services)
            st.rerun()

    details = st.session_state.get("upload_details")
    if details:
        with st.expander("Detalles", expanded=True):
            st.json(details)


def render_stats(services: Services) -> None:
    render_section_header("📈", "Estadísticas de carga")
    try:
        stats = services.upload.get_upload_stats()
    except ApiError as exc:
        st.warning(exc.message)
        return
    render_metric_row(
        [
            ("Cargas", format_number(stats.get("totalUploads")), "Total", "info"),
            ("Registros", format_number(stats.get("totalRecordsProcessed")), "Procesados"),
            ("Tiempo promedio", f"{format_number(stats.get('averageProcessingTime'))} ms", "Por archivo", "info"),
            ("Éxito", f"{format_number(stats.get('successRate'))}%", format_datetime(stats.get("lastUpload"))),
        ]
    )
    monthly = pd.DataFrame(stats.get("monthlyStats") or [], columns=["month", "uploads", "records"])
    if not monthly.empty:
        st.bar_chart(monthly.set_index("month")[["uploads", "records"]])


def render_templates(services: Services) -> None:
    render_section_header("📋", "Plantillas")
    try:
        templates = services.upload.get_excel_templates()
    except ApiError as exc:
        st.warning(exc.message)
        return
    for template in templates or []:
        name = template.get("name", "")
        with st.expander(f"{name} v{template.get('version', '')}"):
            st.write(template.get("description", ""))
            st.caption("Requeridas: " + ", ".join(template.get("requiredColumns") or []))
            if template.get("optionalColumns"):
                st.caption("Opcionales: " + ", ".join(template["optionalColumns"]))
            blob_key = f"template_blob_{name}"
            if st.button("Preparar descarga", key=f"template_fetch_{name}"):
                try:
                    st.session_state[blob_key] = services.upload.download_template(name)
                except ApiError as exc:
                    flash("error", exc.message, SCOPE)
            if st.session_state.get(blob_key):
                st.download_button(
                    "⬇️ Descargar",
                    data=st.session_state[blob_key],
                    file_name=name if name.endswith((".xlsx", ".xls")) else f"{name}.xlsx",
                    key=f"template_download_{name}",
                )


def render_cleanup(services: Services) -> None:
    render_section_header("🧹", "Limpieza", "Eliminar registros de cargas antiguas")
    days = st.number_input("Más antiguas que (días)", min_value=1, value=90, step=1, key="upload_cleanup_days")
    if st.button("Limpiar", key="upload_cleanup"):
        try:
            result = services.upload.cleanup_old_uploads(int(days))
        except ApiError as exc:
            flash("error", exc.message, SCOPE)
        else:
            flash("success", f"Limpieza completada: {result}", SCOPE)
        st.rerun()


def render(services: Services, settings) -> None:
    render_page_title("Carga de Datos", "Inspecciones preoperacionales desde Excel.")
    banner = st.container()
    upload_tab, history_tab, stats_tab, templates_tab = st.tabs(["Cargar", "Historial", "Estadísticas", "Plantillas"])
    with upload_tab:
        render_file_section(services)
    with history_tab:
        render_history(services)
        render_cleanup(services)
    with stats_tab:
        render_stats(services)
    with templates_tab:
        render_templates(services)
    with banner:
        render_flash(SCOPE)

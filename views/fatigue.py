from __future__ import annotations

"""
Driver fatigue analysis: category breakdown, rates against total inspections,
daily trend and the server-rendered PDF analysis.
"""

import plotly.express as px
import streamlit as st

from api.client import ApiError
from api.models import PERIODS
from api.services import Services
from utils.formatting import fatigue_filename, format_number, severity_level
from utils.logging_utils import get_logger
from views.theme import (
    LEVEL_COLORS,
    flash,
    render_flash,
    render_metric_row,
    render_page_title,
    render_section_header,
    show_chart,
)
from views.transforms import FATIGUE_CATEGORIES, fatigue_breakdown, fatigue_rates, fatigue_trend_rows

logger = get_logger(__name__)

SCOPE = "fatigue"
PERIOD_LABELS = {"7days": "7 días", "30days": "30 días", "90days": "90 días"}


def load_fatigue(services: Services, period: str) -> None:
    try:
        summary = services.search.get_summary("fatiga", timeframe=period)
        trends = services.search.get_trends(periodo=period, metrics="fatigue")
    except ApiError as exc:
        logger.error("Fatigue load failed: %s", exc)
        flash("error", exc.message, SCOPE)
        return
    st.session_state[f"fatigue_{period}"] = (summary or {}, trends.get("tendencias") or [])


def render(services: Services, settings) -> None:
    render_page_title("Análisis de Fatiga del Conductor", "Medicamentos, sueño, síntomas y aptitud para conducir.")

    period_col, refresh_col, pdf_col = st.columns([2, 1, 1])
    with period_col:
        period = st.selectbox(
            "Período", PERIODS, index=1, format_func=PERIOD_LABELS.get, key="fatigue_period"
        )
    with refresh_col:
        refresh = st.button("🔄 Actualizar", key="fatigue_refresh")
    if refresh or f"fatigue_{period}" not in st.session_state:
        load_fatigue(services, period)

    with pdf_col:
        if st.button("📄 Generar PDF", key="fatigue_pdf"):
            try:
                blob = services.dashboard.download_fatigue_analysis(
                    periodo=period, include_driver_details=True, include_recommendations=True
                )
                st.session_state["fatigue_pdf_blob"] = (period, blob)
            except ApiError as exc:
                logger.error("Fatigue PDF failed: %s", exc)
                flash("error", "Error al generar el reporte PDF", SCOPE)
        blob_period, blob = st.session_state.get("fatigue_pdf_blob") or (None, None)
        if blob and blob_period == period:
            st.download_button(
                "Descargar PDF",
                data=blob,
                file_name=fatigue_filename(period),
                mime="application/pdf",
                key="fatigue_pdf_download",
            )

    render_flash(SCOPE)
    summary, trends = st.session_state.get(f"fatigue_{period}", ({}, []))
    if not summary:
        st.warning("No hay datos de fatiga para el período seleccionado.")
        return

    rates = fatigue_rates(summary)
    metrics = [("Inspecciones", format_number(summary.get("totalInspecciones", 0)), PERIOD_LABELS[period], "info")]
    for row in rates.itertuples():
        metrics.append(
            (row.categoria, format_number(row.casos), f"{row.porcentaje:.1f}% del total", severity_level(row.porcentaje))
        )
    render_metric_row(metrics)

    left, right = st.columns(2)
    with left:
        breakdown = fatigue_breakdown(summary)
        if not breakdown.empty:
            fig = px.pie(
                breakdown,
                values="value",
                names="name",
                color="name",
                color_discrete_map=dict(zip(breakdown["name"], breakdown["color"])),
                hole=0.5,
                title="Distribución de casos",
            )
            fig.update_traces(textposition="inside", textinfo="label+percent")
            show_chart(fig)
    with right:
        rates["nivel"] = rates["porcentaje"].map(severity_level)
        fig = px.bar(
            rates,
            x="categoria",
            y="porcentaje",
            color="nivel",
            color_discrete_map=LEVEL_COLORS,
            hover_data=["casos"],
            labels={"categoria": "Categoría", "porcentaje": "% de inspecciones", "casos": "Casos"},
            title="Tasa por categoría",
        )
        fig.update_layout(showlegend=False)
        show_chart(fig)

    render_section_header("📈", "Tendencia", "Casos diarios por categoría")
    trend_df = fatigue_trend_rows(trends)
    if trend_df.empty:
        st.info("Sin datos de tendencia.")
        return
    series = [key for key, _, _ in FATIGUE_CATEGORIES]
    labels = {key: label for key, label, _ in FATIGUE_CATEGORIES}
    long_df = trend_df.melt(id_vars=["fecha"], value_vars=series, var_name="categoria", value_name="casos")
    long_df["categoria"] = long_df["categoria"].map(labels)
    fig = px.line(
        long_df,
        x="fecha",
        y="casos",
        color="categoria",
        markers=True,
        color_discrete_map={label: color for _, label, color in FATIGUE_CATEGORIES},
        labels={"fecha": "Fecha", "casos": "Casos", "categoria": "Categoría"},
    )
    show_chart(fig)

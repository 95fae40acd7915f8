from __future__ import annotations

"""
Shared look-and-feel for the operations dashboard: CSS, Plotly theme, cards,
section headers and the dismissible message banners.
"""

from textwrap import dedent as _dedent
from typing import Optional

import plotly.graph_objects as go
import streamlit as st

THEME = {
    "background": "#050b18",
    "surface": "#0f172a",
    "surface_alt": "#111f3b",
    "border": "#1f2a48",
    "accent": "#2de1c2",
    "accent_soft": "rgba(45, 225, 194, 0.18)",
    "danger": "#ff6b6b",
    "danger_soft": "rgba(255, 107, 107, 0.22)",
    "warning": "#f59e0b",
    "warning_soft": "rgba(245, 158, 11, 0.2)",
    "info": "#3ba7f8",
    "grid": "#1f2a48",
    "text_primary": "#f8fafc",
    "text_secondary": "#94a3b8",
}

LEVEL_COLORS = {
    "success": THEME["accent"],
    "warning": THEME["warning"],
    "error": THEME["danger"],
    "info": THEME["info"],
    "default": THEME["text_secondary"],
}

PLOTLY_CONFIG = {
    "displaylogo": False,
    "modeBarButtonsToRemove": [
        "pan2d",
        "lasso2d",
        "autoScale2d",
        "zoomIn2d",
        "zoomOut2d",
    ],
}


def inject_theme() -> None:
    """Inject the dashboard CSS once per rerun."""
    style = _dedent(f"""
        <style>
            .stApp {{
                background:
                    radial-gradient(circle at 15% 20%, rgba(37, 99, 235, 0.18), transparent 45%),
                    radial-gradient(circle at 85% 5%, rgba(45, 225, 194, 0.22), transparent 38%),
                    {THEME['background']};
                color: {THEME['text_primary']};
            }}

            .block-container {{
                padding: 2rem 3rem 3rem 3rem;
            }}

            .dashboard-title {{
                font-family: 'Inter', system-ui, sans-serif;
                font-size: 2.1rem;
                font-weight: 600;
                margin-bottom: 0.3rem;
            }}

            .dashboard-subtitle {{
                color: {THEME['text_secondary']};
                font-size: 0.95rem;
                margin-bottom: 1.8rem;
            }}

            .metric-card {{
                background: linear-gradient(135deg, rgba(15, 23, 42, 0.9), rgba(17, 31, 59, 0.92));
                border: 1px solid {THEME['border']};
                border-left: 4px solid var(--card-accent, {THEME['accent']});
                border-radius: 16px;
                padding: 1.1rem 1.3rem;
                min-height: 120px;
                margin-bottom: 0.8rem;
            }}

            .metric-label {{
                font-size: 0.76rem;
                letter-spacing: 0.16em;
                text-transform: uppercase;
                color: {THEME['text_secondary']};
                margin-bottom: 0.5rem;
            }}

            .metric-value {{
                font-size: 1.8rem;
                font-weight: 600;
            }}

            .metric-caption {{
                margin-top: 0.3rem;
                font-size: 0.84rem;
                color: {THEME['text_secondary']};
            }}

            .section-header {{
                display: flex;
                align-items: center;
                gap: 0.75rem;
                margin-top: 2rem;
                margin-bottom: 1rem;
            }}

            .section-icon {{
                width: 38px;
                height: 38px;
                border-radius: 12px;
                background: {THEME['accent_soft']};
                display: grid;
                place-items: center;
                font-size: 1.15rem;
            }}

            .section-header h2 {{
                margin: 0;
                font-size: 1.3rem;
                font-weight: 600;
            }}

            .section-subtitle {{
                margin: 0.15rem 0 0 0;
                color: {THEME['text_secondary']};
                font-size: 0.86rem;
            }}

            .status-pill {{
                display: inline-flex;
                align-items: center;
                font-size: 0.74rem;
                letter-spacing: 0.12em;
                text-transform: uppercase;
                border-radius: 999px;
                padding: 0.3rem 0.8rem;
                border: 1px solid currentColor;
            }}

            .detail-card {{
                background: linear-gradient(135deg, rgba(15, 23, 42, 0.95), rgba(15, 23, 42, 0.75));
                border: 1px solid {THEME['border']};
                border-radius: 18px;
                padding: 1.3rem 1.5rem;
                margin-bottom: 1.2rem;
            }}

            .detail-title {{
                font-size: 1.3rem;
                font-weight: 600;
            }}

            .detail-subtitle {{
                color: {THEME['text_secondary']};
                font-size: 0.88rem;
                margin-top: 0.3rem;
            }}

            .stSidebar [data-testid="stSidebarContent"] {{
                background: rgba(15, 23, 42, 0.92);
            }}
        </style>
    """)
    st.markdown(style, unsafe_allow_html=True)


def apply_plotly_theme(fig: go.Figure) -> go.Figure:
    """Apply the dark dashboard theme to a Plotly figure."""
    fig.update_layout(
        template="plotly_dark",
        paper_bgcolor=THEME["surface"],
        plot_bgcolor=THEME["surface_alt"],
        font=dict(color=THEME["text_primary"], family="Inter, sans-serif"),
        margin=dict(t=60, r=30, b=50, l=50),
        hoverlabel=dict(
            bgcolor=THEME["surface_alt"],
            bordercolor=THEME["accent"],
            font=dict(color=THEME["text_primary"], size=12),
        ),
    )
    fig.update_xaxes(gridcolor=THEME["grid"], zerolinecolor=THEME["grid"], showgrid=True)
    fig.update_yaxes(gridcolor=THEME["grid"], zerolinecolor=THEME["grid"], showgrid=True)
    return fig


def show_chart(fig: go.Figure) -> None:
    st.plotly_chart(apply_plotly_theme(fig), use_container_width=True, config=PLOTLY_CONFIG)


def render_page_title(title: str, subtitle: str = "") -> None:
    st.markdown(f"<div class='dashboard-title'>{title}</div>", unsafe_allow_html=True)
    if subtitle:
        st.markdown(f"<p class='dashboard-subtitle'>{subtitle}</p>", unsafe_allow_html=True)


def render_section_header(icon: Optional[str], title: str, subtitle: str = "") -> None:
    """Render a consistent section header, optionally showing an icon."""
    parts = ['<div class="section-header">']
    if icon:
        parts.append(f'    <div class="section-icon">{icon}</div>')
    parts.append("    <div>")
    parts.append(f"        <h2>{title}</h2>")
    if subtitle:
        parts.append(f'        <p class="section-subtitle">{subtitle}</p>')
    parts.append("    </div>")
    parts.append("</div>")
    st.markdown("\n".join(parts), unsafe_allow_html=True)


def render_metric_card(label: str, value: str, caption: str = "", level: str = "success") -> None:
    caption_block = f'<div class="metric-caption">{caption}</div>' if caption else ""
    accent = LEVEL_COLORS.get(level, THEME["accent"])
    html = _dedent(
        f"""
        <div class="metric-card" style="--card-accent: {accent};">
            <div class="metric-label">{label}</div>
            <div class="metric-value">{value}</div>
            {caption_block}
        </div>
        """
    ).strip()
    st.markdown(html, unsafe_allow_html=True)


def render_metric_row(metrics: list[tuple]) -> None:
    columns = st.columns(len(metrics))
    for col, metric in zip(columns, metrics):
        with col:
            render_metric_card(*metric)


def status_pill(label: str, level: str = "default") -> str:
    color = LEVEL_COLORS.get(level, LEVEL_COLORS["default"])
    return f'<span class="status-pill" style="color: {color};">{label}</span>'


def flash(kind: str, message: str, scope: str) -> None:
    """Queue a banner for the given page; it stays until dismissed."""
    st.session_state[f"_flash_{scope}_{kind}"] = message


def clear_flash(scope: str) -> None:
    for kind in ("error", "success"):
        st.session_state.pop(f"_flash_{scope}_{kind}", None)


def render_flash(scope: str) -> None:
    """Show pending error/success banners for a page with a dismiss button each."""
    for kind in ("error", "success"):
        key = f"_flash_{scope}_{kind}"
        message = st.session_state.get(key)
        if not message:
            continue
        banner_col, close_col = st.columns([12, 1])
        with banner_col:
            if kind == "error":
                st.error(message)
            else:
                st.success(message)
        with close_col:
            if st.button("✕", key=f"{key}_dismiss", help="Cerrar"):
                st.session_state.pop(key, None)
                st.rerun()

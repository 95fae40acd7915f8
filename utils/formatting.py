from __future__ import annotations

"""
Display helpers shared by the Streamlit views and the CLI.

Numbers and dates follow the es-CO conventions the operations team reads:
"." as thousands separator, "," as decimal separator, dd/mm/yyyy dates.
"""

from datetime import date, datetime
from typing import Union

import pandas as pd

DateLike = Union[str, date, datetime, pd.Timestamp]


def format_number(value: float | int | None, decimals: int | None = None) -> str:
    """Up to three fraction digits unless a fixed precision is requested."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return "-"
    number = float(value)
    if decimals is None:
        text = f"{number:,.3f}".rstrip("0").rstrip(".")
    else:
        text = f"{number:,.{decimals}f}"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def _to_timestamp(value: DateLike) -> pd.Timestamp | None:
    if value is None or value == "":
        return None
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError):
        return None
    if pd.isna(ts):
        return None
    return ts


def format_date(value: DateLike) -> str:
    ts = _to_timestamp(value)
    return ts.strftime("%d/%m/%Y") if ts is not None else "-"


def format_datetime(value: DateLike) -> str:
    ts = _to_timestamp(value)
    return ts.strftime("%d/%m/%Y %H:%M") if ts is not None else "-"


def calculate_percentage(value: float, total: float) -> float:
    """Percentage of value over total, rounded to two decimals; 0 when total is 0."""
    if not total:
        return 0.0
    return round(value / total * 100, 2)


def inspection_status(inspection: dict) -> str:
    if inspection.get("tiene_alerta_roja"):
        return "error"
    if inspection.get("tiene_advertencias"):
        return "warning"
    return "success"


def efficiency_level(efficiency: float) -> str:
    if efficiency >= 90:
        return "success"
    if efficiency >= 75:
        return "warning"
    return "error"


def severity_level(percentage: float) -> str:
    if percentage >= 20:
        return "error"
    if percentage >= 10:
        return "warning"
    if percentage >= 5:
        return "info"
    return "success"


def problem_level(percentage: float) -> str:
    if percentage >= 20:
        return "error"
    if percentage >= 10:
        return "warning"
    return "success"


ALERT_TYPE_LEVELS = {"CRITICA": "error", "ADVERTENCIA": "warning"}
ALERT_STATUS_LEVELS = {"ACTIVA": "error", "EN_REVISION": "warning", "RESUELTA": "success"}
PRIORITY_LEVELS = {"ALTA": "error", "MEDIA": "warning", "BAJA": "info"}
UPLOAD_STATUS_LEVELS = {"PROCESADO": "success", "ERROR": "error", "REVERTIDO": "warning"}
VEHICLE_STATUS_LEVELS = {"operativo": "success", "mantenimiento": "warning", "critico": "error"}


def today_iso() -> str:
    return date.today().isoformat()


EXPORT_EXTENSIONS = {"json": "json", "csv": "csv", "excel": "xlsx", "pdf": "pdf"}


def export_filename(export_format: str, day: str | None = None) -> str:
    return f"inspecciones_{day or today_iso()}.{EXPORT_EXTENSIONS.get(export_format, export_format)}"


def daily_filename(fecha: str) -> str:
    return f"Reporte_Diario_{fecha}.pdf"


def executive_filename(periodo: str, day: str | None = None) -> str:
    return f"Reporte_Ejecutivo_{periodo}_{day or today_iso()}.pdf"


def fatigue_filename(periodo: str, day: str | None = None) -> str:
    return f"Analisis_Fatiga_{periodo}_{day or today_iso()}.pdf"


def custom_filename(title: str, day: str | None = None) -> str:
    """Spaces in the title become underscores; a blank title falls back to a generic name."""
    stem = "_".join(title.split()) if title and title.strip() else "Reporte_Personalizado"
    return f"{stem}_{day or today_iso()}.pdf"

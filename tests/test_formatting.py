from datetime import date

import pytest

from utils.formatting import (
    calculate_percentage,
    custom_filename,
    daily_filename,
    efficiency_level,
    executive_filename,
    export_filename,
    fatigue_filename,
    format_date,
    format_datetime,
    format_number,
    inspection_status,
    problem_level,
    severity_level,
)


@pytest.mark.parametrize(
    "value, decimals, expected",
    [
        (1234567, None, "1.234.567"),
        (1234.5, None, "1.234,5"),
        (0.12345, None, "0,123"),
        (87.5, 2, "87,50"),
        (None, None, "-"),
        (float("nan"), None, "-"),
    ],
)
def test_format_number(value, decimals, expected):
    assert format_number(value, decimals) == expected


def test_format_dates():
    assert format_date("2025-03-07T14:30:00Z") == "07/03/2025"
    assert format_date(date(2025, 12, 1)) == "01/12/2025"
    assert format_datetime("2025-03-07T14:30:00") == "07/03/2025 14:30"
    assert format_date("not a date") == "-"
    assert format_datetime(None) == "-"


def test_calculate_percentage():
    assert calculate_percentage(1, 3) == 33.33
    assert calculate_percentage(5, 0) == 0


def test_inspection_status():
    assert inspection_status({"tiene_alerta_roja": True}) == "error"
    assert inspection_status({"tiene_advertencias": True}) == "warning"
    assert inspection_status({}) == "success"


def test_level_thresholds():
    assert [efficiency_level(v) for v in (90, 75, 74)] == ["success", "warning", "error"]
    assert [severity_level(v) for v in (20, 10, 5, 4.9)] == ["error", "warning", "info", "success"]
    assert [problem_level(v) for v in (20, 10, 9)] == ["error", "warning", "success"]


def test_download_filenames():
    day = "2025-03-07"
    assert export_filename("excel", day) == "inspecciones_2025-03-07.xlsx"
    assert export_filename("csv", day) == "inspecciones_2025-03-07.csv"
    assert daily_filename(day) == "Reporte_Diario_2025-03-07.pdf"
    assert executive_filename("1month", day) == "Reporte_Ejecutivo_1month_2025-03-07.pdf"
    assert fatigue_filename("30days", day) == "Analisis_Fatiga_30days_2025-03-07.pdf"
    assert custom_filename("Cierre de mes", day) == "Cierre_de_mes_2025-03-07.pdf"
    assert custom_filename("  ", day) == "Reporte_Personalizado_2025-03-07.pdf"

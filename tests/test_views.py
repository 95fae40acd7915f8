"""Page behaviour through Streamlit's AppTest harness.

Each app function below runs as its own script, so it does its imports
inline and reads its backend behaviour from session_state.
"""

import pytest

from streamlit.testing.v1 import AppTest

TIMEOUT = 30


def _search_app():
    from unittest import mock

    import streamlit as st

    from api.client import ApiClient
    from api.dashboard_service import DashboardService
    from api.search_service import SearchService
    from api.services import Services
    from api.upload_service import UploadService
    from conftest import BASE_URL, make_response, ok
    from views import search

    session = mock.MagicMock()
    session.headers = {}
    if st.session_state.get("backend_down"):
        body = {"success": False, "message": "Base de datos no disponible"}
    else:
        body = ok({"inspecciones": [], "totalFound": 60, "totalPages": 3, "currentPage": 0})
    session.request.return_value = make_response(body=body)
    client = ApiClient(base_url=BASE_URL, timeout=5, session=session)
    services = Services(
        client=client,
        search=SearchService(client),
        dashboard=DashboardService(client),
        upload=UploadService(client),
    )
    search.render(services, None)


def _reports_app():
    from unittest import mock

    import streamlit as st

    from api.client import ApiError
    from views import reports

    services = mock.MagicMock()
    failure = st.session_state.get("pdf_failure")
    if failure:
        services.dashboard.download_daily_report.side_effect = ApiError(failure)
    else:
        services.dashboard.download_daily_report.return_value = b"%PDF daily"
    reports.render(services, None)


def _upload_app():
    from unittest import mock

    from api.client import ApiError
    from views import upload

    services = mock.MagicMock()
    services.upload.get_upload_history.return_value = {
        "uploads": [{"id": "u-1", "fileName": "marzo.xlsx", "status": "PROCESADO"}]
    }
    services.upload.get_upload_details.side_effect = ApiError("Carga no encontrada")
    services.upload.get_upload_stats.return_value = {}
    services.upload.get_excel_templates.return_value = []
    upload.render(services, None)


def _fatigue_app():
    from unittest import mock

    from views import fatigue

    services = mock.MagicMock()
    services.search.get_summary.return_value = {}
    services.search.get_trends.return_value = {"tendencias": []}
    services.dashboard.download_fatigue_analysis.side_effect = (
        lambda periodo, **kwargs: f"PDF-{periodo}".encode("utf-8")
    )
    fatigue.render(services, None)


def _errors(at):
    return [element.value for element in at.error]


def test_envelope_failure_message_shows_in_banner():
    at = AppTest.from_function(_search_app, default_timeout=TIMEOUT)
    at.session_state["backend_down"] = True
    at.run()
    at.button(key="search_run").click().run()
    assert not at.exception
    assert _errors(at) == ["Base de datos no disponible"]


def test_failed_page_change_keeps_current_page():
    at = AppTest.from_function(_search_app, default_timeout=TIMEOUT)
    at.run()
    at.button(key="search_run").click().run()
    assert at.session_state["search_last"][0].page == 0

    at.session_state["backend_down"] = True
    at.button(key="search_next").click().run()
    assert _errors(at) == ["Base de datos no disponible"]
    assert at.session_state["search_last"][0].page == 0
    assert any("Página 1 de 3" in element.value for element in at.markdown)


def test_report_error_banner_shows_on_the_same_run():
    at = AppTest.from_function(_reports_app, default_timeout=TIMEOUT)
    at.session_state["pdf_failure"] = "Servidor PDF caído"
    at.run()
    assert _errors(at) == []

    at.button(key="daily_generate").click().run()
    assert _errors(at) == ["Error al generar el reporte: Servidor PDF caído"]
    assert not at.get("download_button")


def test_report_success_offers_download():
    at = AppTest.from_function(_reports_app, default_timeout=TIMEOUT)
    at.run()
    at.button(key="daily_generate").click().run()
    assert [element.value for element in at.success] == ["Reporte generado correctamente."]
    assert len(at.get("download_button")) == 1


def test_upload_details_error_banner_shows_on_the_same_run():
    at = AppTest.from_function(_upload_app, default_timeout=TIMEOUT)
    at.run()
    at.button(key="upload_details").click().run()
    assert _errors(at) == ["Carga no encontrada"]


@pytest.mark.parametrize("period, offered", [("30days", 1), ("7days", 0)])
def test_fatigue_pdf_download_tied_to_its_period(period, offered):
    at = AppTest.from_function(_fatigue_app, default_timeout=TIMEOUT)
    at.run()
    at.button(key="fatigue_pdf").click().run()
    assert at.session_state["fatigue_pdf_blob"] == ("30days", b"PDF-30days")

    at.session_state["fatigue_period"] = period
    at.run()
    assert len(at.get("download_button")) == offered

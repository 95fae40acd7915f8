import pytest

from api.client import ProgressReader
from api.upload_service import MAX_FILE_SIZE, UploadService, validate_file_format
from conftest import BASE_URL, last_call, make_response, ok


@pytest.mark.parametrize(
    "name, size",
    [("inspecciones.xlsx", 2048), ("INSPECCIONES.XLS", 1024), ("marzo.xlsx", MAX_FILE_SIZE)],
)
def test_validate_file_format_accepts_excel(name, size):
    check = validate_file_format(name, size)
    assert check.is_valid
    assert check.errors == []


def test_validate_file_format_collects_every_error():
    check = validate_file_format("datos.csv", 10)
    assert not check.is_valid
    assert check.errors == [
        "Formato de archivo no válido. Se permiten: .xlsx, .xls",
        "El archivo está vacío o es demasiado pequeño",
    ]


def test_validate_file_format_rejects_large_files():
    check = validate_file_format("grande.xlsx", MAX_FILE_SIZE + 1)
    assert check.errors == ["El archivo es demasiado grande. Tamaño máximo: 50MB"]


def test_validate_file_format_is_exposed_on_service():
    assert UploadService.validate_file_format("a.xlsx", 4096).is_valid


def test_validate_file_posts_multipart_with_short_timeout(services, session, respond):
    result = {"isValid": True, "fileName": "marzo.xlsx", "errors": [], "warnings": []}
    respond(make_response(body=ok(result)))
    assert services.upload.validate_file(("marzo.xlsx", b"x" * 2048)) == result
    method, url, kwargs = last_call(session)
    assert (method, url) == ("POST", f"{BASE_URL}/upload/validate")
    assert kwargs["timeout"] == 60
    name, content, mime = kwargs["files"]["file"]
    assert name == "marzo.xlsx"
    assert content == b"x" * 2048
    assert mime.endswith("spreadsheetml.sheet")


def test_upload_excel_file_sends_options_and_reports_progress(services, session, respond, tmp_path):
    path = tmp_path / "abril.xlsx"
    path.write_bytes(b"y" * 4096)
    respond(make_response(body=ok({"newRecords": 42, "duplicateRecords": 3})))
    seen = []

    result = services.upload.upload_excel_file(
        path, overwrite_duplicates=True, batch_size=500, on_progress=seen.append
    )
    assert result["newRecords"] == 42

    _, url, kwargs = last_call(session)
    assert url == f"{BASE_URL}/upload/process"
    assert kwargs["timeout"] == 300
    reader = kwargs["data"]
    assert isinstance(reader, ProgressReader)
    body = reader.read()
    assert b'name="overwriteDuplicates"' in body
    assert b'name="batchSize"' in body
    assert b"500" in body
    assert b'name="validateOnly"' not in body
    assert seen[-1] == 100


def test_upload_history_params_and_status_check(services, session, respond):
    respond(make_response(body=ok({"uploads": [], "total": 0})))
    services.upload.get_upload_history(limit=10, status="ERROR", start_date="2025-01-01")
    _, url, kwargs = last_call(session)
    assert url == f"{BASE_URL}/upload/history"
    assert kwargs["params"] == {"limit": 10, "status": "ERROR", "startDate": "2025-01-01"}

    with pytest.raises(ValueError):
        services.upload.get_upload_history(status="PENDIENTE")


def test_revert_upload_uses_delete_with_reason(services, session, respond):
    respond(make_response(body={"success": True, "message": "Revertido"}))
    assert services.upload.revert_upload("f-1", "Revertido por el usuario") is True
    method, url, kwargs = last_call(session)
    assert (method, url) == ("DELETE", f"{BASE_URL}/upload/revert/f-1")
    assert kwargs["json"] == {"reason": "Revertido por el usuario"}

    respond(make_response(body={"success": False, "message": "Ya revertido"}))
    assert services.upload.revert_upload("f-1") is False


def test_templates_and_download(services, session, respond):
    templates = [{"name": "plantilla_inspecciones", "version": "2.0", "requiredColumns": ["FECHA"]}]
    respond(make_response(body=ok(templates)))
    assert services.upload.get_excel_templates() == templates

    respond(make_response(content=b"PK\x03\x04"))
    assert services.upload.download_template("plantilla_inspecciones") == b"PK\x03\x04"
    _, url, _ = last_call(session)
    assert url == f"{BASE_URL}/upload/templates/plantilla_inspecciones"


@pytest.mark.parametrize(
    "call, method, path",
    [
        (lambda s: s.get_processing_progress("u-9"), "GET", "/upload/progress/u-9"),
        (lambda s: s.retry_failed_upload("f-2"), "POST", "/upload/retry/f-2"),
        (lambda s: s.get_upload_details("f-3"), "GET", "/upload/details/f-3"),
        (lambda s: s.get_upload_stats(period="30days"), "GET", "/upload/stats"),
    ],
)
def test_simple_upload_endpoints(services, session, respond, call, method, path):
    respond(make_response(body=ok({"ok": True})))
    assert call(services.upload) == {"ok": True}
    sent_method, url, _ = last_call(session)
    assert (sent_method, url) == (method, f"{BASE_URL}{path}")


def test_cleanup_defaults_to_ninety_days(services, session, respond):
    respond(make_response(body=ok({"deleted": 4})))
    assert services.upload.cleanup_old_uploads() == {"deleted": 4}
    method, url, kwargs = last_call(session)
    assert (method, url) == ("POST", f"{BASE_URL}/upload/cleanup")
    assert kwargs["json"] == {"olderThanDays": 90}

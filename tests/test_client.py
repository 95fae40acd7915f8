from types import SimpleNamespace

import pytest
import requests

from api.client import (
    GENERIC_ERROR,
    ApiError,
    ProgressReader,
    clean_params,
    guess_mimetype,
    handle_api_error,
    is_api_error,
    read_upload,
    unwrap,
)
from conftest import BASE_URL, last_call, make_response, ok


def test_unwrap_returns_data():
    assert unwrap(ok({"total": 3}), "fallback") == {"total": 3}


@pytest.mark.parametrize(
    "envelope, expected",
    [
        ({"success": False, "message": "Sin permisos", "error": "FORBIDDEN"}, "Sin permisos"),
        ({"success": False, "error": "VALIDATION_ERROR"}, "VALIDATION_ERROR"),
        ({"success": False}, "Error obteniendo datos"),
        ({"success": True, "data": None}, "Error obteniendo datos"),
    ],
)
def test_unwrap_failure_message_precedence(envelope, expected):
    with pytest.raises(ApiError) as excinfo:
        unwrap(envelope, "Error obteniendo datos")
    assert excinfo.value.message == expected
    assert excinfo.value.payload == envelope


def test_unwrap_keeps_falsy_data():
    assert unwrap(ok([]), "fallback") == []
    assert unwrap(ok(0), "fallback") == 0


def test_handle_api_error_prefers_body_message():
    error = ApiError("500 Internal", payload={"message": "Base de datos no disponible", "error": "DB"})
    assert handle_api_error(error) == "Base de datos no disponible"


def test_handle_api_error_falls_back_to_body_error():
    error = ApiError("400 Bad Request", payload={"error": "ARCHIVO_INVALIDO"})
    assert handle_api_error(error) == "ARCHIVO_INVALIDO"


def test_handle_api_error_reads_response_body():
    error = requests.HTTPError("boom", response=make_response(502, {"message": "Gateway caído"}))
    assert handle_api_error(error) == "Gateway caído"


def test_handle_api_error_uses_exception_text_then_generic():
    assert handle_api_error(requests.ConnectionError("Connection refused")) == "Connection refused"
    assert handle_api_error(RuntimeError()) == GENERIC_ERROR


def test_is_api_error():
    assert is_api_error(requests.HTTPError(response=make_response(404, {})))
    assert not is_api_error(requests.HTTPError(response=make_response(200, {})))
    assert not is_api_error(ValueError("nope"))


def test_clean_params_drops_unset_and_spells_booleans():
    params = {"a": None, "b": "", "c": 0, "d": True, "e": False, "f": "x"}
    assert clean_params(params) == {"c": 0, "d": "true", "e": "false", "f": "x"}
    assert clean_params(None) == {}


def test_progress_reader_reports_whole_percentages():
    seen = []
    reader = ProgressReader(b"x" * 200, seen.append)
    assert len(reader) == 200
    chunks = [reader.read(50) for _ in range(4)]
    assert b"".join(chunks) == b"x" * 200
    assert reader.read(50) == b""
    assert seen == [25, 50, 75, 100]
    assert reader.progress == 100


def test_progress_reader_read_all_and_empty_body():
    seen = []
    reader = ProgressReader(b"abc", seen.append)
    assert reader.read() == b"abc"
    assert seen == [100]
    assert ProgressReader(b"").progress == 100


def test_read_upload_sources(tmp_path):
    path = tmp_path / "marzo.xlsx"
    path.write_bytes(b"PK\x03\x04data")
    assert read_upload(path) == ("marzo.xlsx", b"PK\x03\x04data")
    assert read_upload(str(path)) == ("marzo.xlsx", b"PK\x03\x04data")
    assert read_upload(("abril.xls", b"123")) == ("abril.xls", b"123")
    uploaded = SimpleNamespace(name="mayo.xlsx", getvalue=lambda: b"456")
    assert read_upload(uploaded) == ("mayo.xlsx", b"456")
    with pytest.raises(TypeError):
        read_upload(42)


def test_guess_mimetype():
    assert guess_mimetype("a.XLSX") == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    assert guess_mimetype("a.xls") == "application/vnd.ms-excel"
    assert guess_mimetype("a.unknownext") == "application/octet-stream"


def test_client_sets_accept_header_only(client, session):
    assert session.headers == {"Accept": "application/json"}


def test_send_builds_url_and_cleans_params(client, session, respond):
    respond(make_response(body=ok([])))
    client.request_json("GET", "/search/alerts", params={"tipo": "CRITICA", "estado": None, "limite": 5})
    method, url, kwargs = last_call(session)
    assert method == "GET"
    assert url == f"{BASE_URL}/search/alerts"
    assert kwargs["params"] == {"tipo": "CRITICA", "limite": 5}
    assert kwargs["timeout"] == 5


def test_http_error_carries_backend_message(client, respond):
    respond(make_response(404, {"success": False, "message": "Conductor no encontrado"}, reason="Not Found"))
    with pytest.raises(ApiError) as excinfo:
        client.request_json("GET", "/search/driver/123")
    assert excinfo.value.status_code == 404
    assert excinfo.value.message == "Conductor no encontrado"
    assert str(excinfo.value) == "Conductor no encontrado"


def test_http_error_without_body_uses_status_line(client, respond):
    respond(make_response(500, content=b"<html>oops</html>", reason="Internal Server Error"))
    with pytest.raises(ApiError) as excinfo:
        client.request_json("GET", "/dashboard/stats")
    assert excinfo.value.message == "500 Internal Server Error"


def test_rate_limit_is_an_error(client, respond):
    respond(make_response(429, {"success": False, "message": "Demasiadas solicitudes"}, reason="Too Many Requests"))
    with pytest.raises(ApiError, match="Demasiadas solicitudes"):
        client.request_json("GET", "/search/inspections")


def test_transport_error_becomes_api_error(client, session):
    session.request.side_effect = requests.ConnectionError("Connection refused")
    with pytest.raises(ApiError) as excinfo:
        client.request_json("GET", "/dashboard/widgets")
    assert excinfo.value.message == "Connection refused"
    assert excinfo.value.status_code is None


def test_request_json_rejects_non_json(client, respond):
    respond(make_response(200, content=b"not json"))
    with pytest.raises(ApiError, match="Respuesta no válida de /dashboard/widgets"):
        client.request_json("GET", "/dashboard/widgets")


def test_request_json_rejects_non_object(client, respond):
    respond(make_response(200, [1, 2, 3]))
    with pytest.raises(ApiError):
        client.request_json("GET", "/dashboard/widgets")


def test_request_bytes_accepts_any_content(client, session, respond):
    respond(make_response(200, content=b"%PDF-1.4"))
    assert client.request_bytes("GET", "/dashboard/pdf/daily-report") == b"%PDF-1.4"
    _, _, kwargs = last_call(session)
    assert kwargs["headers"] == {"Accept": "*/*"}


def test_post_multipart_streams_through_progress_reader(client, session, respond):
    respond(make_response(body=ok({"newRecords": 3})))
    seen = []
    envelope = client.post_multipart(
        "/upload/process",
        {"file": ("marzo.xlsx", b"contenido", "application/vnd.ms-excel"), "overwriteDuplicates": "true"},
        on_progress=seen.append,
        timeout=300,
    )
    assert envelope["data"] == {"newRecords": 3}

    _, url, kwargs = last_call(session)
    assert url.endswith("/upload/process")
    assert kwargs["timeout"] == 300
    assert kwargs["headers"]["Content-Type"].startswith("multipart/form-data; boundary=")
    reader = kwargs["data"]
    assert isinstance(reader, ProgressReader)
    body = reader.read()
    assert b'filename="marzo.xlsx"' in body
    assert b"contenido" in body
    assert b'name="overwriteDuplicates"' in body
    assert seen == [100]

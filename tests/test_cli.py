import json
import subprocess
import sys
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path

import pytest

from conftest import BASE_URL, last_call, make_response, ok
from main import build_parser, main

INSPECTION = {
    "fecha": "2025-03-01",
    "conductor_nombre": "Ana Pérez",
    "conductor_cedula": "1001",
    "placa_vehiculo": "ABC123",
    "contrato": "C-1",
    "campo": "Rubiales",
    "turno": "DIA",
    "puntaje_total": 92,
    "tiene_alerta_roja": False,
    "tiene_advertencias": True,
}


def test_parser_knows_every_subcommand():
    parser = build_parser()
    commands = parser._subparsers._group_actions[0].choices
    assert set(commands) == {
        "stats", "kpis", "search", "alerts", "driver", "vehicle", "trends", "summary", "export",
        "refresh", "upload", "history", "revert", "retry", "progress", "upload-stats", "templates",
        "cleanup", "pdf", "snapshot",
    }


def test_stats_prints_json(services, respond, capsys):
    respond(make_response(body=ok({"totalInspecciones": 120, "indiceFatiga": 3.5})))
    assert main(["stats", "--periodo", "7days"], services=services) == 0
    assert json.loads(capsys.readouterr().out) == {"totalInspecciones": 120, "indiceFatiga": 3.5}


def test_search_prints_table(services, session, respond, capsys):
    result = {"inspecciones": [INSPECTION], "totalFound": 1, "totalPages": 1, "currentPage": 0}
    respond(make_response(body=ok(result)))
    assert main(["search", "--conductor", "Ana", "--advertencias"], services=services) == 0
    out = capsys.readouterr().out
    assert "ABC123" in out
    assert "ADVERTENCIA" in out
    assert "1 inspecciones | página 1 de 1" in out
    method, url, kwargs = last_call(session)
    assert (method, url) == ("GET", f"{BASE_URL}/search/inspections")
    assert kwargs["params"]["tieneAdvertencias"] == "true"


def test_search_switches_to_advanced(services, session, respond):
    respond(make_response(body=ok({"inspecciones": [], "totalFound": 0})))
    assert main(["search", "--puntaje-min", "60", "--severidad", "alta", "--json"], services=services) == 0
    method, url, kwargs = last_call(session)
    assert (method, url) == ("POST", f"{BASE_URL}/search/advanced")
    assert kwargs["json"]["puntajeMinimo"] == 60
    assert kwargs["json"]["ordenarPor"] == "fecha"


def test_invalid_score_range_exits_with_usage_error(services, capsys):
    assert main(["search", "--puntaje-min", "90", "--puntaje-max", "10"], services=services) == 2
    assert "puntajeMinimo" in capsys.readouterr().err


def test_api_error_exits_one(services, respond, capsys):
    respond(make_response(503, {"success": False, "message": "Servicio no disponible"}, reason="Unavailable"))
    assert main(["kpis"], services=services) == 1
    assert "Error: Servicio no disponible" in capsys.readouterr().err


def test_refresh_failure_exits_one(services, respond):
    respond(make_response(500, {"success": False}))
    assert main(["refresh", "vehicles"], services=services) == 1


def test_upload_rejects_bad_file_locally(services, session, tmp_path, capsys):
    path = tmp_path / "datos.csv"
    path.write_text("a,b\n")
    assert main(["upload", str(path)], services=services) == 1
    assert "Formato de archivo no válido" in capsys.readouterr().err
    session.request.assert_not_called()


def test_upload_success(services, respond, tmp_path, capsys):
    path = tmp_path / "marzo.xlsx"
    path.write_bytes(b"z" * 2048)
    respond(make_response(body=ok({"newRecords": 12, "duplicateRecords": 0})))
    assert main(["upload", str(path), "--overwrite"], services=services) == 0
    out = capsys.readouterr().out
    assert "Archivo procesado exitosamente. 12 registros nuevos agregados." in out


def test_upload_check_only_validates(services, session, respond, tmp_path):
    path = tmp_path / "marzo.xlsx"
    path.write_bytes(b"z" * 2048)
    respond(make_response(body=ok({"isValid": False, "errors": ["Columna FECHA faltante"]})))
    assert main(["upload", str(path), "--check"], services=services) == 1
    _, url, _ = last_call(session)
    assert url == f"{BASE_URL}/upload/validate"


def test_revert_default_reason(services, session, respond):
    respond(make_response(body={"success": True}))
    assert main(["revert", "f-7"], services=services) == 0
    method, url, kwargs = last_call(session)
    assert (method, url) == ("DELETE", f"{BASE_URL}/upload/revert/f-7")
    assert kwargs["json"] == {"reason": "Revertido por el usuario"}


def test_pdf_daily_writes_file(services, session, respond, tmp_path):
    respond(make_response(content=b"%PDF-1.7 diario"))
    out = tmp_path / "diario.pdf"
    assert main(["pdf", "daily", "--fecha", "2025-03-01", "--output", str(out)], services=services) == 0
    assert out.read_bytes() == b"%PDF-1.7 diario"
    _, url, kwargs = last_call(session)
    assert url == f"{BASE_URL}/dashboard/pdf/daily-report"
    assert kwargs["params"] == {"fecha": "2025-03-01", "includeCharts": "true"}


def test_pdf_custom_sections(services, session, respond, tmp_path):
    respond(make_response(content=b"%PDF custom"))
    out = tmp_path / "custom.pdf"
    argv = ["pdf", "custom", "--title", "Cierre", "--sections", "stats", "fatigue", "--output", str(out)]
    assert main(argv, services=services) == 0
    _, _, kwargs = last_call(session)
    assert kwargs["json"]["secciones"] == ["stats", "fatigue"]
    assert kwargs["json"]["titulo"] == "Cierre"


def test_snapshot_writes_markdown_and_pdf(services, respond, tmp_path):
    report = {"resumenEjecutivo": {"mensaje": "Resumen", "puntosDestacados": ["Todo en orden"]}}
    respond(
        make_response(body=ok(report)),
        make_response(body=ok({"kpis": {"operacionales": {"eficiencia": 91}, "metas": {"eficienciaObjetivo": 90}}})),
    )
    assert main(["snapshot", "--out-dir", str(tmp_path)], services=services) == 0
    md_files = list(tmp_path.glob("Reporte_Ejecutivo_1month_*.md"))
    pdf_files = list(tmp_path.glob("Reporte_Ejecutivo_1month_*.pdf"))
    assert len(md_files) == 1 and len(pdf_files) == 1
    assert "Todo en orden" in md_files[0].read_text(encoding="utf-8")


def test_snapshot_survives_missing_kpis(services, respond, tmp_path):
    respond(
        make_response(body=ok({"resumenEjecutivo": {"mensaje": "Resumen"}})),
        make_response(body=ok({"periodo": "30days"})),
    )
    assert main(["snapshot", "--out-dir", str(tmp_path), "--no-pdf"], services=services) == 0
    assert not list(tmp_path.glob("*.pdf"))


@pytest.mark.parametrize("argv", [["alerts", "--tipo", "TODAS"], ["summary", "turnos"], ["pdf", "weekly"]])
def test_argparse_rejects_invalid_choices(argv, services):
    with pytest.raises(SystemExit):
        main(argv, services=services)


def test_logs_go_to_stderr_and_stdout_stays_json(services, respond, capsys):
    respond(make_response(body=ok({"totalInspecciones": 5})))
    assert main(["--log-level", "INFO", "stats"], services=services) == 0
    captured = capsys.readouterr()
    assert json.loads(captured.out) == {"totalInspecciones": 5}
    assert "GET /dashboard/stats" in captured.err


class _StatsHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        body = json.dumps(ok({"totalInspecciones": 5})).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def backend_url():
    server = HTTPServer(("127.0.0.1", 0), _StatsHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_port}/api"
    server.shutdown()
    server.server_close()


def test_stdout_can_be_piped_as_json(backend_url):
    root = Path(__file__).resolve().parents[1]
    result = subprocess.run(
        [sys.executable, str(root / "main.py"), "--api-url", backend_url, "--log-level", "INFO", "stats"],
        cwd=root,
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert result.returncode == 0, result.stderr
    assert json.loads(result.stdout) == {"totalInspecciones": 5}
    assert "| INFO | api.client |" in result.stderr

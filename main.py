#!/usr/bin/env python3
"""
Command-line front end for the inspection backend.

Every subcommand maps onto one service call; results are printed as JSON
(tables for inspection searches), binary payloads are written to files.

Examples:
  python main.py stats --periodo 30days
  python main.py search --conductor "Perez" --alertas
  python main.py upload data/inspecciones_marzo.xlsx --overwrite
  python main.py pdf executive --periodo 3months --output out/ejecutivo.pdf
  python main.py snapshot --periodo 1month --out-dir output/

Configuration is passed via CLI flags or environment variables
(INSPECTION_API_URL, INSPECTION_API_TIMEOUT, DASHBOARD_LOG_LEVEL).
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Callable, List, Optional

from api.client import ApiError
from api.models import (
    ALERT_STATES,
    CACHE_TYPES,
    EXPORT_FORMATS,
    PERIODS,
    PROBLEM_TYPES,
    SEVERITIES,
    SORT_FIELDS,
    SORT_ORDERS,
    SUMMARY_TYPES,
    UPLOAD_STATES,
    AdvancedSearchFilters,
    SearchFilters,
)
from api.services import Services, build_services
from api.upload_service import validate_file_format
from reports.executive_report import write_executive_report
from reports.render_pdf import build_pdf
from utils.formatting import (
    custom_filename,
    daily_filename,
    executive_filename,
    export_filename,
    fatigue_filename,
    today_iso,
)
from utils.logging_utils import get_logger, set_log_level
from utils.settings import Settings
from views.transforms import inspections_frame


logger = get_logger(__name__)

PDF_KINDS = ("daily", "executive", "fatigue", "custom")


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _write_blob(blob: bytes, output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(blob)
    logger.info("Wrote %d bytes to %s", len(blob), output)
    print(output)


def _add_filter_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--desde", dest="fecha_inicio", help="Fecha inicial (YYYY-MM-DD)")
    parser.add_argument("--hasta", dest="fecha_fin", help="Fecha final (YYYY-MM-DD)")
    parser.add_argument("--contrato")
    parser.add_argument("--campo")
    parser.add_argument("--conductor", help="Nombre o cédula del conductor")
    parser.add_argument("--placa")
    parser.add_argument("--alertas", action="store_true", help="Solo inspecciones con alerta roja")
    parser.add_argument("--advertencias", action="store_true", help="Solo inspecciones con advertencias")
    parser.add_argument("--fatiga", action="store_true", help="Solo casos de fatiga")
    parser.add_argument("--page", type=int, default=0)
    parser.add_argument("--limit", type=int, default=25)


def _add_advanced_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--puntaje-min", type=float, dest="puntaje_minimo")
    parser.add_argument("--puntaje-max", type=float, dest="puntaje_maximo")
    parser.add_argument("--problema", choices=PROBLEM_TYPES, dest="tipo_problema")
    parser.add_argument("--severidad", choices=SEVERITIES)
    parser.add_argument("--ordenar-por", choices=SORT_FIELDS, default="fecha", dest="ordenar_por")
    parser.add_argument("--orden", choices=SORT_ORDERS, default="desc")


def filters_from_args(args: argparse.Namespace) -> SearchFilters:
    basic = SearchFilters(
        fechaInicio=args.fecha_inicio,
        fechaFin=args.fecha_fin,
        contrato=args.contrato,
        campo=args.campo,
        conductor=args.conductor,
        placa=args.placa,
        tieneAlertas=True if args.alertas else None,
        tieneAdvertencias=True if args.advertencias else None,
        soloFatiga=True if args.fatiga else None,
        page=args.page,
        limit=args.limit,
    )
    advanced = {
        "puntajeMinimo": getattr(args, "puntaje_minimo", None),
        "puntajeMaximo": getattr(args, "puntaje_maximo", None),
        "tipoProblema": getattr(args, "tipo_problema", None),
        "severidad": getattr(args, "severidad", None),
    }
    if any(value is not None for value in advanced.values()):
        return AdvancedSearchFilters.from_basic(
            basic, ordenarPor=args.ordenar_por, orden=args.orden, **advanced
        )
    return basic


def cmd_stats(services: Services, args: argparse.Namespace) -> None:
    _print_json(services.dashboard.get_main_stats(periodo=args.periodo, contrato=args.contrato, campo=args.campo))


def cmd_kpis(services: Services, args: argparse.Namespace) -> None:
    _print_json(services.dashboard.get_kpis(periodo=args.periodo, contrato=args.contrato, campo=args.campo))


def cmd_search(services: Services, args: argparse.Namespace) -> None:
    filters = filters_from_args(args)
    if isinstance(filters, AdvancedSearchFilters):
        result = services.search.advanced_search(filters)
    else:
        result = services.search.search_inspections(filters)
    if args.json:
        _print_json(result)
        return
    frame = inspections_frame(result.get("inspecciones") or [])
    print(frame.to_string(index=False) if not frame.empty else "Sin resultados.")
    print(
        f"\n{result.get('totalFound', 0)} inspecciones | "
        f"página {int(result.get('currentPage') or 0) + 1} de {result.get('totalPages') or 1}"
    )


def cmd_alerts(services: Services, args: argparse.Namespace) -> None:
    _print_json(services.search.get_active_alerts(tipo=args.tipo, estado=args.estado, limite=args.limite))


def cmd_driver(services: Services, args: argparse.Namespace) -> None:
    _print_json(
        services.search.get_driver_history(
            args.driver_id, fecha_inicio=args.fecha_inicio, fecha_fin=args.fecha_fin, limite=args.limite
        )
    )


def cmd_vehicle(services: Services, args: argparse.Namespace) -> None:
    _print_json(
        services.search.get_vehicle_history(
            args.placa, fecha_inicio=args.fecha_inicio, fecha_fin=args.fecha_fin, limite=args.limite
        )
    )


def cmd_trends(services: Services, args: argparse.Namespace) -> None:
    _print_json(services.search.get_trends(periodo=args.periodo, group_by=args.group_by, metrics=args.metrics))


def cmd_summary(services: Services, args: argparse.Namespace) -> None:
    _print_json(services.search.get_summary(args.summary_type, timeframe=args.timeframe, limit=args.limit))


def cmd_export(services: Services, args: argparse.Namespace) -> None:
    filters = filters_from_args(args)
    result = services.search.export_search_results(
        filters, args.format, filename=args.filename, include_charts=args.charts or None
    )
    if args.format == "json":
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(json.dumps(result, indent=2, ensure_ascii=False, default=str), encoding="utf-8")
            print(args.output)
        else:
            _print_json(result)
        return
    _write_blob(result, args.output or Path(export_filename(args.format)))


def cmd_refresh(services: Services, args: argparse.Namespace) -> int:
    ok = services.search.refresh_cache(args.cache_type)
    print("Cache actualizado" if ok else "No se pudo actualizar el cache")
    return 0 if ok else 1


def _print_progress(percent: int) -> None:
    sys.stderr.write(f"\rSubiendo archivo... {percent:3d}%")
    if percent >= 100:
        sys.stderr.write("\n")
    sys.stderr.flush()


def cmd_upload(services: Services, args: argparse.Namespace) -> int:
    path: Path = args.file
    if not path.exists():
        print(f"Archivo no encontrado: {path}", file=sys.stderr)
        return 1
    check = validate_file_format(path.name, path.stat().st_size)
    if not check.is_valid:
        print(", ".join(check.errors), file=sys.stderr)
        return 1

    if args.check:
        result = services.upload.validate_file(path)
        _print_json(result)
        return 0 if result.get("isValid") else 1

    result = services.upload.upload_excel_file(
        path,
        overwrite_duplicates=args.overwrite,
        validate_only=args.validate_only,
        batch_size=args.batch_size,
        on_progress=_print_progress,
    )
    print(f"Archivo procesado exitosamente. {result.get('newRecords', 0)} registros nuevos agregados.")
    _print_json(result)
    return 0


def cmd_history(services: Services, args: argparse.Namespace) -> None:
    _print_json(
        services.upload.get_upload_history(
            page=args.page,
            limit=args.limit,
            start_date=args.fecha_inicio,
            end_date=args.fecha_fin,
            status=args.status,
        )
    )


def cmd_revert(services: Services, args: argparse.Namespace) -> int:
    if services.upload.revert_upload(args.file_id, args.reason):
        print("Upload revertido exitosamente")
        return 0
    print("Error al revertir el upload", file=sys.stderr)
    return 1


def cmd_retry(services: Services, args: argparse.Namespace) -> None:
    _print_json(services.upload.retry_failed_upload(args.file_id))


def cmd_progress(services: Services, args: argparse.Namespace) -> None:
    if args.details:
        _print_json(services.upload.get_upload_details(args.upload_id))
    else:
        _print_json(services.upload.get_processing_progress(args.upload_id))


def cmd_upload_stats(services: Services, args: argparse.Namespace) -> None:
    _print_json(services.upload.get_upload_stats(period=args.period))


def cmd_templates(services: Services, args: argparse.Namespace) -> None:
    if args.download:
        name = args.download
        default_name = name if name.endswith((".xlsx", ".xls")) else f"{name}.xlsx"
        _write_blob(services.upload.download_template(name), args.output or Path(default_name))
        return
    _print_json(services.upload.get_excel_templates())


def cmd_cleanup(services: Services, args: argparse.Namespace) -> None:
    _print_json(services.upload.cleanup_old_uploads(args.days))


def cmd_pdf(services: Services, args: argparse.Namespace) -> None:
    dashboard = services.dashboard
    if args.kind == "daily":
        fecha = args.fecha or today_iso()
        blob = dashboard.download_daily_report(
            fecha=fecha, include_charts=args.charts, contrato=args.contrato, campo=args.campo
        )
        default_name = daily_filename(fecha)
    elif args.kind == "executive":
        periodo = args.periodo or "1month"
        blob = dashboard.download_executive_summary(
            periodo=periodo, include_comparisons=args.comparisons, include_projections=args.projections
        )
        default_name = executive_filename(periodo)
    elif args.kind == "fatigue":
        periodo = args.periodo or "30days"
        blob = dashboard.download_fatigue_analysis(
            periodo=periodo, include_driver_details=True, include_recommendations=True
        )
        default_name = fatigue_filename(periodo)
    else:
        filtros = {"fechaInicio": args.fecha_inicio, "fechaFin": args.fecha_fin}
        filtros = {key: value for key, value in filtros.items() if value}
        blob = dashboard.generate_custom_report(
            titulo=args.title,
            filtros=filtros or None,
            secciones=args.sections,
            formato="pdf",
            include_charts=args.charts,
            include_data=args.include_data,
        )
        default_name = custom_filename(args.title or "")
    _write_blob(blob, args.output or Path(default_name))


def cmd_snapshot(services: Services, args: argparse.Namespace) -> None:
    report = services.dashboard.get_executive_report(periodo=args.periodo)
    kpis = None
    try:
        kpis = services.dashboard.get_kpis(periodo=args.kpi_periodo)
    except ApiError as exc:
        logger.warning("KPIs unavailable, snapshot continues without them: %s", exc)

    stem = f"Reporte_Ejecutivo_{args.periodo}_{today_iso()}"
    md_path = write_executive_report(report, args.out_dir / f"{stem}.md", kpis)
    print(md_path)
    if not args.no_pdf:
        pdf_path = args.out_dir / f"{stem}.pdf"
        build_pdf(md_path, pdf_path)
        print(pdf_path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspection & fatigue backend CLI")
    parser.add_argument("--api-url", help="Backend base URL (default: $INSPECTION_API_URL)")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds (default: $INSPECTION_API_TIMEOUT)")
    parser.add_argument("--log-level", help="Logging level (default: $DASHBOARD_LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    def add(name: str, handler: Callable[..., Any], help_text: str) -> argparse.ArgumentParser:
        cmd = sub.add_parser(name, help=help_text)
        cmd.set_defaults(handler=handler)
        return cmd

    for name, handler, help_text in (
        ("stats", cmd_stats, "Estadísticas principales"),
        ("kpis", cmd_kpis, "KPIs contra metas"),
    ):
        cmd = add(name, handler, help_text)
        cmd.add_argument("--periodo")
        cmd.add_argument("--contrato")
        cmd.add_argument("--campo")

    cmd = add("search", cmd_search, "Buscar inspecciones (avanzada si se usan filtros de puntaje/problema)")
    _add_filter_args(cmd)
    _add_advanced_args(cmd)
    cmd.add_argument("--json", action="store_true", help="Imprimir la respuesta completa en JSON")

    cmd = add("alerts", cmd_alerts, "Alertas activas")
    cmd.add_argument("--tipo", choices=("CRITICA", "ADVERTENCIA"))
    cmd.add_argument("--estado", choices=ALERT_STATES)
    cmd.add_argument("--limite", type=int)

    for name, handler, target in (("driver", cmd_driver, "driver_id"), ("vehicle", cmd_vehicle, "placa")):
        cmd = add(name, handler, f"Historial por {target}")
        cmd.add_argument(target)
        cmd.add_argument("--desde", dest="fecha_inicio")
        cmd.add_argument("--hasta", dest="fecha_fin")
        cmd.add_argument("--limite", type=int)

    cmd = add("trends", cmd_trends, "Análisis de tendencias")
    cmd.add_argument("--periodo")
    cmd.add_argument("--group-by", dest="group_by")
    cmd.add_argument("--metrics")

    cmd = add("summary", cmd_summary, "Resumen por conductores/vehículos/contratos/fatiga")
    cmd.add_argument("summary_type", choices=SUMMARY_TYPES)
    cmd.add_argument("--timeframe", choices=PERIODS)
    cmd.add_argument("--limit", type=int)

    cmd = add("export", cmd_export, "Exportar resultados de búsqueda")
    cmd.add_argument("format", choices=EXPORT_FORMATS)
    _add_filter_args(cmd)
    _add_advanced_args(cmd)
    cmd.add_argument("--filename", help="Nombre sugerido al servidor")
    cmd.add_argument("--charts", action="store_true")
    cmd.add_argument("--output", type=Path)

    cmd = add("refresh", cmd_refresh, "Refrescar cache del servidor")
    cmd.add_argument("cache_type", nargs="?", choices=CACHE_TYPES)

    cmd = add("upload", cmd_upload, "Cargar archivo Excel")
    cmd.add_argument("file", type=Path)
    cmd.add_argument("--check", action="store_true", help="Solo validar en el servidor, sin procesar")
    cmd.add_argument("--overwrite", action="store_true", help="Sobrescribir duplicados")
    cmd.add_argument("--validate-only", action="store_true", dest="validate_only")
    cmd.add_argument("--batch-size", type=int, dest="batch_size")

    cmd = add("history", cmd_history, "Historial de cargas")
    cmd.add_argument("--page", type=int)
    cmd.add_argument("--limit", type=int, default=10)
    cmd.add_argument("--desde", dest="fecha_inicio")
    cmd.add_argument("--hasta", dest="fecha_fin")
    cmd.add_argument("--status", choices=UPLOAD_STATES)

    cmd = add("revert", cmd_revert, "Revertir una carga")
    cmd.add_argument("file_id")
    cmd.add_argument("--reason", default="Revertido por el usuario")

    cmd = add("retry", cmd_retry, "Reintentar una carga fallida")
    cmd.add_argument("file_id")

    cmd = add("progress", cmd_progress, "Progreso (o detalles) de una carga")
    cmd.add_argument("upload_id")
    cmd.add_argument("--details", action="store_true")

    cmd = add("upload-stats", cmd_upload_stats, "Estadísticas de cargas")
    cmd.add_argument("--period")

    cmd = add("templates", cmd_templates, "Plantillas Excel")
    cmd.add_argument("--download", metavar="NAME")
    cmd.add_argument("--output", type=Path)

    cmd = add("cleanup", cmd_cleanup, "Limpiar cargas antiguas")
    cmd.add_argument("--days", type=int, default=90)

    cmd = add("pdf", cmd_pdf, "Descargar reportes PDF generados por el servidor")
    cmd.add_argument("kind", choices=PDF_KINDS)
    cmd.add_argument("--output", type=Path)
    cmd.add_argument("--fecha", help="Reporte diario: fecha (YYYY-MM-DD)")
    cmd.add_argument("--periodo")
    cmd.add_argument("--contrato")
    cmd.add_argument("--campo")
    cmd.add_argument("--no-charts", action="store_false", dest="charts")
    cmd.add_argument("--no-comparisons", action="store_false", dest="comparisons")
    cmd.add_argument("--projections", action="store_true")
    cmd.add_argument("--title")
    cmd.add_argument("--sections", nargs="+", default=["stats", "alerts"])
    cmd.add_argument("--include-data", action="store_true", dest="include_data")
    cmd.add_argument("--desde", dest="fecha_inicio")
    cmd.add_argument("--hasta", dest="fecha_fin")

    cmd = add("snapshot", cmd_snapshot, "Reporte ejecutivo local (Markdown + PDF)")
    cmd.add_argument("--periodo", default="1month")
    cmd.add_argument("--kpi-periodo", default="30days", dest="kpi_periodo")
    cmd.add_argument("--out-dir", type=Path, default=Path("output"), dest="out_dir")
    cmd.add_argument("--no-pdf", action="store_true", dest="no_pdf")

    return parser


def main(argv: Optional[List[str]] = None, services: Optional[Services] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env().with_overrides(args.api_url, args.timeout, args.log_level)
    set_log_level(settings.log_level, stream="stderr")
    services = services or build_services(settings)
    try:
        status = args.handler(services, args)
    except ApiError as exc:
        logger.error("%s failed: %s", args.command, exc.message)
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    finally:
        services.client.close()
    return status or 0


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

"""
Wrappers for the /search endpoints: inspections, histories, alerts, trends,
summaries, export and cache refresh.
"""

from typing import Any, Dict, List, Optional, Union

from api.client import ApiClient, ApiError, unwrap
from api.models import (
    ALERT_STATES,
    ALERT_TYPES,
    CACHE_TYPES,
    EXPORT_FORMATS,
    SUMMARY_TYPES,
    AdvancedSearchFilters,
    SearchFilters,
    check_choice,
)
from utils.logging_utils import get_logger


logger = get_logger(__name__)

QUICK_SEARCH_LIMIT = 10
QUICK_SEARCH_FIELDS = {
    "conductores": "conductor",
    "vehiculos": "placa",
    "contratos": "contrato",
}


class SearchService:
    def __init__(self, client: Optional[ApiClient] = None) -> None:
        self.client = client or ApiClient()

    def search_inspections(self, filters: Union[SearchFilters, Dict[str, Any], None] = None) -> Dict[str, Any]:
        params = _filters_to_dict(filters)
        envelope = self.client.request_json("GET", "/search/inspections", params=params)
        return unwrap(envelope, "Error en búsqueda de inspecciones")

    def advanced_search(self, filters: Union[AdvancedSearchFilters, Dict[str, Any]]) -> Dict[str, Any]:
        body = _filters_to_dict(filters)
        envelope = self.client.request_json("POST", "/search/advanced", json=body)
        return unwrap(envelope, "Error en búsqueda avanzada")

    def get_driver_history(
        self,
        driver_id: str,
        fecha_inicio: Optional[str] = None,
        fecha_fin: Optional[str] = None,
        limite: Optional[int] = None,
    ) -> Dict[str, Any]:
        params = {"fechaInicio": fecha_inicio, "fechaFin": fecha_fin, "limite": limite}
        envelope = self.client.request_json("GET", f"/search/driver/{driver_id}", params=params)
        return unwrap(envelope, "Error obteniendo historial del conductor")

    def get_vehicle_history(
        self,
        placa: str,
        fecha_inicio: Optional[str] = None,
        fecha_fin: Optional[str] = None,
        limite: Optional[int] = None,
    ) -> Dict[str, Any]:
        params = {"fechaInicio": fecha_inicio, "fechaFin": fecha_fin, "limite": limite}
        envelope = self.client.request_json("GET", f"/search/vehicle/{placa}", params=params)
        return unwrap(envelope, "Error obteniendo historial del vehículo")

    def get_active_alerts(
        self,
        tipo: Optional[str] = None,
        estado: Optional[str] = None,
        limite: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        check_choice("tipo", tipo, ALERT_TYPES)
        check_choice("estado", estado, ALERT_STATES)
        params = {"tipo": tipo, "estado": estado, "limite": limite}
        envelope = self.client.request_json("GET", "/search/alerts", params=params)
        return unwrap(envelope, "Error obteniendo alertas activas")

    def get_trends(
        self,
        periodo: Optional[str] = None,
        group_by: Optional[str] = None,
        metrics: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {"periodo": periodo, "groupBy": group_by, "metrics": metrics}
        envelope = self.client.request_json("GET", "/search/trends", params=params)
        return unwrap(envelope, "Error obteniendo análisis de tendencias")

    def get_summary(
        self,
        summary_type: str,
        timeframe: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Any:
        if summary_type not in SUMMARY_TYPES:
            raise ValueError(f"Unknown summary type {summary_type!r}; expected one of {', '.join(SUMMARY_TYPES)}")
        params = {"timeframe": timeframe, "limit": limit}
        envelope = self.client.request_json("GET", f"/search/summary/{summary_type}", params=params)
        data = unwrap(envelope, "Error obteniendo resumen")
        return data.get("summary") if isinstance(data, dict) else None

    def export_search_results(
        self,
        search_params: Union[SearchFilters, Dict[str, Any], None],
        export_format: str,
        filename: Optional[str] = None,
        include_charts: Optional[bool] = None,
        template: Optional[str] = None,
    ) -> Union[Any, bytes]:
        """JSON exports come back inside the envelope; every other format is a raw blob."""
        if export_format not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format {export_format!r}")
        body: Dict[str, Any] = {"searchParams": _filters_to_dict(search_params), "format": export_format}
        if filename:
            body["filename"] = filename
        if include_charts is not None:
            body["includeCharts"] = include_charts
        if template:
            body["template"] = template

        if export_format == "json":
            envelope = self.client.request_json("POST", "/search/export", json=body)
            if envelope.get("success"):
                return envelope.get("data")
            raise ApiError(envelope.get("message") or "Error exportando datos", payload=envelope)
        return self.client.request_bytes("POST", "/search/export", json=body)

    def refresh_cache(self, cache_type: Optional[str] = None) -> bool:
        cache_type = cache_type or "all"
        try:
            check_choice("type", cache_type, CACHE_TYPES)
            envelope = self.client.request_json("POST", f"/search/refresh/{cache_type}")
        except (ApiError, ValueError) as exc:
            logger.error("Cache refresh failed: %s", exc)
            return False
        return bool(envelope.get("success"))

    def quick_search(self, query: str, search_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Autocomplete suggestions drawn from the first page of matching inspections."""
        filters = SearchFilters(page=None, limit=QUICK_SEARCH_LIMIT)
        field_name = QUICK_SEARCH_FIELDS.get(search_type or "")
        if field_name:
            setattr(filters, field_name, query)
        try:
            result = self.search_inspections(filters)
        except ApiError as exc:
            logger.error("Quick search failed: %s", exc)
            return []
        return build_suggestions(result.get("inspecciones") or [], search_type)


def build_suggestions(inspections: List[Dict[str, Any]], search_type: Optional[str] = None) -> List[Dict[str, Any]]:
    suggestions: List[Dict[str, Any]] = []
    for inspection in inspections:
        if search_type in ("conductores", None):
            suggestions.append(
                {
                    "id": inspection.get("conductor_cedula"),
                    "label": inspection.get("conductor_nombre"),
                    "type": "conductor",
                    "extra": inspection.get("conductor_cedula"),
                }
            )
        if search_type in ("vehiculos", None):
            suggestions.append(
                {"id": inspection.get("placa_vehiculo"), "label": inspection.get("placa_vehiculo"), "type": "vehiculo"}
            )
        if search_type in ("contratos", None):
            suggestions.append(
                {"id": inspection.get("contrato"), "label": inspection.get("contrato"), "type": "contrato"}
            )

    seen = set()
    unique: List[Dict[str, Any]] = []
    for item in suggestions:
        key = (item["id"], item["type"])
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique[:QUICK_SEARCH_LIMIT]


def _filters_to_dict(filters: Union[SearchFilters, Dict[str, Any], None]) -> Dict[str, Any]:
    if filters is None:
        return {}
    if isinstance(filters, SearchFilters):
        return filters.to_params()
    return {key: value for key, value in filters.items() if value is not None and value != ""}

from __future__ import annotations

"""
Wrappers for the /dashboard endpoints: headline stats, KPIs, widgets, the
executive report, and the server-rendered PDF reports.
"""

from typing import Any, Dict, Iterable, Optional

from api.client import ApiClient, ApiError, unwrap


class DashboardService:
    def __init__(self, client: Optional[ApiClient] = None) -> None:
        self.client = client or ApiClient()

    def get_main_stats(
        self,
        periodo: Optional[str] = None,
        contrato: Optional[str] = None,
        campo: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {"periodo": periodo, "contrato": contrato, "campo": campo}
        envelope = self.client.request_json("GET", "/dashboard/stats", params=params)
        return unwrap(envelope, "Error obteniendo estadísticas")

    def get_performance_metrics(self, periodo: str = "30days") -> Dict[str, Any]:
        envelope = self.client.request_json("GET", "/dashboard/performance", params={"periodo": periodo})
        return unwrap(envelope, "Error obteniendo métricas de rendimiento")

    def get_kpis(
        self,
        periodo: Optional[str] = None,
        contrato: Optional[str] = None,
        campo: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {"periodo": periodo, "contrato": contrato, "campo": campo}
        envelope = self.client.request_json("GET", "/dashboard/kpis", params=params)
        data = envelope.get("data")
        if envelope.get("success") and isinstance(data, dict) and data.get("kpis"):
            return data["kpis"]
        raise ApiError(envelope.get("message") or "Error obteniendo KPIs", payload=envelope)

    def get_widgets(self) -> Dict[str, Any]:
        envelope = self.client.request_json("GET", "/dashboard/widgets")
        return unwrap(envelope, "Error obteniendo datos de widgets")

    def get_alerts_panel(self, tipo: Optional[str] = None, limite: Optional[int] = None) -> Any:
        envelope = self.client.request_json("GET", "/dashboard/alerts", params={"tipo": tipo, "limite": limite})
        return unwrap(envelope, "Error obteniendo panel de alertas")

    def get_executive_report(self, periodo: str = "30days") -> Dict[str, Any]:
        envelope = self.client.request_json("GET", "/dashboard/executive-report", params={"periodo": periodo})
        return unwrap(envelope, "Error obteniendo reporte ejecutivo")

    def download_daily_report(
        self,
        fecha: Optional[str] = None,
        include_charts: Optional[bool] = None,
        template: Optional[str] = None,
        contrato: Optional[str] = None,
        campo: Optional[str] = None,
    ) -> bytes:
        params = {
            "fecha": fecha,
            "includeCharts": include_charts,
            "template": template,
            "contrato": contrato,
            "campo": campo,
        }
        return self.client.request_bytes("GET", "/dashboard/pdf/daily-report", params=params)

    def download_executive_summary(
        self,
        periodo: Optional[str] = None,
        include_comparisons: Optional[bool] = None,
        include_projections: Optional[bool] = None,
        template: Optional[str] = None,
        logo: Optional[bool] = None,
    ) -> bytes:
        params = {
            "periodo": periodo,
            "includeComparisons": include_comparisons,
            "includeProjections": include_projections,
            "template": template,
            "logo": logo,
        }
        return self.client.request_bytes("GET", "/dashboard/pdf/executive-summary", params=params)

    def download_fatigue_analysis(
        self,
        periodo: Optional[str] = None,
        include_driver_details: Optional[bool] = None,
        include_recommendations: Optional[bool] = None,
        template: Optional[str] = None,
    ) -> bytes:
        params = {
            "periodo": periodo,
            "includeDriverDetails": include_driver_details,
            "includeRecommendations": include_recommendations,
            "template": template,
        }
        return self.client.request_bytes("GET", "/dashboard/pdf/fatigue-analysis", params=params)

    def generate_custom_report(
        self,
        titulo: Optional[str] = None,
        filtros: Optional[Dict[str, Any]] = None,
        secciones: Optional[Iterable[str]] = None,
        formato: Optional[str] = None,
        include_charts: Optional[bool] = None,
        include_data: Optional[bool] = None,
        logo: Optional[bool] = None,
    ) -> bytes:
        body = {
            "titulo": titulo,
            "filtros": filtros,
            "secciones": list(secciones) if secciones is not None else None,
            "formato": formato,
            "includeCharts": include_charts,
            "includeData": include_data,
            "logo": logo,
        }
        body = {key: value for key, value in body.items() if value is not None}
        return self.client.request_bytes("POST", "/dashboard/pdf/custom-report", json=body)

from __future__ import annotations

from dataclasses import dataclass

from api.client import ApiClient
from api.dashboard_service import DashboardService
from api.search_service import SearchService
from api.upload_service import UploadService
from utils.settings import Settings


@dataclass
class Services:
    client: ApiClient
    search: SearchService
    dashboard: DashboardService
    upload: UploadService


def build_services(settings: Settings) -> Services:
    """One shared client (and HTTP session) behind every service wrapper."""
    client = ApiClient.from_settings(settings)
    return Services(
        client=client,
        search=SearchService(client),
        dashboard=DashboardService(client),
        upload=UploadService(client),
    )

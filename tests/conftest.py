import json
from unittest import mock

import pytest
import requests

from api.client import ApiClient
from api.services import Services
from api.dashboard_service import DashboardService
from api.search_service import SearchService
from api.upload_service import UploadService

BASE_URL = "http://api.test/api"


def make_response(status=200, body=None, content=None, reason="OK"):
    response = requests.Response()
    response.status_code = status
    response.reason = reason
    if content is None:
        content = json.dumps(body if body is not None else {}).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    response._content = content
    response.encoding = "utf-8"
    return response


def ok(data, **extra):
    return {"success": True, "data": data, "timestamp": "2025-03-01T10:00:00Z", **extra}


@pytest.fixture
def session():
    fake = mock.MagicMock()
    fake.headers = {}
    fake.request.return_value = make_response(body=ok({}))
    return fake


@pytest.fixture
def respond(session):
    """Set the next response(s) returned by the fake session."""

    def _respond(*responses):
        if len(responses) == 1:
            session.request.side_effect = None
            session.request.return_value = responses[0]
        else:
            session.request.side_effect = list(responses)

    return _respond


@pytest.fixture
def client(session):
    return ApiClient(base_url=BASE_URL, timeout=5, session=session)


@pytest.fixture
def services(client):
    return Services(
        client=client,
        search=SearchService(client),
        dashboard=DashboardService(client),
        upload=UploadService(client),
    )


def last_call(session):
    """(method, url, kwargs) of the most recent request."""
    args, kwargs = session.request.call_args
    return args[0], args[1], kwargs

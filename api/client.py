from __future__ import annotations

"""
Shared HTTP client for the inspection backend.

Every endpoint answers with the same envelope::

    {"success": bool, "data": ..., "message": str, "error": str, "timestamp": str}

Services call ``request_json`` and hand the envelope to ``unwrap``; blob
endpoints (PDF, CSV, Excel, templates) go through ``request_bytes``.
"""

import mimetypes
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

import requests
from urllib3 import encode_multipart_formdata

from utils.logging_utils import get_logger
from utils.settings import Settings


logger = get_logger(__name__)

GENERIC_ERROR = "Error desconocido en la API"

ProgressCallback = Callable[[int], None]
UploadSource = Union[str, Path, Tuple[str, bytes], Any]


class ApiError(Exception):
    """Failed request or an envelope with ``success: false``."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Any = None,
        response: Optional[requests.Response] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload
        self.response = response


def _response_body(response: Optional[requests.Response]) -> Any:
    if response is None:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def handle_api_error(error: BaseException) -> str:
    """Extract the most useful message: body ``message``, body ``error``, exception text."""
    body = getattr(error, "payload", None)
    if not isinstance(body, dict):
        body = _response_body(getattr(error, "response", None))
    if isinstance(body, dict):
        if body.get("message"):
            return str(body["message"])
        if body.get("error"):
            return str(body["error"])
    text = str(error).strip()
    return text or GENERIC_ERROR


def is_api_error(error: BaseException) -> bool:
    response = getattr(error, "response", None)
    return response is not None and response.status_code >= 400


def unwrap(envelope: Mapping[str, Any], fallback_message: str) -> Any:
    if envelope.get("success") and envelope.get("data") is not None:
        return envelope["data"]
    message = envelope.get("message") or envelope.get("error") or fallback_message
    raise ApiError(str(message), payload=dict(envelope))


def clean_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Drop unset values and spell booleans the way the backend parses them."""
    cleaned: Dict[str, Any] = {}
    for key, value in (params or {}).items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


def read_upload(source: UploadSource) -> Tuple[str, bytes]:
    """Accept a path, a (name, bytes) pair, or a Streamlit UploadedFile."""
    if isinstance(source, (str, Path)):
        path = Path(source)
        return path.name, path.read_bytes()
    if isinstance(source, tuple):
        name, content = source
        return str(name), bytes(content)
    if hasattr(source, "getvalue"):
        return str(source.name), source.getvalue()
    raise TypeError(f"Unsupported upload source: {type(source).__name__}")


def guess_mimetype(file_name: str) -> str:
    suffix = Path(file_name).suffix.lower()
    if suffix == ".xlsx":
        return "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    if suffix == ".xls":
        return "application/vnd.ms-excel"
    return mimetypes.guess_type(file_name)[0] or "application/octet-stream"


class ProgressReader:
    """File-like view over an encoded body that reports how much has been sent."""

    def __init__(self, body: bytes, on_progress: Optional[ProgressCallback] = None) -> None:
        self._body = body
        self._offset = 0
        self._on_progress = on_progress
        self._last_reported = -1

    def __len__(self) -> int:
        return len(self._body)

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            size = len(self._body) - self._offset
        chunk = self._body[self._offset:self._offset + size]
        self._offset += len(chunk)
        self._report()
        return chunk

    @property
    def progress(self) -> int:
        total = len(self._body)
        if not total:
            return 100
        return round(self._offset * 100 / total)

    def _report(self) -> None:
        if self._on_progress is None:
            return
        progress = self.progress
        if progress != self._last_reported:
            self._last_reported = progress
            self._on_progress(progress)


class ApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        settings = Settings.from_env()
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.timeout_s
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    @classmethod
    def from_settings(cls, settings: Settings) -> "ApiClient":
        return cls(base_url=settings.api_url, timeout=settings.timeout_s)

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        data: Any = None,
        files: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        method = method.upper()
        logger.info("%s %s", method, path)
        try:
            response = self.session.request(
                method,
                self.url(path),
                params=clean_params(params),
                json=json,
                data=data,
                files=files,
                headers=dict(headers) if headers else None,
                timeout=timeout or self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise ApiError(handle_api_error(exc)) from exc

        status = response.status_code
        logger.info("%s %s", status, path)
        if status == 429:
            logger.warning("Rate limit exceeded on %s", path)
        elif status >= 500:
            logger.error("Server error %s on %s", status, path)

        if status >= 400:
            body = _response_body(response)
            error = ApiError(
                f"{status} {response.reason or 'HTTP error'}".strip(),
                status_code=status,
                payload=body,
                response=response,
            )
            error.message = handle_api_error(error)
            error.args = (error.message,)
            raise error
        return response

    def request_json(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        response = self.send(method, path, **kwargs)
        try:
            envelope = response.json()
        except ValueError as exc:
            raise ApiError(
                f"Respuesta no válida de {path}", status_code=response.status_code, response=response
            ) from exc
        if not isinstance(envelope, dict):
            raise ApiError(f"Respuesta no válida de {path}", status_code=response.status_code)
        return envelope

    def request_bytes(self, method: str, path: str, **kwargs: Any) -> bytes:
        headers = dict(kwargs.pop("headers", None) or {})
        headers.setdefault("Accept", "*/*")
        response = self.send(method, path, headers=headers, **kwargs)
        return response.content

    def post_multipart(
        self,
        path: str,
        fields: Mapping[str, Any],
        *,
        on_progress: Optional[ProgressCallback] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """POST a multipart form, reporting upload progress as whole percentages."""
        body, content_type = encode_multipart_formdata(dict(fields))
        reader = ProgressReader(body, on_progress)
        return self.request_json(
            "POST",
            path,
            data=reader,
            headers={"Content-Type": content_type},
            timeout=timeout,
        )

    def close(self) -> None:
        self.session.close()

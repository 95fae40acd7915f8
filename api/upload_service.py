from __future__ import annotations

"""
Wrappers for the /upload endpoints. Validation, duplicate detection and
ingestion all happen server-side; locally we only pre-check the file name
and size and report upload progress.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from api.client import ApiClient, ProgressCallback, UploadSource, guess_mimetype, read_upload, unwrap
from api.models import UPLOAD_STATES, FileCheck, check_choice
from utils.logging_utils import get_logger


logger = get_logger(__name__)

ALLOWED_EXTENSIONS = (".xlsx", ".xls")
MAX_FILE_SIZE = 50 * 1024 * 1024
MIN_FILE_SIZE = 1024
VALIDATE_TIMEOUT_S = 60
PROCESS_TIMEOUT_S = 300


def validate_file_format(file_name: str, file_size: int) -> FileCheck:
    errors: List[str] = []
    suffix = Path(file_name).suffix.lower()
    if suffix not in ALLOWED_EXTENSIONS:
        errors.append(f"Formato de archivo no válido. Se permiten: {', '.join(ALLOWED_EXTENSIONS)}")
    if file_size > MAX_FILE_SIZE:
        errors.append("El archivo es demasiado grande. Tamaño máximo: 50MB")
    if file_size < MIN_FILE_SIZE:
        errors.append("El archivo está vacío o es demasiado pequeño")
    return FileCheck(is_valid=not errors, errors=errors)


class UploadService:
    def __init__(self, client: Optional[ApiClient] = None) -> None:
        self.client = client or ApiClient()

    validate_file_format = staticmethod(validate_file_format)

    def validate_file(self, source: UploadSource) -> Dict[str, Any]:
        name, content = read_upload(source)
        files = {"file": (name, content, guess_mimetype(name))}
        envelope = self.client.request_json("POST", "/upload/validate", files=files, timeout=VALIDATE_TIMEOUT_S)
        return unwrap(envelope, "Error validando archivo")

    def upload_excel_file(
        self,
        source: UploadSource,
        overwrite_duplicates: bool = False,
        validate_only: bool = False,
        batch_size: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, Any]:
        name, content = read_upload(source)
        fields: Dict[str, Any] = {"file": (name, content, guess_mimetype(name))}
        if overwrite_duplicates:
            fields["overwriteDuplicates"] = "true"
        if validate_only:
            fields["validateOnly"] = "true"
        if batch_size:
            fields["batchSize"] = str(batch_size)

        logger.info("Uploading %s (%d bytes)", name, len(content))
        envelope = self.client.post_multipart(
            "/upload/process", fields, on_progress=on_progress, timeout=PROCESS_TIMEOUT_S
        )
        return unwrap(envelope, "Error procesando archivo Excel")

    def get_upload_history(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Dict[str, Any]:
        check_choice("status", status, UPLOAD_STATES)
        params = {"page": page, "limit": limit, "startDate": start_date, "endDate": end_date, "status": status}
        envelope = self.client.request_json("GET", "/upload/history", params=params)
        return unwrap(envelope, "Error obteniendo historial de uploads")

    def revert_upload(self, file_id: str, reason: Optional[str] = None) -> bool:
        envelope = self.client.request_json("DELETE", f"/upload/revert/{file_id}", json={"reason": reason})
        return bool(envelope.get("success"))

    def get_upload_stats(self, period: Optional[str] = None) -> Dict[str, Any]:
        envelope = self.client.request_json("GET", "/upload/stats", params={"period": period})
        return unwrap(envelope, "Error obteniendo estadísticas de uploads")

    def get_excel_templates(self) -> List[Dict[str, Any]]:
        envelope = self.client.request_json("GET", "/upload/templates")
        return unwrap(envelope, "Error obteniendo plantillas Excel")

    def download_template(self, template_name: str) -> bytes:
        return self.client.request_bytes("GET", f"/upload/templates/{template_name}")

    def get_processing_progress(self, upload_id: str) -> Dict[str, Any]:
        envelope = self.client.request_json("GET", f"/upload/progress/{upload_id}")
        return unwrap(envelope, "Error obteniendo progreso")

    def retry_failed_upload(self, file_id: str) -> Dict[str, Any]:
        envelope = self.client.request_json("POST", f"/upload/retry/{file_id}")
        return unwrap(envelope, "Error reintentando procesamiento")

    def get_upload_details(self, file_id: str) -> Dict[str, Any]:
        envelope = self.client.request_json("GET", f"/upload/details/{file_id}")
        return unwrap(envelope, "Error obteniendo detalles del upload")

    def cleanup_old_uploads(self, older_than_days: int = 90) -> Dict[str, Any]:
        envelope = self.client.request_json("POST", "/upload/cleanup", json={"olderThanDays": older_than_days})
        return unwrap(envelope, "Error limpiando uploads antiguos")

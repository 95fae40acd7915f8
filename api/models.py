from __future__ import annotations

"""
Request-side shapes built by the client. Response payloads stay plain dicts:
the backend owns their fields and the views only read them.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

PROBLEM_TYPES = ("medicamentos", "sueno", "fatiga", "aptitud")
SEVERITIES = ("baja", "media", "alta", "critica")
SORT_FIELDS = ("fecha", "puntaje", "conductor", "vehiculo")
SORT_ORDERS = ("asc", "desc")
SUMMARY_TYPES = ("conductores", "vehiculos", "contratos", "fatiga")
EXPORT_FORMATS = ("json", "csv", "excel", "pdf")
PERIODS = ("7days", "30days", "90days")
CACHE_TYPES = ("all", "inspections", "drivers", "vehicles")
ALERT_TYPES = ("CRITICA", "ADVERTENCIA", "TODAS")
ALERT_STATES = ("ACTIVA", "EN_REVISION", "RESUELTA")
UPLOAD_STATES = ("PROCESADO", "ERROR", "REVERTIDO")


@dataclass
class SearchFilters:
    fechaInicio: Optional[str] = None
    fechaFin: Optional[str] = None
    contrato: Optional[str] = None
    campo: Optional[str] = None
    conductor: Optional[str] = None
    placa: Optional[str] = None
    tieneAlertas: Optional[bool] = None
    tieneAdvertencias: Optional[bool] = None
    soloFatiga: Optional[bool] = None
    page: Optional[int] = 0
    limit: Optional[int] = 25

    def to_params(self) -> Dict[str, Any]:
        """Set fields only; empty strings count as unset."""
        return {key: value for key, value in asdict(self).items() if value is not None and value != ""}


@dataclass
class AdvancedSearchFilters(SearchFilters):
    puntajeMinimo: Optional[float] = None
    puntajeMaximo: Optional[float] = None
    tipoProblema: Optional[str] = None
    severidad: Optional[str] = None
    ordenarPor: Optional[str] = "fecha"
    orden: Optional[str] = "desc"

    def __post_init__(self) -> None:
        check_choice("tipoProblema", self.tipoProblema, PROBLEM_TYPES)
        check_choice("severidad", self.severidad, SEVERITIES)
        check_choice("ordenarPor", self.ordenarPor, SORT_FIELDS)
        check_choice("orden", self.orden, SORT_ORDERS)
        if (
            self.puntajeMinimo is not None
            and self.puntajeMaximo is not None
            and self.puntajeMinimo > self.puntajeMaximo
        ):
            raise ValueError("puntajeMinimo cannot exceed puntajeMaximo")

    @classmethod
    def from_basic(cls, basic: SearchFilters, **extra: Any) -> "AdvancedSearchFilters":
        base = {f.name: getattr(basic, f.name) for f in fields(SearchFilters)}
        base.update(extra)
        return cls(**base)


@dataclass
class FileCheck:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def check_choice(name: str, value: Optional[str], allowed: tuple) -> None:
    if value is not None and value not in allowed:
        raise ValueError(f"{name} must be one of {', '.join(allowed)}; got {value!r}")

"""Error taxonomy shared by every pipeline operation."""

from enum import Enum
from typing import Any, Dict, Optional, Type, TypeVar

E = TypeVar("E", bound=Enum)


class PipelineError(Exception):
    """Base class for errors surfaced to callers.

    Every subclass carries a stable ``kind`` tag so automated callers can
    branch on it instead of parsing messages.
    """

    kind = "pipeline_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "detail": self.message}


class ValidationError(PipelineError):
    """Malformed shape, unknown enum value or out-of-range number."""

    kind = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class NotFoundError(PipelineError):
    """A referenced lead/task/template/message does not exist."""

    kind = "not_found"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(PipelineError):
    """Write rejected because of existing state (e.g. duplicate sourceUrl)."""

    kind = "conflict"

    def __init__(self, message: str, existing: Any = None):
        super().__init__(message)
        self.existing = existing

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.existing is not None and hasattr(self.existing, "to_dict"):
            data["lead"] = self.existing.to_dict()
        return data


class StaleRevisionError(ConflictError):
    """Optimistic revision check failed; another writer got there first."""

    def __init__(self, lead_id: str, revision: int):
        super().__init__(f"Lead {lead_id} was modified concurrently (revision {revision})")
        self.lead_id = lead_id
        self.revision = revision


class DependencyError(PipelineError):
    """An outside delivery or enrichment collaborator failed."""

    kind = "dependency_error"

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["provider"] = self.provider
        return data


def parse_enum(enum_cls: Type[E], value: Any, field: str) -> E:
    """Convert a raw value into a member of a closed enum.

    Unknown values are rejected, never coerced to a default.
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(
            f"Invalid {field} '{value}'. Must be one of: {allowed}", field=field
        ) from None

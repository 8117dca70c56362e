"""Pipeline policy: configuration, errors, stage timestamps and qualification."""

from .config import PipelineConfig, PipelineConfigManager
from .errors import (
    PipelineError,
    ValidationError,
    NotFoundError,
    ConflictError,
    StaleRevisionError,
    DependencyError,
)
from .stages import TimestampRule, STAGE_TIMESTAMPS, apply_status, stamp
from .qualification import MANUAL_MARKER, QualificationResult, qualify, normalize_manual_reasons

__all__ = [
    "PipelineConfig",
    "PipelineConfigManager",
    "PipelineError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "StaleRevisionError",
    "DependencyError",
    "TimestampRule",
    "STAGE_TIMESTAMPS",
    "apply_status",
    "stamp",
    "MANUAL_MARKER",
    "QualificationResult",
    "qualify",
    "normalize_manual_reasons",
]

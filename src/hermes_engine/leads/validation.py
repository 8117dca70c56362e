"""Shape validation for lead candidates and patches.

Accepts either camelCase (wire) or snake_case keys. Everything is checked
before the caller touches storage.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from ..core.errors import ValidationError, parse_enum
from ..core.qualification import validate_reasons, validate_score
from ..storage.models import LeadStatus

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
URL_PATTERN = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)

MAX_TAG_LENGTH = 50

CREATE_FIELDS = {
    "source", "source_url", "source_id", "title", "description", "author",
    "author_url", "score", "score_reasons", "tags", "email", "phone",
    "company", "website", "budget_min", "budget_max", "currency", "deadline",
}

PATCH_FIELDS = {
    "status", "score", "score_reasons", "email", "phone", "company", "website",
    "budget_min", "budget_max", "currency", "deadline", "tags",
}


def to_snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    if not isinstance(data, Mapping):
        raise ValidationError("Expected an object")
    return {to_snake(k): v for k, v in data.items()}


def validate_email(value: Any, field: str = "email") -> str:
    if not isinstance(value, str) or not EMAIL_PATTERN.match(value.strip()):
        raise ValidationError(f"Invalid email address: {value!r}", field=field)
    return value.strip().lower()


def validate_url(value: Any, field: str) -> str:
    if not isinstance(value, str) or not URL_PATTERN.match(value.strip()):
        raise ValidationError(f"Invalid URL: {value!r}", field=field)
    return value.strip()


def required_text(data: Mapping[str, Any], field: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", field=field)
    return value.strip()


def optional_text(value: Any, field: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field=field)
    return value.strip() or None


def optional_int(value: Any, field: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer", field=field)
    if value < 0:
        raise ValidationError(f"{field} must not be negative", field=field)
    return value


def _naive_local(value: datetime) -> datetime:
    # Stored timestamps are naive local time
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def parse_datetime(value: Any, field: str) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return _naive_local(value)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Invalid datetime for {field}: {value!r}", field=field) from None
        return _naive_local(parsed)
    raise ValidationError(f"Invalid datetime for {field}: {value!r}", field=field)


def validate_tags(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValidationError("tags must be a list of strings", field="tags")
    tags = []
    for tag in value:
        if not isinstance(tag, str):
            raise ValidationError(f"Tag must be a string, got {tag!r}", field="tags")
        tag = tag.strip()
        if not tag:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValidationError(f"Tag longer than {MAX_TAG_LENGTH} characters", field="tags")
        if tag not in tags:
            tags.append(tag)
    return tags


def check_budget(budget_min: Optional[int], budget_max: Optional[int]):
    if budget_min is not None and budget_max is not None and budget_min > budget_max:
        raise ValidationError("budget_min must not exceed budget_max", field="budget_min")


def validate_candidate(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate a lead candidate and return constructor kwargs."""
    data = normalize_keys(data)
    unknown = set(data) - CREATE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    clean: Dict[str, Any] = {
        "source": required_text(data, "source"),
        "source_url": validate_url(data.get("source_url"), "source_url"),
        "title": required_text(data, "title"),
        "source_id": optional_text(data.get("source_id"), "source_id"),
        "description": optional_text(data.get("description"), "description"),
        "author": optional_text(data.get("author"), "author"),
        "author_url": optional_text(data.get("author_url"), "author_url"),
        "score": validate_score(data["score"]) if data.get("score") is not None else 0,
        "score_reasons": validate_reasons(data.get("score_reasons") or []),
        "tags": validate_tags(data.get("tags")),
        "phone": optional_text(data.get("phone"), "phone"),
        "company": optional_text(data.get("company"), "company"),
        "website": optional_text(data.get("website"), "website"),
        "budget_min": optional_int(data.get("budget_min"), "budget_min"),
        "budget_max": optional_int(data.get("budget_max"), "budget_max"),
        "currency": optional_text(data.get("currency"), "currency"),
        "deadline": parse_datetime(data.get("deadline"), "deadline"),
    }
    if data.get("email") is not None:
        clean["email"] = validate_email(data["email"])
    check_budget(clean["budget_min"], clean["budget_max"])
    return clean


def validate_patch(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate a lead patch. Only keys present in ``data`` are returned."""
    data = normalize_keys(data)
    unknown = set(data) - PATCH_FIELDS
    if unknown:
        raise ValidationError(f"Fields not patchable: {', '.join(sorted(unknown))}")

    clean: Dict[str, Any] = {}
    for key, value in data.items():
        if key == "status":
            clean[key] = parse_enum(LeadStatus, value, "status")
        elif key == "score":
            clean[key] = validate_score(value)
        elif key == "score_reasons":
            clean[key] = validate_reasons(value if value is not None else [])
        elif key == "email":
            clean[key] = validate_email(value) if value is not None else None
        elif key in ("budget_min", "budget_max"):
            clean[key] = optional_int(value, key)
        elif key == "deadline":
            clean[key] = parse_datetime(value, key)
        elif key == "tags":
            clean[key] = validate_tags(value)
        else:
            clean[key] = optional_text(value, key)
    return clean

"""Qualification rules for manual and automated scoring."""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .errors import ValidationError
from ..storage.models import LeadStatus

MANUAL_MARKER = "[Manual]"
MAX_REASON_LENGTH = 200


@dataclass
class QualificationResult:
    """Outcome of an automated qualify call."""

    score: int
    status: LeadStatus
    reasons: List[str] = field(default_factory=list)

    @property
    def qualified(self) -> bool:
        return self.status is LeadStatus.QUALIFIED


def validate_score(score) -> int:
    """Scores are plain integers; bools and floats are rejected."""
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationError(f"Score must be an integer, got {score!r}", field="score")
    return score


def validate_reasons(reasons: Sequence[str]) -> List[str]:
    if isinstance(reasons, str):
        raise ValidationError("Reasons must be a list of strings", field="score_reasons")
    cleaned = []
    for reason in reasons:
        if not isinstance(reason, str):
            raise ValidationError(f"Reason must be a string, got {reason!r}", field="score_reasons")
        reason = reason.strip()
        if not reason:
            continue
        if len(reason) > MAX_REASON_LENGTH:
            raise ValidationError(
                f"Reason longer than {MAX_REASON_LENGTH} characters", field="score_reasons"
            )
        cleaned.append(reason)
    return cleaned


def normalize_manual_reasons(reasons: Sequence[str]) -> List[str]:
    """Ensure exactly one ``[Manual]`` marker, prepending it if absent."""
    reasons = validate_reasons(reasons)
    if MANUAL_MARKER not in reasons:
        return [MANUAL_MARKER] + reasons

    normalized = []
    seen_marker = False
    for reason in reasons:
        if reason == MANUAL_MARKER:
            if seen_marker:
                continue
            seen_marker = True
        normalized.append(reason)
    return normalized


def reason_polarity(reason: str) -> int:
    """+1 for ``+``-prefixed reasons, -1 for ``-``-prefixed, else 0."""
    if reason.startswith("+"):
        return 1
    if reason.startswith("-"):
        return -1
    return 0


def qualify(score: int, reasons: Sequence[str], threshold: int) -> QualificationResult:
    """Decide QUALIFIED vs ARCHIVED for the automated path."""
    score = validate_score(score)
    status = LeadStatus.QUALIFIED if score >= threshold else LeadStatus.ARCHIVED
    return QualificationResult(score=score, status=status, reasons=validate_reasons(reasons))


def summarize_reasons(reasons: Sequence[str]) -> Optional[str]:
    """One-line summary, positives first, for the CLI lead table."""
    positives = [r for r in reasons if reason_polarity(r) > 0]
    negatives = [r for r in reasons if reason_polarity(r) < 0]
    if not positives and not negatives:
        return None
    return ", ".join(positives + negatives)

"""Tests for scoring and qualification rules."""

import pytest

from hermes_engine.core.errors import ValidationError, parse_enum
from hermes_engine.core.qualification import (
    MANUAL_MARKER,
    normalize_manual_reasons,
    qualify,
    summarize_reasons,
    validate_reasons,
    validate_score,
)
from hermes_engine.storage.models import LeadStatus


class TestQualify:
    """Tests for the automated qualify decision."""

    def test_at_threshold_qualifies(self):
        result = qualify(15, ["+budget stated"], threshold=15)
        assert result.status == LeadStatus.QUALIFIED
        assert result.qualified

    def test_below_threshold_archives(self):
        result = qualify(14, ["-vague scope"], threshold=15)
        assert result.status == LeadStatus.ARCHIVED
        assert not result.qualified

    def test_negative_scores_allowed(self):
        assert qualify(-10, [], threshold=15).score == -10

    def test_rejects_non_integer_score(self):
        with pytest.raises(ValidationError):
            qualify(15.5, [], threshold=15)
        with pytest.raises(ValidationError):
            validate_score(True)


class TestReasons:
    """Tests for reason validation and the manual marker."""

    def test_blank_reasons_dropped(self):
        assert validate_reasons([" +remote ", "", "  "]) == ["+remote"]

    def test_string_rejected(self):
        with pytest.raises(ValidationError) as exc:
            validate_reasons("+remote")
        assert exc.value.field == "score_reasons"

    def test_marker_prepended(self):
        assert normalize_manual_reasons(["+budget"]) == [MANUAL_MARKER, "+budget"]

    def test_marker_not_duplicated(self):
        reasons = normalize_manual_reasons([MANUAL_MARKER, "+budget", MANUAL_MARKER])
        assert reasons.count(MANUAL_MARKER) == 1

    def test_empty_reasons_get_marker(self):
        assert normalize_manual_reasons([]) == [MANUAL_MARKER]

    def test_summary_positives_first(self):
        summary = summarize_reasons(["-no budget", "+react", "neutral"])
        assert summary == "+react, -no budget"

    def test_summary_none_without_polarity(self):
        assert summarize_reasons(["neutral"]) is None


class TestParseEnum:
    """Unknown enum values are rejected, never coerced."""

    def test_known_value(self):
        assert parse_enum(LeadStatus, "WON", "status") is LeadStatus.WON

    def test_unknown_value(self):
        with pytest.raises(ValidationError) as exc:
            parse_enum(LeadStatus, "CLOSED", "status")
        assert exc.value.field == "status"
        assert exc.value.to_dict()["error"] == "validation_error"

"""Tests for the stage-timestamp policy."""

import pytest
from datetime import datetime, timedelta

from hermes_engine.core.stages import (
    STAGE_TIMESTAMPS,
    TimestampRule,
    apply_status,
    stamp,
)
from hermes_engine.storage.models import Lead, LeadStatus

T0 = datetime(2026, 3, 1, 9, 0, 0)


@pytest.fixture
def lead():
    return Lead(id="lead-1", source="reddit", source_url="https://example.com/1", title="Need an app")


class TestApplyStatus:
    """Tests for apply_status."""

    def test_stamps_mapped_milestone(self, lead):
        written = apply_status(lead, LeadStatus.QUALIFIED, T0)

        assert written == "qualified_at"
        assert lead.status == LeadStatus.QUALIFIED
        assert lead.qualified_at == T0

    def test_first_write_wins(self, lead):
        apply_status(lead, LeadStatus.CONTACTED, T0)
        apply_status(lead, LeadStatus.FOLLOWUP_1, T0 + timedelta(days=1))
        written = apply_status(lead, LeadStatus.CONTACTED, T0 + timedelta(days=2))

        assert written is None
        assert lead.contacted_at == T0

    def test_overwrite_rule(self, lead):
        apply_status(lead, LeadStatus.QUALIFIED, T0)
        later = T0 + timedelta(hours=3)
        apply_status(lead, LeadStatus.QUALIFIED, later, TimestampRule.OVERWRITE)

        assert lead.qualified_at == later

    def test_status_without_milestone(self, lead):
        assert apply_status(lead, LeadStatus.FOLLOWUP_1, T0) is None
        assert lead.status == LeadStatus.FOLLOWUP_1
        assert lead.contacted_at is None

    def test_won_and_lost_share_closed_at(self, lead):
        assert STAGE_TIMESTAMPS[LeadStatus.WON] == STAGE_TIMESTAMPS[LeadStatus.LOST] == "closed_at"

        apply_status(lead, LeadStatus.LOST, T0)
        apply_status(lead, LeadStatus.WON, T0 + timedelta(days=5))
        assert lead.closed_at == T0

    def test_any_transition_allowed(self, lead):
        apply_status(lead, LeadStatus.WON, T0)
        apply_status(lead, LeadStatus.NEW, T0)

        assert lead.status == LeadStatus.NEW
        assert lead.closed_at == T0


class TestStamp:
    """Tests for stamp."""

    def test_rejects_non_milestone_field(self, lead):
        with pytest.raises(KeyError):
            stamp(lead, "updated_at", T0, TimestampRule.OVERWRITE)

    def test_reports_change(self, lead):
        assert stamp(lead, "call_at", T0, TimestampRule.SET_IF_NULL) is True
        assert stamp(lead, "call_at", T0, TimestampRule.SET_IF_NULL) is False

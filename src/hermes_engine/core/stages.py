"""Stage-timestamp policy: which status change stamps which milestone."""

import logging
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple

from ..storage.models import Lead, LeadStatus

logger = logging.getLogger(__name__)


class TimestampRule(Enum):
    """How a milestone timestamp is written."""

    SET_IF_NULL = "set_if_null"  # first write wins
    OVERWRITE = "overwrite"      # latest write wins


# The single status -> milestone table. Every status change goes through
# apply_status so no call site duplicates the set-if-null check.
STAGE_TIMESTAMPS: Dict[LeadStatus, str] = {
    LeadStatus.QUALIFIED: "qualified_at",
    LeadStatus.CONTACTED: "contacted_at",
    LeadStatus.RESPONDED: "responded_at",
    LeadStatus.CALL_SCHEDULED: "call_at",
    LeadStatus.PROPOSAL_SENT: "proposal_at",
    LeadStatus.WON: "closed_at",
    LeadStatus.LOST: "closed_at",
}

MILESTONE_FIELDS: Tuple[str, ...] = (
    "qualified_at",
    "contacted_at",
    "responded_at",
    "call_at",
    "proposal_at",
    "closed_at",
)

# Agent re-qualification restamps qualified_at on every call, whatever
# status the score produces (QUALIFIED or ARCHIVED).
AGENT_QUALIFY_STAMPS: Tuple[Tuple[str, TimestampRule], ...] = (
    ("qualified_at", TimestampRule.OVERWRITE),
)


def stamp(lead: Lead, field_name: str, now: datetime, rule: TimestampRule) -> bool:
    """Write a milestone timestamp according to ``rule``.

    Returns True if the field changed.
    """
    if field_name not in MILESTONE_FIELDS:
        raise KeyError(f"Not a milestone field: {field_name}")
    if rule is TimestampRule.SET_IF_NULL and getattr(lead, field_name) is not None:
        return False
    setattr(lead, field_name, now)
    return True


def apply_status(
    lead: Lead,
    status: LeadStatus,
    now: datetime,
    rule: TimestampRule = TimestampRule.SET_IF_NULL,
) -> Optional[str]:
    """Set ``lead.status`` and stamp the mapped milestone, if any.

    Any status may follow any other; there is no transition guard.
    Returns the name of the milestone field that was written, or None.
    """
    previous = lead.status
    lead.status = status

    field_name = STAGE_TIMESTAMPS.get(status)
    written = None
    if field_name and stamp(lead, field_name, now, rule):
        written = field_name

    if previous is not status:
        logger.info(f"Lead {lead.id}: {previous.value} -> {status.value}")
    return written

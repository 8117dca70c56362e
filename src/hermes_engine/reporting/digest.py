"""Daily digest and next-actions queue for the agent."""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Optional, Tuple

from ..core.config import PipelineConfig
from ..storage.database import LeadFilter, PipelineDatabase
from ..storage.models import LeadStatus
from ..tasks.task_manager import TaskManager
from .funnel import PipelineReport

FOLLOWUP_STATUSES = (LeadStatus.CONTACTED, LeadStatus.FOLLOWUP_1, LeadStatus.FOLLOWUP_2)
NEXT_ACTION_FOLLOWUP_STATUSES = (LeadStatus.CONTACTED, LeadStatus.FOLLOWUP_1)


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """[local midnight, next local midnight)."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def within(field_name: str, start: datetime, end: datetime, **kwargs) -> LeadFilter:
    return LeadFilter(since=(field_name, start), before=(field_name, end), **kwargs)


@dataclass
class Digest:
    """Summary of one day's pipeline activity."""

    day: date
    new_leads: int = 0
    qualified_today: int = 0
    responses_today: int = 0
    pending_followups: int = 0
    upcoming_calls: int = 0
    pipeline: Dict[str, int] = field(default_factory=dict)

    @property
    def actions(self) -> Dict[str, bool]:
        return {
            "qualifyNew": self.new_leads > 0,
            "sendFollowups": self.pending_followups > 0,
            "prepareCalls": self.upcoming_calls > 0,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "summary": {
                "newLeads": self.new_leads,
                "qualifiedToday": self.qualified_today,
                "responsesToday": self.responses_today,
                "pendingFollowups": self.pending_followups,
                "upcomingCalls": self.upcoming_calls,
            },
            "pipeline": self.pipeline,
            "actions": self.actions,
        }


class AgentReport:
    """What the agent should look at and work on."""

    def __init__(
        self,
        db: PipelineDatabase,
        config: Optional[PipelineConfig] = None,
        tasks: Optional[TaskManager] = None,
        clock=None,
    ):
        self.db = db
        self.config = config or PipelineConfig()
        self.clock = clock or datetime.now
        self.tasks = tasks or TaskManager(db, self.config, self.clock)
        self.pipeline = PipelineReport(db, self.tasks)

    def _followup_cutoff(self, reference: datetime) -> datetime:
        return reference - timedelta(days=self.config.followup_window_days)

    def digest(self, day: Optional[date] = None) -> Digest:
        now = self.clock()
        day = day or now.date()
        start, end = day_bounds(day)
        # Follow-ups are judged as of now for today, as of day end for past days
        reference = min(now, end)

        pending = LeadFilter(
            statuses=FOLLOWUP_STATUSES,
            before=("contacted_at", self._followup_cutoff(reference)),
            is_null=["responded_at"],
        )

        return Digest(
            day=day,
            new_leads=self.db.count_leads(within("scraped_at", start, end)),
            qualified_today=self.db.count_leads(within("qualified_at", start, end)),
            responses_today=self.db.count_leads(within("responded_at", start, end)),
            pending_followups=self.db.count_leads(pending),
            upcoming_calls=self.db.count_leads(
                within("call_at", start, end, status=LeadStatus.CALL_SCHEDULED)
            ),
            pipeline=self.pipeline.snapshot(),
        )

    def next_actions(self) -> Dict[str, Any]:
        """Pending tasks plus the leads waiting on qualify, contact or follow-up."""
        lead_limit = self.config.next_actions_lead_limit
        now = self.clock()

        tasks = self.tasks.next_actions()
        to_qualify = self.db.find_leads(
            LeadFilter(status=LeadStatus.NEW, max_score=0),
            order_by="scraped_at DESC",
            limit=self.config.qualify_queue_limit,
        )
        to_contact = self.db.find_leads(
            LeadFilter(status=LeadStatus.QUALIFIED, is_null=["contacted_at"]),
            order_by="score DESC, scraped_at DESC",
            limit=lead_limit,
        )
        to_follow_up = self.db.find_leads(
            LeadFilter(
                statuses=NEXT_ACTION_FOLLOWUP_STATUSES,
                before=("contacted_at", self._followup_cutoff(now)),
                is_null=["responded_at"],
            ),
            order_by="contacted_at ASC",
            limit=lead_limit,
        )

        return {
            "tasks": [t.to_dict() for t in tasks],
            "toQualify": [l.to_dict() for l in to_qualify],
            "toContact": [l.to_dict() for l in to_contact],
            "toFollowUp": [l.to_dict() for l in to_follow_up],
            "summary": {
                "pendingTasks": len(tasks),
                "leadsToQualify": len(to_qualify),
                "leadsToContact": len(to_contact),
                "leadsToFollowUp": len(to_follow_up),
            },
        }

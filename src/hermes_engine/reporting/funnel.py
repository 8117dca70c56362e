"""Pipeline snapshot, conversion funnel and dashboard overview."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..storage.database import LeadFilter, PipelineDatabase
from ..storage.models import LeadStatus
from ..tasks.task_manager import TaskManager


@dataclass
class FunnelStage:
    """A stage in the conversion funnel."""
    name: str
    count: int
    rate: int

    def to_dict(self) -> Dict[str, Any]:
        return {"stage": self.name, "count": self.count, "rate": self.rate}


# (stage name, milestone field). Scraped counts every lead, Won counts WON leads.
FUNNEL_STAGES: Sequence[Tuple[str, Optional[str]]] = (
    ("Scraped", None),
    ("Qualified", "qualified_at"),
    ("Contacted", "contacted_at"),
    ("Responded", "responded_at"),
    ("Calls", "call_at"),
    ("Proposals", "proposal_at"),
    ("Won", None),
)


def percentage(part: int, whole: int) -> int:
    """Rounded percentage; 0 when there is nothing to divide by."""
    if not whole:
        return 0
    # Halves round up
    return (part * 200 + whole) // (2 * whole)


def build_funnel(counts: Sequence[Tuple[str, int]]) -> List[FunnelStage]:
    """Turn ordered (stage, count) pairs into stages with step conversion rates.

    The first stage is 100 by convention; every later rate is relative to
    the stage before it.
    """
    stages: List[FunnelStage] = []
    for index, (name, count) in enumerate(counts):
        if index == 0:
            rate = 100
        else:
            rate = percentage(count, counts[index - 1][1])
        stages.append(FunnelStage(name=name, count=count, rate=rate))
    return stages


class PipelineReport:
    """Read-side pipeline views computed on demand from the store."""

    def __init__(self, db: PipelineDatabase, tasks: Optional[TaskManager] = None):
        self.db = db
        self.tasks = tasks or TaskManager(db)

    def snapshot(self) -> Dict[str, int]:
        """Lead count for every status, zeros included."""
        counts = self.db.status_counts()
        return {status.value: counts.get(status.value, 0) for status in LeadStatus}

    def funnel(self) -> List[FunnelStage]:
        counts = []
        for name, milestone in FUNNEL_STAGES:
            if name == "Won":
                count = self.db.count_leads(LeadFilter(status=LeadStatus.WON))
            elif milestone:
                count = self.db.count_leads(LeadFilter(is_set=[milestone]))
            else:
                count = self.db.count_leads()
            counts.append((name, count))
        return build_funnel(counts)

    def dashboard(self) -> Dict[str, Any]:
        total = self.db.count_leads()
        qualified = self.db.count_leads(LeadFilter(status=LeadStatus.QUALIFIED))
        contacted = self.db.count_leads(LeadFilter(is_set=["contacted_at"]))
        responded = self.db.count_leads(LeadFilter(is_set=["responded_at"]))
        won = self.db.count_leads(LeadFilter(status=LeadStatus.WON))
        lost = self.db.count_leads(LeadFilter(status=LeadStatus.LOST))

        return {
            "overview": {
                "totalLeads": total,
                "qualifiedLeads": qualified,
                "contactedLeads": contacted,
                "respondedLeads": responded,
                "dealsWon": won,
                "dealsLost": lost,
                "responseRate": percentage(responded, contacted),
                "winRate": percentage(won, won + lost),
            },
            "tasks": self.tasks.counts(),
            "pipeline": self.snapshot(),
        }

"""Idempotent per-day pipeline counters."""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from ..storage.database import PipelineDatabase
from ..storage.models import DailyStats, LeadStatus
from .digest import day_bounds, within

logger = logging.getLogger(__name__)

# counter -> milestone field counted within the day
MILESTONE_COUNTERS = (
    ("leads_scraped", "scraped_at"),
    ("leads_qualified", "qualified_at"),
    ("leads_contacted", "contacted_at"),
    ("leads_responded", "responded_at"),
    ("calls_scheduled", "call_at"),
    ("proposals_sent", "proposal_at"),
)


class DailyStatsRecorder:
    """Recomputes a day's counters from scratch and stores them by date."""

    def __init__(self, db: PipelineDatabase, clock=None):
        self.db = db
        self.clock = clock or datetime.now

    def compute(self, day: date) -> DailyStats:
        """Counters for ``day`` from the current lead state. Writes nothing."""
        start, end = day_bounds(day)
        stats = DailyStats(date=day)
        for counter, field_name in MILESTONE_COUNTERS:
            setattr(stats, counter, self.db.count_leads(within(field_name, start, end)))
        stats.deals_won = self.db.count_leads(
            within("closed_at", start, end, status=LeadStatus.WON)
        )
        stats.deals_lost = self.db.count_leads(
            within("closed_at", start, end, status=LeadStatus.LOST)
        )
        return stats

    def record(self, day: Optional[date] = None) -> DailyStats:
        """Recompute and upsert. Safe to run any number of times."""
        day = day or self.clock().date()
        stats = self.compute(day)
        self.db.upsert_daily_stats(stats)
        logger.info(f"Recorded daily stats for {day.isoformat()}: {stats.counters()}")
        return stats

    def history(self, days: int = 30) -> List[DailyStats]:
        since = self.clock().date() - timedelta(days=days)
        return self.db.list_daily_stats(since)

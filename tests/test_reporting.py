"""Tests for funnel, dashboard, digest and daily stats."""

import pytest
from datetime import date, datetime

from hermes_engine.reporting import build_funnel, percentage
from hermes_engine.storage.models import LeadStatus


@pytest.fixture
def populated(engine, make_candidate):
    """Four leads: three qualified, two contacted, one responded and won."""
    leads = [engine.leads.create_lead(make_candidate(n)) for n in range(1, 5)]
    for lead in leads[:3]:
        engine.leads.auto_qualify(lead.id, 20, ["+fit"])
    for lead in leads[:2]:
        engine.leads.set_status(lead.id, LeadStatus.CONTACTED)
    engine.tracker.record_response(leads[0].id, "Let's talk", "EMAIL")
    engine.leads.set_status(leads[0].id, LeadStatus.WON)
    return leads


class TestFunnelMath:
    """Tests for rate computation."""

    def test_percentage_zero_denominator(self):
        assert percentage(5, 0) == 0

    def test_percentage_rounds(self):
        assert percentage(2, 3) == 67

    def test_percentage_rounds_halves_up(self):
        assert percentage(1, 8) == 13
        assert percentage(5, 8) == 63
        assert percentage(1, 2) == 50

    def test_funnel_rate_rounds_halves_up(self):
        stages = build_funnel([("Scraped", 8), ("Qualified", 1)])
        assert stages[1].rate == 13

    def test_first_stage_is_full(self):
        stages = build_funnel([("Scraped", 0), ("Qualified", 0)])
        assert [s.rate for s in stages] == [100, 0]


class TestPipelineReport:
    """Tests for PipelineReport."""

    def test_funnel(self, engine, populated):
        stages = engine.pipeline.funnel()

        assert [s.name for s in stages] == [
            "Scraped", "Qualified", "Contacted", "Responded", "Calls", "Proposals", "Won",
        ]
        assert [s.count for s in stages] == [4, 3, 2, 1, 0, 0, 1]
        assert [s.rate for s in stages] == [100, 75, 67, 50, 0, 0, 0]

    def test_snapshot_includes_every_status(self, engine, populated):
        snapshot = engine.pipeline.snapshot()

        assert set(snapshot) == {s.value for s in LeadStatus}
        assert snapshot["WON"] == 1
        assert snapshot["CONTACTED"] == 1
        assert snapshot["QUALIFIED"] == 1
        assert snapshot["NEW"] == 1
        assert snapshot["LOST"] == 0

    def test_dashboard(self, engine, populated):
        overview = engine.pipeline.dashboard()["overview"]

        assert overview["totalLeads"] == 4
        assert overview["contactedLeads"] == 2
        assert overview["respondedLeads"] == 1
        assert overview["responseRate"] == 50
        assert overview["winRate"] == 100

    def test_empty_pipeline(self, engine):
        stages = engine.pipeline.funnel()
        assert all(s.count == 0 for s in stages)
        assert engine.pipeline.dashboard()["overview"]["winRate"] == 0


class TestDigest:
    """Tests for the daily digest and next-actions queue."""

    @pytest.fixture
    def history(self, engine, make_candidate, clock):
        clock.set(datetime(2026, 3, 7, 9, 0))
        stale = engine.leads.create_lead(make_candidate(1))
        engine.leads.set_status(stale.id, LeadStatus.CONTACTED)

        clock.set(datetime(2026, 3, 9, 10, 0))
        recent = engine.leads.create_lead(make_candidate(2))
        engine.leads.set_status(recent.id, LeadStatus.CONTACTED)

        clock.set(datetime(2026, 3, 10, 12, 0))
        fresh = engine.leads.create_lead(make_candidate(3))
        return stale, recent, fresh

    def test_today(self, engine, history):
        digest = engine.agent.digest()

        assert digest.day == date(2026, 3, 10)
        assert digest.new_leads == 1
        assert digest.pending_followups == 1
        assert digest.upcoming_calls == 0
        assert digest.actions == {"qualifyNew": True, "sendFollowups": True, "prepareCalls": False}

    def test_past_day(self, engine, history):
        digest = engine.agent.digest(date(2026, 3, 7))

        assert digest.new_leads == 1
        assert digest.pending_followups == 0

    def test_responded_lead_needs_no_followup(self, engine, history):
        stale, _, _ = history
        engine.tracker.record_response(stale.id, "Hi", "EMAIL")

        digest = engine.agent.digest()
        assert digest.pending_followups == 0
        assert digest.responses_today == 1

    def test_to_dict(self, engine, history):
        data = engine.agent.digest().to_dict()
        assert data["date"] == "2026-03-10"
        assert data["summary"]["newLeads"] == 1
        assert data["pipeline"]["CONTACTED"] == 2

    def test_next_actions(self, engine, history, make_candidate):
        stale, recent, fresh = history
        scored = engine.leads.create_lead(make_candidate(4, score=5))
        ready = engine.leads.create_lead(make_candidate(5))
        engine.leads.mark_qualified(ready.id)
        engine.tasks.create_task({"title": "Prep call", "priority": "HIGH"})

        actions = engine.agent.next_actions()

        assert [l["id"] for l in actions["toQualify"]] == [fresh.id]
        assert [l["id"] for l in actions["toContact"]] == [ready.id]
        assert [l["id"] for l in actions["toFollowUp"]] == [stale.id]
        assert actions["summary"]["pendingTasks"] == 1
        assert scored.id not in [l["id"] for l in actions["toQualify"]]


class TestDailyStats:
    """Daily stats are recomputed from scratch."""

    def test_record_is_idempotent(self, engine, populated, clock):
        first = engine.daily_stats.record()
        second = engine.daily_stats.record()

        assert first.counters() == second.counters()
        assert first.leads_scraped == 4
        assert first.leads_qualified == 3
        assert first.deals_won == 1
        assert len(engine.daily_stats.history(7)) == 1

    def test_record_past_day(self, engine, populated):
        stats = engine.daily_stats.record(date(2026, 3, 1))
        assert all(value == 0 for value in stats.counters().values())
        assert engine.db.get_daily_stats(date(2026, 3, 1)) is not None

    def test_record_reflects_later_changes(self, engine, populated):
        engine.daily_stats.record()
        engine.leads.set_status(populated[1].id, LeadStatus.LOST)

        stats = engine.daily_stats.record()
        assert stats.deals_lost == 1
        assert engine.db.get_daily_stats(stats.date).deals_lost == 1

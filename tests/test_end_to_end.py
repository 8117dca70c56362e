"""Full lead lifecycle: ingest, qualify, draft, send, respond."""

from hermes_engine.outreach.templates import TemplateBucket
from hermes_engine.storage.models import LeadStatus, MessageStatus


class TestLeadLifecycle:
    """One lead through the whole pipeline."""

    def test_lifecycle(self, engine, clock):
        lead = engine.leads.create_lead({
            "source": "reddit",
            "sourceUrl": "https://example.com/1",
            "title": "Building a scheduling app for clinics",
            "author": "u/jane_doe",
        })
        assert lead.score == 0
        assert lead.status == LeadStatus.NEW

        clock.advance(minutes=5)
        lead = engine.leads.auto_qualify(lead.id, 20, ["+clear scope", "+budget"])
        assert lead.status == LeadStatus.QUALIFIED
        assert lead.score == 20
        assert lead.qualified_at == clock.now

        draft = engine.outreach.generate_draft(lead.id)
        assert draft.bucket == TemplateBucket.STARTUP
        assert draft.variables["firstName"] == "Jane"
        assert draft.content.startswith("Hey Jane,")

        clock.advance(minutes=5)
        message, lead = engine.tracker.mark_sent(draft.message.id)
        assert message.status == MessageStatus.SENT
        assert lead.status == LeadStatus.CONTACTED
        assert lead.contacted_at == clock.now

        clock.advance(days=1)
        _, lead = engine.tracker.record_response(
            lead.id, "Sure, let's chat", "EMAIL", sentiment="positive"
        )
        assert lead.status == LeadStatus.RESPONDED
        assert lead.responded_at == clock.now

        notes = [n.content for n in engine.db.get_notes(lead.id)]
        assert "Response sentiment: positive" in notes

        stages = {s.name: s.count for s in engine.pipeline.funnel()}
        assert stages["Qualified"] == stages["Contacted"] == stages["Responded"] == 1

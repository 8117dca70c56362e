"""Tests for outreach drafts, sending and message tracking."""

import pytest
from unittest.mock import Mock

from hermes_engine.core.errors import DependencyError, NotFoundError, ValidationError
from hermes_engine.outreach.delivery import ResendClient
from hermes_engine.outreach.templates import TemplateBucket
from hermes_engine.storage.models import (
    LeadStatus,
    MessageChannel,
    MessageDirection,
    MessageStatus,
    NoteType,
)


@pytest.fixture
def delivery(engine):
    delivery = Mock(spec=ResendClient)
    delivery.send.return_value = "re_123"
    engine.outreach.delivery = delivery
    return delivery


class TestGenerateDraft:
    """Drafts never change the lead."""

    def test_bucket_from_classification(self, engine, make_candidate):
        lead = engine.leads.create_lead(make_candidate(title="[Hiring] React developer"))
        draft = engine.outreach.generate_draft(lead.id)

        assert draft.bucket == TemplateBucket.HIRING_POST
        assert draft.message.status == MessageStatus.DRAFT
        assert draft.message.channel == MessageChannel.EMAIL
        assert draft.content.startswith("Hey Jane,")
        assert engine.leads.get_lead(lead.id).status == LeadStatus.NEW

    def test_explicit_bucket(self, engine, lead):
        draft = engine.outreach.generate_draft(lead.id, bucket="followup")
        assert draft.bucket == TemplateBucket.FOLLOWUP
        assert draft.subject == f"Re: {lead.title}"

    def test_unknown_bucket(self, engine, lead):
        with pytest.raises(ValidationError):
            engine.outreach.generate_draft(lead.id, bucket="cold")

    def test_stored_template_counts_usage(self, engine, lead):
        draft = engine.outreach.generate_draft(
            lead.id,
            template_id="reddit-initial-outreach",
            variables={"personalized_insight": "Your onboarding flow is clever"},
        )
        engine.worker.drain()

        assert draft.message.channel == MessageChannel.REDDIT_DM
        assert draft.message.template_id == "reddit-initial-outreach"
        assert "Your onboarding flow is clever" in draft.content
        assert engine.templates.get_template("reddit-initial-outreach").usage_count == 1

    def test_unfilled_placeholder_stays_literal(self, engine, lead):
        draft = engine.outreach.generate_draft(lead.id, template_id="follow-up-day-2")
        assert "{{similar_project}}" in draft.content

    def test_missing_lead(self, engine):
        with pytest.raises(NotFoundError):
            engine.outreach.generate_draft("missing")


class TestMessageLifecycle:
    """Sending moves the lead to CONTACTED, replies to RESPONDED."""

    def test_mark_sent(self, engine, lead, clock):
        draft = engine.outreach.generate_draft(lead.id)
        message, updated = engine.tracker.mark_sent(draft.message.id, external_id="t3_abc")

        assert message.status == MessageStatus.SENT
        assert message.sent_at == clock.now
        assert message.external_id == "t3_abc"
        assert updated.status == LeadStatus.CONTACTED
        assert updated.contacted_at == clock.now

    def test_mark_sent_twice_keeps_first_times(self, engine, lead, clock):
        draft = engine.outreach.generate_draft(lead.id)
        engine.tracker.mark_sent(draft.message.id)
        first = clock.now

        clock.advance(hours=2)
        message, updated = engine.tracker.mark_sent(draft.message.id)
        assert message.sent_at == first
        assert updated.contacted_at == first

    def test_second_message_keeps_contacted_at(self, engine, lead, clock):
        engine.tracker.mark_sent(engine.outreach.generate_draft(lead.id).message.id)
        first = clock.now
        clock.advance(days=3)
        _, updated = engine.tracker.mark_sent(engine.outreach.generate_draft(lead.id).message.id)
        assert updated.contacted_at == first

    def test_inbound_cannot_be_marked_sent(self, engine, lead):
        message, _ = engine.tracker.record_response(lead.id, "Thanks!", "REDDIT_DM")
        with pytest.raises(ValidationError):
            engine.tracker.mark_sent(message.id)

    def test_record_response(self, engine, lead, clock):
        message, updated = engine.tracker.record_response(
            lead.id, "Sounds good", "EMAIL", sentiment="positive"
        )

        assert message.direction == MessageDirection.INBOUND
        assert message.status == MessageStatus.READ
        assert updated.status == LeadStatus.RESPONDED
        assert updated.responded_at == clock.now
        notes = engine.db.get_notes(lead.id)
        assert notes[0].content == "Response sentiment: positive"
        assert notes[0].note_type == NoteType.AI_ANALYSIS

    def test_second_response_keeps_responded_at(self, engine, lead, clock):
        engine.tracker.record_response(lead.id, "Hi", "EMAIL")
        first = clock.now
        clock.advance(days=1)
        _, updated = engine.tracker.record_response(lead.id, "Still there?", "EMAIL")
        assert updated.responded_at == first

    def test_invalid_sentiment_writes_nothing(self, engine, lead):
        with pytest.raises(ValidationError):
            engine.tracker.record_response(lead.id, "Hi", "EMAIL", sentiment="ecstatic")
        assert engine.tracker.list_messages(lead.id) == []
        assert engine.leads.get_lead(lead.id).status == LeadStatus.NEW

    def test_status_callbacks(self, engine, lead):
        draft = engine.outreach.generate_draft(lead.id)
        with pytest.raises(ValidationError):
            engine.tracker.update_status(draft.message.id, "DELIVERED")

        engine.tracker.update_status(draft.message.id, "SENT", external_id="ext-1")
        assert engine.leads.get_lead(lead.id).status == LeadStatus.CONTACTED

        delivered = engine.tracker.update_status(draft.message.id, "DELIVERED")
        assert delivered.status == MessageStatus.DELIVERED
        assert delivered.external_id == "ext-1"

    def test_failed_message_can_be_redrafted(self, engine, lead):
        draft = engine.outreach.generate_draft(lead.id)
        engine.tracker.update_status(draft.message.id, "FAILED")
        redraft = engine.tracker.update_status(draft.message.id, "DRAFT")
        assert redraft.status == MessageStatus.DRAFT

    def test_list_messages_filter(self, engine, lead):
        engine.outreach.generate_draft(lead.id)
        engine.tracker.record_response(lead.id, "Hi", "REDDIT_DM")

        inbound = engine.tracker.list_messages(lead.id, channel="REDDIT_DM")
        assert len(inbound) == 1
        assert inbound[0].direction == MessageDirection.INBOUND


class TestEmailOutreach:
    """Tests for the email draft and send flow."""

    def test_draft_upsert(self, engine, lead):
        first, created = engine.outreach.save_email_draft(lead.id, "Hello", "Body one")
        second, created_again = engine.outreach.save_email_draft(lead.id, "Hello again", "Body two")

        assert created is True
        assert created_again is False
        assert second.id == first.id
        assert engine.tracker.get_email_draft(lead.id).content == "Body two"

    def test_preview(self, engine, lead):
        preview = engine.outreach.preview_email(lead.id)
        assert preview["isExisting"] is False
        assert preview["templateType"] == "startup"
        assert preview["recipientName"] == "Jane"

        engine.outreach.save_email_draft(lead.id, "Saved", "Saved body")
        preview = engine.outreach.preview_email(lead.id)
        assert preview["isExisting"] is True
        assert preview["subject"] == "Saved"
        assert engine.tracker.list_messages(lead.id, status="DRAFT")[0].subject == "Saved"

    def test_send_email(self, engine, lead, delivery, clock):
        engine.outreach.save_email_draft(lead.id, "Hello", "Draft body")
        message, updated = engine.outreach.send_email(
            lead.id, "Hello", "Final body", "Jane@Acme.io"
        )

        delivery.send.assert_called_once_with("jane@acme.io", "Hello", "Final body")
        assert message.status == MessageStatus.SENT
        assert message.external_id == "re_123"
        assert updated.status == LeadStatus.CONTACTED
        assert updated.email == "jane@acme.io"
        assert engine.tracker.get_email_draft(lead.id) is None

    def test_send_failure_changes_nothing(self, engine, lead, delivery):
        engine.outreach.save_email_draft(lead.id, "Hello", "Draft body")
        delivery.send.side_effect = DependencyError("resend", "HTTP 500")

        with pytest.raises(DependencyError):
            engine.outreach.send_email(lead.id, "Hello", "Final body", "jane@acme.io")

        stored = engine.leads.get_lead(lead.id)
        assert stored.status == LeadStatus.NEW
        assert stored.contacted_at is None
        assert engine.tracker.get_email_draft(lead.id) is not None

    def test_unconfigured_delivery(self, engine, lead):
        with pytest.raises(DependencyError) as exc:
            engine.outreach.send_email(lead.id, "Hello", "Body", "jane@acme.io")
        assert exc.value.provider == "resend"

    def test_send_requires_valid_recipient(self, engine, lead, delivery):
        with pytest.raises(ValidationError):
            engine.outreach.send_email(lead.id, "Hello", "Body", "not-an-email")
        delivery.send.assert_not_called()

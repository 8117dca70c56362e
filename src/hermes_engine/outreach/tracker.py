"""Message state tracking and its effect on the owning lead's stage."""

import logging
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from ..core.errors import NotFoundError, ValidationError, parse_enum
from ..core.stages import apply_status
from ..leads.mutator import LeadChanges, LeadMutator
from ..leads.validation import optional_text, validate_email
from ..storage.database import PipelineDatabase
from ..storage.models import (
    Lead,
    LeadStatus,
    Message,
    MessageChannel,
    MessageDirection,
    MessageStatus,
    Note,
    NoteType,
    new_id,
)

logger = logging.getLogger(__name__)

SENTIMENTS = ("positive", "neutral", "negative")

# Allowed message status changes. SENT -> SENT re-confirms a send.
MESSAGE_TRANSITIONS: Dict[MessageStatus, FrozenSet[MessageStatus]] = {
    MessageStatus.DRAFT: frozenset({MessageStatus.SCHEDULED, MessageStatus.SENT, MessageStatus.FAILED}),
    MessageStatus.SCHEDULED: frozenset({MessageStatus.DRAFT, MessageStatus.SENT, MessageStatus.FAILED}),
    MessageStatus.SENT: frozenset({
        MessageStatus.SENT,
        MessageStatus.DELIVERED,
        MessageStatus.BOUNCED,
        MessageStatus.FAILED,
        MessageStatus.READ,
        MessageStatus.REPLIED,
    }),
    MessageStatus.DELIVERED: frozenset({MessageStatus.READ, MessageStatus.REPLIED, MessageStatus.BOUNCED}),
    MessageStatus.READ: frozenset({MessageStatus.REPLIED}),
    MessageStatus.REPLIED: frozenset(),
    MessageStatus.BOUNCED: frozenset(),
    MessageStatus.FAILED: frozenset({MessageStatus.DRAFT}),
}


def check_transition(current: MessageStatus, target: MessageStatus):
    if target not in MESSAGE_TRANSITIONS[current]:
        raise ValidationError(
            f"Message cannot move from {current.value} to {target.value}", field="status"
        )


def _require_content(content: Any) -> str:
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("content is required", field="content")
    return content


def _mark_contacted(lead: Lead, message: Message, now: datetime, changes: LeadChanges):
    message.status = MessageStatus.SENT
    if message.sent_at is None:
        message.sent_at = now
    message.updated_at = now
    apply_status(lead, LeadStatus.CONTACTED, now)
    changes.messages.append(message)


class MessageTracker:
    """Creates messages and moves them through their states.

    A SENT outbound message moves its lead to CONTACTED; an inbound message
    moves it to RESPONDED. Milestones keep their first value.
    """

    def __init__(self, db: PipelineDatabase, mutator: LeadMutator):
        self.db = db
        self.mutator = mutator

    @property
    def clock(self):
        return self.mutator.clock

    def get_message(self, message_id: str) -> Message:
        message = self.db.get_message(message_id)
        if message is None:
            raise NotFoundError("Message", message_id)
        return message

    def list_messages(
        self,
        lead_id: str,
        status: Any = None,
        channel: Any = None,
    ) -> List[Message]:
        if self.db.get_lead(lead_id) is None:
            raise NotFoundError("Lead", lead_id)
        return self.db.list_messages(
            lead_id,
            status=parse_enum(MessageStatus, status, "status") if status else None,
            channel=parse_enum(MessageChannel, channel, "channel") if channel else None,
        )

    def create_draft(
        self,
        lead_id: str,
        channel: Any,
        content: str,
        subject: Optional[str] = None,
        template_id: Optional[str] = None,
    ) -> Message:
        """Store an outbound DRAFT. Drafts do not change the lead."""
        now = self.clock()
        message = Message(
            id=new_id(),
            lead_id=lead_id,
            channel=parse_enum(MessageChannel, channel, "channel"),
            direction=MessageDirection.OUTBOUND,
            content=_require_content(content),
            subject=subject or None,
            status=MessageStatus.DRAFT,
            template_id=template_id,
            created_at=now,
            updated_at=now,
        )
        return self.db.save_message(message)

    def mark_sent(
        self,
        message_id: str,
        external_id: Optional[str] = None,
        thread_id: Optional[str] = None,
    ) -> Tuple[Message, Lead]:
        """Confirm an outbound message went out. The lead becomes CONTACTED."""
        message = self.get_message(message_id)
        if message.direction is not MessageDirection.OUTBOUND:
            raise ValidationError("Only outbound messages can be marked sent", field="direction")
        check_transition(message.status, MessageStatus.SENT)

        def change(lead: Lead, now: datetime, changes: LeadChanges):
            current = self.get_message(message_id)
            check_transition(current.status, MessageStatus.SENT)
            if external_id is not None:
                current.external_id = external_id
            if thread_id is not None:
                current.thread_id = thread_id
            _mark_contacted(lead, current, now, changes)

        lead, changes = self.mutator.mutate(message.lead_id, change)
        sent = changes.messages[0]
        logger.info(f"Message {sent.id} sent on {sent.channel.value}, lead {lead.id} contacted")
        return sent, lead

    def record_sent(
        self,
        lead_id: str,
        channel: Any,
        content: str,
        subject: Optional[str] = None,
        external_id: Optional[str] = None,
        thread_id: Optional[str] = None,
        template_id: Optional[str] = None,
        recipient_email: Optional[str] = None,
        clear_drafts: bool = False,
    ) -> Tuple[Message, Lead]:
        """Record a message already delivered by a collaborator.

        With ``clear_drafts`` the lead's drafts on the same channel are
        removed in the same write.
        """
        channel = parse_enum(MessageChannel, channel, "channel")
        content = _require_content(content)
        if recipient_email is not None:
            recipient_email = validate_email(recipient_email, "recipient_email")

        def change(lead: Lead, now: datetime, changes: LeadChanges):
            message = Message(
                id=new_id(),
                lead_id=lead.id,
                channel=channel,
                direction=MessageDirection.OUTBOUND,
                content=content,
                subject=subject or None,
                status=MessageStatus.DRAFT,
                template_id=template_id,
                external_id=external_id,
                thread_id=thread_id,
                created_at=now,
            )
            _mark_contacted(lead, message, now, changes)
            if recipient_email:
                lead.email = recipient_email
            if clear_drafts:
                changes.deleted_message_ids.extend(
                    m.id for m in self.db.list_messages(lead.id, status=MessageStatus.DRAFT, channel=channel)
                )

        lead, changes = self.mutator.mutate(lead_id, change)
        message = changes.messages[0]
        logger.info(f"Recorded sent {channel.value} message {message.id} for lead {lead.id}")
        return message, lead

    def record_response(
        self,
        lead_id: str,
        content: str,
        channel: Any,
        external_id: Optional[str] = None,
        thread_id: Optional[str] = None,
        sentiment: Optional[str] = None,
    ) -> Tuple[Message, Lead]:
        """Record an inbound reply. The lead becomes RESPONDED."""
        channel = parse_enum(MessageChannel, channel, "channel")
        content = _require_content(content)
        if sentiment is not None and sentiment not in SENTIMENTS:
            raise ValidationError(
                f"Invalid sentiment '{sentiment}'. Must be one of: {', '.join(SENTIMENTS)}",
                field="sentiment",
            )

        def change(lead: Lead, now: datetime, changes: LeadChanges):
            changes.messages.append(Message(
                id=new_id(),
                lead_id=lead.id,
                channel=channel,
                direction=MessageDirection.INBOUND,
                content=content,
                status=MessageStatus.READ,
                external_id=external_id,
                thread_id=thread_id,
                created_at=now,
                updated_at=now,
            ))
            apply_status(lead, LeadStatus.RESPONDED, now)
            if sentiment:
                changes.notes.append(Note(
                    id=new_id(),
                    lead_id=lead.id,
                    content=f"Response sentiment: {sentiment}",
                    note_type=NoteType.AI_ANALYSIS,
                    created_at=now,
                ))

        lead, changes = self.mutator.mutate(lead_id, change)
        logger.info(f"Lead {lead.id} responded via {channel.value}")
        return changes.messages[0], lead

    def update_status(
        self,
        message_id: str,
        status: Any,
        external_id: Optional[str] = None,
    ) -> Message:
        """Apply a provider status callback (delivered, bounced, read, ...)."""
        target = parse_enum(MessageStatus, status, "status")
        message = self.get_message(message_id)
        check_transition(message.status, target)

        if target is MessageStatus.SENT:
            sent, _ = self.mark_sent(message_id, external_id=external_id)
            return sent

        message.status = target
        if external_id is not None:
            message.external_id = external_id
        message.updated_at = self.clock()
        self.db.save_message(message)
        logger.info(f"Message {message_id} -> {target.value}")
        return message

    # === EMAIL DRAFTS ===

    def get_email_draft(self, lead_id: str) -> Optional[Message]:
        drafts = self.db.list_messages(lead_id, status=MessageStatus.DRAFT, channel=MessageChannel.EMAIL)
        return drafts[0] if drafts else None

    def save_email_draft(
        self,
        lead_id: str,
        subject: str,
        body: str,
        recipient_email: Optional[str] = None,
    ) -> Tuple[Message, bool]:
        """Upsert the lead's single email draft. Returns (draft, created)."""
        subject = optional_text(subject, "subject")
        if not subject:
            raise ValidationError("subject is required", field="subject")
        body = _require_content(body)
        if recipient_email is not None:
            recipient_email = validate_email(recipient_email, "recipient_email")

        def change(lead: Lead, now: datetime, changes: LeadChanges):
            draft = self.get_email_draft(lead.id)
            if draft is None:
                draft = Message(
                    id=new_id(),
                    lead_id=lead.id,
                    channel=MessageChannel.EMAIL,
                    direction=MessageDirection.OUTBOUND,
                    content=body,
                    subject=subject,
                    created_at=now,
                )
            draft.subject = subject
            draft.content = body
            draft.updated_at = now
            changes.messages.append(draft)
            if recipient_email and not lead.email:
                lead.email = recipient_email

        existing = self.get_email_draft(lead_id)
        _, changes = self.mutator.mutate(lead_id, change)
        return changes.messages[0], existing is None

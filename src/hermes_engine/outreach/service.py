"""Outreach drafting and sending."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from ..core.errors import NotFoundError, ValidationError, parse_enum
from ..leads.validation import optional_text, validate_email
from ..storage.database import PipelineDatabase
from ..storage.models import Lead, Message, MessageChannel
from .delivery import ResendClient
from .library import TemplateLibrary, validate_variables
from .templates import TemplateBucket, bucket_template, derive_variables, first_name, render
from .tracker import MessageTracker

logger = logging.getLogger(__name__)


@dataclass
class OutreachDraft:
    """A generated (not yet sent) outreach message."""

    message: Message
    subject: str
    content: str
    bucket: Optional[TemplateBucket] = None
    template_id: Optional[str] = None
    variables: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message.to_dict(),
            "renderedSubject": self.subject,
            "renderedContent": self.content,
            "bucket": self.bucket.value if self.bucket else None,
            "templateId": self.template_id,
        }


class OutreachService:
    """Draft generation from templates and email delivery."""

    def __init__(
        self,
        db: PipelineDatabase,
        tracker: MessageTracker,
        library: TemplateLibrary,
        delivery: Optional[ResendClient] = None,
    ):
        self.db = db
        self.tracker = tracker
        self.library = library
        self.delivery = delivery or ResendClient()

    def _lead(self, lead_id: str) -> Lead:
        lead = self.db.get_lead(lead_id)
        if lead is None:
            raise NotFoundError("Lead", lead_id)
        return lead

    def generate_draft(
        self,
        lead_id: str,
        template_id: Optional[str] = None,
        bucket: Any = None,
        variables: Any = None,
        channel: Any = None,
    ) -> OutreachDraft:
        """Render a template for a lead and store the result as a DRAFT.

        With a stored template the render counts as a use of it. Without
        one, the lead is classified and the matching built-in bucket is used.
        """
        lead = self._lead(lead_id)
        merged = derive_variables(lead)
        merged.update(validate_variables(variables))

        if template_id:
            template = self.library.get_template(template_id)
            chosen_bucket = None
            default_channel = template.channel or MessageChannel.EMAIL
        else:
            chosen_bucket = parse_enum(TemplateBucket, bucket, "bucket") if bucket else None
            template = bucket_template(chosen_bucket, lead)
            chosen_bucket = template.bucket
            default_channel = MessageChannel.EMAIL

        rendered = render(template, merged)
        message = self.tracker.create_draft(
            lead.id,
            channel=channel or default_channel,
            content=rendered.content,
            subject=rendered.subject,
            template_id=template_id,
        )
        if template_id:
            self.library.record_usage(template_id)

        logger.info(
            f"Drafted outreach {message.id} for lead {lead.id} "
            f"({'template ' + template_id if template_id else 'bucket ' + chosen_bucket.value})"
        )
        return OutreachDraft(
            message=message,
            subject=rendered.subject,
            content=rendered.content,
            bucket=chosen_bucket,
            template_id=template_id,
            variables=merged,
        )

    def preview_email(self, lead_id: str, bucket: Any = None) -> Dict[str, Any]:
        """Existing email draft, or a freshly rendered built-in one. Stores nothing."""
        lead = self._lead(lead_id)

        if not bucket:
            draft = self.tracker.get_email_draft(lead.id)
            if draft is not None:
                return {
                    "id": draft.id,
                    "subject": draft.subject,
                    "body": draft.content,
                    "templateType": None,
                    "recipientEmail": lead.email,
                    "recipientName": first_name(lead.author),
                    "isExisting": True,
                }

        chosen = parse_enum(TemplateBucket, bucket, "bucket") if bucket else None
        template = bucket_template(chosen, lead)
        rendered = render(template, derive_variables(lead))
        return {
            "subject": rendered.subject,
            "body": rendered.content,
            "templateType": template.bucket.value,
            "recipientEmail": lead.email,
            "recipientName": first_name(lead.author),
            "isExisting": False,
        }

    def save_email_draft(
        self,
        lead_id: str,
        subject: str,
        body: str,
        recipient_email: Optional[str] = None,
    ) -> Tuple[Message, bool]:
        return self.tracker.save_email_draft(lead_id, subject, body, recipient_email)

    def send_email(
        self,
        lead_id: str,
        subject: str,
        body: str,
        recipient_email: str,
    ) -> Tuple[Message, Lead]:
        """Deliver an email and record it.

        A delivery failure raises DependencyError and leaves the lead and
        its messages as they were.
        """
        subject = optional_text(subject, "subject")
        if not subject:
            raise ValidationError("subject is required", field="subject")
        body = optional_text(body, "body")
        if not body:
            raise ValidationError("body is required", field="body")
        recipient_email = validate_email(recipient_email, "recipient_email")
        self._lead(lead_id)

        external_id = self.delivery.send(recipient_email, subject, body)

        message, lead = self.tracker.record_sent(
            lead_id,
            channel=MessageChannel.EMAIL,
            content=body,
            subject=subject,
            external_id=external_id or None,
            recipient_email=recipient_email,
            clear_drafts=True,
        )
        logger.info(f"Email sent to {recipient_email} for lead {lead_id} ({external_id})")
        return message, lead

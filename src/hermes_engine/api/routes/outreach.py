"""Outreach routes: email drafts, sending and message tracking."""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query

from ...engine import Engine
from ...outreach.templates import BUCKET_TEMPLATES
from ..dependencies import get_engine
from ..middleware.auth import require_api_key
from ..schemas.requests import EmailDraftRequest, MessageStatusRequest, SendEmailRequest
from ..schemas.responses import ERROR_RESPONSES

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/outreach",
    tags=["outreach"],
    dependencies=[Depends(require_api_key)],
    responses=ERROR_RESPONSES,
)


@router.get("/templates")
def bucket_templates():
    """The built-in outreach templates, one per bucket."""
    return [
        {"bucket": bucket.value, "name": t.name, "subject": t.subject, "content": t.content}
        for bucket, t in BUCKET_TEMPLATES.items()
    ]


@router.get("/leads/{lead_id}/draft")
def get_draft(
    lead_id: str,
    bucket: Optional[str] = Query(None, alias="template"),
    engine: Engine = Depends(get_engine),
):
    return engine.outreach.preview_email(lead_id, bucket)


@router.post("/leads/{lead_id}/draft")
def save_draft(lead_id: str, body: EmailDraftRequest, engine: Engine = Depends(get_engine)):
    draft, created = engine.outreach.save_email_draft(
        lead_id, body.subject, body.body, body.recipient_email
    )
    return {"success": True, "draft": draft.to_dict(), "created": created}


@router.post("/leads/{lead_id}/send")
def send_email(lead_id: str, body: SendEmailRequest, engine: Engine = Depends(get_engine)):
    """Deliver the email, then record it. A provider failure answers 502."""
    message, lead = engine.outreach.send_email(
        lead_id, body.subject, body.body, body.recipient_email
    )
    return {
        "success": True,
        "messageId": message.id,
        "externalId": message.external_id,
        "lead": lead.to_dict(),
    }


@router.get("/leads/{lead_id}/messages")
def list_messages(
    lead_id: str,
    status: Optional[str] = None,
    channel: Optional[str] = None,
    engine: Engine = Depends(get_engine),
):
    return [m.to_dict() for m in engine.tracker.list_messages(lead_id, status, channel)]


@router.post("/messages/{message_id}/status")
def message_status(message_id: str, body: MessageStatusRequest, engine: Engine = Depends(get_engine)):
    return engine.tracker.update_status(message_id, body.status, body.external_id).to_dict()

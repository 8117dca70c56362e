"""Routes for the autonomous agent (scoring, outreach drafts, digests)."""

import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query

from ...engine import Engine
from ..dependencies import get_engine
from ..middleware.auth import require_api_key
from ..schemas.requests import MarkSentRequest, OutreachRequest, QualifyRequest, ResponseRequest
from ..schemas.responses import ERROR_RESPONSES

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/ai",
    tags=["agent"],
    dependencies=[Depends(require_api_key)],
    responses=ERROR_RESPONSES,
)


@router.get("/next-actions")
def next_actions(engine: Engine = Depends(get_engine)):
    return engine.agent.next_actions()


@router.post("/qualify/{lead_id}")
def qualify(lead_id: str, body: QualifyRequest, engine: Engine = Depends(get_engine)):
    """Score a lead. Status follows the score against the qualify threshold."""
    lead = engine.leads.auto_qualify(lead_id, body.score, body.reasons, body.analysis, body.ai_model)
    return {"success": True, "lead": lead.to_dict()}


@router.post("/outreach/{lead_id}")
def generate_outreach(lead_id: str, body: OutreachRequest, engine: Engine = Depends(get_engine)):
    draft = engine.outreach.generate_draft(
        lead_id,
        template_id=body.template_id,
        bucket=body.bucket,
        variables=body.variables,
        channel=body.channel,
    )
    return {"success": True, **draft.to_dict()}


@router.post("/message/{message_id}/sent")
def mark_sent(message_id: str, body: MarkSentRequest, engine: Engine = Depends(get_engine)):
    message, lead = engine.tracker.mark_sent(message_id, body.external_id, body.thread_id)
    return {"success": True, "message": message.to_dict(), "lead": lead.to_dict()}


@router.post("/lead/{lead_id}/response")
def record_response(lead_id: str, body: ResponseRequest, engine: Engine = Depends(get_engine)):
    message, lead = engine.tracker.record_response(
        lead_id,
        body.content,
        body.channel,
        external_id=body.external_id,
        thread_id=body.thread_id,
        sentiment=body.sentiment,
    )
    return {"success": True, "message": message.to_dict(), "lead": lead.to_dict()}


@router.get("/digest")
def digest(
    day: Optional[date] = Query(None, alias="date"),
    engine: Engine = Depends(get_engine),
):
    return engine.agent.digest(day).to_dict()

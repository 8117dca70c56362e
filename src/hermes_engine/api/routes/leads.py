"""Lead routes for the human/UI boundary."""

import logging
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Body, Depends, Query

from ...engine import Engine
from ..dependencies import get_engine
from ..middleware.auth import require_api_key
from ..schemas.requests import (
    LeadCreateRequest,
    LeadPatchRequest,
    ManualScoreRequest,
    NoteCreateRequest,
    ProposalCreateRequest,
)
from ..schemas.responses import ERROR_RESPONSES, IngestResponse, LeadListResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/leads",
    tags=["leads"],
    dependencies=[Depends(require_api_key)],
    responses=ERROR_RESPONSES,
)


@router.get("", response_model=LeadListResponse)
def list_leads(
    status: Optional[str] = None,
    min_score: Optional[int] = Query(None, alias="minScore"),
    source: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    engine: Engine = Depends(get_engine),
):
    leads, total = engine.leads.list_leads(
        status=status, min_score=min_score, source=source, search=search,
        limit=limit, offset=offset,
    )
    return {"leads": [l.to_dict() for l in leads], "total": total, "limit": limit, "offset": offset}


@router.post("", status_code=201)
def create_lead(body: LeadCreateRequest, engine: Engine = Depends(get_engine)):
    """Create a lead. A duplicate sourceUrl answers 409 with the existing lead."""
    return engine.leads.create_lead(body.changes()).to_dict()


@router.post("/bulk", response_model=IngestResponse)
def bulk_create(
    candidates: List[Dict[str, Any]] = Body(...),
    engine: Engine = Depends(get_engine),
):
    """Ingest scraped candidates. Each one is validated and stored on its own."""
    return engine.leads.bulk_ingest(candidates).to_dict()


@router.get("/stats/pipeline")
def pipeline(engine: Engine = Depends(get_engine)):
    return engine.pipeline.snapshot()


@router.get("/{lead_id}")
def get_lead(lead_id: str, engine: Engine = Depends(get_engine)):
    return engine.leads.get_detail(lead_id).to_dict()


@router.patch("/{lead_id}")
def patch_lead(lead_id: str, body: LeadPatchRequest, engine: Engine = Depends(get_engine)):
    return engine.leads.patch_lead(lead_id, body.changes()).to_dict()


@router.put("/{lead_id}/score")
def update_score(lead_id: str, body: ManualScoreRequest, engine: Engine = Depends(get_engine)):
    """Manual score update; reasons get the [Manual] marker."""
    return engine.leads.update_score(lead_id, body.score, body.reasons).to_dict()


@router.post("/{lead_id}/qualify")
def mark_qualified(lead_id: str, engine: Engine = Depends(get_engine)):
    return engine.leads.mark_qualified(lead_id).to_dict()


@router.post("/{lead_id}/notes", status_code=201)
def add_note(lead_id: str, body: NoteCreateRequest, engine: Engine = Depends(get_engine)):
    return engine.leads.add_note(lead_id, body.content, body.type, body.ai_model).to_dict()


@router.post("/{lead_id}/proposals", status_code=201)
def add_proposal(lead_id: str, body: ProposalCreateRequest, engine: Engine = Depends(get_engine)):
    proposal = engine.leads.add_proposal(
        lead_id, body.title, body.amount, body.currency, body.status, body.sent_at
    )
    return proposal.to_dict()


@router.post("/{lead_id}/enrich")
def enrich(lead_id: str, engine: Engine = Depends(get_engine)):
    return engine.leads.enrich_lead(lead_id).to_dict()


@router.delete("/{lead_id}")
def delete_lead(lead_id: str, engine: Engine = Depends(get_engine)):
    engine.leads.delete_lead(lead_id)
    return {"success": True}

"""Stored template routes."""

from typing import Optional
from fastapi import APIRouter, Depends

from ...engine import Engine
from ..dependencies import get_engine
from ..middleware.auth import require_api_key
from ..schemas.requests import TemplateCreateRequest, TemplatePatchRequest, TemplateRenderRequest
from ..schemas.responses import ERROR_RESPONSES

router = APIRouter(
    prefix="/api/templates",
    tags=["templates"],
    dependencies=[Depends(require_api_key)],
    responses=ERROR_RESPONSES,
)


@router.get("")
def list_templates(
    type: Optional[str] = None,
    channel: Optional[str] = None,
    active: Optional[bool] = None,
    engine: Engine = Depends(get_engine),
):
    templates = engine.templates.list_templates(template_type=type, channel=channel, active=active)
    return [t.to_dict() for t in templates]


@router.get("/{template_id}")
def get_template(template_id: str, engine: Engine = Depends(get_engine)):
    return engine.templates.get_template(template_id).to_dict()


@router.post("", status_code=201)
def create_template(body: TemplateCreateRequest, engine: Engine = Depends(get_engine)):
    return engine.templates.create_template(body.changes()).to_dict()


@router.patch("/{template_id}")
def update_template(template_id: str, body: TemplatePatchRequest, engine: Engine = Depends(get_engine)):
    return engine.templates.update_template(template_id, body.changes()).to_dict()


@router.post("/{template_id}/render")
def render_template(template_id: str, body: TemplateRenderRequest, engine: Engine = Depends(get_engine)):
    """Preview a render. Set recordUsage to count it as a real use."""
    rendered = engine.templates.render(template_id, body.variables, record_usage=body.record_usage)
    return {"subject": rendered.subject, "content": rendered.content}


@router.delete("/{template_id}")
def delete_template(template_id: str, engine: Engine = Depends(get_engine)):
    engine.templates.delete_template(template_id)
    return {"success": True}

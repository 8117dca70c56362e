"""Task routes."""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from ...engine import Engine
from ..dependencies import get_engine
from ..middleware.auth import require_api_key
from ..schemas.requests import TaskCreateRequest, TaskPatchRequest
from ..schemas.responses import ERROR_RESPONSES

router = APIRouter(
    prefix="/api/tasks",
    tags=["tasks"],
    dependencies=[Depends(require_api_key)],
    responses=ERROR_RESPONSES,
)


@router.get("")
def list_tasks(
    status: Optional[str] = None,
    priority: Optional[str] = None,
    type: Optional[str] = None,
    lead_id: Optional[str] = Query(None, alias="leadId"),
    engine: Engine = Depends(get_engine),
):
    tasks = engine.tasks.list_tasks(status=status, priority=priority, task_type=type, lead_id=lead_id)
    return [t.to_dict() for t in tasks]


@router.get("/pending")
def pending(engine: Engine = Depends(get_engine)):
    return [t.to_dict() for t in engine.tasks.pending_queue()]


@router.get("/overdue")
def overdue(engine: Engine = Depends(get_engine)):
    return [t.to_dict() for t in engine.tasks.overdue()]


@router.post("", status_code=201)
def create_task(body: TaskCreateRequest, engine: Engine = Depends(get_engine)):
    return engine.tasks.create_task(body.changes()).to_dict()


@router.patch("/{task_id}")
def update_task(task_id: str, body: TaskPatchRequest, engine: Engine = Depends(get_engine)):
    return engine.tasks.update_task(task_id, body.changes()).to_dict()


@router.post("/{task_id}/complete")
def complete_task(task_id: str, engine: Engine = Depends(get_engine)):
    return engine.tasks.complete_task(task_id).to_dict()


@router.post("/{task_id}/cancel")
def cancel_task(task_id: str, engine: Engine = Depends(get_engine)):
    return engine.tasks.cancel_task(task_id).to_dict()


@router.delete("/{task_id}")
def delete_task(task_id: str, engine: Engine = Depends(get_engine)):
    engine.tasks.delete_task(task_id)
    return {"success": True}

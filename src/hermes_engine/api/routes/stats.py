"""Dashboard and statistics routes."""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query

from ...engine import Engine
from ..dependencies import get_engine
from ..middleware.auth import require_api_key
from ..schemas.responses import ERROR_RESPONSES

router = APIRouter(
    prefix="/api/stats",
    tags=["stats"],
    dependencies=[Depends(require_api_key)],
    responses=ERROR_RESPONSES,
)


@router.get("/dashboard")
def dashboard(engine: Engine = Depends(get_engine)):
    return engine.pipeline.dashboard()


@router.get("/funnel")
def funnel(engine: Engine = Depends(get_engine)):
    return [stage.to_dict() for stage in engine.pipeline.funnel()]


@router.get("/daily")
def daily(days: int = 30, engine: Engine = Depends(get_engine)):
    return [s.to_dict() for s in engine.daily_stats.history(days)]


@router.post("/daily/record")
def record_daily(
    day: Optional[date] = Query(None, alias="date"),
    engine: Engine = Depends(get_engine),
):
    """Recompute one day's counters. Safe to repeat."""
    return engine.daily_stats.record(day).to_dict()

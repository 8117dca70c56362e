"""Pydantic response envelopes shared by the routes."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    detail: str
    field: Optional[str] = None
    provider: Optional[str] = None
    lead: Optional[Dict[str, Any]] = None


class LeadListResponse(BaseModel):
    leads: List[Dict[str, Any]]
    total: int
    limit: int
    offset: int


class IngestResponse(BaseModel):
    created: int
    exists: int
    failed: int
    total: int
    errors: List[Dict[str, Any]] = []


class SuccessResponse(BaseModel):
    success: bool = True


ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}

"""Map pipeline errors onto HTTP responses."""

import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..core.errors import PipelineError

logger = logging.getLogger(__name__)

STATUS_CODES = {
    "validation_error": 400,
    "not_found": 404,
    "conflict": 409,
    "dependency_error": 502,
}


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    status_code = STATUS_CODES.get(exc.kind, 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content={"success": False, **exc.to_dict()})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies get the same envelope as pipeline validation errors."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "validation_error",
            "detail": first.get("msg", "Invalid request"),
            "field": ".".join(location) or None,
        },
    )


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(PipelineError, pipeline_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

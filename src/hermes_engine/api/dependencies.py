"""Request-scoped access to the shared engine."""

from fastapi import Request

from ..engine import Engine


def get_engine(request: Request) -> Engine:
    return request.app.state.engine

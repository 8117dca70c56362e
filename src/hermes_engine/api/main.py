"""FastAPI application factory for the pipeline API."""

import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..core.config import PipelineConfigManager
from ..engine import Engine
from ..enrichment.hunter import HunterClient
from ..outreach.delivery import ResendClient
from .config import settings
from .errors import register_error_handlers
from .middleware.cors import allowed_origins
from .routes.agent import router as agent_router
from .routes.health import router as health_router
from .routes.leads import router as leads_router
from .routes.outreach import router as outreach_router
from .routes.stats import router as stats_router
from .routes.tasks import router as tasks_router
from .routes.templates import router as templates_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_engine() -> Engine:
    """Engine wired from environment settings."""
    return Engine(
        db_path=settings.db_path,
        config=PipelineConfigManager().config,
        hunter=HunterClient(api_key=settings.hunter_api_key),
        delivery=ResendClient(
            api_key=settings.resend_api_key,
            from_email=settings.resend_from_email,
            reply_to=settings.resend_reply_to,
        ),
    )


def create_app(engine: Optional[Engine] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Pass an engine to serve an existing one (tests do); otherwise one is
    built from settings when the app starts.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Hermes pipeline API")
        if engine is None:
            app.state.engine = build_engine()
            periodic = settings.periodic_stats
        else:
            app.state.engine = engine
            periodic = False
        app.state.engine.start(periodic_stats=periodic)

        yield

        app.state.engine.stop()
        logger.info("Hermes pipeline API shutting down")

    app = FastAPI(
        title="Hermes Pipeline API",
        description="Lead lifecycle and outreach orchestration",
        version=__version__,
        lifespan=lifespan,
    )
    if engine is not None:
        app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(leads_router)
    app.include_router(tasks_router)
    app.include_router(templates_router)
    app.include_router(outreach_router)
    app.include_router(agent_router)
    app.include_router(stats_router)

    return app

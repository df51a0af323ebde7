"""Flow Automation Engine - FastAPI Application."""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.v1.router import api_v1_router
from app.config import Settings, get_settings
from core.logging_config import setup_logging
from core.middleware import RequestTrackingMiddleware, setup_exception_handlers
from db.database import close_db, create_db_engine, create_session_factory, init_db
from db.repository import SqlFlowRepository
from services.flow_service import FlowService
from workflow.engine import WorkflowEngine
from workflow.repository import InMemoryFlowRepository

logger = structlog.get_logger(__name__)


def build_flow_service(settings: Settings, repository=None) -> FlowService:
    """Wire repository, engine and service together."""
    repository = repository or InMemoryFlowRepository()
    engine = WorkflowEngine(repository, settings=settings)
    return FlowService(repository, engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    # Startup
    settings: Settings = app.state.settings
    setup_logging()

    db_engine = None
    if getattr(app.state, "flow_service", None) is None:
        if settings.uses_database:
            db_engine = create_db_engine(settings)
            await init_db(db_engine)
            repository = SqlFlowRepository(create_session_factory(db_engine))
            logger.info("Storage backend ready", backend="database", url=db_engine.url.render_as_string())
        else:
            repository = InMemoryFlowRepository()
            logger.info("Storage backend ready", backend="memory")
        app.state.flow_service = build_flow_service(settings, repository)

    logger.info(
        f"{settings.APP_NAME} v{settings.APP_VERSION} started",
        environment=settings.ENVIRONMENT,
        step_types=app.state.flow_service.engine.registry.available_types,
    )
    yield
    # Shutdown
    await app.state.flow_service.engine.shutdown()
    if db_engine is not None:
        await close_db(db_engine)
    logger.info("Application shutting down")


def create_app(
    settings: Optional[Settings] = None,
    flow_service: Optional[FlowService] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Override the environment settings
        flow_service: Pre-built service; skips storage setup at startup
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Workflow execution engine with approvals, retries and "
                    "parallel branches.",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.flow_service = flow_service

    # Request tracking middleware
    app.add_middleware(RequestTrackingMiddleware)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    # Global exception handlers
    setup_exception_handlers(app)

    # Versioned API
    app.include_router(api_v1_router, prefix=settings.API_V1_PREFIX)

    return app


app = create_app()

"""Shared pytest fixtures for the Flow Automation Engine test suite.

Provides:
- Test settings (zero retry backoff, in-memory storage)
- In-memory repository, workflow engine and flow service
- In-memory async SQLite database for the SQL repository
- FastAPI test client (httpx.AsyncClient)
- Workflow builders
"""

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Override settings BEFORE any app imports
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "text")

from app.config import Settings  # noqa: E402
from core.constants import WorkflowStatus  # noqa: E402
from integrations.transport import OutboundRequest  # noqa: E402
from services.flow_service import FlowService  # noqa: E402
from workflow.engine import WorkflowEngine  # noqa: E402
from workflow.models import Step, Workflow  # noqa: E402
from workflow.repository import InMemoryFlowRepository  # noqa: E402


class RecordingTransport:
    """Transport that keeps every outbound request for assertions."""

    def __init__(self):
        self.sent: list[OutboundRequest] = []

    async def send(self, request: OutboundRequest) -> None:
        self.sent.append(request)


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    """Settings with no retry backoff so retry tests run instantly."""
    return Settings(
        ENVIRONMENT="testing",
        STORAGE_BACKEND="memory",
        RETRY_BASE_DELAY=0.0,
        DEFAULT_APPROVERS=["admin"],
    )


@pytest.fixture
def repository() -> InMemoryFlowRepository:
    return InMemoryFlowRepository()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def engine(repository, transport, settings) -> WorkflowEngine:
    return WorkflowEngine(repository, transport=transport, settings=settings)


@pytest.fixture
def flow_service(repository, engine) -> FlowService:
    return FlowService(repository, engine)


@pytest.fixture
def make_workflow(repository):
    """Build and store an active workflow from step dicts."""

    async def _make(steps: list[dict], status: WorkflowStatus = WorkflowStatus.ACTIVE, **kwargs) -> Workflow:
        workflow = Workflow(
            organization_id=kwargs.pop("organization_id", "org-1"),
            name=kwargs.pop("name", "Test Workflow"),
            status=status,
            steps=[Step(**step) for step in steps],
            **kwargs,
        )
        await repository.save_workflow(workflow)
        return workflow

    return _make


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh in-memory SQLite engine with the flow tables."""
    from sqlalchemy.ext.asyncio import create_async_engine
    from sqlalchemy.pool import StaticPool

    from db.database import init_db

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def sql_repository(db_engine):
    from db.database import create_session_factory
    from db.repository import SqlFlowRepository

    return SqlFlowRepository(create_session_factory(db_engine))


# ---------------------------------------------------------------------------
# App / HTTP client fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def app(settings, flow_service):
    """Create a FastAPI app instance wired to the in-memory flow service."""
    from app.main import create_app

    return create_app(settings=settings, flow_service=flow_service)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        yield ac

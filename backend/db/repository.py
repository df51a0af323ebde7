"""SQLAlchemy implementation of the flow repository.

Each record is stored as a JSON document in its table's ``data`` column,
keyed by id. Organization, status and the other filter fields are copied
into indexed columns on every save.
"""

from typing import Optional, TypeVar

import structlog
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.constants import ApprovalStatus, WorkflowStatus
from db.models import ApprovalRecord, ExecutionRecord, WorkflowRecord
from workflow.models import Execution, PendingApproval, Workflow
from workflow.repository import FlowRepository

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class SqlFlowRepository(FlowRepository):
    """Durable flow repository on an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def _upsert(self, record) -> None:
        async with self._session_factory() as session:
            try:
                await session.merge(record)
                await session.commit()
            except Exception:
                await session.rollback()
                logger.exception("Failed to save record", table=record.__tablename__, record_id=record.id)
                raise

    async def _get(self, model, record_id: str, schema: type[ModelT]) -> Optional[ModelT]:
        async with self._session_factory() as session:
            record = await session.get(model, record_id)
            if record is None:
                return None
            return schema.model_validate(record.data)

    async def _list(self, query, schema: type[ModelT]) -> list[ModelT]:
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [schema.model_validate(record.data) for record in result.scalars().all()]

    # ─── Workflows ────────────────────────────────────────────

    async def save_workflow(self, workflow: Workflow) -> None:
        await self._upsert(WorkflowRecord(
            id=workflow.id,
            organization_id=workflow.organization_id,
            status=workflow.status.value,
            data=workflow.model_dump(mode="json"),
        ))

    async def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        return await self._get(WorkflowRecord, workflow_id, Workflow)

    async def list_workflows(
        self, organization_id: str, status: Optional[WorkflowStatus] = None
    ) -> list[Workflow]:
        query = select(WorkflowRecord).where(WorkflowRecord.organization_id == organization_id)
        if status is not None:
            query = query.where(WorkflowRecord.status == WorkflowStatus(status).value)
        return await self._list(query.order_by(WorkflowRecord.created_at), Workflow)

    # ─── Executions ───────────────────────────────────────────

    async def save_execution(self, execution: Execution) -> None:
        await self._upsert(ExecutionRecord(
            id=execution.id,
            organization_id=execution.organization_id,
            workflow_id=execution.workflow_id,
            status=execution.status.value,
            started_at=execution.started_at,
            data=execution.model_dump(mode="json"),
        ))

    async def get_execution(self, execution_id: str) -> Optional[Execution]:
        return await self._get(ExecutionRecord, execution_id, Execution)

    async def list_executions(
        self,
        organization_id: Optional[str] = None,
        workflow_id: Optional[str] = None,
    ) -> list[Execution]:
        query = select(ExecutionRecord)
        if organization_id is not None:
            query = query.where(ExecutionRecord.organization_id == organization_id)
        if workflow_id is not None:
            query = query.where(ExecutionRecord.workflow_id == workflow_id)
        return await self._list(query.order_by(ExecutionRecord.started_at.desc()), Execution)

    # ─── Approvals ────────────────────────────────────────────

    async def save_approval(self, approval: PendingApproval) -> None:
        await self._upsert(ApprovalRecord(
            id=approval.id,
            organization_id=approval.organization_id,
            execution_id=approval.execution_id,
            status=approval.status.value,
            data=approval.model_dump(mode="json"),
        ))

    async def get_approval(self, approval_id: str) -> Optional[PendingApproval]:
        return await self._get(ApprovalRecord, approval_id, PendingApproval)

    async def list_approvals(
        self,
        organization_id: Optional[str] = None,
        status: Optional[ApprovalStatus] = None,
    ) -> list[PendingApproval]:
        query = select(ApprovalRecord)
        if organization_id is not None:
            query = query.where(ApprovalRecord.organization_id == organization_id)
        if status is not None:
            query = query.where(ApprovalRecord.status == ApprovalStatus(status).value)
        return await self._list(query.order_by(ApprovalRecord.created_at), PendingApproval)

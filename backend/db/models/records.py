"""Tables backing the flow repository: one row per workflow, execution, approval."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, RecordMixin


class WorkflowRecord(RecordMixin, Base):
    __tablename__ = "flow_workflows"


class ExecutionRecord(RecordMixin, Base):
    __tablename__ = "flow_executions"

    workflow_id: Mapped[str] = mapped_column(String(64), index=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)


class ApprovalRecord(RecordMixin, Base):
    __tablename__ = "flow_approvals"

    execution_id: Mapped[str] = mapped_column(String(64), index=True)

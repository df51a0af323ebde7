"""Database models for the flow engine.

This module imports all models to ensure they are registered
with SQLAlchemy's declarative base.
"""

from db.models.records import ApprovalRecord, ExecutionRecord, WorkflowRecord

__all__ = [
    "ApprovalRecord",
    "ExecutionRecord",
    "WorkflowRecord",
]

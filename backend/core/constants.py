"""Constants and enums for the workflow execution engine."""

from enum import Enum


class WorkflowStatus(str, Enum):
    """Workflow definition status. Only active workflows can be executed."""

    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"


class ExecutionStatus(str, Enum):
    """Workflow execution status."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"
    AWAITING_APPROVAL = "awaiting_approval"


TERMINAL_EXECUTION_STATUSES = frozenset({
    ExecutionStatus.SUCCESS,
    ExecutionStatus.FAILED,
    ExecutionStatus.CANCELLED,
})


class StepStatus(str, Enum):
    """Status of a single step result inside an execution."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


# Step results in these states are never executed again on resume
SETTLED_STEP_STATUSES = frozenset({StepStatus.SUCCESS, StepStatus.SKIPPED})


class StepType(str, Enum):
    """Kinds of workflow steps."""

    ACTION = "action"
    CONDITION = "condition"
    LOOP = "loop"
    PARALLEL = "parallel"
    APPROVAL = "approval"
    DELAY = "delay"
    WEBHOOK = "webhook"


class ErrorPolicy(str, Enum):
    """What the engine does when a step raises."""

    STOP = "stop"
    CONTINUE = "continue"
    RETRY = "retry"


class ApprovalStatus(str, Enum):
    """Pending approval status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TriggerType(str, Enum):
    """Workflow trigger type."""

    MANUAL = "manual"
    SCHEDULE = "schedule"
    EVENT = "event"
    API = "api"
    CONDITION = "condition"


class ActionType(str, Enum):
    """Built-in actions of the action step."""

    LOG = "log"
    SET_VARIABLE = "set_variable"
    TRANSFORM = "transform"
    NOTIFY = "notify"
    HTTP_REQUEST = "http_request"


class TransformType(str, Enum):
    """Operations supported by the transform action."""

    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    PARSE_JSON = "parse_json"
    STRINGIFY = "stringify"
    MATH = "math"


class ErrorCode(str, Enum):
    """Codes for step errors that are reported in the output, not raised."""

    COLLECTION_NOT_ARRAY = "collection_not_array"
    NO_BRANCHES_DEFINED = "no_branches_defined"

"""Action step: log, set_variable, transform, notify, http_request.

Config:
    action: Action name (see ActionType); unknown actions pass through
    params: Action parameters, template-resolved against the context.
        When absent, every config key except ``action`` is used.

Notify and http_request only hand a request to the outbound transport;
their outputs are echo records, not delivery receipts.
"""

import json
from typing import Any, Dict

import structlog

from core.constants import ActionType, StepType, TransformType
from integrations.transport import LoggingTransport, OutboundRequest, Transport
from steps.base import StepHandler, StepRun
from steps.values import to_number, to_text
from workflow.context import resolve_path, resolve_templates

logger = structlog.get_logger(__name__)


def apply_transform(params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
    """Run a transform action.

    ``params.input`` is a context path (a non-string is used as the value
    itself). ``math`` applies ``operation`` with ``operand``; dividing by
    zero yields 0.
    """
    transform_type = params.get("type")
    source = params.get("input")
    value = resolve_path(context, source) if isinstance(source, str) else source

    if transform_type == TransformType.UPPERCASE:
        return {"result": to_text(value).upper()}
    if transform_type == TransformType.LOWERCASE:
        return {"result": to_text(value).lower()}
    if transform_type == TransformType.PARSE_JSON:
        return {"result": json.loads(value) if isinstance(value, str) else value}
    if transform_type == TransformType.STRINGIFY:
        return {"result": json.dumps(value, default=str)}
    if transform_type == TransformType.MATH:
        return {"result": _math(params.get("operation"), to_number(value), to_number(params.get("operand")))}
    return {"result": value}


def _math(operation: Any, a, b):
    if operation == "add":
        return a + b
    if operation == "subtract":
        return a - b
    if operation == "multiply":
        return a * b
    if operation == "divide":
        return a / b if b != 0 else 0
    return a


class ActionStepHandler(StepHandler):
    step_type = StepType.ACTION
    display_name = "Action"
    description = "Log, set a variable, transform data, notify, or call an HTTP endpoint"

    def __init__(self, transport: Transport | None = None):
        self._transport = transport or LoggingTransport()

    async def execute(self, config: Dict[str, Any], run: StepRun) -> Any:
        action = config.get("action")
        raw_params = config.get("params")
        if not isinstance(raw_params, dict):
            raw_params = {k: v for k, v in config.items() if k != "action"}
        params = resolve_templates(raw_params, run.context)

        if action == ActionType.LOG:
            message = params.get("message")
            logger.info(
                f"[Flow Action] {message or 'Step executed'}",
                step_id=run.step.id,
                execution_id=run.execution.id,
            )
            return {"logged": True, "message": message}

        if action == ActionType.SET_VARIABLE:
            return {params.get("name"): params.get("value")}

        if action == ActionType.TRANSFORM:
            return apply_transform(params, run.context)

        if action == ActionType.NOTIFY:
            await self._transport.send(OutboundRequest(
                kind="notify",
                recipient=params.get("recipient"),
                body={"message": params.get("message")},
                execution_id=run.execution.id,
                step_id=run.step.id,
            ))
            return {"notified": True, "recipient": params.get("recipient"), "message": params.get("message")}

        if action == ActionType.HTTP_REQUEST:
            await self._transport.send(OutboundRequest(
                kind="http_request",
                url=params.get("url"),
                method=params.get("method") or "GET",
                headers=params.get("headers") or {},
                body=params.get("body"),
                execution_id=run.execution.id,
                step_id=run.step.id,
            ))
            return {"status": 200, "body": {}, "url": params.get("url")}

        return {"action": action, "params": params, "executed": True}

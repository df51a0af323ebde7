"""Webhook step: describe an outbound call and hand it to the transport.

Config:
    url: Target URL
    method: HTTP method (default POST)
    headers: Dict of headers; only their names appear in the output
    body: Payload dict, template-resolved against the context
"""

import json
from typing import Any, Dict

import structlog

from core.constants import StepType
from core.utils import utc_now
from integrations.transport import LoggingTransport, OutboundRequest, Transport
from steps.base import StepHandler, StepRun
from workflow.context import resolve_templates

logger = structlog.get_logger(__name__)


class WebhookStepHandler(StepHandler):
    step_type = StepType.WEBHOOK
    display_name = "Webhook"
    description = "Send a payload to an external URL (best-effort)"

    def __init__(self, transport: Transport | None = None):
        self._transport = transport or LoggingTransport()

    async def execute(self, config: Dict[str, Any], run: StepRun) -> Any:
        url = config.get("url")
        method = config.get("method") or "POST"
        headers = config.get("headers") or {}
        body = config.get("body")

        resolved_body = resolve_templates(body, run.context) if isinstance(body, dict) else {}

        logger.info(f"[Flow Webhook] {method} {url}", step_id=run.step.id)
        await self._transport.send(OutboundRequest(
            kind="webhook",
            url=url,
            method=method,
            headers=headers,
            body=resolved_body,
            execution_id=run.execution.id,
            step_id=run.step.id,
        ))

        return {
            "webhook": True,
            "url": url,
            "method": method,
            "headers": list(headers),
            "bodySize": len(json.dumps(resolved_body, separators=(",", ":"), ensure_ascii=False, default=str)),
            "sentAt": utc_now().isoformat(),
        }

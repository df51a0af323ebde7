"""Outbound transport for webhook, notify and http_request steps.

The engine never performs network I/O inline: steps describe the request and
hand it to a transport. Delivery is best-effort. A failed send is logged and
never fails the step, and nothing is retried or deduplicated.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import httpx
import structlog

logger = structlog.get_logger(__name__)


@dataclass
class OutboundRequest:
    """A request a step wants delivered to the outside world."""

    kind: str  # webhook, notify, http_request
    url: Optional[str] = None
    method: str = "POST"
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    recipient: Optional[str] = None
    execution_id: Optional[str] = None
    step_id: Optional[str] = None


class Transport(Protocol):
    async def send(self, request: OutboundRequest) -> None:
        """Deliver the request. Must not raise."""


class LoggingTransport:
    """Default transport: records the request in the log and sends nothing."""

    async def send(self, request: OutboundRequest) -> None:
        logger.info(
            "Outbound request (not dispatched)",
            kind=request.kind,
            method=request.method,
            url=request.url,
            recipient=request.recipient,
            execution_id=request.execution_id,
            step_id=request.step_id,
        )


class HttpTransport:
    """Dispatch webhook and http_request calls with httpx.

    Notifications have no URL and are only logged.
    """

    def __init__(self, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self._timeout = timeout
        self._client = client

    async def send(self, request: OutboundRequest) -> None:
        if not request.url:
            await LoggingTransport().send(request)
            return

        try:
            if self._client is not None:
                response = await self._request(self._client, request)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._request(client, request)
            logger.info(
                "Outbound request delivered",
                kind=request.kind,
                url=request.url,
                status_code=response.status_code,
                step_id=request.step_id,
            )
        except httpx.HTTPError as e:
            logger.warning(
                "Outbound request failed",
                kind=request.kind,
                url=request.url,
                error=str(e),
                step_id=request.step_id,
            )

    @staticmethod
    async def _request(client: httpx.AsyncClient, request: OutboundRequest) -> httpx.Response:
        method = request.method.upper()
        kwargs: dict[str, Any] = {"headers": request.headers}
        if method not in ("GET", "HEAD", "DELETE") and request.body is not None:
            kwargs["content"] = json.dumps(request.body, default=str)
            kwargs["headers"] = {"Content-Type": "application/json", **request.headers}
        return await client.request(method, request.url, **kwargs)


def build_transport(settings) -> Transport:
    """Pick the transport configured in settings."""
    if settings.WEBHOOK_DISPATCH_ENABLED:
        return HttpTransport(timeout=settings.WEBHOOK_TIMEOUT)
    return LoggingTransport()

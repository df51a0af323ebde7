"""FastAPI dependency injection functions."""

from fastapi import Request

from services.flow_service import FlowService


def get_flow_service(request: Request) -> FlowService:
    """Provide the FlowService built at application startup."""
    return request.app.state.flow_service

"""Health check endpoints.

Provides a basic liveness probe (/health/) reporting app version,
storage backend and uptime.
"""

import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter

from app.config import get_settings

router = APIRouter(prefix="/health", tags=["health"])

_start_time = time.monotonic()
_start_datetime = datetime.now(timezone.utc).isoformat()


@router.get("/", response_model=dict[str, Any])
async def root() -> dict[str, Any]:
    """
    Get API root information and version.
    Used as a simple liveness probe.
    """
    settings = get_settings()
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "ok",
        "storage": settings.STORAGE_BACKEND,
        "started_at": _start_datetime,
        "uptime_seconds": round(time.monotonic() - _start_time, 1),
    }

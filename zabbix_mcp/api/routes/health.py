"""
Health Routes
=============

FastAPI routes for liveness and service description.
"""

import time
from typing import Any, Dict

from fastapi import APIRouter, Request

from zabbix_mcp.models.schemas import HealthStatus

router = APIRouter(tags=["Health"])


def format_uptime(seconds: float) -> str:
    """HH:MM:SS; hours keep counting past a day."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


@router.get("/health", response_model=HealthStatus)
async def health_check(request: Request) -> HealthStatus:
    """
    Process status, live session count, upstream auth status and uptime.

    Reports ``degraded`` while the idle-session reaper is not running.
    """
    state = request.app.state
    uptime_seconds = max(0.0, time.time() - state.started_at)

    return HealthStatus(
        status="ok" if state.reaper.running else "degraded",
        active_sessions=state.transport.session_count,
        zabbix_connected=state.zabbix_client.is_authenticated(),
        uptime=format_uptime(uptime_seconds),
        uptime_seconds=round(uptime_seconds, 3),
        version=state.settings.app_version,
        read_only=state.registry.read_only,
        tools_count=len(state.registry),
    )


@router.get("/")
async def service_info(request: Request) -> Dict[str, Any]:
    """Service description and endpoint list."""
    settings = request.app.state.settings
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "read_only": settings.read_only,
        "endpoints": {
            "sse": "GET /sse",
            "message": f"POST {settings.message_path}?sessionId=<id>",
            "close_session": "DELETE /session/{id}",
            "session_info": "GET /session/{id}",
            "health": "GET /health",
        },
    }

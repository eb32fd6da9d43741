"""
SSE Routes
==========

FastAPI routes for the session transport: opening a stream, posting
JSON-RPC messages to a session, and closing or inspecting a session.
"""

from typing import Any, Annotated, Optional
import json

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Query, Request
from fastapi.responses import StreamingResponse

from zabbix_mcp.api.dependencies import get_transport
from zabbix_mcp.api.sse.errors import (
    InvalidMessageError,
    MissingSessionIdError,
    SessionNotFoundError,
)
from zabbix_mcp.api.sse.models import MessageAccepted, SessionClosedResponse, SessionInfo
from zabbix_mcp.api.sse.transport import StreamingTransport
from zabbix_mcp.config.logging import get_logger
from zabbix_mcp.models.schemas import ErrorResponse

logger = get_logger(__name__)

Transport = Annotated[StreamingTransport, Depends(get_transport)]

ERROR_RESPONSES: Any = {
    400: {"model": ErrorResponse, "description": "Missing session id or malformed message"},
    404: {"model": ErrorResponse, "description": "Session not found"},
}


async def open_stream(request: Request, transport: Transport) -> StreamingResponse:
    """
    Establish an SSE session.

    The first frame announces the session id; JSON-RPC responses for
    messages posted to the session arrive as ``message`` events.
    """
    client_ip = request.client.host if request.client else None
    session = await transport.open_session(
        client_ip=client_ip, user_agent=request.headers.get("user-agent")
    )

    return StreamingResponse(
        transport.stream(session),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable Nginx buffering
            "X-Session-ID": session.id,
        },
    )


async def post_message(
    request: Request,
    background_tasks: BackgroundTasks,
    transport: Transport,
    session_id: Annotated[Optional[str], Query(alias="sessionId")] = None,
    x_session_id: Annotated[Optional[str], Header()] = None,
) -> MessageAccepted:
    """
    Post a JSON-RPC message to a session.

    The session id may be given as the ``sessionId`` query parameter or the
    ``X-Session-ID`` header. The response is pushed on the session's stream.
    """
    requested = session_id or x_session_id
    if not requested:
        raise MissingSessionIdError()

    try:
        payload = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidMessageError("Request body must be valid JSON") from e

    session, message = transport.accept(requested, payload)
    logger.debug("Message queued", session_id=session.id, method=message.method)
    background_tasks.add_task(transport.process, session, message)

    return MessageAccepted(session_id=session.id, id=message.id)


async def close_session(session_id: str, transport: Transport) -> SessionClosedResponse:
    """Terminate a session."""
    if not transport.close_session(session_id, reason="client_request"):
        raise SessionNotFoundError(session_id)
    return SessionClosedResponse(message=f"Session {session_id} terminated successfully")


async def get_session(session_id: str, transport: Transport) -> SessionInfo:
    """Inspect a live session."""
    return transport.session_info(session_id)


def build_router(message_path: str = "/message") -> APIRouter:
    """Transport routes with the message endpoint mounted at ``message_path``."""
    router = APIRouter(tags=["SSE"])
    router.add_api_route(
        "/sse",
        open_stream,
        methods=["GET"],
        response_class=StreamingResponse,
        responses={503: {"model": ErrorResponse, "description": "Session limit reached"}},
    )
    router.add_api_route(
        message_path,
        post_message,
        methods=["POST"],
        status_code=202,
        response_model=MessageAccepted,
        responses=ERROR_RESPONSES,
    )
    router.add_api_route(
        "/session/{session_id}",
        close_session,
        methods=["DELETE"],
        response_model=SessionClosedResponse,
        responses=ERROR_RESPONSES,
    )
    router.add_api_route(
        "/session/{session_id}",
        get_session,
        methods=["GET"],
        response_model=SessionInfo,
        responses=ERROR_RESPONSES,
    )
    return router

"""
SSE Events
==========

Server-Sent Events type definitions and formatting functions.
Defines event types and handles SSE protocol formatting.
"""

from typing import Optional, Dict, Any, List, Union
from enum import Enum
import json


class SSEEventType(str, Enum):
    """Server-Sent Events event types."""

    # Session events
    SESSION = "session"
    ENDPOINT = "endpoint"
    SESSION_CLOSED = "session.closed"

    # JSON-RPC responses
    MESSAGE = "message"


def format_sse_event(
    event_type: str,
    data: Union[Dict[str, Any], List[Any], str],
    event_id: Optional[str] = None,
    retry_after: Optional[int] = None,
) -> str:
    """
    Format data for Server-Sent Events protocol.

    Args:
        event_type: Event type identifier
        data: Event data; strings are written as-is, anything else as compact JSON
        event_id: Optional event ID for client-side event tracking
        retry_after: Optional retry interval in milliseconds

    Returns:
        Formatted SSE message string
    """
    lines: List[str] = []

    # Add event ID if provided
    if event_id:
        lines.append(f"id: {event_id}")

    # Add event type
    lines.append(f"event: {event_type}")

    # Add retry interval if provided
    if retry_after:
        lines.append(f"retry: {retry_after}")

    if isinstance(data, str):
        payload = data
    else:
        payload = json.dumps(data, default=str, separators=(",", ":"))
    # Multi-line payloads need one data field per line
    lines.extend(f"data: {line}" for line in payload.split("\n"))

    # SSE protocol requires double newline at end
    lines.append("")
    lines.append("")

    return "\n".join(lines)


def format_sse_comment(text: str) -> str:
    """Comment frame; ignored by clients, keeps intermediaries from timing out."""
    return f": {text}\n\n"


KEEPALIVE_FRAME = format_sse_comment("keepalive")


def endpoint_url(message_path: str, session_id: str) -> str:
    return f"{message_path}?sessionId={session_id}"


def create_session_event(session_id: str, message_path: str) -> str:
    """First frame of every stream: the canonical session id and where to post."""
    return format_sse_event(
        SSEEventType.SESSION.value,
        {
            "type": "session",
            "sessionId": session_id,
            "endpoint": endpoint_url(message_path, session_id),
        },
    )


def create_endpoint_event(session_id: str, message_path: str) -> str:
    """Endpoint announcement in the form stock MCP SSE clients expect."""
    return format_sse_event(SSEEventType.ENDPOINT.value, endpoint_url(message_path, session_id))


def create_message_event(message: Dict[str, Any]) -> str:
    """JSON-RPC response frame."""
    return format_sse_event(SSEEventType.MESSAGE.value, message)


def create_session_closed_event(session_id: str, reason: str) -> str:
    return format_sse_event(
        SSEEventType.SESSION_CLOSED.value,
        {"type": "session.closed", "sessionId": session_id, "reason": reason},
    )

"""
Transport Errors
================

Failures of the session transport, each mapped to an HTTP status and a
stable error code.
"""

from typing import Any, Dict, Optional


class TransportError(Exception):
    """Base exception for session transport failures."""

    status_code = 500
    error_code = "TRANSPORT_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class MissingSessionIdError(TransportError):
    status_code = 400
    error_code = "SESSION_ID_REQUIRED"

    def __init__(self) -> None:
        super().__init__("Session ID required in query parameter or X-Session-ID header")


class InvalidMessageError(TransportError):
    status_code = 400
    error_code = "INVALID_MESSAGE"


class SessionNotFoundError(TransportError):
    status_code = 404
    error_code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found", {"session_id": session_id})


class SessionLimitError(TransportError):
    status_code = 503
    error_code = "SESSION_LIMIT_REACHED"

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Maximum of {limit} concurrent sessions reached", {"limit": limit})


class StreamOpenError(TransportError):
    status_code = 500
    error_code = "STREAM_OPEN_FAILED"

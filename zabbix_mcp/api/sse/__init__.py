"""
SSE Transport Package
=====================

Session-oriented Server-Sent Events transport for MCP clients.
"""

from .errors import (
    TransportError,
    MissingSessionIdError,
    InvalidMessageError,
    SessionNotFoundError,
    SessionLimitError,
    StreamOpenError,
)
from .mcp_bridge import MCPBridge
from .reaper import SessionReaper
from .session import Session, SessionChannel
from .session_table import SessionTable
from .transport import StreamingTransport

__all__ = [
    "TransportError",
    "MissingSessionIdError",
    "InvalidMessageError",
    "SessionNotFoundError",
    "SessionLimitError",
    "StreamOpenError",
    "MCPBridge",
    "SessionReaper",
    "Session",
    "SessionChannel",
    "SessionTable",
    "StreamingTransport",
]

"""
SSE Models
==========

Pydantic models for the session transport.
Defines the JSON-RPC envelope, session states and HTTP response bodies.
"""

from typing import Optional, Dict, Any, Union, Literal
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict


RequestId = Union[str, int]


class SessionState(str, Enum):
    """Session lifecycle state."""

    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class MCPRequest(BaseModel):
    """JSON-RPC 2.0 message posted by a client."""

    jsonrpc: Literal["2.0"] = Field(..., description="JSON-RPC protocol version")
    id: Optional[RequestId] = Field(None, description="Request id; absent for notifications")
    method: str = Field(..., min_length=1, description="Method name")
    params: Optional[Dict[str, Any]] = Field(None, description="Method parameters")

    model_config = ConfigDict(extra="ignore")

    @property
    def is_notification(self) -> bool:
        """Notifications carry no id and expect no response."""
        return "id" not in self.model_fields_set or self.id is None


class SessionInfo(BaseModel):
    """Introspection view of one session."""

    session_id: str = Field(..., description="Canonical session id")
    state: SessionState = Field(..., description="Lifecycle state")
    created_at: datetime = Field(..., description="Session creation time")
    last_activity: datetime = Field(..., description="Last inbound activity")
    idle_seconds: float = Field(..., ge=0, description="Seconds since last activity")
    client_ip: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")
    messages_routed: int = Field(0, ge=0, description="Messages accepted for this session")

    model_config = ConfigDict(use_enum_values=True)


class MessageAccepted(BaseModel):
    """Acknowledgement of a posted message; the response arrives on the stream."""

    accepted: bool = Field(default=True, description="Message accepted for processing")
    session_id: str = Field(..., serialization_alias="sessionId", description="Target session")
    id: Optional[RequestId] = Field(None, description="JSON-RPC id of the accepted message")


class SessionClosedResponse(BaseModel):
    """Response to an explicit session close."""

    success: bool = Field(default=True, description="Whether a live session was closed")
    message: str = Field(..., description="Human readable outcome")


def utc_from_timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)

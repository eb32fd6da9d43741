"""
Streaming Transport
===================

Session lifecycle and message routing for the SSE transport.

Result policy: a posted message is acknowledged immediately and its
JSON-RPC response is pushed on the session's stream as a ``message`` event
carrying the caller's id. Notifications produce no stream frame.
"""

import uuid
from typing import Any, AsyncIterator, Optional, Tuple

from mcp.types import INTERNAL_ERROR
from pydantic import ValidationError

from zabbix_mcp.config.logging import get_logger

from .errors import InvalidMessageError, MissingSessionIdError, SessionNotFoundError, StreamOpenError
from .events import create_endpoint_event, create_message_event, create_session_event
from .mcp_bridge import MCPBridge
from .models import MCPRequest, SessionInfo
from .session import Session
from .session_table import SessionTable

logger = get_logger(__name__)


class StreamingTransport:
    """
    Owns the session table and routes posted messages to sessions.

    Every teardown trigger (stream end, explicit close, idle eviction,
    shutdown) goes through ``close_session``.
    """

    def __init__(
        self,
        table: SessionTable,
        bridge: MCPBridge,
        message_path: str = "/message",
        keepalive_interval: Optional[float] = 30.0,
    ):
        self.table = table
        self.bridge = bridge
        self.message_path = message_path
        self.keepalive_interval = keepalive_interval
        self.logger = logger.bind(component="streaming_transport")

    @property
    def session_count(self) -> int:
        return len(self.table)

    # ------------------------------------------------------------------
    # Stream open / teardown
    # ------------------------------------------------------------------

    async def open_session(
        self, client_ip: Optional[str] = None, user_agent: Optional[str] = None
    ) -> Session:
        """
        Create and register a session and queue its announcement frames.

        The session is registered before the announcement is written so a
        client can post to it as soon as it reads its id.

        Raises:
            SessionLimitError: If the table is full
            StreamOpenError: If the announcement could not be written
        """
        session = Session(str(uuid.uuid4()), client_ip=client_ip, user_agent=user_agent)
        self.table.insert(session)

        try:
            announced = await session.send(create_session_event(session.id, self.message_path))
            announced = announced and await session.send(
                create_endpoint_event(session.id, self.message_path)
            )
        except Exception as e:
            self._discard(session)
            self.logger.error("Failed to announce session", session_id=session.id, error=str(e))
            raise StreamOpenError("Failed to create SSE session") from e

        if not announced:
            self._discard(session)
            raise StreamOpenError("Failed to create SSE session")

        self.logger.info(
            "Session opened",
            session_id=session.id,
            client_ip=client_ip,
            active_sessions=len(self.table),
        )
        return session

    def _discard(self, session: Session) -> None:
        self.table.remove(session.id)
        session.close("open_failed")

    async def stream(self, session: Session) -> AsyncIterator[str]:
        """
        Frames for the session's SSE response.

        Ends when the session is closed. If the client goes away first the
        response is cancelled and the session is torn down on the way out.
        """
        try:
            async for frame in session.channel.frames(self.keepalive_interval):
                yield frame
        finally:
            if self.close_session(session.id, reason="client_disconnected"):
                self.logger.info("SSE connection closed by client", session_id=session.id)

    def close_session(self, session_id: str, reason: str = "closed") -> bool:
        """
        Remove a session and release its channel.

        Idempotent: closing an unknown or already closed session returns
        False and changes nothing.
        """
        session = self.table.resolve(session_id)
        if session is None:
            return False

        self.table.remove(session.id)
        try:
            session.close(reason)
        except Exception as e:
            self.logger.error(
                "Error closing session", session_id=session.id, reason=reason, error=str(e)
            )
        return True

    def close_all(self, reason: str = "shutdown") -> int:
        """Close every live session; returns how many were closed."""
        closed = 0
        for session in self.table.sessions():
            if self.close_session(session.id, reason=reason):
                closed += 1
        if closed:
            self.logger.info("Closed all sessions", count=closed, reason=reason)
        return closed

    def session_info(self, session_id: str) -> SessionInfo:
        session = self.table.resolve(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session.info()

    # ------------------------------------------------------------------
    # Message routing
    # ------------------------------------------------------------------

    @staticmethod
    def parse_message(payload: Any) -> MCPRequest:
        """
        Validate a posted JSON-RPC envelope.

        Raises:
            InvalidMessageError: If the payload is not a JSON-RPC 2.0 request
        """
        if not isinstance(payload, dict):
            raise InvalidMessageError("Message must be a JSON object")
        try:
            return MCPRequest.model_validate(payload)
        except ValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise InvalidMessageError(
                "Invalid JSON-RPC message", {"fields": fields}
            ) from e

    def accept(self, session_id: Optional[str], payload: Any) -> Tuple[Session, MCPRequest]:
        """
        Route a posted message to its session.

        Malformed requests are rejected before the session table is consulted.
        A successful route refreshes the session's activity timestamp.

        Raises:
            MissingSessionIdError: No session id supplied
            InvalidMessageError: Malformed envelope
            SessionNotFoundError: Unknown, expired or closed session
        """
        if not session_id:
            raise MissingSessionIdError()
        message = self.parse_message(payload)

        session = self.table.resolve(session_id)
        if session is None or not session.is_open:
            self.logger.warning("Session not found", requested=session_id)
            raise SessionNotFoundError(session_id)

        session.touch()
        session.messages_routed += 1
        self.logger.debug(
            "Message accepted", session_id=session.id, method=message.method, request_id=message.id
        )
        return session, message

    async def process(self, session: Session, message: MCPRequest) -> bool:
        """
        Execute a message and push its response on the session's stream.

        Returns:
            False if a response was due but the session closed meanwhile
        """
        try:
            response = await self.bridge.handle(message, session_id=session.id)
        except Exception as e:
            self.logger.error(
                "Message processing failed",
                session_id=session.id,
                method=message.method,
                error=str(e),
                exc_info=True,
            )
            response = None
            if not message.is_notification:
                response = {
                    "jsonrpc": "2.0",
                    "id": message.id,
                    "error": {"code": INTERNAL_ERROR, "message": "Internal error"},
                }

        if response is None:
            return True
        return await session.send(create_message_event(response))

    async def dispatch(self, session_id: Optional[str], payload: Any) -> bool:
        """Accept and process a message in one step."""
        session, message = self.accept(session_id, payload)
        return await self.process(session, message)

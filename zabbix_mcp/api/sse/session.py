"""
SSE Sessions
============

A session is one logical client connection: a canonical id, an outbound
channel that only the session writes to, and an activity timestamp.
Every teardown path (client disconnect, explicit close, idle eviction,
shutdown) funnels through ``Session.close``.
"""

import asyncio
import time
from typing import AsyncIterator, Optional

from zabbix_mcp.config.logging import get_logger

from .events import KEEPALIVE_FRAME, create_session_closed_event
from .models import SessionInfo, SessionState, utc_from_timestamp

logger = get_logger(__name__)


class SessionChannel:
    """
    Outbound frame queue feeding one SSE response.

    Writers enqueue complete frames; the streaming response is the single
    reader. Writes after close are discarded and reported, never raised.
    """

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self._closed = False
        self.frames_queued = 0
        self.logger = logger.bind(component="session_channel", session_id=session_id)

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, frame: str) -> bool:
        """
        Queue a frame for the client.

        Returns:
            False if the channel is closed and the frame was dropped
        """
        if self._closed:
            self.logger.info("Discarding write to closed channel")
            return False
        self._queue.put_nowait(frame)
        self.frames_queued += 1
        return True

    def close(self, final_frame: Optional[str] = None) -> bool:
        """Stop accepting writes and end the stream after queued frames drain."""
        if self._closed:
            return False
        self._closed = True
        if final_frame is not None:
            self._queue.put_nowait(final_frame)
        self._queue.put_nowait(None)
        return True

    async def frames(self, keepalive_interval: Optional[float] = None) -> AsyncIterator[str]:
        """
        Yield queued frames until the channel is closed.

        A keepalive comment is yielded whenever nothing was queued for
        ``keepalive_interval`` seconds.
        """
        while True:
            try:
                if keepalive_interval:
                    frame = await asyncio.wait_for(self._queue.get(), timeout=keepalive_interval)
                else:
                    frame = await self._queue.get()
            except asyncio.TimeoutError:
                yield KEEPALIVE_FRAME
                continue

            if frame is None:
                return
            yield frame


class Session:
    """Live state of one client connection."""

    def __init__(
        self,
        session_id: str,
        channel: Optional[SessionChannel] = None,
        client_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ):
        self.id = session_id
        self.channel = channel or SessionChannel(session_id)
        self.client_ip = client_ip
        self.user_agent = user_agent
        self.created_at = time.time()
        # activity and idle math run on the monotonic clock
        self.started = time.monotonic()
        self.last_activity = self.started
        self.messages_routed = 0
        self.state = SessionState.OPEN
        self.close_reason: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.state == SessionState.OPEN

    def touch(self, now: Optional[float] = None) -> None:
        """Record inbound activity; never moves backwards."""
        now = time.monotonic() if now is None else now
        self.last_activity = max(self.last_activity, now)

    def idle_seconds(self, now: Optional[float] = None) -> float:
        now = time.monotonic() if now is None else now
        return max(0.0, now - self.last_activity)

    async def send(self, frame: str) -> bool:
        """Write a frame to the client if the session is still open."""
        if not self.is_open:
            logger.info("Discarding write to closed session", session_id=self.id)
            return False
        return await self.channel.send(frame)

    def close(self, reason: str = "closed") -> bool:
        """
        Tear the session down.

        Idempotent: returns False if the session was already closing or closed.
        """
        if self.state != SessionState.OPEN:
            return False

        self.state = SessionState.CLOSING
        self.close_reason = reason
        try:
            self.channel.close(create_session_closed_event(self.id, reason))
        finally:
            self.state = SessionState.CLOSED
        logger.info("Session closed", session_id=self.id, reason=reason)
        return True

    def info(self, now: Optional[float] = None) -> SessionInfo:
        """Introspection snapshot."""
        return SessionInfo(
            session_id=self.id,
            state=self.state,
            created_at=utc_from_timestamp(self.created_at),
            last_activity=utc_from_timestamp(self.created_at + (self.last_activity - self.started)),
            idle_seconds=self.idle_seconds(now),
            client_ip=self.client_ip,
            user_agent=self.user_agent,
            messages_routed=self.messages_routed,
        )

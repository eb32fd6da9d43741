"""
Session Reaper
==============

Background task that evicts sessions idle for longer than the configured
timeout. Eviction goes through the transport's regular close path.
"""

import asyncio
import time
from typing import TYPE_CHECKING, List, Optional

from zabbix_mcp.config.logging import get_logger

if TYPE_CHECKING:
    from .transport import StreamingTransport

logger = get_logger(__name__)


class SessionReaper:
    """Periodic idle-session sweep."""

    def __init__(
        self,
        transport: "StreamingTransport",
        idle_timeout: float = 1800.0,
        interval: float = 300.0,
    ):
        self.transport = transport
        self.idle_timeout = idle_timeout
        self.interval = interval
        self.logger = logger.bind(component="session_reaper")
        self._task: Optional["asyncio.Task[None]"] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="session-reaper")
        self.logger.info(
            "Session reaper started", interval=self.interval, idle_timeout=self.idle_timeout
        )

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to exit."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.logger.info("Session reaper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.sweep()
            except Exception as e:
                self.logger.error("Session sweep failed", error=str(e), exc_info=True)

    def sweep(self, now: Optional[float] = None) -> List[str]:
        """
        Evict every session idle for longer than the timeout.

        A failure closing one session is logged and the sweep continues.

        Returns:
            Ids of evicted sessions
        """
        now = time.monotonic() if now is None else now
        evicted: List[str] = []

        for session in self.transport.table.sessions():
            if now - session.last_activity <= self.idle_timeout:
                continue
            try:
                self.transport.close_session(session.id, reason="idle_timeout")
            except Exception as e:
                self.logger.error(
                    "Failed to evict idle session", session_id=session.id, error=str(e)
                )
                continue
            evicted.append(session.id)

        if evicted:
            self.logger.info(
                "Evicted idle sessions", count=len(evicted), remaining=len(self.transport.table)
            )
        return evicted

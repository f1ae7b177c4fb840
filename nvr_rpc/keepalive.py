# nvr_rpc/keepalive.py
"""Keep-alive loop for an RPC2 session.

The device expires a session that stays idle longer than the keep-alive
interval it reports at login (60 s unless told otherwise). The session core
never starts this loop on its own; the caller owns its lifetime.
"""

import asyncio
import logging
import time
from typing import Optional

from nvr_rpc.errors import NVRError
from nvr_rpc.rpc_login import RPCLogin

MAX_CONSECUTIVE_FAILURES = 5


class KeepAliveManager:
    """Sends global.keepAlive periodically.

    Attributes:
        login: RPCLogin whose session is kept alive
        interval_sec: Seconds between calls (default: the login's interval)
        logger: Logger instance
    """

    def __init__(
        self,
        login: RPCLogin,
        interval_sec: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.login = login
        self.interval_sec = interval_sec if interval_sec is not None else login.keep_alive_interval
        self.logger = logger or logging.getLogger(__name__)

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._last_keepalive_time: Optional[float] = None
        self._keepalive_count = 0
        self._failed_count = 0

    async def start(self) -> None:
        """Start the keep-alive task. Call after a successful login."""
        if self._running:
            self.logger.warning("[KEEPALIVE] Already running, ignoring start request")
            return

        self._running = True
        self._keepalive_count = 0
        self._failed_count = 0

        self.logger.info(f"[KEEPALIVE] Started ({self.interval_sec}s interval)")
        self._task = asyncio.create_task(self._keepalive_loop())

    async def stop(self) -> None:
        if not self._running and self._task is None:
            return

        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        self.logger.info("[KEEPALIVE] Stopped")

    async def _keepalive_loop(self) -> None:
        try:
            while self._running:
                await asyncio.sleep(self.interval_sec)
                try:
                    await self._send_keepalive()
                except NVRError as e:
                    self._failed_count += 1
                    self.logger.warning(
                        f"[KEEPALIVE] Keep-alive failed (count: {self._failed_count}): {e}"
                    )
                    if self._failed_count >= MAX_CONSECUTIVE_FAILURES:
                        self.logger.error(
                            "[KEEPALIVE] Too many consecutive failures, stopping keep-alive"
                        )
                        self._running = False
        finally:
            self.logger.debug("[KEEPALIVE] Keep-alive loop ended")

    async def _send_keepalive(self) -> None:
        self._keepalive_count += 1
        ok = await self.login.keep_alive()
        if not ok:
            raise NVRError("keepAlive returned a false result")

        self._last_keepalive_time = time.time()
        self._failed_count = 0
        self.logger.debug(f"[KEEPALIVE] #{self._keepalive_count} acknowledged")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def keepalive_count(self) -> int:
        return self._keepalive_count

    @property
    def failed_count(self) -> int:
        return self._failed_count

    @property
    def last_keepalive_time(self) -> Optional[float]:
        """Timestamp of the last acknowledged keep-alive."""
        return self._last_keepalive_time

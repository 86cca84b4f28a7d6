"""Periodic delivery of due notifications."""
from __future__ import annotations

import asyncio
import logging
import typing as t
from datetime import datetime

from study_state.models import Notification
from study_state.state import LocalStudyState

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 300.0


class NotificationScheduler:
    """Polls a ``LocalStudyState`` every ``interval`` seconds and delivers due notifications.

    Args:
        state: The state whose notifications are scanned
        interval: Seconds between ticks (default five minutes)
        on_delivered: Optional callback invoked with each delivered notification
    """

    def __init__(
        self,
        state: LocalStudyState,
        interval: float = DEFAULT_INTERVAL,
        on_delivered: t.Optional[t.Callable[[Notification], None]] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.state = state
        self.interval = interval
        self.on_delivered = on_delivered
        self._task: t.Optional[asyncio.Task[None]] = None

    def tick(self, now: t.Optional[datetime] = None) -> list[Notification]:
        delivered = self.state.deliver_due_notifications(now)
        for notification in delivered:
            logger.info("Delivered notification: %s - %s", notification.title, notification.message)
            if self.on_delivered:
                self.on_delivered(notification)
        return delivered

    async def run_forever(self) -> None:
        """Tick every ``interval`` seconds until cancelled; a failed tick is logged and skipped."""
        while True:
            try:
                self.tick()
            except Exception:
                logger.exception("Notification tick failed")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start ticking in the background on the running event loop."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self.run_forever())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

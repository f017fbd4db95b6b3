"""
Jarvis - Retention Sweeper
===========================
Background task that deletes exchanges older than the retention window.

The first sweep runs one interval after ``start()`` and then every
interval after that; the schedule is relative to process start, not to
the calendar.  A failed sweep is logged and the loop simply waits for
the next tick.

Usage:
    sweeper = RetentionSweeper(store)
    sweeper.start()
    ...
    await sweeper.stop()
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Protocol

from jarvis.config.settings import settings
from jarvis.src.utils.logger import get_logger

logger = get_logger(__name__)


class ExpiringStore(Protocol):
    async def delete_older_than(self, cutoff: datetime) -> int: ...


class RetentionSweeper:
    """
    Periodic best-effort cleanup of old exchanges.

    Parameters
    ----------
    store
        Anything exposing ``delete_older_than(cutoff)``.
    retention
        Maximum exchange age.  Defaults to ``settings.RETENTION_DAYS``.
    interval
        Time between sweeps.  Defaults to ``settings.SWEEP_INTERVAL_HOURS``.
    """

    def __init__(self, store: ExpiringStore, retention: timedelta | None = None, interval: timedelta | None = None) -> None:
        self._store = store
        self.retention = retention or timedelta(days=settings.RETENTION_DAYS)
        self.interval = interval or timedelta(hours=settings.SWEEP_INTERVAL_HOURS)
        self._task: asyncio.Task | None = None


    async def sweep_once(self, now: datetime | None = None) -> int:
        """Delete every exchange older than ``now - retention``; return the count."""
        cutoff = (now or datetime.now(timezone.utc)) - self.retention
        deleted = await self._store.delete_older_than(cutoff)
        logger.info("[SWEEP] Cleaned up old conversations: %d removed (cutoff=%s).", deleted, cutoff.isoformat())
        return deleted


    async def run_forever(self) -> None:
        """Sleep, sweep, repeat until cancelled."""
        while True:
            await asyncio.sleep(self.interval.total_seconds())
            try:
                await self.sweep_once()
            except Exception:
                logger.exception("[SWEEP] Error cleaning up old conversations; retrying next interval.")


    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()


    def start(self) -> None:
        """Schedule ``run_forever`` on the running loop (idempotent)."""
        if self.running:
            return
        self._task = asyncio.create_task(self.run_forever(), name="retention-sweeper")
        logger.info("[SWEEP] Scheduled every %s (retention=%s).", self.interval, self.retention)


    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[SWEEP] Stopped.")

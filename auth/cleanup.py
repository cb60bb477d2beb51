"""
auth/cleanup.py -- Daily sweep of invalid and stale token records.

TokenCleanup owns one asyncio task. start() creates it, stop() cancels it;
the application lifespan calls both. The task sleeps until the configured
server-local wall-clock time (midnight by default), runs sweep() in a worker
thread, and repeats.

sweep() deletes every token record where is_valid is false OR created_at is
older than stale_seconds. It is not coordinated with live requests: each
DELETE is atomic on its own, and a token deleted here simply fails its next
authenticate() with 403.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from auth.store import TokenStore

logger = logging.getLogger("userapi.cleanup")


def seconds_until(now: datetime, hour: int = 0, minute: int = 0) -> float:
    """Seconds from now to the next hour:minute on the same clock as now.

    Always strictly positive: at exactly hour:minute the next run is a day away.
    """
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class TokenCleanup:
    """Scheduled token sweep with an explicit start/stop lifecycle."""

    def __init__(self, tokens: TokenStore, stale_seconds: int = 3600, hour: int = 0, minute: int = 0) -> None:
        self.tokens = tokens
        self.stale_seconds = stale_seconds
        self.hour = hour
        self.minute = minute
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep(self, now: datetime | None = None) -> int:
        """Delete invalid and stale token records. Returns the number deleted."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(seconds=self.stale_seconds)
        logger.info("Running scheduled token cleanup (stale before %s)", cutoff.isoformat())
        deleted = self.tokens.purge(cutoff)
        logger.info("Token cleanup complete: %d record(s) deleted", deleted)
        return deleted

    def start(self) -> None:
        """Schedule the daily loop on the running event loop. No-op if already running."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="token-cleanup")
        logger.info("Token cleanup scheduled daily at %02d:%02d", self.hour, self.minute)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to unwind."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(seconds_until(datetime.now(), self.hour, self.minute))
            try:
                await asyncio.to_thread(self.sweep)
            except Exception:
                # A failed sweep must not kill the schedule; tomorrow's run retries.
                logger.exception("Token cleanup failed")

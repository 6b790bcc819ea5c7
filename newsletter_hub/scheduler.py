"""
Feed Polling Scheduler.

Background task that periodically ingests the feeds of active newsletters.
"""

import asyncio
import logging
from typing import Callable

from .services.ingestion_service import IngestionService, PollSummary

logger = logging.getLogger(__name__)


class FeedPollingScheduler:
    """
    Background scheduler for newsletter feed polling.

    Every interval, fetches each active newsletter with a feed URL. A failing
    feed is logged and recorded on its newsletter; it never stops the loop.
    """

    def __init__(
        self,
        ingestion_factory: Callable[[], IngestionService],
        interval_minutes: int = 30,
        initial_delay: float = 10,
    ):
        self._ingestion_factory = ingestion_factory
        self._interval_minutes = interval_minutes
        self._initial_delay = initial_delay
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        """Start the polling loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info(f"Feed polling scheduler started (interval: {self._interval_minutes} minutes)")

    async def stop(self):
        """Stop the polling loop."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Feed polling scheduler stopped")

    async def poll_now(self) -> PollSummary:
        """Run one polling pass immediately."""
        logger.info("Polling newsletter feeds")
        summary = await self._ingestion_factory().poll_active()
        logger.info(
            f"Feed poll: {summary.polled} newsletters, {summary.articles_created} new articles, "
            f"{len(summary.errors)} errors"
        )
        return summary

    async def _poll_loop(self):
        """Main polling loop."""
        # Let the server finish starting before the first pass
        await asyncio.sleep(self._initial_delay)

        while self._running:
            try:
                await self.poll_now()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"Error in feed polling loop: {e}")

            await asyncio.sleep(self._interval_minutes * 60)

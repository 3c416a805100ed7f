# Copyright 2025 Gowtham Rao <rao@ohdsi.org>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Periodic and startup triggering of the EIC refresh."""

import asyncio
import logging
from datetime import timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .models import RefreshOutcome
from .refresh import EicRefreshService

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "eic_refresh"
# Ticks are not suppressed while a run is in flight; the service's guard
# turns the overlapping ones away.
MAX_OVERLAPPING_TICKS = 3


class RefreshScheduler:
    """Fires the refresh on a fixed interval plus once at startup.

    Example::

        >>> scheduler = RefreshScheduler(service, interval_minutes=15)
        >>> scheduler.start()  # inside a running event loop
        >>> # … later …
        >>> await scheduler.shutdown()
    """

    def __init__(
        self,
        service: EicRefreshService,
        interval_minutes: int = 15,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self.service = service
        self.interval_minutes = interval_minutes
        self.scheduler = scheduler
        self.initial_run: asyncio.Task | None = None

    async def run_refresh(self, trigger: str = "scheduled") -> RefreshOutcome | None:
        """Run one refresh and log its outcome; never raises."""
        logger.info("Running EIC data refresh (%s)", trigger)
        try:
            outcome = await self.service.refresh()
        except Exception:
            logger.exception("EIC refresh (%s) raised", trigger)
            return None

        if outcome.success:
            logger.info("EIC refresh (%s) completed: %s", trigger, outcome.message)
        else:
            logger.error("EIC refresh (%s) failed: %s", trigger, outcome.message)
        return outcome

    def start(self) -> None:
        """Register the interval job and kick off the startup run.

        Must be called from within a running event loop.
        """
        loop = asyncio.get_running_loop()
        if self.scheduler is None:
            self.scheduler = AsyncIOScheduler(event_loop=loop, timezone=timezone.utc)

        self.scheduler.add_job(
            self.run_refresh,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            args=["scheduled"],
            id=REFRESH_JOB_ID,
            replace_existing=True,
            max_instances=MAX_OVERLAPPING_TICKS,
            coalesce=False,
        )
        self.scheduler.start()
        logger.info(
            "Scheduled EIC data refresh to run every %d minutes", self.interval_minutes,
        )

        logger.info("Running initial EIC data refresh...")
        self.initial_run = loop.create_task(self.run_refresh("initial"))

    async def shutdown(self) -> None:
        """Stop the clock and cancel the startup run if it is still going."""
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        if self.initial_run is not None and not self.initial_run.done():
            self.initial_run.cancel()
            try:
                await self.initial_run
            except asyncio.CancelledError:
                pass

"""
APScheduler wiring for the daily meal refresh.

The job fires at `settings.meal_refresh_cron` in the venues' timezone,
shortly after the upstream feed has rolled over to the new day.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from config import settings
from workers.meal_refresh import refresh_meals_for_today

_LOG = logging.getLogger(__name__)

JOB_ID = "meal_refresh"

RefreshJob = Callable[[], Awaitable[int]]


class MealScheduler:
    """Owns the AsyncIOScheduler and the single refresh job."""

    def __init__(self, job: RefreshJob = refresh_meals_for_today) -> None:
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._job = job
        self._startup_task: Optional[asyncio.Task[int]] = None

    def initialize(self, cron_expression: str | None = None) -> None:
        if self.scheduler is not None:
            _LOG.warning("Scheduler already initialized")
            return

        cron = cron_expression or settings.meal_refresh_cron
        self.scheduler = AsyncIOScheduler(
            timezone=settings.timezone,
            job_defaults={
                "coalesce": True,
                "misfire_grace_time": 3600,
            },
        )
        self.scheduler.add_job(
            self._job,
            trigger=CronTrigger.from_crontab(cron, timezone=settings.timezone),
            id=JOB_ID,
            name="Daily meal refresh",
            replace_existing=True,
        )
        _LOG.info("Daily meal refresh scheduled at '%s' %s", cron, settings.timezone)

    def start(self, run_now: bool = False) -> None:
        """Start the scheduler; must be called from inside a running loop."""
        if self.scheduler is None:
            raise RuntimeError("Scheduler not initialized")
        if self.scheduler.running:
            _LOG.warning("Scheduler already running")
            return

        self.scheduler.start()
        if run_now:
            self._startup_task = asyncio.create_task(self._job())
        _LOG.info("Scheduler started")

    def shutdown(self, wait: bool = False) -> None:
        if self.scheduler is None or not self.scheduler.running:
            _LOG.warning("Scheduler not running")
            return
        self.scheduler.shutdown(wait=wait)
        if self._startup_task is not None and not self._startup_task.done():
            self._startup_task.cancel()
        _LOG.info("Scheduler shutdown (wait=%s)", wait)

    def get_jobs(self) -> list[dict[str, str]]:
        if self.scheduler is None:
            return []
        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run": str(getattr(job, "next_run_time", None)),
                "trigger": str(job.trigger),
            }
            for job in self.scheduler.get_jobs()
        ]

    async def trigger_now(self) -> int:
        """Run the refresh immediately, outside the cron schedule."""
        _LOG.info("Manually triggering meal refresh")
        return await self._job()

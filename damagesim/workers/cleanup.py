"""Periodic background jobs, such as sweeping expired cache entries."""

from __future__ import annotations

import logging
from typing import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


class IntervalJobScheduler:
    """APScheduler-backed implementation of the cache sweep scheduler.

    Jobs are registered by name; registering the same name again replaces the
    previous job. The underlying scheduler starts lazily on the first job and
    must be created inside a running event loop.
    """

    def __init__(self, scheduler: AsyncIOScheduler | None = None) -> None:
        self._scheduler = scheduler or AsyncIOScheduler()

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def schedule_every(self, interval_seconds: float, callback: Callable[[], object], name: str) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")
        self._scheduler.add_job(
            callback,
            IntervalTrigger(seconds=interval_seconds),
            id=name,
            name=name,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        if not self._scheduler.running:
            self._scheduler.start()
        logger.debug("Scheduled job %s every %ss", name, interval_seconds)

    def cancel(self, name: str) -> None:
        if self._scheduler.get_job(name) is not None:
            self._scheduler.remove_job(name)

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Background job scheduler stopped")

from __future__ import annotations

import logging
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


class SessionPoller:
    """One interval job per active session, keyed by the session storage key."""

    def __init__(self, interval_seconds: float, scheduler: BackgroundScheduler | None = None):
        self._interval_seconds = interval_seconds
        self._scheduler = scheduler or BackgroundScheduler()

    def start(self, key: str, func: Callable[[], None]) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
        self._scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=self._interval_seconds),
            id=key,
            name=f"Poll ledger for {key}",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Polling started for %s every %ss", key, self._interval_seconds)

    def stop(self, key: str) -> None:
        try:
            self._scheduler.remove_job(key)
        except JobLookupError:
            return
        logger.info("Polling stopped for %s", key)

    def is_polling(self, key: str) -> bool:
        return self._scheduler.get_job(key) is not None

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

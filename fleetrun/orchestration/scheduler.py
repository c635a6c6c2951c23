from __future__ import annotations

import datetime as _dt
import logging
import threading
from typing import Any, Callable, Dict, Optional, Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from django.db import close_old_connections
from django.utils import timezone

from .errors import ScheduleConfigurationError
from .executor import MigrationExecutor

logger = logging.getLogger(__name__)


def timeout_job_id(key: str) -> str:
    return f"migration:timeout:{key}"


def cron_job_id(key: str) -> str:
    return f"migration:cron:{key}"


class Scheduler(Protocol):
    def schedule_at(self, key: str, when: _dt.datetime, func: Callable[[], Any]) -> bool:
        ...

    def schedule_cron(
            self,
            key: str,
            expression: str,
            timezone_name: Optional[str],
            func: Callable[[], Any],
    ) -> bool:
        ...

    def cancel(self, key: str) -> None:
        ...

    def cancel_all(self) -> None:
        ...

    def scheduled_keys(self) -> tuple[str, ...]:
        ...

    def shutdown(self) -> None:
        ...


class MigrationScheduler:
    """APScheduler wrapper owning one-off and cron handles keyed by migration key."""

    def __init__(
            self,
            executor: MigrationExecutor,
            *,
            scheduler: BaseScheduler | None = None,
            timezone_name: str = "UTC",
            autostart: bool = True,
            clock: Callable[[], _dt.datetime] | None = None,
    ) -> None:
        self._executor = executor
        self._scheduler = scheduler or BackgroundScheduler(timezone=timezone_name)
        self._autostart = autostart
        self._clock = clock or timezone.now
        self._handles: Dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def backend(self) -> BaseScheduler:
        return self._scheduler

    def start(self) -> None:
        with self._lock:
            if self._scheduler.running:
                return
            self._scheduler.start()
            logger.info("Migration scheduler started")

    def schedule_at(self, key: str, when: _dt.datetime, func: Callable[[], Any]) -> bool:
        """Run the one-shot path for ``key`` at ``when``.

        Overdue times run immediately on the calling thread. Returns ``True``
        when a timer was armed.
        """
        if when <= self._clock():
            logger.info("Schedule for %s is overdue (%s); running now", key, when.isoformat())
            self._executor.run_once(key, func)
            return False
        job_id = timeout_job_id(key)
        self.cancel(key)
        self._scheduler.add_job(
            self._fire_once,
            trigger=DateTrigger(run_date=when, timezone=self._scheduler.timezone),
            args=(key, func),
            id=job_id,
            name=key,
            replace_existing=True,
            misfire_grace_time=None,
        )
        self._handles[key] = job_id
        self._ensure_started()
        logger.info("Scheduled %s at %s", key, when.isoformat())
        return True

    def schedule_cron(
            self,
            key: str,
            expression: str,
            timezone_name: Optional[str],
            func: Callable[[], Any],
    ) -> bool:
        """Arm the recurring path for ``key`` on a crontab expression."""
        try:
            trigger = CronTrigger.from_crontab(
                expression, timezone=timezone_name or self._scheduler.timezone
            )
        except (ValueError, LookupError) as exc:
            raise ScheduleConfigurationError(
                key, f"invalid cron {expression!r} ({timezone_name or 'default tz'}): {exc}"
            ) from exc
        job_id = cron_job_id(key)
        self.cancel(key)
        self._scheduler.add_job(
            self._fire_recurring,
            trigger=trigger,
            args=(key, func),
            id=job_id,
            name=key,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._handles[key] = job_id
        self._ensure_started()
        logger.info(
            "Cron scheduled %s (%s%s)",
            key,
            expression,
            f" {timezone_name}" if timezone_name else "",
        )
        return True

    def cancel(self, key: str) -> None:
        job_id = self._handles.pop(key, None)
        if job_id is None:
            return
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            # one-off timers drop themselves once fired
            pass
        else:
            logger.debug("Cancelled schedule %s for %s", job_id, key)

    def cancel_all(self) -> None:
        for key in list(self._handles):
            self.cancel(key)

    def scheduled_keys(self) -> tuple[str, ...]:
        return tuple(self._handles)

    def job_for(self, key: str):
        job_id = self._handles.get(key)
        return self._scheduler.get_job(job_id) if job_id else None

    def shutdown(self) -> None:
        self.cancel_all()
        with self._lock:
            if not self._scheduler.running:
                return
            self._scheduler.shutdown(wait=False)
            logger.info("Migration scheduler stopped")

    def _ensure_started(self) -> None:
        if self._autostart:
            self.start()

    def _fire_once(self, key: str, func: Callable[[], Any]) -> None:
        if self._handles.get(key) == timeout_job_id(key):
            self._handles.pop(key, None)
        try:
            self._executor.run_once(key, func)
        except Exception:
            # the record already carries status=failed and the error detail
            logger.error("Scheduled migration %s failed", key)
        finally:
            close_old_connections()

    def _fire_recurring(self, key: str, func: Callable[[], Any]) -> None:
        try:
            self._executor.run_recurring(key, func)
        finally:
            close_old_connections()


class NullScheduler:
    """Stand-in used when scheduling is disabled for this process.

    One-off migrations run immediately instead of waiting; cron migrations
    are not run at all.
    """

    def __init__(self, executor: MigrationExecutor) -> None:
        self._executor = executor

    def schedule_at(self, key: str, when: _dt.datetime, func: Callable[[], Any]) -> bool:
        logger.warning(
            "Scheduling unavailable; running %s now instead of at %s",
            key,
            when.isoformat(),
        )
        self._executor.run_once(key, func)
        return False

    def schedule_cron(
            self,
            key: str,
            expression: str,
            timezone_name: Optional[str],
            func: Callable[[], Any],
    ) -> bool:
        logger.warning(
            "Scheduling unavailable; skipping cron migration %s (%s)", key, expression
        )
        return False

    def cancel(self, key: str) -> None:
        return None

    def cancel_all(self) -> None:
        return None

    def scheduled_keys(self) -> tuple[str, ...]:
        return ()

    def shutdown(self) -> None:
        return None

from __future__ import annotations

import inspect
import logging
import time
import traceback
from dataclasses import dataclass
from typing import Any, Callable

from asgiref.sync import async_to_sync
from django.db.models import F
from django.utils import timezone

from .models import MigrationRecord
from .store import MigrationStore

logger = logging.getLogger(__name__)

Status = MigrationRecord.Status


@dataclass(frozen=True)
class MigrationOutcome:
    status: str
    duration_seconds: float | None = None


APPLIED = "applied"
RECURRED = "recurred"
FAILED = "failed"
CLAIM_LOST = "claim_lost"
SCHEDULED = "scheduled"
SKIPPED = "skipped"
MISSING = "missing"
INVALID = "invalid"


def call_maybe_async(func: Callable[..., Any], *args: Any) -> Any:
    """Call ``func`` and drive its result to completion if it is awaitable."""
    if inspect.iscoroutinefunction(func):
        return async_to_sync(func)(*args)
    result = func(*args)
    if inspect.isawaitable(result):
        async def _await():
            return await result

        return async_to_sync(_await)()
    return result


class MigrationExecutor:
    """Claim a single record, run its body and persist the outcome."""

    def __init__(
            self,
            store: MigrationStore,
            *,
            clock: Callable[[], Any] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or timezone.now

    def claim(self, key: str) -> bool:
        claimed = self._store.conditional_claim(key)
        if not claimed:
            logger.debug("Migration %s not claimed; running elsewhere or ineligible", key)
        return claimed

    def run_once(self, key: str, func: Callable[[], Any]) -> MigrationOutcome:
        """Run a one-shot migration: applied on success, failed and re-raised on error."""
        if not self.claim(key):
            return MigrationOutcome(CLAIM_LOST)
        logger.info("Running %s...", key)
        start_clock = time.monotonic()
        try:
            call_maybe_async(func)
        except Exception as exc:
            duration = time.monotonic() - start_clock
            logger.exception("Failed %s after %.2fs", key, duration)
            self._mark_failed(key, exc)
            raise
        duration = time.monotonic() - start_clock
        self._store.update_fields(
            key,
            status=Status.APPLIED,
            last_run_at=self._clock(),
            error="",
        )
        logger.info("Applied %s in %.2fs", key, duration)
        return MigrationOutcome(APPLIED, duration)

    def run_recurring(self, key: str, func: Callable[[], Any]) -> MigrationOutcome:
        """Run one occurrence of a recurring migration.

        Success returns the record to ``pending`` and bumps ``run_count``.
        Failures are recorded and logged but never raised, so the schedule
        keeps firing.
        """
        if not self.claim(key):
            return MigrationOutcome(CLAIM_LOST)
        logger.info("Running %s (cron)...", key)
        start_clock = time.monotonic()
        try:
            call_maybe_async(func)
        except Exception as exc:
            duration = time.monotonic() - start_clock
            logger.exception("Cron run failed %s after %.2fs", key, duration)
            self._mark_failed(key, exc)
            return MigrationOutcome(FAILED, duration)
        duration = time.monotonic() - start_clock
        self._store.update_fields(
            key,
            status=Status.PENDING,
            last_run_at=self._clock(),
            error="",
            run_count=F("run_count") + 1,
        )
        logger.info("Recurring %s completed in %.2fs", key, duration)
        return MigrationOutcome(RECURRED, duration)

    def _mark_failed(self, key: str, exc: BaseException) -> None:
        self._store.update_fields(
            key,
            status=Status.FAILED,
            error=self._truncate_error(self._format_error(exc)),
        )

    @staticmethod
    def _format_error(exc: BaseException) -> str:
        trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return f"{exc!r}\n{trace}"

    def _truncate_error(self, error: str, limit: int = 2000) -> str:
        if len(error) <= limit:
            return error
        return f"{error[: limit - 3]}..."

from __future__ import annotations

import logging
import os
from typing import Dict

from .definitions import MigrationDescriptor
from .errors import ScheduleConfigurationError
from .executor import (
    INVALID,
    MISSING,
    SCHEDULED,
    SKIPPED,
    MigrationExecutor,
    MigrationOutcome,
    call_maybe_async,
)
from .models import MigrationRecord
from .registry import MigrationRegistry
from .scheduler import Scheduler
from .sources import DescriptorSource
from .store import MigrationStore

logger = logging.getLogger(__name__)


class MigrationCoordinator:
    """Register discovered migrations and dispatch the eligible ones.

    Inline migrations run sequentially in ascending ``order`` on the calling
    thread. Scheduled ones are handed to the scheduler, whose handles this
    coordinator owns until ``shutdown``.
    """

    def __init__(
            self,
            source: DescriptorSource,
            *,
            store: MigrationStore,
            executor: MigrationExecutor,
            scheduler: Scheduler,
    ) -> None:
        self._source = source
        self._store = store
        self._registry = MigrationRegistry(store)
        self._executor = executor
        self._scheduler = scheduler

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    def init_and_maybe_run(self) -> Dict[str, MigrationOutcome]:
        """Register every descriptor, then run or schedule eligible records.

        Safe to call repeatedly. A failing one-shot migration is recorded and
        its exception propagates, leaving later migrations for the next call.
        """
        self._store.ensure_collection()
        descriptors = self._registry.register_all(self._source.list())
        results: Dict[str, MigrationOutcome] = {}
        for record in self._store.query_eligible():
            descriptor = descriptors.get(record.key)
            if descriptor is None:
                logger.debug("Skipping %s; no descriptor registered in this process", record.key)
                results[record.key] = MigrationOutcome(MISSING)
                continue
            results[record.key] = self._dispatch(record, descriptor)
        return results

    def shutdown(self) -> None:
        """Cancel every scheduled handle held by this coordinator."""
        self._scheduler.shutdown()

    def _dispatch(
            self,
            record: MigrationRecord,
            descriptor: MigrationDescriptor,
    ) -> MigrationOutcome:
        try:
            should_run = self._should_run(descriptor)
        except Exception:
            logger.exception("Skipping %s; should_run raised", record.key)
            return MigrationOutcome(SKIPPED)
        if not should_run:
            logger.info("Skipping %s; should_run returned false", record.key)
            return MigrationOutcome(SKIPPED)

        schedule = descriptor.schedule
        if schedule is not None and schedule.cron:
            try:
                armed = self._scheduler.schedule_cron(
                    record.key, schedule.cron, schedule.timezone, descriptor.func
                )
            except ScheduleConfigurationError:
                logger.exception("Not scheduling %s", record.key)
                return MigrationOutcome(INVALID)
            if not armed:
                return MigrationOutcome(SKIPPED)
            self._executor.run_recurring(record.key, descriptor.func)
            return MigrationOutcome(SCHEDULED)

        if schedule is not None and schedule.at is not None:
            if self._scheduler.schedule_at(record.key, schedule.at, descriptor.func):
                return MigrationOutcome(SCHEDULED)
            return self._current_outcome(record.key)

        return self._executor.run_once(record.key, descriptor.func)

    @staticmethod
    def _should_run(descriptor: MigrationDescriptor) -> bool:
        if descriptor.should_run is None:
            return True
        return bool(call_maybe_async(descriptor.should_run, os.environ))

    def _current_outcome(self, key: str) -> MigrationOutcome:
        record = self._store.find_by_key(key)
        status = record.status if record else MISSING
        return MigrationOutcome(status)

from __future__ import annotations

import logging
from typing import Dict, Iterable

from .definitions import MigrationDescriptor
from .errors import DuplicateMigrationKey
from .models import MigrationRecord
from .store import MigrationStore

logger = logging.getLogger(__name__)


def descriptor_metadata(descriptor: MigrationDescriptor) -> dict:
    """Record fields mirrored from a descriptor on every registration."""
    schedule = descriptor.schedule
    return {
        "service_name": descriptor.service_name,
        "method_name": descriptor.method_name,
        "order": descriptor.order,
        "description": descriptor.description or "",
        "run_once": descriptor.run_once,
        "retry_on_fail": descriptor.retry_on_fail,
        "run_on_init": descriptor.run_on_init,
        "schedule_at": schedule.at if schedule else None,
        "schedule_cron": (schedule.cron or "") if schedule else "",
        "schedule_timezone": (schedule.timezone or "") if schedule else "",
    }


class MigrationRegistry:
    """Reconcile discovered descriptors with their stored records."""

    def __init__(self, store: MigrationStore) -> None:
        self._store = store

    def register(self, descriptor: MigrationDescriptor) -> MigrationRecord:
        """Create ``descriptor.key`` as pending, or refresh its metadata.

        Execution state (status, last_run_at, error, run_count) is never
        touched here.
        """
        record, created = self._store.upsert(
            descriptor.key, **descriptor_metadata(descriptor)
        )
        if created:
            logger.info("Registered migration %s (order %s)",
                        descriptor.key, descriptor.order)
        else:
            logger.debug("Refreshed migration %s metadata", descriptor.key)
        return record

    def register_all(
            self,
            descriptors: Iterable[MigrationDescriptor],
    ) -> Dict[str, MigrationDescriptor]:
        """Register every descriptor and index them by key."""
        index: Dict[str, MigrationDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.key in index:
                raise DuplicateMigrationKey(descriptor.key)
            index[descriptor.key] = descriptor
        for descriptor in index.values():
            self.register(descriptor)
        return index

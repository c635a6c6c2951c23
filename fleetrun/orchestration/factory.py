from __future__ import annotations

from .conf import FleetrunSettings
from .executor import MigrationExecutor
from .runner import MigrationCoordinator
from .scheduler import MigrationScheduler, NullScheduler
from .sources import DescriptorSource, load_descriptor_source
from .store import MigrationStore


def create_coordinator(
    source: DescriptorSource | None = None,
    *,
    config: FleetrunSettings | None = None,
    scheduling: bool | None = None,
) -> MigrationCoordinator:
    """Factory for MigrationCoordinator instances.

    ``scheduling`` overrides ``FLEETRUN_SCHEDULER_ENABLED``; when disabled
    the coordinator degrades to a NullScheduler.
    """
    config = config or FleetrunSettings.from_settings()
    store = MigrationStore()
    executor = MigrationExecutor(store)
    enabled = config.scheduler_enabled if scheduling is None else scheduling
    if enabled:
        scheduler = MigrationScheduler(
            executor, timezone_name=config.scheduler_time_zone)
    else:
        scheduler = NullScheduler(executor)
    return MigrationCoordinator(
        source or load_descriptor_source(config.descriptor_source),
        store=store,
        executor=executor,
        scheduler=scheduler,
    )

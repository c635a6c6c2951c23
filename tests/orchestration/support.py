from __future__ import annotations

from apscheduler.schedulers.background import BackgroundScheduler

from fleetrun.orchestration.definitions import MigrationDescriptor, migration
from fleetrun.orchestration.executor import MigrationExecutor
from fleetrun.orchestration.runner import MigrationCoordinator
from fleetrun.orchestration.scheduler import MigrationScheduler, NullScheduler
from fleetrun.orchestration.sources import StaticDescriptorSource
from fleetrun.orchestration.store import MigrationStore

COMMAND_LOG: list[str] = []


def build_coordinator(*descriptors, scheduling: bool = True, clock=None) -> MigrationCoordinator:
    """Coordinator whose APScheduler backend is never started."""
    store = MigrationStore()
    executor = MigrationExecutor(store)
    if scheduling:
        scheduler = MigrationScheduler(
            executor,
            scheduler=BackgroundScheduler(timezone="UTC"),
            autostart=False,
            clock=clock,
        )
    else:
        scheduler = NullScheduler(executor)
    return MigrationCoordinator(
        StaticDescriptorSource(descriptors),
        store=store,
        executor=executor,
        scheduler=scheduler,
    )


def command_descriptors():
    return [
        MigrationDescriptor("cmd.second", lambda: COMMAND_LOG.append("second"), order=2),
        MigrationDescriptor("cmd.first", lambda: COMMAND_LOG.append("first"), order=1),
    ]


def failing_command_descriptors():
    def explode() -> None:
        raise RuntimeError("command boom")

    return [MigrationDescriptor("cmd.explode", explode)]


@migration(order=3, description="module level fix")
def module_level_fix() -> None:
    COMMAND_LOG.append("module")


class SupportMigrations:
    @migration(order=1)
    def first(self) -> None:
        COMMAND_LOG.append("support.first")

    def not_a_migration(self) -> None:
        COMMAND_LOG.append("never")

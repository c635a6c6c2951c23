"""
Error classes raised by the migration runner.

Only StoreUnavailableError and the body's own exception from a one-shot
migration escape MigrationCoordinator.init_and_maybe_run. Everything else is
recorded on the MigrationRecord and logged.
"""


class FleetrunError(Exception):
    """Base exception for fleetrun."""


class StoreUnavailableError(FleetrunError):
    """The shared migrations table could not be reached or created."""


class ScheduleConfigurationError(FleetrunError):
    """A migration's schedule cannot be armed (bad cron expression or time zone)."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key


class DuplicateMigrationKey(FleetrunError):
    """Two descriptors in one source share a key."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Migration key {key!r} is declared more than once")
        self.key = key

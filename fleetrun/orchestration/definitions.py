from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from django.utils import timezone

MIGRATION_META_ATTR = "__fleetrun_migration__"

ShouldRun = Callable[[Mapping[str, str]], Union[bool, Awaitable[bool]]]


def _normalize_timestamp(value: _dt.datetime | str | None) -> _dt.datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = _dt.datetime.fromisoformat(value)
    if timezone.is_naive(value):
        return timezone.make_aware(value, timezone=_dt.timezone.utc)
    return value


@dataclass(frozen=True)
class MigrationSchedule:
    """When a migration runs: once at ``at``, or repeatedly on ``cron``."""

    at: Optional[_dt.datetime] = None
    cron: Optional[str] = None
    timezone: Optional[str] = None

    def __post_init__(self) -> None:
        if self.at is not None and self.cron:
            raise ValueError("schedule accepts either 'at' or 'cron', not both")
        object.__setattr__(self, "at", _normalize_timestamp(self.at))

    @property
    def is_empty(self) -> bool:
        return self.at is None and not self.cron


@dataclass(frozen=True)
class MigrationOptions:
    """Metadata attached by the ``@migration`` decorator."""

    key: Optional[str] = None
    order: int = 0
    description: str = ""
    run_once: bool = True
    retry_on_fail: bool = True
    run_on_init: bool = True
    schedule: Optional[MigrationSchedule] = None
    should_run: Optional[ShouldRun] = None


@dataclass(frozen=True)
class MigrationDescriptor:
    """Static definition of one migration: its configuration and its body."""

    key: str
    func: Callable[[], Any]
    order: int = 0
    description: str = ""
    run_once: bool = True
    retry_on_fail: bool = True
    run_on_init: bool = True
    schedule: Optional[MigrationSchedule] = None
    should_run: Optional[ShouldRun] = None
    service_name: str = ""
    method_name: str = ""

    def __post_init__(self) -> None:
        if not self.key:
            raise ValueError("migration key cannot be empty")
        if not callable(self.func):
            raise TypeError(f"migration {self.key!r} body is not callable")
        if self.schedule is not None and self.schedule.is_empty:
            object.__setattr__(self, "schedule", None)
        if not self.method_name:
            object.__setattr__(
                self, "method_name", getattr(self.func, "__name__", self.key)
            )
        if not self.service_name:
            object.__setattr__(self, "service_name", _owner_name(self.func))

    @classmethod
    def from_callable(
        cls,
        func: Callable[[], Any],
        options: MigrationOptions | None = None,
        *,
        service_name: str | None = None,
    ) -> "MigrationDescriptor":
        """Build a descriptor from a (bound) callable and its options.

        The key defaults to ``<service_name>.<method_name>``.
        """
        options = options or getattr(func, MIGRATION_META_ATTR, None) or MigrationOptions()
        method_name = getattr(func, "__name__", "migration")
        service_name = service_name or _owner_name(func)
        return cls(
            key=options.key or f"{service_name}.{method_name}",
            func=func,
            order=options.order,
            description=options.description,
            run_once=options.run_once,
            retry_on_fail=options.retry_on_fail,
            run_on_init=options.run_on_init,
            schedule=options.schedule,
            should_run=options.should_run,
            service_name=service_name,
            method_name=method_name,
        )


def migration(
    *,
    key: str | None = None,
    order: int = 0,
    description: str = "",
    run_once: bool = True,
    retry_on_fail: bool = True,
    run_on_init: bool = True,
    at: _dt.datetime | str | None = None,
    cron: str | None = None,
    timezone: str | None = None,
    should_run: ShouldRun | None = None,
):
    """Mark a method (or module-level function) as a migration body.

    Marked callables are picked up by ``InstanceDescriptorSource``::

        class Backfills:
            @migration(order=5, description="Fill user.slug")
            def fill_slugs(self):
                ...
    """
    schedule = None
    if at is not None or cron:
        schedule = MigrationSchedule(at=at, cron=cron, timezone=timezone)
    options = MigrationOptions(
        key=key,
        order=order,
        description=description,
        run_once=run_once,
        retry_on_fail=retry_on_fail,
        run_on_init=run_on_init,
        schedule=schedule,
        should_run=should_run,
    )

    def decorator(func):
        setattr(func, MIGRATION_META_ATTR, options)
        return func

    return decorator


def _owner_name(func: Callable[..., Any]) -> str:
    owner = getattr(func, "__self__", None)
    if owner is not None:
        return type(owner).__name__
    return getattr(func, "__module__", None) or "AnonymousService"

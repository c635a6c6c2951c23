"""Migration runner configuration helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.conf import settings

DEFAULT_COLLECTION_NAME = "migrations"


def flag_enabled(flag) -> bool:
    if isinstance(flag, str):
        return flag.strip().lower() in {"1", "true", "yes", "on"}
    return bool(flag)


@dataclass(frozen=True)
class FleetrunSettings:
    """Strongly typed runner configuration."""

    collection_name: str
    auto_run: bool
    fail_fast: bool
    scheduler_enabled: bool
    scheduler_time_zone: str
    descriptor_source: Optional[str]

    @staticmethod
    def from_settings() -> "FleetrunSettings":
        """Load settings from the active Django configuration."""
        return FleetrunSettings(
            collection_name=getattr(
                settings, "FLEETRUN_COLLECTION_NAME", DEFAULT_COLLECTION_NAME
            ) or DEFAULT_COLLECTION_NAME,
            auto_run=flag_enabled(getattr(settings, "FLEETRUN_AUTO_RUN", True)),
            fail_fast=flag_enabled(getattr(settings, "FLEETRUN_FAIL_FAST", True)),
            scheduler_enabled=flag_enabled(
                getattr(settings, "FLEETRUN_SCHEDULER_ENABLED", True)
            ),
            scheduler_time_zone=getattr(
                settings, "FLEETRUN_SCHEDULER_TIME_ZONE", settings.TIME_ZONE
            ) or "UTC",
            descriptor_source=getattr(settings, "FLEETRUN_DESCRIPTOR_SOURCE", None),
        )

from __future__ import annotations

import time

from django.apps import apps
from django.core.management.base import BaseCommand, CommandError

from ...conf import FleetrunSettings
from ...errors import StoreUnavailableError
from ...factory import create_coordinator


class Command(BaseCommand):
    help = "Run eligible migrations, then keep the process alive for scheduled ones."

    def handle(self, *args, **options):  # type: ignore[override]
        config = FleetrunSettings.from_settings()
        if not config.scheduler_enabled:
            self.stdout.write(
                self.style.WARNING(
                    "FLEETRUN_SCHEDULER_ENABLED is not enabled; scheduled migrations will not wait."
                )
            )
        # FLEETRUN_AUTO_RUN already ran and armed everything during app loading
        coordinator = apps.get_app_config("orchestration").coordinator
        if coordinator is None:
            coordinator = create_coordinator(config=config)
            try:
                coordinator.init_and_maybe_run()
            except StoreUnavailableError as exc:
                coordinator.shutdown()
                raise CommandError(str(exc)) from exc
            except Exception as exc:
                # the inline loop stops here; schedules armed so far stay alive
                self.stderr.write(f"Inline migration failed: {exc!r}")

        keys = coordinator.scheduler.scheduled_keys()
        self.stdout.write(self.style.SUCCESS(
            f"Migration scheduler running ({len(keys)} scheduled)"))
        try:
            self._wait_forever()
        except KeyboardInterrupt:
            coordinator.shutdown()
            self.stdout.write(self.style.WARNING("Scheduler stopped"))

    def _wait_forever(self) -> None:
        while True:  # pragma: no cover - interactive loop
            time.sleep(60)

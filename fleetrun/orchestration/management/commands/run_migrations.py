from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from ...errors import StoreUnavailableError
from ...factory import create_coordinator


class Command(BaseCommand):
    help = "Register migrations and run every eligible one once."

    def add_arguments(self, parser):
        parser.add_argument(
            "--no-schedule",
            action="store_true",
            help="Run one-off scheduled migrations now and skip cron migrations.",
        )

    def handle(self, *args, **options):  # type: ignore[override]
        coordinator = create_coordinator(
            scheduling=False if options["no_schedule"] else None
        )
        try:
            results = coordinator.init_and_maybe_run()
        except StoreUnavailableError as exc:
            raise CommandError(str(exc)) from exc
        except Exception as exc:
            raise CommandError(f"Migration run aborted: {exc!r}") from exc
        finally:
            # timers armed here die with this process; run_migration_scheduler keeps them
            coordinator.shutdown()

        if not results:
            self.stdout.write("No eligible migrations")
        formatted = []
        for key, outcome in results.items():
            duration = (
                f"{outcome.duration_seconds:.2f}s"
                if outcome.duration_seconds is not None
                else "-"
            )
            formatted.append(f"{key}: {outcome.status}, duration={duration}")
        if formatted:
            self.stdout.write("\n".join(formatted))
        self.stdout.write(self.style.SUCCESS("Migration run completed"))

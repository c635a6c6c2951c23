from __future__ import annotations

from django.core.management.base import BaseCommand

from ...models import MigrationRecord


class Command(BaseCommand):
    help = "Show the recorded status of every registered migration."

    def add_arguments(self, parser):
        parser.add_argument(
            "--status",
            choices=MigrationRecord.Status.values,
            help="Only list migrations in this status.",
        )

    def handle(self, *args, **options):  # type: ignore[override]
        records = MigrationRecord.objects.all()
        if options["status"]:
            records = records.filter(status=options["status"])
        lines = []
        for record in records:
            last_run = record.last_run_at.isoformat() if record.last_run_at else "-"
            schedule = record.schedule_cron or (
                record.schedule_at.isoformat() if record.schedule_at else "inline"
            )
            line = (
                f"{record.order:>5} {record.key}: status={record.status}, "
                f"runs={record.run_count}, last_run={last_run}, schedule={schedule}"
            )
            if record.error:
                line += f", error={record.error.splitlines()[0]}"
            lines.append(line)
        if not lines:
            self.stdout.write("No migrations registered")
            return
        self.stdout.write("\n".join(lines))
        stuck = [r.key for r in records if r.status == MigrationRecord.Status.RUNNING]
        if stuck:
            self.stdout.write(self.style.WARNING(
                f"Running (or left running by a crashed process): {', '.join(stuck)}"))

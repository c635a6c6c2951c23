from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="MigrationRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True,
                 primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=255, unique=True)),
                ("service_name", models.CharField(max_length=255)),
                ("method_name", models.CharField(max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("running", "Running"),
                            ("applied", "Applied"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("order", models.IntegerField(default=0)),
                ("description", models.TextField(blank=True)),
                ("run_once", models.BooleanField(default=True)),
                ("retry_on_fail", models.BooleanField(default=True)),
                ("run_on_init", models.BooleanField(default=True)),
                ("last_run_at", models.DateTimeField(blank=True, null=True)),
                ("error", models.TextField(blank=True)),
                ("run_count", models.PositiveIntegerField(default=0)),
                ("schedule_at", models.DateTimeField(blank=True, null=True)),
                ("schedule_cron", models.CharField(blank=True, max_length=120)),
                ("schedule_timezone", models.CharField(blank=True, max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": getattr(settings, "FLEETRUN_COLLECTION_NAME", "migrations")
                or "migrations",
                "ordering": ["order", "id"],
            },
        ),
    ]

from __future__ import annotations

from django.conf import settings
from django.db import models

from .conf import DEFAULT_COLLECTION_NAME


class MigrationRecord(models.Model):
    """Execution ledger for one registered migration."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        RUNNING = "running", "Running"
        APPLIED = "applied", "Applied"
        FAILED = "failed", "Failed"

    key = models.CharField(max_length=255, unique=True)
    service_name = models.CharField(max_length=255)
    method_name = models.CharField(max_length=255)
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
    )
    order = models.IntegerField(default=0)
    description = models.TextField(blank=True)
    run_once = models.BooleanField(default=True)
    retry_on_fail = models.BooleanField(default=True)
    run_on_init = models.BooleanField(default=True)
    last_run_at = models.DateTimeField(blank=True, null=True)
    error = models.TextField(blank=True)
    run_count = models.PositiveIntegerField(default=0)
    schedule_at = models.DateTimeField(blank=True, null=True)
    schedule_cron = models.CharField(max_length=120, blank=True)
    schedule_timezone = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = getattr(settings, "FLEETRUN_COLLECTION_NAME",
                           DEFAULT_COLLECTION_NAME) or DEFAULT_COLLECTION_NAME
        ordering = ["order", "id"]

    def __str__(self) -> str:
        ran = self.last_run_at.isoformat() if self.last_run_at else "never"
        return f"{self.key} ({self.status}) last run {ran}"

    @property
    def is_recurring(self) -> bool:
        return not self.run_once

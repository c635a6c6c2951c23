"""Narrow persistence contract over the migrations table."""

from __future__ import annotations

import logging
from typing import Any

from django.core.management import call_command
from django.db import DEFAULT_DB_ALIAS, DatabaseError, connections
from django.db.models import Q
from django.utils import timezone

from .errors import StoreUnavailableError
from .models import MigrationRecord

logger = logging.getLogger(__name__)

Status = MigrationRecord.Status


def eligible_filter() -> Q:
    """Statuses from which a record may be claimed.

    ``running`` is never eligible; recurring records are eligible from any
    other status.
    """
    return (
        Q(status=Status.PENDING)
        | Q(status=Status.FAILED, retry_on_fail=True)
        | Q(run_once=False)
    ) & ~Q(status=Status.RUNNING)


class MigrationStore:
    """Store operations used by the registry, executor and coordinator."""

    def __init__(
            self,
            *,
            model: type[MigrationRecord] | None = None,
            using: str = DEFAULT_DB_ALIAS,
    ) -> None:
        self._model = model or MigrationRecord
        self._using = using

    @property
    def model(self) -> type[MigrationRecord]:
        return self._model

    def _objects(self):
        return self._model.objects.using(self._using)

    def _table_exists(self) -> bool:
        connection = connections[self._using]
        with connection.cursor() as cursor:
            existing = connection.introspection.table_names(cursor)
        return self._model._meta.db_table in existing

    def ensure_collection(self) -> bool:
        """Create the migrations table when it is missing.

        The table is created through this app's schema migrations so a later
        ``migrate`` sees it as applied. Returns ``True`` when the table had
        to be created. Another process creating the table concurrently is
        not an error.
        """
        connection = connections[self._using]
        table = self._model._meta.db_table
        try:
            if self._table_exists():
                return False
            call_command(
                "migrate",
                self._model._meta.app_label,
                database=self._using,
                interactive=False,
                verbosity=0,
            )
        except DatabaseError as exc:
            if self._created_concurrently():
                logger.info("Table %r was created by another process", table)
                return False
            raise StoreUnavailableError(
                f"Cannot prepare table {table!r} on database {self._using!r}: {exc}"
            ) from exc
        logger.info(
            "Created table %r in database %r",
            table,
            connection.settings_dict.get("NAME"),
        )
        return True

    def _created_concurrently(self) -> bool:
        try:
            return self._table_exists()
        except DatabaseError:
            return False

    def find_by_key(self, key: str) -> MigrationRecord | None:
        return self._objects().filter(key=key).first()

    def create(self, **fields: Any) -> MigrationRecord:
        return self._objects().create(**fields)

    def upsert(self, key: str, **fields: Any) -> tuple[MigrationRecord, bool]:
        """Create ``key`` as pending or update only the given fields."""
        return self._objects().update_or_create(key=key, defaults=fields)

    def update_fields(self, key: str, **fields: Any) -> int:
        fields.setdefault("updated_at", timezone.now())
        return self._objects().filter(key=key).update(**fields)

    def conditional_claim(self, key: str) -> bool:
        """Atomically move an eligible record to ``running``.

        A single conditional UPDATE; of several racing callers at most one
        sees a row affected.
        """
        claimed = (
            self._objects()
            .filter(eligible_filter(), key=key)
            .update(status=Status.RUNNING, error="", updated_at=timezone.now())
        )
        return claimed == 1

    def query_eligible(self) -> list[MigrationRecord]:
        """Records the coordinator should dispatch, in execution order.

        Ties on ``order`` fall back to the primary key, i.e. the order in
        which keys were first registered.
        """
        return list(
            self._objects()
            .filter(
                Q(status=Status.PENDING)
                | Q(status=Status.FAILED, retry_on_fail=True)
                | Q(run_once=False),
                run_on_init=True,
            )
            .order_by("order", "id")
        )

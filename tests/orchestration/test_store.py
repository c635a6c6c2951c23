from __future__ import annotations

from unittest import mock

from django.db import OperationalError, connection
from django.test import TestCase

from fleetrun.orchestration.errors import StoreUnavailableError
from fleetrun.orchestration.models import MigrationRecord
from fleetrun.orchestration.store import MigrationStore

Status = MigrationRecord.Status


class MigrationStoreTests(TestCase):
    def setUp(self) -> None:
        self.store = MigrationStore()

    def _create(self, key: str, **fields) -> MigrationRecord:
        return self.store.create(key=key, service_name="S", method_name=key, **fields)

    def test_existing_table_is_left_alone(self) -> None:
        self.assertFalse(self.store.ensure_collection())

    def test_unreachable_database_is_reported(self) -> None:
        with mock.patch(
            "fleetrun.orchestration.store.connections"
        ) as connections:
            connections.__getitem__.return_value.cursor.side_effect = OperationalError("down")
            with self.assertRaises(StoreUnavailableError):
                self.store.ensure_collection()

    def test_table_created_by_another_process_is_accepted(self) -> None:
        table = MigrationRecord._meta.db_table
        with mock.patch.object(
            connection.introspection, "table_names", side_effect=[[], [table]]
        ), mock.patch(
            "fleetrun.orchestration.store.call_command",
            side_effect=OperationalError(f"table \"{table}\" already exists"),
        ) as migrate:
            self.assertFalse(self.store.ensure_collection())
        migrate.assert_called_once()

    def test_failed_creation_of_missing_table_is_reported(self) -> None:
        with mock.patch.object(
            connection.introspection, "table_names", side_effect=[[], []]
        ), mock.patch(
            "fleetrun.orchestration.store.call_command",
            side_effect=OperationalError("disk I/O error"),
        ):
            with self.assertRaises(StoreUnavailableError):
                self.store.ensure_collection()

    def test_find_and_update_fields(self) -> None:
        self._create("a")
        self.assertIsNone(self.store.find_by_key("missing"))

        updated = self.store.update_fields("a", description="changed")

        self.assertEqual(updated, 1)
        self.assertEqual(self.store.find_by_key("a").description, "changed")

    def test_upsert_creates_then_updates(self) -> None:
        record, created = self.store.upsert("a", service_name="S", method_name="a", order=1)
        self.assertTrue(created)
        self.assertEqual(record.status, Status.PENDING)

        record, created = self.store.upsert("a", service_name="S", method_name="a", order=2)
        self.assertFalse(created)
        self.assertEqual(record.order, 2)
        self.assertEqual(MigrationRecord.objects.count(), 1)

    def test_query_eligible_filters_and_orders(self) -> None:
        self._create("late", order=10)
        self._create("early", order=1)
        self._create("tie", order=1)
        self._create("done", status=Status.APPLIED)
        self._create("retry", order=5, status=Status.FAILED)
        self._create("no_retry", status=Status.FAILED, retry_on_fail=False)
        self._create("manual", run_on_init=False)
        self._create("recurring", order=7, status=Status.APPLIED, run_once=False)

        keys = [record.key for record in self.store.query_eligible()]

        self.assertEqual(keys, ["early", "tie", "retry", "recurring", "late"])

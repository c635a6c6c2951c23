from __future__ import annotations

from unittest import mock

from django.apps import apps
from django.test import SimpleTestCase, override_settings

from fleetrun.orchestration.errors import StoreUnavailableError


class OrchestrationConfigReadyTests(SimpleTestCase):
    def setUp(self) -> None:
        self.app_config = apps.get_app_config("orchestration")
        self.addCleanup(setattr, self.app_config, "coordinator", None)
        self.coordinator = mock.Mock()
        factory_patcher = mock.patch(
            "fleetrun.orchestration.factory.create_coordinator",
            return_value=self.coordinator,
        )
        self.create_coordinator = factory_patcher.start()
        self.addCleanup(factory_patcher.stop)
        atexit_patcher = mock.patch("fleetrun.orchestration.apps.atexit")
        self.atexit = atexit_patcher.start()
        self.addCleanup(atexit_patcher.stop)

    @override_settings(FLEETRUN_AUTO_RUN=False)
    def test_auto_run_disabled_does_nothing(self) -> None:
        self.app_config.ready()

        self.create_coordinator.assert_not_called()
        self.assertIsNone(self.app_config.coordinator)

    @override_settings(FLEETRUN_AUTO_RUN=True)
    def test_auto_run_registers_shutdown_and_runs(self) -> None:
        self.app_config.ready()

        self.assertIs(self.app_config.coordinator, self.coordinator)
        self.atexit.register.assert_called_once_with(self.coordinator.shutdown)
        self.coordinator.init_and_maybe_run.assert_called_once_with()

    @override_settings(FLEETRUN_AUTO_RUN=True)
    def test_unavailable_store_aborts_app_loading(self) -> None:
        self.coordinator.init_and_maybe_run.side_effect = StoreUnavailableError("down")

        with self.assertLogs("fleetrun.orchestration.apps", level="CRITICAL"):
            with self.assertRaises(StoreUnavailableError):
                self.app_config.ready()
        self.coordinator.shutdown.assert_called_once_with()

    @override_settings(FLEETRUN_AUTO_RUN=True)
    def test_failed_migration_aborts_app_loading(self) -> None:
        self.coordinator.init_and_maybe_run.side_effect = RuntimeError("backfill broke")

        with self.assertLogs("fleetrun.orchestration.apps", level="CRITICAL"):
            with self.assertRaisesMessage(RuntimeError, "backfill broke"):
                self.app_config.ready()

    @override_settings(FLEETRUN_AUTO_RUN=True, FLEETRUN_FAIL_FAST=False)
    def test_failure_only_logged_when_fail_fast_disabled(self) -> None:
        self.coordinator.init_and_maybe_run.side_effect = RuntimeError("backfill broke")

        with self.assertLogs("fleetrun.orchestration.apps", level="ERROR") as logs:
            self.app_config.ready()

        self.assertIn("Migration run at startup failed", logs.output[0])
        self.coordinator.shutdown.assert_not_called()

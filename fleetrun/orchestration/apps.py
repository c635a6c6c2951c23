from __future__ import annotations

import atexit
import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class OrchestrationConfig(AppConfig):
    name = "fleetrun.orchestration"
    label = "orchestration"
    verbose_name = "Migration orchestration"
    default_auto_field = "django.db.models.BigAutoField"

    coordinator = None

    def ready(self) -> None:
        from .conf import FleetrunSettings
        from .factory import create_coordinator

        config = FleetrunSettings.from_settings()
        if not config.auto_run:
            return
        self.coordinator = create_coordinator(config=config)
        atexit.register(self.coordinator.shutdown)
        try:
            self.coordinator.init_and_maybe_run()
        except Exception:
            if config.fail_fast:
                logger.critical("Migration run at startup failed; aborting app loading")
                self.coordinator.shutdown()
                raise
            logger.exception("Migration run at startup failed")

from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


class OrchestrationAppConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.orchestration"
    label = "orchestration"
    verbose_name = "Service orchestration"

    def ready(self) -> None:
        from apps.orchestration.application.drivers.config_driver import ConfigDriver
        from apps.orchestration.application.drivers.database_driver import DatabaseDriver
        from apps.orchestration.application.services.registry import drivers, gateways
        from apps.orchestration.domain.errors import ConfigurationError
        from apps.orchestration.infrastructure.gateways.fake_gateway import FakeRequest

        drivers.register("config", ConfigDriver)
        drivers.register("database", DatabaseDriver)
        gateways.register("fake", FakeRequest)

        orchestration = getattr(settings, "ORCHESTRATION", {}) or {}
        if not isinstance(orchestration, dict):
            raise ImproperlyConfigured("ORCHESTRATION must be a dict.")
        for section in ("drivers", "gateways", "services"):
            if not isinstance(orchestration.get(section) or {}, dict):
                raise ImproperlyConfigured(f"ORCHESTRATION['{section}'] must be a dict.")

        try:
            drivers.register_many(orchestration.get("drivers"))
            gateways.register_many(orchestration.get("gateways"))
        except ConfigurationError as exc:
            raise ImproperlyConfigured(str(exc)) from exc

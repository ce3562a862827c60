from __future__ import annotations

from django.apps import apps
from django.contrib.admin.sites import AdminSite
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import RequestFactory, SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from apps.orchestration.admin import MerchantAdmin, MerchantProviderInline
from apps.orchestration.application.drivers.config_driver import ConfigDriver
from apps.orchestration.application.drivers.database_driver import DatabaseDriver
from apps.orchestration.application.facade import ServiceFacade
from apps.orchestration.application.services.config_store import OrchestrationConfig, data_get
from apps.orchestration.application.services.registry import DriverRegistry, drivers, gateways
from apps.orchestration.domain.errors import (
    ConfigurationError,
    IncompatibilityError,
    NoSuchMethodError,
    ResolutionError,
)
from apps.orchestration.domain.policies import headline
from apps.orchestration.domain.types import MerchantRecord, ProviderRecord, ServiceRecord
from apps.orchestration.infrastructure.gateways.base import ServiceRequest, ServiceResponse
from apps.orchestration.infrastructure.gateways.fake_gateway import FakeRequest
from apps.orchestration.models import Merchant, MerchantProvider, Provider, Service

CONFIG_DRIVER = "apps.orchestration.application.drivers.config_driver.ConfigDriver"
DATABASE_DRIVER = "apps.orchestration.application.drivers.database_driver.DatabaseDriver"


class StripeRequest(ServiceRequest):
    def charge(self, amount):
        return ServiceResponse(data={"provider": "stripe", "amount": amount})


class PaypalRequest(ServiceRequest):
    def charge(self, amount):
        return ServiceResponse(data={"provider": "paypal", "amount": amount})

    def refund(self, amount):
        return ServiceResponse(data={"provider": "paypal", "refunded": amount})


def _global_namespace(driver: str) -> dict:
    return {
        "defaults": {"driver": driver},
        "drivers": {"config": CONFIG_DRIVER, "database": DATABASE_DRIVER},
        "test_mode": False,
        "testing": {"request_class": "fake"},
        "services": {},
    }


class RegistersTestGateways:
    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        gateways.register("test-stripe", StripeRequest)
        gateways.register("test-paypal", PaypalRequest)

    @classmethod
    def tearDownClass(cls):
        gateways.unregister("test-stripe")
        gateways.unregister("test-paypal")
        super().tearDownClass()


class ConfigServiceables:
    driver = "config"

    def setUp(self):
        super().setUp()
        self.global_ns = _global_namespace(self.driver)
        self.namespaces = {}

    def make_config(self) -> OrchestrationConfig:
        return OrchestrationConfig(self.global_ns, self.namespaces)

    def create_service(self, service_id):
        self.global_ns["services"][service_id] = {"config": service_id}
        self.namespaces[service_id] = {"defaults": {}, "providers": {}, "merchants": {}}
        return ServiceRecord(id=service_id, config_key=service_id)

    def create_provider(self, service, provider_id, gateway=None):
        self.namespaces[service.get_id()]["providers"][provider_id] = {"gateway": gateway}
        return ProviderRecord(service=service, id=provider_id, gateway=gateway)

    def create_merchant(self, service, merchant_id):
        self.namespaces[service.get_id()]["merchants"][merchant_id] = {"providers": {}}
        return MerchantRecord(service=service, id=merchant_id)

    def link(self, merchant, provider, data=None):
        merchants = self.namespaces[merchant.get_service().get_id()]["merchants"]
        merchants[merchant.get_id()]["providers"][provider.get_id()] = data or {}

    def set_defaults(self, service, merchant=None, provider=None):
        defaults = self.namespaces[service.get_id()]["defaults"]
        defaults["merchant"] = merchant.get_id() if merchant else None
        defaults["provider"] = provider.get_id() if provider else None

    def set_merchant_default_provider(self, merchant, provider):
        merchants = self.namespaces[merchant.get_service().get_id()]["merchants"]
        merchants[merchant.get_id()]["default_provider"] = provider.get_id()

    def enable_test_mode(self, service):
        self.namespaces[service.get_id()]["test_mode"] = True


class DatabaseServiceables:
    driver = "database"

    def setUp(self):
        super().setUp()
        self.global_ns = _global_namespace(self.driver)
        self.namespaces = {}

    def make_config(self) -> OrchestrationConfig:
        return OrchestrationConfig(self.global_ns, self.namespaces)

    def create_service(self, service_id):
        return Service.objects.create(id=service_id)

    def create_provider(self, service, provider_id, gateway=None):
        return Provider.objects.create(id=provider_id, service=service, gateway=gateway or "")

    def create_merchant(self, service, merchant_id):
        return Merchant.objects.create(id=merchant_id, service=service)

    def link(self, merchant, provider, data=None):
        link = MerchantProvider(merchant=merchant, provider=provider)
        link.set_settings(data)
        link.save()

    def set_defaults(self, service, merchant=None, provider=None):
        service.default_merchant = merchant
        service.default_provider = provider
        service.save(update_fields=["default_merchant", "default_provider", "updated_at"])

    def set_merchant_default_provider(self, merchant, provider):
        merchant.default_provider = provider
        merchant.save(update_fields=["default_provider", "updated_at"])

    def enable_test_mode(self, service):
        service.test_mode = True
        service.save(update_fields=["test_mode", "updated_at"])


class ServiceContractTests(RegistersTestGateways):
    """Behaviour every driver has to honour; mixed into one TestCase per driver."""

    def setUp(self):
        super().setUp()
        self.payments = self.create_service("payments")
        self.stripe = self.create_provider(self.payments, "stripe", "test-stripe")
        self.paypal = self.create_provider(self.payments, "paypal", "test-paypal")
        self.acme = self.create_merchant(self.payments, "acme")
        self.link(self.acme, self.stripe)

    def facade(self, service_id="payments") -> ServiceFacade:
        return ServiceFacade(service_id, config=self.make_config())

    def test_unknown_service_raises_configuration_error(self):
        with self.assertRaises(ConfigurationError):
            self.facade("shipping")

    def test_facade_uses_configured_driver(self):
        expected = ConfigDriver if self.driver == "config" else DatabaseDriver
        self.assertIsInstance(self.facade().driver, expected)

    def test_check_is_true_only_for_linked_pairs(self):
        service = self.facade()
        driver = service.driver
        acme = driver.resolve_merchant("acme")
        self.assertTrue(driver.check(driver.resolve_provider("stripe"), acme))
        self.assertFalse(driver.check(driver.resolve_provider("paypal"), acme))

    def test_check_is_false_across_services(self):
        sms = self.create_service("sms")
        twilio = self.create_provider(sms, "twilio", "test-stripe")
        self.link(self.acme, twilio)

        driver = self.facade().driver
        foreign = self.facade("sms").driver.resolve_provider("twilio")
        self.assertIsNotNone(foreign)
        self.assertFalse(driver.check(foreign, driver.resolve_merchant("acme")))

    def test_unknown_provider_raises_and_keeps_previous_selection(self):
        service = self.facade().provider("stripe")
        with self.assertRaises(ResolutionError):
            service.provider("adyen")
        self.assertEqual(service.get_provider().get_id(), "stripe")

    def test_unknown_merchant_raises_and_keeps_previous_selection(self):
        service = self.facade().merchant("acme")
        with self.assertRaises(ResolutionError):
            service.merchant("globex")
        self.assertEqual(service.get_merchant().get_id(), "acme")

    def test_incompatible_merchant_and_provider_raise(self):
        with self.assertRaises(IncompatibilityError):
            self.facade().merchant("acme").provider("paypal").charge(100)

    def test_compatible_pair_forwards_to_provider_gateway(self):
        response = self.facade().merchant("acme").provider("stripe").charge(100)
        self.assertEqual(response.data, {"provider": "stripe", "amount": 100})

    def test_response_is_configured_with_request_context(self):
        response = self.facade().merchant("acme").provider("stripe").execute("charge", 250)
        self.assertEqual(response.request_method, "charge")
        self.assertEqual(response.provider.get_id(), "stripe")
        self.assertEqual(response.merchant.get_id(), "acme")
        self.assertTrue(response.successful)

    def test_defaults_resolve_gateway_without_explicit_selection(self):
        self.set_defaults(self.payments, merchant=self.acme, provider=self.stripe)
        gateway = self.facade().get_gateway()
        self.assertIsInstance(gateway, StripeRequest)
        self.assertEqual(gateway.merchant.get_id(), "acme")

    def test_setting_provider_discards_resolved_gateway(self):
        self.link(self.acme, self.paypal)
        service = self.facade().merchant("acme").provider("stripe")
        first = service.get_gateway()
        self.assertIs(service.get_gateway(), first)

        service.provider("paypal")
        second = service.get_gateway()
        self.assertIsNot(second, first)
        self.assertIsInstance(second, PaypalRequest)
        self.assertEqual(service.charge(5).data["provider"], "paypal")

    def test_reset_restores_driver_defaults(self):
        self.link(self.acme, self.paypal)
        globex = self.create_merchant(self.payments, "globex")
        self.link(globex, self.paypal)
        self.set_defaults(self.payments, merchant=self.acme, provider=self.stripe)

        service = self.facade().merchant("globex").provider("paypal")
        service.get_gateway()
        service.reset()

        self.assertEqual(service.get_merchant().get_id(), "acme")
        self.assertEqual(service.get_provider().get_id(), "stripe")

    def test_round_trip_keeps_identifiers(self):
        service = self.facade()
        self.assertEqual(service.provider("stripe").get_provider().get_id(), "stripe")
        self.assertEqual(service.merchant("acme").get_merchant().get_id(), "acme")
        self.assertEqual(service.get_merchant().get_name(), "Acme")

    def test_entity_objects_are_accepted(self):
        service = self.facade().merchant(self.acme).provider(self.stripe)
        self.assertEqual(service.get_provider().get_id(), "stripe")
        self.assertEqual(service.get_merchant().get_service().get_id(), "payments")

    def test_merchant_default_provider_wins_when_linked(self):
        self.link(self.acme, self.paypal)
        self.set_defaults(self.payments, merchant=self.acme, provider=self.paypal)
        self.set_merchant_default_provider(self.acme, self.stripe)

        service = self.facade().merchant("acme")
        self.assertEqual(service.get_provider().get_id(), "stripe")

    def test_unlinked_merchant_default_provider_falls_back_to_service_default(self):
        self.set_defaults(self.payments, merchant=self.acme, provider=self.stripe)
        self.set_merchant_default_provider(self.acme, self.paypal)

        service = self.facade().merchant("acme")
        with self.assertLogs("switchyard.orchestration", level="WARNING"):
            provider = service.get_provider()
        self.assertEqual(provider.get_id(), "stripe")

    def test_test_mode_uses_fake_request(self):
        self.enable_test_mode(self.payments)
        service = self.facade().merchant("acme").provider("stripe")

        response = service.charge(100)
        self.assertIsInstance(service.get_gateway(), FakeRequest)
        self.assertEqual(response.request_method, "charge")
        self.assertTrue(response.meta["fake"])

    def test_test_mode_without_request_class_raises_configuration_error(self):
        self.enable_test_mode(self.payments)
        self.namespaces.setdefault("payments", {})["testing"] = {"request_class": None}
        service = self.facade().merchant("acme").provider("stripe")
        with self.assertRaisesMessage(ConfigurationError, "You must set a request_class"):
            service.get_gateway()

    def test_missing_gateway_raises_configuration_error(self):
        square = self.create_provider(self.payments, "square")
        self.link(self.acme, square)
        with self.assertRaises(ConfigurationError):
            self.facade().merchant("acme").provider("square").charge(1)

    def test_unknown_gateway_class_raises_configuration_error(self):
        square = self.create_provider(self.payments, "square", "payments.gateways.SquareRequest")
        self.link(self.acme, square)
        with self.assertRaisesMessage(ConfigurationError, "does not exist"):
            self.facade().merchant("acme").provider("square").get_gateway()

    def test_unsupported_method_raises_no_such_method(self):
        service = self.facade().merchant("acme").provider("stripe")
        with self.assertRaises(NoSuchMethodError):
            service.refund(10)
        self.assertFalse(service.supports("refund"))

    def test_hasattr_reflects_gateway_methods(self):
        service = self.facade().merchant("acme").provider("stripe")
        self.assertTrue(hasattr(service, "charge"))
        self.assertFalse(hasattr(service, "refund"))
        self.assertFalse(hasattr(service, "_secret"))

    def test_gateway_reads_pair_settings(self):
        self.link(self.acme, self.paypal, {"api_key": "pk_live"})
        gateway = self.facade().merchant("acme").provider("paypal").get_gateway()
        self.assertEqual(gateway.get_provider_settings(), {"api_key": "pk_live"})

    def test_services_are_listed(self):
        self.create_service("sms")
        services = ServiceFacade.all(self.make_config())
        self.assertEqual([service.get_id() for service in services], ["payments", "sms"])
        self.assertEqual(ServiceFacade.find("sms", self.make_config()).get_name(), "Sms")
        self.assertIsNone(ServiceFacade.find("shipping", self.make_config()))


class ConfigDriverServiceTests(ServiceContractTests, ConfigServiceables, SimpleTestCase):
    def test_service_namespace_can_differ_from_id(self):
        self.global_ns["services"]["card_payments"] = {"config": "cards"}
        self.namespaces["cards"] = {
            "defaults": {"merchant": "acme", "provider": "stripe"},
            "providers": {"stripe": {"gateway": "test-stripe"}},
            "merchants": {"acme": {"providers": {"stripe": {}}}},
        }
        service = self.facade("card_payments")
        self.assertEqual(service.service.get_name(), "Card Payments")
        self.assertIsInstance(service.get_gateway(), StripeRequest)

    def test_namespace_defaults_to_raw_service_id(self):
        self.global_ns["services"]["card_payments"] = {}
        self.namespaces["card_payments"] = {
            "defaults": {"merchant": "acme", "provider": "stripe"},
            "providers": {"stripe": {"gateway": "test-stripe"}},
            "merchants": {"acme": {"providers": {"stripe": {}}}},
        }
        config = self.make_config()
        self.assertEqual(config.namespace_for("card_payments"), "card_payments")
        self.assertEqual(config.get("card_payments", "defaults.provider"), "stripe")
        self.assertIsInstance(self.facade("card_payments").get_gateway(), StripeRequest)

    def test_gateway_may_be_a_dotted_path(self):
        self.namespaces["payments"]["providers"]["stripe"]["gateway"] = (
            "apps.orchestration.infrastructure.gateways.fake_gateway.FakeRequest"
        )
        self.assertIsInstance(self.facade().merchant("acme").provider("stripe").get_gateway(), FakeRequest)

    @override_settings(
        ORCHESTRATION={
            "defaults": {"driver": "config"},
            "drivers": {"config": CONFIG_DRIVER},
            "services": {"payments": {"config": "payments"}},
        },
        ORCHESTRATION_SERVICES={
            "payments": {
                "defaults": {"merchant": "acme", "provider": "stripe"},
                "providers": {"stripe": {"gateway": "test-stripe"}},
                "merchants": {"acme": {"providers": {"stripe": {}}}},
            },
        },
    )
    def test_configuration_is_read_from_settings(self):
        response = ServiceFacade("payments").charge(42)
        self.assertEqual(response.data["amount"], 42)


class DatabaseDriverServiceTests(ServiceContractTests, DatabaseServiceables, TestCase):
    def test_pair_settings_are_encrypted_at_rest(self):
        self.link(self.acme, self.paypal, {"api_key": "pk_live"})
        link = MerchantProvider.objects.get(merchant=self.acme, provider=self.paypal)
        self.assertTrue(link.settings_encrypted.startswith("fernet:"))
        self.assertNotIn("pk_live", link.settings_encrypted)

    def test_service_row_test_mode_overrides_configuration(self):
        self.global_ns["test_mode"] = True
        self.payments.test_mode = False
        self.payments.save(update_fields=["test_mode", "updated_at"])
        self.assertIsInstance(self.facade().merchant("acme").provider("stripe").get_gateway(), StripeRequest)

    def test_reset_refreshes_service_row(self):
        service = self.facade()
        Service.objects.filter(pk="payments").update(default_merchant=self.acme, default_provider=self.stripe)
        service.reset()
        self.assertEqual(service.get_default_merchant(), "acme")

    def test_service_namespace_can_select_driver(self):
        self.global_ns["defaults"]["driver"] = "config"
        self.namespaces["payments"] = {"defaults": {"driver": "database"}}
        self.assertIsInstance(self.facade().driver, DatabaseDriver)

    def test_construction_loads_only_its_service_row(self):
        self.create_service("sms")
        with self.assertNumQueries(1):
            self.facade()

    def test_link_across_services_is_rejected(self):
        sms = self.create_service("sms")
        twilio = self.create_provider(sms, "twilio", "test-stripe")
        link = MerchantProvider(merchant=self.acme, provider=twilio)
        with self.assertRaises(ValidationError) as ctx:
            link.full_clean()
        self.assertIn("provider", ctx.exception.message_dict)

    def test_merchant_default_provider_must_share_service(self):
        sms = self.create_service("sms")
        self.acme.default_provider = self.create_provider(sms, "twilio", "test-stripe")
        with self.assertRaises(ValidationError) as ctx:
            self.acme.full_clean()
        self.assertIn("default_provider", ctx.exception.message_dict)

        self.acme.default_provider = self.stripe
        self.acme.full_clean()

    def test_service_defaults_must_share_service(self):
        sms = self.create_service("sms")
        sms.default_provider = self.stripe
        sms.default_merchant = self.acme
        with self.assertRaises(ValidationError) as ctx:
            sms.full_clean()
        self.assertEqual(set(ctx.exception.message_dict), {"default_provider", "default_merchant"})

    def test_admin_offers_only_providers_of_the_merchant_service(self):
        self.create_provider(self.create_service("sms"), "twilio", "test-stripe")
        request = RequestFactory().get("/admin/")
        request.user = get_user_model().objects.create_superuser(username="root", password="pass12345")

        formset = MerchantProviderInline(Merchant, AdminSite()).get_formset(request, self.acme)
        choices = formset.form.base_fields["provider"].queryset
        self.assertEqual(sorted(choices.values_list("id", flat=True)), ["paypal", "stripe"])

        form = MerchantAdmin(Merchant, AdminSite()).get_form(request, self.acme)
        self.assertNotIn("twilio", form.base_fields["default_provider"].queryset.values_list("id", flat=True))


class ConfigStoreTests(SimpleTestCase):
    def setUp(self):
        self.config = OrchestrationConfig(
            {
                "test_mode": False,
                "defaults": {"driver": "config", "provider": "global"},
                "services": {"card_payments": {"config": "cards"}},
            },
            {
                "payments": {"test_mode": True, "defaults": {"provider": None}},
                "cards": {"defaults": {"provider": "stripe"}},
            },
        )

    def test_service_namespace_wins(self):
        self.assertTrue(self.config.get("payments", "test_mode"))
        self.assertEqual(self.config.get("card_payments", "defaults.provider"), "stripe")

    def test_falls_back_to_global_then_default(self):
        self.assertEqual(self.config.get("payments", "defaults.driver"), "config")
        self.assertEqual(self.config.get("payments", "missing.key", "fallback"), "fallback")
        self.assertIsNone(self.config.get("unknown", "missing.key"))

    def test_explicit_none_is_a_value(self):
        self.assertIsNone(self.config.get("payments", "defaults.provider", "fallback"))

    def test_namespace_names(self):
        self.assertEqual(self.config.namespace_for("card_payments"), "cards")
        self.assertEqual(self.config.namespace_for("Card Payments"), "Card Payments")
        self.assertEqual(self.config.namespace_for("bank_transfers"), "bank_transfers")

    def test_data_get_stops_at_scalars(self):
        self.assertEqual(data_get({"a": {"b": 1}}, "a.b.c", "x"), "x")
        self.assertEqual(data_get({"a": {"b": 1}}, "a.b"), 1)


class RegistryTests(SimpleTestCase):
    def setUp(self):
        self.registry = DriverRegistry()

    def test_registered_key_resolves(self):
        self.registry.register("config", ConfigDriver)
        self.assertIs(self.registry.resolve("config"), ConfigDriver)
        self.assertEqual(self.registry.keys(), ["config"])

    def test_dotted_path_resolves(self):
        self.assertIs(self.registry.resolve(DATABASE_DRIVER), DatabaseDriver)

    def test_unknown_identifier_raises(self):
        with self.assertRaises(ConfigurationError):
            self.registry.resolve("apps.orchestration.nowhere.Driver")
        with self.assertRaises(ConfigurationError):
            self.registry.get("config")

    def test_non_callable_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            self.registry.register("broken", 42)


class DriverSelectionTests(SimpleTestCase):
    def test_invalid_driver_raises_configuration_error(self):
        config = OrchestrationConfig(
            {"defaults": {"driver": "missing"}, "services": {"payments": {}}},
            {},
        )
        with self.assertRaisesMessage(ConfigurationError, "Invalid driver provided."):
            ServiceFacade("payments", config=config)

    def test_driver_must_extend_service_driver(self):
        config = OrchestrationConfig(
            {
                "defaults": {"driver": "bogus"},
                "drivers": {"bogus": "apps.orchestration.infrastructure.gateways.fake_gateway.FakeRequest"},
                "services": {"payments": {}},
            },
            {},
        )
        with self.assertRaises(ConfigurationError):
            ServiceFacade("payments", config=config)

    def test_ready_registers_settings_drivers(self):
        self.addCleanup(drivers.unregister, "alt")
        with override_settings(ORCHESTRATION={"drivers": {"alt": CONFIG_DRIVER}, "gateways": {}, "services": {}}):
            apps.get_app_config("orchestration").ready()
        self.assertIs(drivers.get("alt"), ConfigDriver)

        config = OrchestrationConfig({"defaults": {"driver": "alt"}, "services": {"payments": {}}}, {})
        self.assertIsInstance(ServiceFacade("payments", config=config).driver, ConfigDriver)


class PolicyTests(SimpleTestCase):
    def test_headline(self):
        self.assertEqual(headline("stripe_connect"), "Stripe Connect")
        self.assertEqual(headline("acme-co"), "Acme Co")
        self.assertEqual(headline("PayPal"), "Pay Pal")
        self.assertEqual(headline(42), "42")


@override_settings(
    ORCHESTRATION={
        "defaults": {"driver": "config"},
        "drivers": {"config": CONFIG_DRIVER},
        "services": {"payments": {"config": "payments"}, "sms": {}},
    },
    ORCHESTRATION_SERVICES={
        "payments": {
            "defaults": {"merchant": "acme", "provider": "stripe"},
            "providers": {"stripe": {"gateway": "test-stripe"}, "paypal": {"gateway": "test-paypal"}},
            "merchants": {"acme": {"providers": {"stripe": {}}}},
        },
    },
)
class ServiceApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.staff = get_user_model().objects.create_user(username="ops", password="pass12345", is_staff=True)

    def test_requires_staff(self):
        response = self.client.get("/api/orchestration/services/")
        self.assertIn(response.status_code, (401, 403))

    def test_lists_services(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.get("/api/orchestration/services/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json()["results"],
            [{"id": "payments", "name": "Payments"}, {"id": "sms", "name": "Sms"}],
        )

    def test_service_detail(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.get("/api/orchestration/services/payments/")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["driver"], "ConfigDriver")
        self.assertFalse(data["test_mode"])
        self.assertEqual(data["default_provider"], "stripe")
        self.assertEqual(data["default_merchant"], "acme")
        self.assertEqual([provider["id"] for provider in data["providers"]], ["stripe", "paypal"])
        self.assertEqual(data["merchants"], [{"id": "acme", "name": "Acme", "providers": ["stripe"]}])

    def test_unknown_service_is_404(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.get("/api/orchestration/services/shipping/")
        self.assertEqual(response.status_code, 404)

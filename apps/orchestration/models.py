"""
Orchestration models.

Database-backed counterparts of the configured services, providers and
merchants. Providers and merchants are scoped to their owning service; the
merchant/provider link table carries encrypted per-pair settings.
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models

from apps.orchestration.application.services.crypto import CredentialCrypto
from apps.orchestration.domain.policies import headline


class Service(models.Model):
    id = models.CharField(max_length=64, primary_key=True)
    test_mode = models.BooleanField(null=True, blank=True, default=None)
    default_provider = models.ForeignKey(
        "orchestration.Provider",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    default_merchant = models.ForeignKey(
        "orchestration.Merchant",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("id",)

    def __str__(self) -> str:
        return self.get_name()

    def get_id(self) -> str:
        return self.id

    def get_name(self) -> str:
        return headline(self.id)

    def clean(self) -> None:
        super().clean()
        errors = {}
        if self.default_provider_id and self.default_provider.service_id != self.pk:
            errors["default_provider"] = "The default provider must belong to this service."
        if self.default_merchant_id and self.default_merchant.service_id != self.pk:
            errors["default_merchant"] = "The default merchant must belong to this service."
        if errors:
            raise ValidationError(errors)


class Provider(models.Model):
    id = models.CharField(max_length=64, primary_key=True)
    service = models.ForeignKey(Service, on_delete=models.CASCADE, related_name="providers")
    gateway = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("id",)

    def __str__(self) -> str:
        return self.get_name()

    def get_id(self) -> str:
        return self.id

    def get_name(self) -> str:
        return headline(self.id)

    def get_service(self) -> Service:
        return self.service


class Merchant(models.Model):
    id = models.CharField(max_length=64, primary_key=True)
    service = models.ForeignKey(Service, on_delete=models.CASCADE, related_name="merchants")
    default_provider = models.ForeignKey(
        Provider,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    providers = models.ManyToManyField(Provider, through="MerchantProvider", related_name="merchants", blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("id",)

    def __str__(self) -> str:
        return self.get_name()

    def get_id(self) -> str:
        return self.id

    def get_name(self) -> str:
        return headline(self.id)

    def get_service(self) -> Service:
        return self.service

    def clean(self) -> None:
        super().clean()
        if self.default_provider_id and self.default_provider.service_id != self.service_id:
            raise ValidationError({"default_provider": "The default provider must belong to the merchant's service."})

    def get_provider_ids(self) -> list:
        return [provider.get_id() for provider in self.providers.all()]

    def supports_provider(self, provider) -> bool:
        provider_id = provider.get_id() if hasattr(provider, "get_id") else provider
        return any(str(linked.get_id()) == str(provider_id) for linked in self.providers.all())

    def get_provider_settings(self, provider) -> dict:
        provider_id = provider.get_id() if hasattr(provider, "get_id") else provider
        link = self.provider_links.filter(provider_id=provider_id).first()
        return link.get_settings() if link else {}


class MerchantProvider(models.Model):
    merchant = models.ForeignKey(Merchant, on_delete=models.CASCADE, related_name="provider_links")
    provider = models.ForeignKey(Provider, on_delete=models.CASCADE, related_name="merchant_links")
    settings_encrypted = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["merchant", "provider"], name="uq_orchestration_merchant_provider"),
        ]

    def __str__(self) -> str:
        return f"{self.merchant_id} -> {self.provider_id}"

    def clean(self) -> None:
        super().clean()
        if self.merchant_id and self.provider_id and self.merchant.service_id != self.provider.service_id:
            raise ValidationError({"provider": "The provider must belong to the merchant's service."})

    def get_settings(self) -> dict:
        return CredentialCrypto.decrypt_json(self.settings_encrypted)

    def set_settings(self, data: dict | None) -> None:
        self.settings_encrypted = CredentialCrypto.encrypt_json(data) if data else ""

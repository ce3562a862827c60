import json

from django import forms
from django.contrib import admin

from .models import Merchant, MerchantProvider, Provider, Service


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ("id", "test_mode", "default_provider", "default_merchant", "updated_at")
    list_filter = ("test_mode",)
    search_fields = ("id",)
    ordering = ("id",)

    def get_form(self, request, obj=None, **kwargs):
        form = super().get_form(request, obj, **kwargs)
        service_id = obj.pk if obj else None
        form.base_fields["default_provider"].queryset = Provider.objects.filter(service_id=service_id)
        form.base_fields["default_merchant"].queryset = Merchant.objects.filter(service_id=service_id)
        return form


@admin.register(Provider)
class ProviderAdmin(admin.ModelAdmin):
    list_display = ("id", "service", "gateway", "updated_at")
    list_filter = ("service",)
    search_fields = ("id", "gateway")
    ordering = ("service_id", "id")


class MerchantProviderAdminForm(forms.ModelForm):
    settings_json = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={"rows": 6, "spellcheck": "false"}),
        help_text="JSON settings for this merchant/provider pair, stored encrypted.",
        label="Settings (JSON)",
    )

    class Meta:
        model = MerchantProvider
        fields = ("provider", "settings_json")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if self.instance and self.instance.pk:
            self.fields["settings_json"].initial = json.dumps(self.instance.get_settings(), indent=2, ensure_ascii=False)

    def clean_settings_json(self):
        raw = (self.cleaned_data.get("settings_json") or "").strip()
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise forms.ValidationError("Invalid JSON.") from exc
        if not isinstance(data, dict):
            raise forms.ValidationError("Settings JSON must be an object.")
        return data

    def save(self, commit=True):
        self.instance.set_settings(self.cleaned_data.get("settings_json") or {})
        return super().save(commit=commit)


class MerchantProviderInline(admin.TabularInline):
    model = MerchantProvider
    form = MerchantProviderAdminForm
    extra = 0

    def get_formset(self, request, obj=None, **kwargs):
        formset = super().get_formset(request, obj, **kwargs)
        if obj:
            formset.form.base_fields["provider"].queryset = Provider.objects.filter(service_id=obj.service_id)
        return formset


@admin.register(Merchant)
class MerchantAdmin(admin.ModelAdmin):
    list_display = ("id", "service", "default_provider", "updated_at")
    list_filter = ("service",)
    search_fields = ("id",)
    ordering = ("service_id", "id")
    inlines = (MerchantProviderInline,)

    def get_form(self, request, obj=None, **kwargs):
        form = super().get_form(request, obj, **kwargs)
        if obj:
            form.base_fields["default_provider"].queryset = Provider.objects.filter(service_id=obj.service_id)
        return form

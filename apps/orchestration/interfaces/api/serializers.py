from __future__ import annotations

from rest_framework import serializers


class EntitySerializer(serializers.Serializer):
    id = serializers.SerializerMethodField()
    name = serializers.SerializerMethodField()

    def get_id(self, obj):
        return obj.get_id()

    def get_name(self, obj):
        return obj.get_name()


class MerchantSerializer(EntitySerializer):
    providers = serializers.SerializerMethodField()

    def get_providers(self, obj):
        return obj.get_provider_ids()


class ServiceDetailSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    driver = serializers.CharField()
    test_mode = serializers.BooleanField()
    default_provider = serializers.CharField(allow_null=True)
    default_merchant = serializers.CharField(allow_null=True)
    providers = EntitySerializer(many=True)
    merchants = MerchantSerializer(many=True)

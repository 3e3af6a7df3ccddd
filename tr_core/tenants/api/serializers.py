# tr_core/tenants/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from tr_core.tenants.models import Tenant


class TenantSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tenant
        fields = [
            "id",
            "subdomain",
            "display_name",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class TenantCreateSerializer(serializers.Serializer):
    subdomain = serializers.CharField(max_length=63)
    display_name = serializers.CharField(max_length=255)


class TenantUpdateSerializer(serializers.Serializer):
    subdomain = serializers.CharField(max_length=63, required=False)
    display_name = serializers.CharField(max_length=255, required=False)

# tr_core/iam/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from tr_core.iam.models import Role, UserProfile


class UserProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = UserProfile
        fields = [
            "id",
            "email",
            "display_name",
            "role",
            "tenant_id",
            "active_tenant_id",
            "campus_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class RoleUpdateSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Role.choices)
    campus_id = serializers.CharField(max_length=50, required=False, allow_null=True, allow_blank=True)


class ActiveTenantSerializer(serializers.Serializer):
    tenant_id = serializers.UUIDField(allow_null=True)


class MeResponseSerializer(serializers.Serializer):
    actor = UserProfileSerializer()
    effective_tenant_id = serializers.UUIDField(allow_null=True)

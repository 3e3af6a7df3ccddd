# tr_core/campuses/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from tr_core.campuses.models import Campus


class CampusSerializer(serializers.ModelSerializer):
    campus_id = serializers.CharField(source="code", read_only=True)

    class Meta:
        model = Campus
        fields = [
            "id",
            "tenant_id",
            "campus_id",
            "name",
            "abbreviation",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CampusCreateSerializer(serializers.Serializer):
    campus_id = serializers.CharField(max_length=50)
    name = serializers.CharField(max_length=255)
    abbreviation = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")


class CampusUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    abbreviation = serializers.CharField(max_length=32, required=False, allow_blank=True)


class DeactivationCheckSerializer(serializers.Serializer):
    allowed = serializers.BooleanField()
    user_count = serializers.IntegerField()
    record_count = serializers.IntegerField()
    blockers = serializers.ListField(child=serializers.CharField())


class CampusWithCountsSerializer(CampusSerializer):
    user_count = serializers.IntegerField(read_only=True)
    record_count = serializers.IntegerField(read_only=True)

    class Meta(CampusSerializer.Meta):
        fields = [*CampusSerializer.Meta.fields, "user_count", "record_count"]
        read_only_fields = fields

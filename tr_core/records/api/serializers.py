# tr_core/records/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from tr_core.records.lifecycle import days_remaining, days_since_deletion, derive_state, is_expired, retention_met
from tr_core.records.models import Record, RecordStatus

RECORD_FIELDS = [
    "id",
    "tenant_id",
    "campus_id",
    "first_name",
    "last_name",
    "school_id",
    "incident_date",
    "location",
    "description",
    "notes",
    "status",
    "expiration_date",
    "is_daep",
    "daep_expiration_date",
    "deleted_at",
    "created_at",
    "updated_at",
]


class RecordSerializer(serializers.ModelSerializer):
    state = serializers.SerializerMethodField()
    is_expired = serializers.SerializerMethodField()

    class Meta:
        model = Record
        fields = [*RECORD_FIELDS, "state", "is_expired"]
        read_only_fields = fields

    def get_state(self, obj) -> str:
        return derive_state(obj).value

    def get_is_expired(self, obj) -> bool:
        return is_expired(obj)


class DeletedRecordSerializer(serializers.ModelSerializer):
    days_since_deletion = serializers.SerializerMethodField()
    requires_action = serializers.SerializerMethodField()
    days_remaining = serializers.SerializerMethodField()

    class Meta:
        model = Record
        fields = [*RECORD_FIELDS, "days_since_deletion", "requires_action", "days_remaining"]
        read_only_fields = fields

    def get_days_since_deletion(self, obj) -> int:
        return days_since_deletion(obj.deleted_at)

    def get_requires_action(self, obj) -> bool:
        return retention_met(obj.deleted_at)

    def get_days_remaining(self, obj) -> int:
        return days_remaining(obj.deleted_at)


class RecordWriteSerializer(serializers.Serializer):
    campus_id = serializers.CharField(max_length=50, required=False, allow_null=True, allow_blank=True)
    first_name = serializers.CharField(max_length=128)
    last_name = serializers.CharField(max_length=128)
    school_id = serializers.CharField(max_length=64, required=False, allow_blank=True)
    incident_date = serializers.DateField(required=False, allow_null=True)
    location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=RecordStatus.choices, required=False)
    expiration_date = serializers.DateTimeField(required=False, allow_null=True)
    is_daep = serializers.BooleanField(required=False)
    daep_expiration_date = serializers.DateTimeField(required=False, allow_null=True)


class RecordPageSerializer(serializers.Serializer):
    records = RecordSerializer(many=True)
    total = serializers.IntegerField()
    page = serializers.IntegerField()
    limit = serializers.IntegerField()
    total_pages = serializers.IntegerField()


class DeletedRecordListSerializer(serializers.Serializer):
    records = DeletedRecordSerializer(many=True)
    total = serializers.IntegerField()


class DaepStudentSerializer(serializers.Serializer):
    record = RecordSerializer()
    incident_count = serializers.IntegerField()

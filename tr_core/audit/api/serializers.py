# tr_core/audit/api/serializers.py
from rest_framework import serializers

from tr_core.audit.models import AuditEvent


class AuditEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditEvent
        fields = [
            "id",
            "event_type",
            "actor_id",
            "actor_email",
            "actor_role",
            "target_id",
            "action",
            "details",
            "tenant_id",
            "campus_id",
            "record_subject_name",
            "created_at",
        ]
        read_only_fields = fields


class AuditEventPageSerializer(serializers.Serializer):
    events = AuditEventSerializer(many=True)
    total = serializers.IntegerField()
    page = serializers.IntegerField()
    limit = serializers.IntegerField()
    total_pages = serializers.IntegerField()

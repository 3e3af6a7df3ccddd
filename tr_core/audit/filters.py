# tr_core/audit/filters.py
from __future__ import annotations

import django_filters as filters

from tr_core.audit.models import AuditEvent, EventType


class AuditEventFilter(filters.FilterSet):
    actor_email = filters.CharFilter(field_name="actor_email", lookup_expr="icontains")
    record_subject_name = filters.CharFilter(field_name="record_subject_name", lookup_expr="icontains")
    record_id = filters.CharFilter(field_name="target_id", lookup_expr="exact")
    event_type = filters.MultipleChoiceFilter(field_name="event_type", choices=EventType.choices)
    date_from = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    date_to = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")
    campus_id = filters.CharFilter(field_name="campus_id", lookup_expr="exact")

    class Meta:
        model = AuditEvent
        fields = []

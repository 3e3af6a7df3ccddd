# tr_core/records/filters.py
from __future__ import annotations

import django_filters as filters
from django.db.models import Q
from django.utils import timezone

from tr_core.records.models import Record, RecordStatus


class RecordStatusFilter:
    ALL = "all"
    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"

    choices = [
        (ALL, "All"),
        (ACTIVE, "Active"),
        (INACTIVE, "Inactive"),
        (EXPIRED, "Expired"),
    ]


class RecordFilter(filters.FilterSet):
    """
    Filters for the default (live) record listing.
    `status=active` means active and not expired; `expired` is derived.
    """
    status = filters.ChoiceFilter(choices=RecordStatusFilter.choices, method="filter_status")
    search = filters.CharFilter(method="filter_search")
    campus_id = filters.CharFilter(field_name="campus_id", lookup_expr="exact")

    class Meta:
        model = Record
        fields = []

    def filter_status(self, queryset, name, value):
        now = timezone.now()
        if value == RecordStatusFilter.ACTIVE:
            return queryset.filter(status=RecordStatus.ACTIVE).filter(
                Q(expiration_date__isnull=True) | Q(expiration_date__gte=now)
            )
        if value == RecordStatusFilter.INACTIVE:
            return queryset.filter(status=RecordStatus.INACTIVE)
        if value == RecordStatusFilter.EXPIRED:
            return queryset.filter(status=RecordStatus.ACTIVE, expiration_date__lt=now)
        return queryset

    def filter_search(self, queryset, name, value):
        term = (value or "").strip()
        if not term:
            return queryset
        return queryset.filter(
            Q(first_name__icontains=term) | Q(last_name__icontains=term) | Q(school_id__icontains=term)
        )

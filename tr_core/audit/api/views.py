# tr_core/audit/api/views.py
from __future__ import annotations

from django.conf import settings
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from tr_core.audit.api.serializers import AuditEventPageSerializer, AuditEventSerializer
from tr_core.audit.models import AuditEvent
from tr_core.audit.selectors import query_audit_events
from tr_core.common.api.pagination import page_params_from_request, paginated_payload
from tr_core.iam.authz import Action
from tr_core.iam.guards import guard_request

AUDIT_FILTER_PARAMETERS = [
    OpenApiParameter("actor_email", OpenApiTypes.STR, OpenApiParameter.QUERY, description="Substring, case-insensitive."),
    OpenApiParameter("record_subject_name", OpenApiTypes.STR, OpenApiParameter.QUERY, description="Substring, case-insensitive."),
    OpenApiParameter("record_id", OpenApiTypes.STR, OpenApiParameter.QUERY, description="Exact target id."),
    OpenApiParameter("event_type", OpenApiTypes.STR, OpenApiParameter.QUERY, many=True, description="Repeat to match any of several types."),
    OpenApiParameter("date_from", OpenApiTypes.DATETIME, OpenApiParameter.QUERY),
    OpenApiParameter("date_to", OpenApiTypes.DATETIME, OpenApiParameter.QUERY),
    OpenApiParameter("campus_id", OpenApiTypes.STR, OpenApiParameter.QUERY),
    OpenApiParameter("page", OpenApiTypes.INT, OpenApiParameter.QUERY),
    OpenApiParameter("limit", OpenApiTypes.INT, OpenApiParameter.QUERY),
]


class AuditEventViewSet(viewsets.GenericViewSet):
    """
    Audit ledger queries for the effective tenant.
    """
    permission_classes = [IsAuthenticated]

    serializer_class = AuditEventSerializer
    queryset = AuditEvent.objects.none()

    def _query(self, request, *, gate: Action, default_limit: int, max_limit: int, oldest_first: bool):
        _, tenant_id = guard_request(request, gate)
        params = page_params_from_request(request, default_limit=default_limit, max_limit=max_limit)
        page = query_audit_events(
            tenant_id=tenant_id,
            filters=request.query_params,
            params=params,
            oldest_first=oldest_first,
        )
        return Response(paginated_payload(page, AuditEventSerializer, items_key="events"), status=status.HTTP_200_OK)

    @extend_schema(tags=["Audit"], parameters=AUDIT_FILTER_PARAMETERS, responses={200: AuditEventPageSerializer})
    def list(self, request):
        return self._query(
            request,
            gate=Action.AUDIT_VIEW,
            default_limit=50,
            max_limit=settings.AUDIT_LIST_MAX_LIMIT,
            oldest_first=False,
        )

    @extend_schema(tags=["Audit"], parameters=AUDIT_FILTER_PARAMETERS, responses={200: AuditEventPageSerializer})
    @action(detail=False, methods=["get"], url_path="export")
    def export(self, request):
        return self._query(
            request,
            gate=Action.AUDIT_EXPORT,
            default_limit=1000,
            max_limit=settings.AUDIT_EXPORT_MAX_LIMIT,
            oldest_first=True,
        )

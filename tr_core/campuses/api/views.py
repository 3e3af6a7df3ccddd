# tr_core/campuses/api/views.py
from __future__ import annotations

from django.conf import settings
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from tr_core.campuses.api.serializers import (
    CampusCreateSerializer,
    CampusSerializer,
    CampusUpdateSerializer,
    CampusWithCountsSerializer,
    DeactivationCheckSerializer,
)
from tr_core.campuses.models import Campus
from tr_core.campuses.selectors import (
    campus_by_code,
    campuses_for_tenant,
    campuses_with_counts,
    can_deactivate_campus,
    records_for_campus,
    users_for_campus,
)
from tr_core.campuses.services import CampusService, CampusUpdate
from tr_core.common.api.exceptions import NotFound
from tr_core.common.api.pagination import Page, page_params_from_request, paginated_payload
from tr_core.common.storage import read_with_retry
from tr_core.iam.api.serializers import UserProfileSerializer
from tr_core.iam.authz import Action
from tr_core.iam.guards import guard_request
from tr_core.records.api.serializers import RecordPageSerializer, RecordSerializer


def _campus_or_404(*, tenant_id, code) -> Campus:
    obj = read_with_retry(lambda: campus_by_code(tenant_id=tenant_id, code=code), label="campus_by_code")
    if obj is None:
        raise NotFound()
    return obj


@extend_schema_view(
    list=extend_schema(tags=["Campuses"], responses={200: CampusSerializer(many=True)}),
    retrieve=extend_schema(tags=["Campuses"], responses={200: CampusSerializer}),
    create=extend_schema(tags=["Campuses"], request=CampusCreateSerializer, responses={201: CampusSerializer}),
    partial_update=extend_schema(tags=["Campuses"], request=CampusUpdateSerializer, responses={200: CampusSerializer}),
    counts=extend_schema(tags=["Campuses"], responses={200: CampusWithCountsSerializer(many=True)}),
    deactivation_check=extend_schema(tags=["Campuses"], responses={200: DeactivationCheckSerializer}),
    deactivate=extend_schema(tags=["Campuses"], request=None, responses={200: CampusSerializer}),
    activate=extend_schema(tags=["Campuses"], request=None, responses={200: CampusSerializer}),
    records=extend_schema(tags=["Campuses"], responses={200: RecordPageSerializer}),
    users=extend_schema(tags=["Campuses"], responses={200: UserProfileSerializer(many=True)}),
)
class CampusViewSet(viewsets.ViewSet):
    """
    Campuses of the effective tenant, addressed by their tenant-local
    campus id.
    """
    permission_classes = [IsAuthenticated]

    lookup_field = "code"
    lookup_value_regex = r"[^/]+"

    serializer_class = CampusSerializer
    queryset = Campus.objects.none()

    def list(self, request):
        _, tenant_id = guard_request(request, Action.CAMPUS_VIEW)
        active_only = request.query_params.get("active_only", "").strip().lower() in {"1", "true", "yes"}
        rows = read_with_retry(
            lambda: list(campuses_for_tenant(tenant_id=tenant_id, active_only=active_only)),
            label="campuses.list",
        )
        return Response(CampusSerializer(rows, many=True).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="counts")
    def counts(self, request):
        _, tenant_id = guard_request(request, Action.CAMPUS_COUNTS)
        rows = read_with_retry(lambda: list(campuses_with_counts(tenant_id=tenant_id)), label="campuses.counts")
        return Response(CampusWithCountsSerializer(rows, many=True).data, status=status.HTTP_200_OK)

    def retrieve(self, request, code=None):
        _, tenant_id = guard_request(request, Action.CAMPUS_VIEW)
        return Response(CampusSerializer(_campus_or_404(tenant_id=tenant_id, code=code)).data, status=status.HTTP_200_OK)

    def create(self, request):
        actor, tenant_id = guard_request(request, Action.CAMPUS_CREATE)
        s = CampusCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        d = s.validated_data

        obj = CampusService.create(
            actor=actor,
            tenant_id=tenant_id,
            code=d["campus_id"],
            name=d["name"],
            abbreviation=d.get("abbreviation") or "",
        )
        return Response(CampusSerializer(obj).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, code=None):
        actor, tenant_id = guard_request(request, Action.CAMPUS_UPDATE)
        s = CampusUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        d = s.validated_data

        obj = CampusService.update(
            actor=actor,
            tenant_id=tenant_id,
            code=code,
            patch=CampusUpdate(name=d.get("name"), abbreviation=d.get("abbreviation")),
        )
        return Response(CampusSerializer(obj).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["get"], url_path="deactivation-check")
    def deactivation_check(self, request, code=None):
        _, tenant_id = guard_request(request, Action.CAMPUS_DEACTIVATE)
        campus = _campus_or_404(tenant_id=tenant_id, code=code)
        check = can_deactivate_campus(tenant_id=tenant_id, code=campus.code)
        return Response(DeactivationCheckSerializer(check).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="deactivate")
    def deactivate(self, request, code=None):
        actor, tenant_id = guard_request(request, Action.CAMPUS_DEACTIVATE)
        obj = CampusService.deactivate(actor=actor, tenant_id=tenant_id, code=code)
        return Response(CampusSerializer(obj).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="activate")
    def activate(self, request, code=None):
        actor, tenant_id = guard_request(request, Action.CAMPUS_ACTIVATE)
        obj = CampusService.activate(actor=actor, tenant_id=tenant_id, code=code)
        return Response(CampusSerializer(obj).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["get"], url_path="records")
    def records(self, request, code=None):
        _, tenant_id = guard_request(request, Action.RECORD_VIEW)
        code = (code or "").strip().lower()
        if code != settings.DAEP_CAMPUS_ID:
            _campus_or_404(tenant_id=tenant_id, code=code)

        params = page_params_from_request(request, default_limit=50, max_limit=settings.RECORDS_LIST_MAX_LIMIT)
        qs = records_for_campus(tenant_id=tenant_id, code=code)

        def _read():
            return qs.count(), list(qs[params.offset: params.offset + params.limit])

        total, items = read_with_retry(_read, label="campuses.records")
        page = Page(items=items, total=total, page=params.page, limit=params.limit)
        return Response(paginated_payload(page, RecordSerializer, items_key="records"), status=status.HTTP_200_OK)

    @action(detail=True, methods=["get"], url_path="users")
    def users(self, request, code=None):
        actor, tenant_id = guard_request(request, Action.USER_VIEW)
        campus = _campus_or_404(tenant_id=tenant_id, code=code)
        rows = read_with_retry(
            lambda: list(
                users_for_campus(
                    tenant_id=tenant_id,
                    code=campus.code,
                    include_master=actor.is_master_admin,
                )
            ),
            label="campuses.users",
        )
        return Response(UserProfileSerializer(rows, many=True).data, status=status.HTTP_200_OK)

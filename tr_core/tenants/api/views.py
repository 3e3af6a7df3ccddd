# tr_core/tenants/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from tr_core.common.api.exceptions import NotFound
from tr_core.common.storage import read_with_retry
from tr_core.iam.authz import Action, require
from tr_core.iam.identity import actor_from_request
from tr_core.tenants.api.serializers import (
    TenantCreateSerializer,
    TenantSerializer,
    TenantUpdateSerializer,
)
from tr_core.tenants.models import Tenant
from tr_core.tenants.selectors import get_tenant_or_none, tenant_qs
from tr_core.tenants.services import TenantService


def _tenant_pk(pk) -> UUID:
    try:
        return UUID(str(pk))
    except (TypeError, ValueError):
        raise NotFound()


@extend_schema_view(
    list=extend_schema(tags=["Tenants"], operation_id="v1_tenants_list", responses={200: TenantSerializer(many=True)}),
    retrieve=extend_schema(tags=["Tenants"], operation_id="v1_tenants_retrieve", responses={200: TenantSerializer}),
    create=extend_schema(tags=["Tenants"], operation_id="v1_tenants_create", request=TenantCreateSerializer, responses={201: TenantSerializer}),
    partial_update=extend_schema(tags=["Tenants"], operation_id="v1_tenants_update", request=TenantUpdateSerializer, responses={200: TenantSerializer}),
    deactivate=extend_schema(tags=["Tenants"], operation_id="v1_tenants_deactivate", request=None, responses={200: TenantSerializer}),
    reactivate=extend_schema(tags=["Tenants"], operation_id="v1_tenants_reactivate", request=None, responses={200: TenantSerializer}),
)
class TenantViewSet(viewsets.ViewSet):
    """
    master_admin tenant management. Not tenant-scoped: tenants are the scope.
    """

    permission_classes = [IsAuthenticated]

    serializer_class = TenantSerializer
    queryset = Tenant.objects.none()

    def list(self, request):
        actor = actor_from_request(request)
        require(actor, Action.TENANT_VIEW)
        rows = read_with_retry(lambda: list(tenant_qs().order_by("display_name")), label="tenants.list")
        return Response(TenantSerializer(rows, many=True).data, status=status.HTTP_200_OK)

    def retrieve(self, request, pk=None):
        actor = actor_from_request(request)
        require(actor, Action.TENANT_VIEW)
        tenant_id = _tenant_pk(pk)
        obj = read_with_retry(lambda: get_tenant_or_none(tenant_id=tenant_id), label="tenants.retrieve")
        if obj is None:
            raise NotFound()
        return Response(TenantSerializer(obj).data, status=status.HTTP_200_OK)

    def create(self, request):
        actor = actor_from_request(request)
        require(actor, Action.TENANT_CREATE)
        ser = TenantCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        t = TenantService.create(
            actor=actor,
            subdomain=ser.validated_data["subdomain"],
            display_name=ser.validated_data["display_name"],
        )
        return Response(TenantSerializer(t).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        actor = actor_from_request(request)
        require(actor, Action.TENANT_UPDATE)
        ser = TenantUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        t = TenantService.update(
            actor=actor,
            tenant_id=_tenant_pk(pk),
            subdomain=ser.validated_data.get("subdomain"),
            display_name=ser.validated_data.get("display_name"),
        )
        return Response(TenantSerializer(t).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="deactivate")
    def deactivate(self, request, pk=None):
        t = TenantService.deactivate(actor=actor_from_request(request), tenant_id=_tenant_pk(pk))
        return Response(TenantSerializer(t).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="reactivate")
    def reactivate(self, request, pk=None):
        t = TenantService.reactivate(actor=actor_from_request(request), tenant_id=_tenant_pk(pk))
        return Response(TenantSerializer(t).data, status=status.HTTP_200_OK)

# tr_core/iam/api/me.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from tr_core.common.api.exceptions import NoTenantSelected
from tr_core.iam.api.serializers import ActiveTenantSerializer, MeResponseSerializer, UserProfileSerializer
from tr_core.iam.identity import actor_from_request
from tr_core.iam.scope import resolve_request_scope
from tr_core.iam.services import ActorService


def _me_payload(request, actor) -> dict:
    try:
        effective = resolve_request_scope(request, actor)
    except NoTenantSelected:
        effective = None
    return {
        "actor": UserProfileSerializer(actor).data,
        "effective_tenant_id": str(effective) if effective else None,
    }


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["IAM"], responses={200: MeResponseSerializer})
    def get(self, request):
        actor = actor_from_request(request)
        return Response(_me_payload(request, actor), status=status.HTTP_200_OK)


class ActiveTenantView(APIView):
    """
    master_admin: select (or clear with null) the tenant to work in.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["IAM"], request=ActiveTenantSerializer, responses={200: MeResponseSerializer})
    def post(self, request):
        actor = actor_from_request(request)
        s = ActiveTenantSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        updated = ActorService.switch_active_tenant(actor=actor, tenant_id=s.validated_data["tenant_id"])
        # The switch is the point of the call: ignore any X-Tenant-Id header here.
        request.requested_tenant_id = None
        return Response(_me_payload(request, updated), status=status.HTTP_200_OK)

# tr_core/iam/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from tr_core.common.api.exceptions import NotFound
from tr_core.iam.api.serializers import RoleUpdateSerializer, UserProfileSerializer
from tr_core.iam.authz import Action, TargetScope, require
from tr_core.iam.guards import guard_request
from tr_core.iam.models import UserProfile
from tr_core.iam.selectors import find_target_user, list_users
from tr_core.iam.services import ActorService


def _user_pk(pk) -> UUID:
    try:
        return UUID(str(pk))
    except (TypeError, ValueError):
        raise NotFound()


@extend_schema_view(
    list=extend_schema(tags=["Users"], responses={200: UserProfileSerializer(many=True)}),
    retrieve=extend_schema(tags=["Users"], responses={200: UserProfileSerializer}),
    destroy=extend_schema(tags=["Users"], responses={204: None}),
    role=extend_schema(tags=["Users"], request=RoleUpdateSerializer, responses={200: UserProfileSerializer}),
)
class UserViewSet(viewsets.ViewSet):
    """
    Tenant user administration (district_admin / master_admin).
    """
    permission_classes = [IsAuthenticated]

    serializer_class = UserProfileSerializer
    queryset = UserProfile.objects.none()

    def list(self, request):
        actor, tenant_id = guard_request(request, Action.USER_VIEW)
        rows = list_users(tenant_id=tenant_id, viewer_is_master=actor.is_master_admin)
        return Response(UserProfileSerializer(rows, many=True).data, status=status.HTTP_200_OK)

    def retrieve(self, request, pk=None):
        actor, tenant_id = guard_request(request, Action.USER_VIEW)
        target = find_target_user(tenant_id=tenant_id, user_id=_user_pk(pk))
        if target is None:
            raise NotFound()
        require(actor, Action.USER_VIEW, TargetScope(tenant_id=tenant_id, target_actor_id=target.id, target_role=target.role))
        return Response(UserProfileSerializer(target).data, status=status.HTTP_200_OK)

    def destroy(self, request, pk=None):
        actor, tenant_id = guard_request(request, Action.USER_DELETE)
        ActorService.delete_actor(actor=actor, tenant_id=tenant_id, target_actor_id=_user_pk(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="role")
    def role(self, request, pk=None):
        actor, tenant_id = guard_request(request, Action.USER_ROLE_UPDATE)
        s = RoleUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        p = ActorService.update_actor_role(
            actor=actor,
            tenant_id=tenant_id,
            target_actor_id=_user_pk(pk),
            new_role=s.validated_data["role"],
            campus_id=s.validated_data.get("campus_id"),
        )
        return Response(UserProfileSerializer(p).data, status=status.HTTP_200_OK)

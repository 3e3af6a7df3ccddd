# tr_core/iam/api/auth.py
from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer

from tr_core.iam.api.schema_serializers import (
    DetailResponseSerializer,
    LoginRequestSerializer,
    LoginResponseSerializer,
)
from tr_core.iam.api.serializers import UserProfileSerializer
from tr_core.iam.identity import resolve_actor

logger = logging.getLogger(__name__)


def _cookie_specs() -> list[tuple[str, str, timedelta]]:
    """
    (token key, cookie name, lifetime) for the access and refresh cookies.
    """
    cfg = settings.SIMPLE_JWT
    return [
        ("access", cfg.get("AUTH_COOKIE", "tr_access"), cfg.get("ACCESS_TOKEN_LIFETIME", timedelta(minutes=10))),
        ("refresh", cfg.get("AUTH_COOKIE_REFRESH", "tr_refresh"), cfg.get("REFRESH_TOKEN_LIFETIME", timedelta(days=14))),
    ]


def _set_auth_cookies(response: Response, tokens: dict[str, str]) -> None:
    cfg = settings.SIMPLE_JWT
    for key, name, lifetime in _cookie_specs():
        response.set_cookie(
            name,
            tokens[key],
            max_age=int(lifetime.total_seconds()),
            httponly=cfg.get("AUTH_COOKIE_HTTP_ONLY", True),
            secure=bool(cfg.get("AUTH_COOKIE_SECURE", False)),
            samesite=cfg.get("AUTH_COOKIE_SAMESITE", "Lax"),
            path="/",
        )


def _clear_auth_cookies(response: Response) -> None:
    for _, name, _ in _cookie_specs():
        response.delete_cookie(name, path="/")


class LoginView(APIView):
    """
    Username/password login. Credentials alone are not enough: the Django
    user must also map to a live actor profile.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get_authenticate_header(self, request):
        # Keep failed logins at 401 even though no authenticator is attached.
        return "Bearer"

    @extend_schema(request=LoginRequestSerializer, responses={200: LoginResponseSerializer}, tags=["IAM"])
    def post(self, request):
        serializer = TokenObtainPairSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        actor = resolve_actor(serializer.user)

        logger.info("actor_login actor_id=%s role=%s", actor.id, actor.role)
        res = Response(
            {"detail": "login ok", "actor": UserProfileSerializer(actor).data},
            status=status.HTTP_200_OK,
        )
        _set_auth_cookies(res, serializer.validated_data)
        return res


class RefreshView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(request=None, responses={200: DetailResponseSerializer}, tags=["IAM"])
    def post(self, request):
        refresh_cookie = _cookie_specs()[1][1]
        refresh = request.COOKIES.get(refresh_cookie) or request.data.get("refresh")

        serializer = TokenRefreshSerializer(data={"refresh": refresh})
        serializer.is_valid(raise_exception=True)

        # Without rotation only a new access token comes back.
        tokens = {"refresh": refresh, **serializer.validated_data}
        res = Response({"detail": "refreshed"}, status=status.HTTP_200_OK)
        _set_auth_cookies(res, tokens)
        return res


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(request=None, responses={200: DetailResponseSerializer}, tags=["IAM"])
    def post(self, request):
        res = Response({"detail": "logged out"}, status=status.HTTP_200_OK)
        _clear_auth_cookies(res)
        return res

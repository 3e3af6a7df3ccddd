# tr_core/iam/openapi.py
from __future__ import annotations

from django.conf import settings
from drf_spectacular.extensions import OpenApiAuthenticationExtension


class CookieOrHeaderJWTAuthenticationScheme(OpenApiAuthenticationExtension):
    """
    Documents both ways CookieOrHeaderJWTAuthentication accepts an access
    token. Either scheme satisfies an operation.
    """
    target_class = "tr_core.iam.auth.CookieOrHeaderJWTAuthentication"
    name = ["BearerJWT", "AccessCookie"]

    def get_security_requirement(self, auto_schema):
        return [{name: []} for name in self.name]

    def get_security_definition(self, auto_schema):
        cookie = settings.SIMPLE_JWT.get("AUTH_COOKIE", "tr_access")
        return [
            {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
                "description": "Access token from POST /auth/login/. Role and tenant come from the profile, not the token.",
            },
            {
                "type": "apiKey",
                "in": "cookie",
                "name": cookie,
                "description": f"HttpOnly `{cookie}` cookie set by login and refresh.",
            },
        ]

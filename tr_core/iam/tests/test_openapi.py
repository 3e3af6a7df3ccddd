# tr_core/iam/tests/test_openapi.py
from tr_core.iam.auth import CookieOrHeaderJWTAuthentication
from tr_core.iam.openapi import CookieOrHeaderJWTAuthenticationScheme


def test_scheme_documents_header_and_cookie(settings):
    settings.SIMPLE_JWT = {**settings.SIMPLE_JWT, "AUTH_COOKIE": "tr_access_test"}
    ext = CookieOrHeaderJWTAuthenticationScheme(CookieOrHeaderJWTAuthentication)

    bearer, cookie = ext.get_security_definition(auto_schema=None)
    assert bearer["scheme"] == "bearer"
    assert cookie == {
        "type": "apiKey",
        "in": "cookie",
        "name": "tr_access_test",
        "description": "HttpOnly `tr_access_test` cookie set by login and refresh.",
    }
    assert ext.get_security_requirement(auto_schema=None) == [{"BearerJWT": []}, {"AccessCookie": []}]


def test_scheme_matches_authentication_class():
    assert CookieOrHeaderJWTAuthenticationScheme._matches(CookieOrHeaderJWTAuthentication)

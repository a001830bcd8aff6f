"""Credential cookie helpers."""

from typing import Optional

from starlette.responses import Response

from config.settings import AuthSettings, get_auth_settings


def clear_auth_cookies(response: Response, settings: Optional[AuthSettings] = None) -> None:
    """Expire the access and refresh token cookies on a response."""
    settings = settings or get_auth_settings()
    for name in (settings.access_cookie_name, settings.refresh_cookie_name):
        response.delete_cookie(
            key=name,
            path=settings.cookie_path,
            domain=settings.cookie_domain,
            secure=settings.cookie_secure,
            httponly=True,
            samesite=settings.cookie_samesite,
        )

from datetime import timedelta

from fastapi import Response

from app.constants.constants import REFRESH_COOKIE_NAME, REFRESH_COOKIE_PATH
from app.core.config import settings


def set_refresh_cookie(response: Response, token: str, expires: timedelta):
    """Set the refresh token cookie. It is only ever sent back to the auth routes."""
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.IS_PRODUCTION,
        samesite="strict" if settings.IS_PRODUCTION else "lax",
        path=REFRESH_COOKIE_PATH,
        max_age=int(expires.total_seconds())
    )


def clear_refresh_cookie(response: Response):
    """Clear the refresh token cookie."""
    response.delete_cookie(
        key=REFRESH_COOKIE_NAME,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=settings.IS_PRODUCTION,
        samesite="strict" if settings.IS_PRODUCTION else "lax",
    )

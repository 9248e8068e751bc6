"""Authentication endpoints."""

from fastapi import APIRouter, Request, Response

from download_portal.api.deps import (
    AppSettings,
    AuthServiceDep,
    CurrentIdentity,
    SessionToken,
    get_client_ip,
)
from download_portal.core.config import Settings
from download_portal.core.rate_limit import RateLimits, limiter
from download_portal.schemas.auth import LoginRequest, UserInfo
from download_portal.schemas.common import MessageResponse

router = APIRouter()


def set_session_cookie(response: Response, session_token: str, settings: Settings) -> None:
    """Set the httpOnly session cookie.

    Without SESSION_COOKIE_MAX_AGE_SECONDS it is a browser-session cookie.
    """
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session_token,
        httponly=True,  # Not readable from page scripts
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
        max_age=settings.SESSION_COOKIE_MAX_AGE_SECONDS,
        path="/",
        domain=settings.COOKIE_DOMAIN,
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        domain=settings.COOKIE_DOMAIN,
    )


@router.post("/login", response_model=MessageResponse)
@limiter.limit(RateLimits.AUTH_LOGIN)
async def login(
    request: Request,
    response: Response,
    login_data: LoginRequest,
    auth_service: AuthServiceDep,
    settings: AppSettings,
):
    """Verify credentials and start a cookie session.

    Unknown user and wrong password both answer 401 with the same body.
    """
    _, session_token = await auth_service.login(
        username=login_data.username,
        password=login_data.password,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

    set_session_cookie(response, session_token, settings)
    return MessageResponse(message="Login successful")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    auth_service: AuthServiceDep,
    session_token: SessionToken,
    settings: AppSettings,
):
    """End the current session. Always succeeds and always clears the cookie."""
    await auth_service.logout(session_token, ip_address=get_client_ip(request))
    clear_session_cookie(response, settings)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserInfo)
async def get_me(identity: CurrentIdentity):
    """Return the authenticated caller."""
    return UserInfo(id=identity.id, username=identity.username)

"""API dependencies for dependency injection."""

import logging
from pathlib import Path
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from download_portal.core.config import Settings, get_settings
from download_portal.core.errors import NotAuthenticatedError
from download_portal.db.session import get_db
from download_portal.schemas.auth import Identity
from download_portal.services.auth import AuthService
from download_portal.services.downloads import DownloadService
from download_portal.services.file_server import SecureFileServer
from download_portal.services.mail import MailService

# Security audit logger - separate from general logging for SIEM integration
auth_logger = logging.getLogger("security.auth")

DBSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def get_session_token(request: Request, settings: AppSettings) -> str | None:
    """Read the raw session cookie, if any."""
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


SessionToken = Annotated[str | None, Depends(get_session_token)]


def get_auth_service(db: DBSession, settings: AppSettings) -> AuthService:
    return AuthService(db, settings)


def get_download_service(db: DBSession) -> DownloadService:
    return DownloadService(db)


def get_download_root(settings: AppSettings) -> Path:
    """The directory every download path resolves against."""
    return settings.DOWNLOADS_DIR


def get_file_server(root: Annotated[Path, Depends(get_download_root)]) -> SecureFileServer:
    return SecureFileServer(root)


def get_mail_service(settings: AppSettings) -> MailService:
    return MailService(settings)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
DownloadServiceDep = Annotated[DownloadService, Depends(get_download_service)]
FileServer = Annotated[SecureFileServer, Depends(get_file_server)]
MailServiceDep = Annotated[MailService, Depends(get_mail_service)]


async def get_current_identity(
    request: Request,
    auth_service: AuthServiceDep,
    session_token: SessionToken,
) -> Identity:
    """Require a valid session.

    Raises:
        NotAuthenticatedError: missing, forged or revoked session cookie
    """
    try:
        return await auth_service.whoami(session_token)
    except NotAuthenticatedError:
        if session_token:
            auth_logger.warning(
                "Rejected session cookie for %s %s from %s",
                request.method,
                request.url.path,
                get_client_ip(request),
            )
        raise


async def get_optional_identity(
    auth_service: AuthServiceDep,
    session_token: SessionToken,
) -> Identity | None:
    """Identity of the caller, or None for anonymous visitors.

    An invalid cookie is treated the same as no cookie.
    """
    if not session_token:
        return None
    try:
        return await auth_service.whoami(session_token)
    except NotAuthenticatedError:
        return None


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
OptionalIdentity = Annotated[Identity | None, Depends(get_optional_identity)]

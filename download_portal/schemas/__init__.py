"""Pydantic schemas for API request/response validation."""

from download_portal.schemas.auth import Identity, LoginRequest, UserInfo
from download_portal.schemas.common import BaseSchema, HealthResponse, MessageResponse
from download_portal.schemas.contact import EmailRequest, EmailResponse
from download_portal.schemas.files import (
    DownloadFileResponse,
    DownloadTokenResponse,
    GenerateTokenRequest,
)

__all__ = [
    # Common
    "BaseSchema",
    "HealthResponse",
    "MessageResponse",
    # Auth
    "Identity",
    "LoginRequest",
    "UserInfo",
    # Files
    "DownloadFileResponse",
    "DownloadTokenResponse",
    "GenerateTokenRequest",
    # Contact
    "EmailRequest",
    "EmailResponse",
]

"""Database models for the Download Portal."""

from download_portal.models.download import DownloadFile, DownloadToken
from download_portal.models.user import User, UserSession

__all__ = [
    # Catalog
    "DownloadFile",
    "DownloadToken",
    # Credentials and sessions
    "User",
    "UserSession",
]

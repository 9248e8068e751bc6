"""Download catalog and single-use download token models.

Security Properties:
- Single use: ``used`` flips false -> true exactly once, through one
  conditional UPDATE (see DownloadService.redeem_token)
- Bearer capability: whoever holds the token string may redeem it; the
  issuer is recorded for the audit trail only
- No time-based expiry
- Tokens are never deleted
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from download_portal.db.session import Base
from download_portal.models.base import CreatedAtMixin, UUIDMixin

if TYPE_CHECKING:
    from download_portal.models.user import User


class DownloadFile(Base, UUIDMixin, CreatedAtMixin):
    """Catalog entry for a file under the download root."""

    __tablename__ = "download_files"

    # Relative to DOWNLOADS_DIR; set administratively, never taken from callers
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    is_protected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("ix_download_files_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<DownloadFile {self.file_path} protected={self.is_protected}>"


class DownloadToken(Base, UUIDMixin, CreatedAtMixin):
    """Single-use grant to download one protected catalog file."""

    __tablename__ = "download_tokens"

    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    file_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("download_files.id"), nullable=False, index=True
    )
    # Issuer, not necessarily the redeemer
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )

    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    file: Mapped[DownloadFile] = relationship()
    issued_by: Mapped["User"] = relationship()

    def __repr__(self) -> str:
        return f"<DownloadToken file={self.file_id} used={self.used}>"


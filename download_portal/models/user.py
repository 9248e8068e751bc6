"""User and session models."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from download_portal.db.session import Base
from download_portal.models.base import CreatedAtMixin, UUIDMixin


class User(Base, UUIDMixin, CreatedAtMixin):
    """Credential store row: a username and its salted password hash."""

    __tablename__ = "users"

    # Case-sensitive, globally unique
    username: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    sessions: Mapped[list["UserSession"]] = relationship(back_populates="user")

    def __repr__(self) -> str:
        return f"<User {self.username}>"


class UserSession(Base, UUIDMixin, CreatedAtMixin):
    """Server-side record behind a session cookie.

    The cookie carries the session id in clear, inside a signed token; only
    its SHA-256 digest is stored. Sessions do not expire server-side; they
    end on logout (revoked_at set) or when the browser discards the cookie.
    """

    __tablename__ = "user_sessions"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    session_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(45))  # IPv6 length
    user_agent: Mapped[str | None] = mapped_column(String(500))
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    user: Mapped[User] = relationship(back_populates="sessions")

    @property
    def is_active(self) -> bool:
        return self.revoked_at is None

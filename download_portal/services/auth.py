"""Authentication service."""

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from download_portal.core.config import Settings
from download_portal.core.errors import (
    DuplicateUsernameError,
    InvalidCredentialsError,
    NotAuthenticatedError,
)
from download_portal.core.metrics import track_auth_attempt
from download_portal.core.security import (
    burn_password_check,
    create_session_token,
    decode_session_token,
    generate_session_id,
    get_password_hash,
    hash_session_id,
    verify_password,
)
from download_portal.core.security_events import security_events
from download_portal.models.base import utc_now
from download_portal.models.user import User, UserSession
from download_portal.schemas.auth import Identity

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations."""

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def login(
        self,
        username: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> tuple[User, str]:
        """
        Verify credentials and open a new session.

        Returns:
            Tuple of (user, signed session token for the cookie)

        Raises:
            InvalidCredentialsError: unknown user or wrong password, same message
            InternalFormatError: the stored hash is corrupt
        """
        result = await self.db.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()

        if user is None:
            burn_password_check(password)
            raise self._login_failed(username, ip_address, user_agent, "unknown_user")

        if not verify_password(password, user.password_hash):
            raise self._login_failed(username, ip_address, user_agent, "invalid_password")

        session_id = generate_session_id()
        self.db.add(
            UserSession(
                user_id=user.id,
                session_hash=hash_session_id(session_id),
                ip_address=ip_address,
                user_agent=user_agent[:500] if user_agent else None,
            )
        )
        await self.db.commit()

        token = create_session_token(
            user_id=user.id,
            username=user.username,
            session_id=session_id,
            secret_key=self.settings.SECRET_KEY,
            algorithm=self.settings.ALGORITHM,
        )

        track_auth_attempt("success")
        security_events.log_login_success(
            user_id=user.id, ip_address=ip_address, user_agent=user_agent
        )
        return user, token

    def _login_failed(
        self,
        username: str,
        ip_address: str | None,
        user_agent: str | None,
        reason: str,
    ) -> InvalidCredentialsError:
        track_auth_attempt("failure")
        security_events.log_login_failure(
            username=username, ip_address=ip_address, user_agent=user_agent, reason=reason
        )
        return InvalidCredentialsError()

    async def logout(self, session_token: str | None, ip_address: str | None = None) -> bool:
        """Revoke the session behind a cookie.

        Never fails for a missing or bad cookie; returns whether a live
        session was actually revoked.
        """
        if not session_token:
            return False

        payload = decode_session_token(
            session_token, self.settings.SECRET_KEY, self.settings.ALGORITHM
        )
        if payload is None:
            return False

        result = await self.db.execute(
            update(UserSession)
            .where(
                UserSession.session_hash == hash_session_id(payload["sid"]),
                UserSession.revoked_at.is_(None),
            )
            .values(revoked_at=utc_now())
        )
        await self.db.commit()

        if result.rowcount:
            security_events.log_logout(user_id=payload["sub"], ip_address=ip_address)
            return True
        return False

    async def whoami(self, session_token: str | None) -> Identity:
        """Resolve a session cookie to the caller's identity.

        Raises:
            NotAuthenticatedError: no cookie, bad signature, wrong token
                type, or the session is unknown or revoked
        """
        if not session_token:
            raise NotAuthenticatedError()

        payload = decode_session_token(
            session_token, self.settings.SECRET_KEY, self.settings.ALGORITHM
        )
        if payload is None:
            raise NotAuthenticatedError("Invalid session")

        result = await self.db.execute(
            select(UserSession)
            .options(selectinload(UserSession.user))
            .where(UserSession.session_hash == hash_session_id(payload["sid"]))
        )
        session = result.scalar_one_or_none()

        if session is None or session.user_id != payload["sub"]:
            security_events.log_session_invalid("unknown_session", user_id=payload["sub"])
            raise NotAuthenticatedError("Invalid session")

        if not session.is_active:
            security_events.log_session_invalid("revoked_session", user_id=session.user_id)
            raise NotAuthenticatedError("Session has ended")

        return Identity(
            id=session.user.id,
            username=session.user.username,
            session_id=payload["sid"],
        )

    async def create_user(self, username: str, password: str) -> str:
        """Create a credential record and return the new user's id.

        Raises:
            DuplicateUsernameError: the username is taken
        """
        user = User(username=username, password_hash=get_password_hash(password))
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise DuplicateUsernameError(username) from exc

        security_events.log_user_created(user_id=user.id, username=username)
        logger.info("Created user %s", username)
        return user.id

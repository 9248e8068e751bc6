"""Download access control: catalog visibility, token issuance, redemption."""

import logging
from dataclasses import dataclass
from urllib.parse import quote

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from download_portal.core.errors import (
    DownloadFileNotFoundError,
    NotAuthenticatedError,
    TokenAlreadyUsedError,
    TokenNotFoundError,
)
from download_portal.core.metrics import track_token_created, track_token_redemption
from download_portal.core.security import generate_download_token
from download_portal.core.security_events import security_events
from download_portal.models.base import utc_now
from download_portal.models.download import DownloadFile, DownloadToken
from download_portal.schemas.auth import Identity

logger = logging.getLogger(__name__)

PUBLIC_DOWNLOAD_PREFIX = "/downloads/public/"
TOKEN_DOWNLOAD_PREFIX = "/downloads/token/"


@dataclass(frozen=True)
class IssuedDownload:
    """URL a client should fetch; ``token`` is None for unprotected files."""

    token: str | None
    download_url: str


class DownloadService:
    """Service for catalog and download token operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_files(self, identity: Identity | None) -> list[DownloadFile]:
        """List catalog entries visible to the caller.

        Anonymous callers see unprotected files only. Ordered by insertion.
        """
        query = select(DownloadFile)
        if identity is None:
            query = query.where(DownloadFile.is_protected == False)  # noqa: E712
        query = query.order_by(DownloadFile.created_at, DownloadFile.id)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_file(self, file_id: str) -> DownloadFile:
        result = await self.db.execute(select(DownloadFile).where(DownloadFile.id == file_id))
        file = result.scalar_one_or_none()
        if file is None:
            raise DownloadFileNotFoundError()
        return file

    async def generate_token(self, identity: Identity | None, file_id: str) -> IssuedDownload:
        """Issue a download URL for one catalog file.

        Unprotected files get their public URL and no token row. Protected
        files get a fresh single-use token on every call.

        Raises:
            NotAuthenticatedError: no identity
            DownloadFileNotFoundError: unknown file id
        """
        if identity is None:
            raise NotAuthenticatedError()

        file = await self.get_file(file_id)

        if not file.is_protected:
            return IssuedDownload(
                token=None,
                download_url=f"{PUBLIC_DOWNLOAD_PREFIX}{quote(file.file_path)}",
            )

        download_token = DownloadToken(
            token=generate_download_token(),
            file_id=file.id,
            user_id=identity.id,
        )
        self.db.add(download_token)
        await self.db.commit()

        track_token_created()
        security_events.log_download_token_created(
            user_id=identity.id, token_id=download_token.id, file_id=file.id
        )

        return IssuedDownload(
            token=download_token.token,
            download_url=f"{TOKEN_DOWNLOAD_PREFIX}{download_token.token}",
        )

    async def redeem_token(self, token: str) -> str:
        """Consume a token and return the catalog path of its file.

        The check and the mark are one conditional UPDATE, committed before
        returning: of any number of concurrent callers exactly one sees
        rowcount == 1. The mark stays even if the download later fails.

        Raises:
            TokenNotFoundError: no such token
            TokenAlreadyUsedError: the token was redeemed before
        """
        result = await self.db.execute(
            update(DownloadToken)
            .where(
                DownloadToken.token == token,
                DownloadToken.used == False,  # noqa: E712
            )
            .values(used=True, used_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        if result.rowcount == 1:
            row = (
                await self.db.execute(
                    select(DownloadToken.id, DownloadToken.user_id, DownloadFile.id, DownloadFile.file_path)
                    .join(DownloadFile, DownloadToken.file_id == DownloadFile.id)
                    .where(DownloadToken.token == token)
                )
            ).one()
            token_id, issuer_id, file_id, file_path = row

            track_token_redemption("redeemed")
            security_events.log_download_token_redeemed(
                token_id=token_id, file_id=file_id, issued_by_user_id=issuer_id
            )
            return file_path

        existing = (
            await self.db.execute(
                select(DownloadToken.id, DownloadToken.file_id).where(DownloadToken.token == token)
            )
        ).one_or_none()

        if existing is None:
            track_token_redemption("unknown")
            security_events.log_download_token_unknown()
            raise TokenNotFoundError()

        track_token_redemption("already_used")
        security_events.log_download_token_replayed(token_id=existing.id, file_id=existing.file_id)
        raise TokenAlreadyUsedError()

    async def find_public_file(self, file_path: str) -> DownloadFile:
        """Look up an unprotected catalog entry by its exact relative path.

        Protected and uncatalogued paths are both reported as not found.
        """
        result = await self.db.execute(
            select(DownloadFile)
            .where(
                DownloadFile.file_path == file_path,
                DownloadFile.is_protected == False,  # noqa: E712
            )
            .order_by(DownloadFile.created_at, DownloadFile.id)
            .limit(1)
        )
        file = result.scalar_one_or_none()
        if file is None:
            raise DownloadFileNotFoundError()
        return file

    async def add_file(
        self,
        file_path: str,
        display_name: str,
        description: str | None = None,
        is_protected: bool = False,
    ) -> DownloadFile:
        """Register a file under the download root in the catalog."""
        file = DownloadFile(
            file_path=file_path,
            display_name=display_name,
            description=description,
            is_protected=is_protected,
        )
        self.db.add(file)
        await self.db.commit()
        logger.info("Added catalog entry %s (protected=%s)", file_path, is_protected)
        return file

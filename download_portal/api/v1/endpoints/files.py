"""File catalog endpoints."""

from fastapi import APIRouter

from download_portal.api.deps import DownloadServiceDep, OptionalIdentity
from download_portal.schemas.files import (
    DownloadFileResponse,
    DownloadTokenResponse,
    GenerateTokenRequest,
)

router = APIRouter()


@router.get("", response_model=list[DownloadFileResponse])
async def list_files(
    identity: OptionalIdentity,
    download_service: DownloadServiceDep,
):
    """List downloadable files.

    Anonymous visitors see public files; signed-in users see everything.
    """
    files = await download_service.list_files(identity)
    return [DownloadFileResponse.model_validate(f) for f in files]


@router.post("/token", response_model=DownloadTokenResponse)
async def generate_token(
    token_request: GenerateTokenRequest,
    identity: OptionalIdentity,
    download_service: DownloadServiceDep,
):
    """Get a download URL for a file.

    Protected files get a fresh single-use token URL on every call. Public
    files get their public URL and no token.
    """
    issued = await download_service.generate_token(identity, token_request.file_id)
    return DownloadTokenResponse(token=issued.token, download_url=issued.download_url)

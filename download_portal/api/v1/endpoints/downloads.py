"""File download endpoints.

Mounted at the application root so issued URLs do not depend on API_PREFIX.
"""

from fastapi import APIRouter

from download_portal.api.deps import DownloadServiceDep, FileServer

router = APIRouter()


@router.get("/token/{token}")
async def download_with_token(
    token: str,
    download_service: DownloadServiceDep,
    file_server: FileServer,
):
    """Redeem a single-use token and stream its file.

    The token is marked used before streaming starts; a failed transfer
    does not give it back.
    """
    file_path = await download_service.redeem_token(token)
    return file_server.serve(file_path)


@router.get("/public/{file_path:path}")
async def download_public(
    file_path: str,
    download_service: DownloadServiceDep,
    file_server: FileServer,
):
    """Stream an unprotected catalog file by its relative path."""
    safe_path = str(file_server.check_path(file_path))
    await download_service.find_public_file(safe_path)
    return file_server.serve(safe_path)

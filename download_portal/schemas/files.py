"""Download catalog and token schemas."""

from pydantic import BaseModel, Field

from download_portal.schemas.common import BaseSchema


class DownloadFileResponse(BaseSchema):
    """Catalog entry as exposed to clients."""

    id: str
    file_path: str
    display_name: str
    description: str | None = None
    is_protected: bool


class GenerateTokenRequest(BaseModel):
    """Request a download URL for one catalog file."""

    file_id: str = Field(..., min_length=1)


class DownloadTokenResponse(BaseModel):
    """Download URL for a file.

    ``token`` is None for unprotected files, whose URL is the public path.
    """

    token: str | None = None
    download_url: str

"""Authentication schemas."""

from dataclasses import dataclass

from pydantic import BaseModel, Field

from download_portal.schemas.common import BaseSchema


class LoginRequest(BaseModel):
    """Login request schema."""

    username: str = Field(..., min_length=1, max_length=150)
    password: str = Field(..., min_length=1, max_length=1024)


class UserInfo(BaseSchema):
    """The authenticated caller, as returned by /auth/me."""

    id: str
    username: str


@dataclass(frozen=True)
class Identity:
    """Caller identity recovered from a valid session."""

    id: str
    username: str
    session_id: str

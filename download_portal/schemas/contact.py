"""Contact form schemas."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class EmailRequest(BaseModel):
    """Visitor message forwarded to the site owner."""

    model_config = ConfigDict(populate_by_name=True)

    sender: EmailStr
    first_name: str = Field(..., alias="firstName", min_length=1, max_length=100)
    last_name: str = Field(..., alias="lastName", min_length=1, max_length=100)
    message: str = Field(..., min_length=1, max_length=10_000)


class EmailResponse(BaseModel):
    data: bool

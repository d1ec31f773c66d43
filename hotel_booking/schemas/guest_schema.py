"""Guest identity resolved from an access token."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GuestIdentity(BaseModel):
    """Result of token verification, used to pre-populate a draft."""
    model_config = ConfigDict(populate_by_name=True)

    guest_name: str = Field(default="", alias="name")
    guest_phone: str = Field(default="", alias="phone")
    existing_booking_id: Optional[int] = Field(default=None, alias="id")

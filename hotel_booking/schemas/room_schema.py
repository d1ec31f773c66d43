"""Room-type catalog models."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RoomPhoto(BaseModel):
    """Photo reference attached to a room type."""
    id: Optional[int] = None
    photo_url: str
    is_primary: bool = False


class RoomType(BaseModel):
    """Catalog entry returned by the room-type provider."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    type: str
    price_per_day: Decimal = Field(alias="price")
    photos: list[RoomPhoto] = Field(default_factory=list)

    @property
    def primary_photo(self) -> Optional[RoomPhoto]:
        for photo in self.photos:
            if photo.is_primary:
                return photo
        return self.photos[0] if self.photos else None

"""
Pydantic schemas for media assets (images, floor plans, unit plans).
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from app.core.exceptions import ValidationFailure
from app.schemas.coercion import blank_to_none


class MediaMetadataIn(BaseModel):
    """Per-asset metadata; only the fields a client actually sends are applied."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    is_featured: Optional[bool] = None
    sort_order: Optional[int] = None

    @field_validator("is_featured", "sort_order", mode="before")
    @classmethod
    def empty_as_none(cls, v):
        return blank_to_none(v)

    def supplied(self) -> dict:
        return {name: getattr(self, name) for name in self.model_fields_set}


class MediaItemIn(MediaMetadataIn):
    """A media asset as submitted: the URL of an already-uploaded file."""
    url: str = Field(..., min_length=1)
    temp_id: Optional[str] = None

    @field_validator("temp_id", mode="before")
    @classmethod
    def temp_id_as_str(cls, v):
        v = blank_to_none(v)
        return str(v) if v is not None else None

    @classmethod
    def from_payload(cls, payload: Any) -> "MediaItemIn":
        if isinstance(payload, cls):
            return payload
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            errors = [
                {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
                for err in e.errors()
            ]
            raise ValidationFailure("Invalid media payload", errors=errors)


class MediaChangeSet(BaseModel):
    """Independent update signals for one media kind."""
    replace: bool = False
    existing_ids: Optional[List[int]] = None
    delete_ids: List[int] = []
    new_assets: List[MediaItemIn] = []
    new_metadata: Dict[str, MediaMetadataIn] = {}
    existing_metadata: Dict[int, MediaMetadataIn] = {}

    @property
    def is_empty(self) -> bool:
        return not (
            self.replace
            or self.delete_ids
            or self.new_assets
            or self.existing_metadata
        )

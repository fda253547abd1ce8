"""Pydantic schemas for media asset records."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AssetTag(str, Enum):
    """Labels callers attach to assets for filtering.

    The store persists tags but never interprets them.
    """

    FILM = "film"
    SCREENSAVER = "screensaver"
    PRIZE = "prize"


class AssetRecord(BaseModel):
    """One entry of the image library index.

    The JSON form uses the camelCase keys of the on-disk index document
    (``fileName``, ``originalName``, ``createdAt``); Python code uses the
    snake_case attribute names. Records are immutable once created.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "id": "img_1760684400000_k3x9qa.png",
                    "fileName": "img_1760684400000_k3x9qa.png",
                    "originalName": "grand-prize.png",
                    "createdAt": 1760684400000,
                    "tags": ["prize"]
                }
            ]
        }
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Globally unique asset ID. Currently identical to file_name."
    )

    file_name: str = Field(
        ...,
        alias="fileName",
        min_length=1,
        description="Name of the backing file inside the library directory"
    )

    original_name: Optional[str] = Field(
        None,
        alias="originalName",
        description="User-supplied name at import time (display only)"
    )

    created_at: int = Field(
        ...,
        alias="createdAt",
        ge=0,
        description="Creation time in milliseconds since the epoch"
    )

    tags: Optional[List[AssetTag]] = Field(
        None,
        description="Caller-defined labels"
    )

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: Optional[List[AssetTag]]) -> Optional[List[AssetTag]]:
        """Drop repeated tags, keeping first-seen order; an empty list becomes None."""
        if not v:
            return None
        return list(dict.fromkeys(v))

    def to_index_entry(self) -> dict:
        """Serialize to the camelCase shape stored in the index document."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

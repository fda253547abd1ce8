"""Image-related Pydantic schemas for API requests and responses."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gacha_media.codec import is_data_url

from .asset import AssetTag


class ImageImportRequest(BaseModel):
    """Request body for importing an image given as a data URL.

    This mirrors what a browser ``FileReader.readAsDataURL`` produces,
    so UI layers can forward their upload result unchanged.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "data_url": "data:image/png;base64,iVBORw0KGgo=",
                    "original_name": "grand-prize.png",
                    "tags": ["prize"]
                }
            ]
        }
    )

    data_url: str = Field(
        ...,
        description="Image encoded as data:<mime>;base64,<payload>"
    )

    original_name: Optional[str] = Field(
        None,
        max_length=255,
        description="Original file name, used for display and extension inference"
    )

    tags: Optional[List[AssetTag]] = Field(
        None,
        description="Labels to attach to the new asset"
    )

    @field_validator("data_url")
    @classmethod
    def validate_data_url(cls, v: str) -> str:
        """Reject values that are obviously not image data URLs."""
        if not is_data_url(v.strip()):
            raise ValueError("data_url must be a base64 image data URL")
        return v


class ImageDataResponse(BaseModel):
    """An asset's content re-encoded as a data URL."""

    id: str = Field(
        ...,
        description="Asset ID"
    )

    data_url: str = Field(
        ...,
        description="Image encoded as data:<mime>;base64,<payload>"
    )

"""
Pydantic schemas for the Video API.

Responses are built from Video rows with model_validate; the column
named "metadata" is exposed under that name again.
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field, field_validator

from streamvault.schemas.base import CamelModel


class VideoResponse(CamelModel):
    """A stored video as the dashboard sees it."""
    id: int
    custom_id: str
    title: str
    filename: str
    original_name: str
    mime_type: str
    size: int
    duration: Optional[int] = None
    folder_id: Optional[int] = None
    views: int = 0
    created_at: datetime
    # The ORM attribute is metadata_ (metadata is reserved by SQLAlchemy)
    metadata: Optional[dict] = Field(
        None,
        validation_alias=AliasChoices("metadata_", "metadata"),
        serialization_alias="metadata",
    )


class VideoUpdateRequest(CamelModel):
    """Body of PATCH /api/videos/{id}: rename and/or move a video."""
    title: Optional[str] = Field(None, max_length=500)
    folder_id: Optional[int] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("Title must not be null")
        v = v.strip()
        if not v:
            raise ValueError("Title must not be empty")
        return v

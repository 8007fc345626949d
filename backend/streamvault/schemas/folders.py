"""
Pydantic schemas for the Folder API.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from streamvault.schemas.base import CamelModel


class FolderCreateRequest(CamelModel):
    """Body of POST /api/folders."""
    name: str = Field(..., max_length=255)
    parent_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Folder name must not be empty")
        return v


class FolderUpdateRequest(CamelModel):
    """Body of PATCH /api/folders/{id}. Only fields that are sent are changed."""
    name: Optional[str] = Field(None, max_length=255)
    parent_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("Folder name must not be null")
        v = v.strip()
        if not v:
            raise ValueError("Folder name must not be empty")
        return v


class FolderResponse(CamelModel):
    id: int
    name: str
    parent_id: Optional[int] = None
    created_at: datetime

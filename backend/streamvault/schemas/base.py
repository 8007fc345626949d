"""
Shared base for API schemas.

The dashboard speaks camelCase JSON (customId, parentId, createdAt...).
CamelModel serializes that way and accepts either spelling on input.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(BaseModel):
    """Plain {"message": ...} acknowledgement."""
    message: str

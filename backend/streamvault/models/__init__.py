from streamvault.models.models import (
    Base,
    Folder,
    Video,
)

__all__ = [
    "Base",
    "Folder",
    "Video",
]

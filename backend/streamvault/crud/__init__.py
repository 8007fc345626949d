from .folders import FolderCRUD
from .videos import LibraryTotals, VideoCRUD

__all__ = [
    'FolderCRUD',
    'LibraryTotals',
    'VideoCRUD',
]

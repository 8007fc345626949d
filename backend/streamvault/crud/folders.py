from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from streamvault.exceptions import FolderCycleError, FolderNotFoundError
from streamvault.models import Folder, Video


class FolderCRUD:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, name: str, parent_id: Optional[int] = None) -> Folder:
        """Create a folder. The parent, if given, must exist."""
        if parent_id is not None:
            await self._require(parent_id)
        folder = Folder(name=name, parent_id=parent_id)
        self.db.add(folder)
        await self.db.commit()
        await self.db.refresh(folder)
        return folder

    async def get(self, folder_id: int) -> Optional[Folder]:
        result = await self.db.execute(select(Folder).where(Folder.id == folder_id))
        return result.scalar_one_or_none()

    async def list_by_parent(self, parent_id: Optional[int]) -> list[Folder]:
        """Children of a folder, or root-level folders when parent_id is None."""
        if parent_id is None:
            condition = Folder.parent_id.is_(None)
        else:
            condition = Folder.parent_id == parent_id
        result = await self.db.execute(
            select(Folder).where(condition).order_by(Folder.name, Folder.id)
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[Folder]:
        result = await self.db.execute(select(Folder).order_by(Folder.name, Folder.id))
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.db.execute(select(func.count(Folder.id)))
        return result.scalar() or 0

    async def update(self, folder_id: int, **changes) -> Optional[Folder]:
        """Apply a partial update. Returns None if the folder does not exist.

        Moving a folder validates that the new parent exists and is not the
        folder itself or one of its descendants.
        """
        folder = await self.get(folder_id)
        if folder is None:
            return None

        if changes.get("parent_id") is not None:
            new_parent = changes["parent_id"]
            await self._require(new_parent)
            if new_parent == folder_id or await self.is_descendant(new_parent, folder_id):
                raise FolderCycleError(folder_id, new_parent)

        for field, value in changes.items():
            setattr(folder, field, value)
        await self.db.commit()
        await self.db.refresh(folder)
        return folder

    async def delete(self, folder_id: int) -> bool:
        """Delete a folder, moving its children and videos up one level.

        Returns True if a row was actually removed.
        """
        folder = await self.get(folder_id)
        if folder is None:
            return False

        await self.db.execute(
            update(Folder)
            .where(Folder.parent_id == folder_id)
            .values(parent_id=folder.parent_id)
        )
        await self.db.execute(
            update(Video)
            .where(Video.folder_id == folder_id)
            .values(folder_id=folder.parent_id)
        )
        await self.db.delete(folder)
        await self.db.commit()
        return True

    async def is_descendant(self, candidate_id: int, ancestor_id: int) -> bool:
        """True if candidate_id sits somewhere below ancestor_id."""
        seen: set[int] = set()
        current = candidate_id
        while current is not None and current not in seen:
            seen.add(current)
            result = await self.db.execute(
                select(Folder.parent_id).where(Folder.id == current)
            )
            current = result.scalar_one_or_none()
            if current == ancestor_id:
                return True
        return False

    async def exists(self, folder_id: int) -> bool:
        result = await self.db.execute(select(Folder.id).where(Folder.id == folder_id))
        return result.scalar_one_or_none() is not None

    async def _require(self, folder_id: int) -> None:
        if not await self.exists(folder_id):
            raise FolderNotFoundError(folder_id)

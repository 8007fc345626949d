from dataclasses import dataclass
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from streamvault.exceptions import DuplicateCustomIdError, FolderNotFoundError
from streamvault.models import Folder, Video


@dataclass
class LibraryTotals:
    """Aggregate numbers for the stats endpoint."""
    video_count: int
    total_size: int
    total_duration: int

    @property
    def avg_duration(self) -> float:
        # Videos without a duration count as zero
        if not self.video_count:
            return 0.0
        return self.total_duration / self.video_count


class VideoCRUD:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        custom_id: str,
        title: str,
        filename: str,
        original_name: str,
        mime_type: str,
        size: int,
        folder_id: Optional[int] = None,
        duration: Optional[int] = None,
        metadata: Optional[dict] = None,
    ) -> Video:
        """Insert a video row.

        The unique constraint on custom_id is the authoritative guard; a
        concurrent insert that slipped past get_by_custom_id() surfaces here
        as DuplicateCustomIdError.
        """
        if folder_id is not None and not await self._folder_exists(folder_id):
            raise FolderNotFoundError(folder_id)

        video = Video(
            custom_id=custom_id,
            title=title,
            filename=filename,
            original_name=original_name,
            mime_type=mime_type,
            size=size,
            duration=duration,
            folder_id=folder_id,
            metadata_=metadata,
        )
        self.db.add(video)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if await self._custom_id_taken(custom_id):
                raise DuplicateCustomIdError(custom_id) from e
            raise
        await self.db.refresh(video)
        return video

    async def get(self, video_id: int) -> Optional[Video]:
        result = await self.db.execute(select(Video).where(Video.id == video_id))
        return result.scalar_one_or_none()

    async def get_by_custom_id(self, custom_id: str) -> Optional[Video]:
        result = await self.db.execute(select(Video).where(Video.custom_id == custom_id))
        return result.scalar_one_or_none()

    async def list_by_folder(self, folder_id: Optional[int]) -> list[Video]:
        """Videos in a folder, or root-level videos when folder_id is None. Newest first."""
        if folder_id is None:
            condition = Video.folder_id.is_(None)
        else:
            condition = Video.folder_id == folder_id
        result = await self.db.execute(
            select(Video).where(condition).order_by(Video.created_at.desc(), Video.id.desc())
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[Video]:
        result = await self.db.execute(
            select(Video).order_by(Video.created_at.desc(), Video.id.desc())
        )
        return list(result.scalars().all())

    async def update(self, video_id: int, **changes) -> Optional[Video]:
        """Apply a partial update. Returns None if the video does not exist."""
        video = await self.get(video_id)
        if video is None:
            return None

        if changes.get("folder_id") is not None and not await self._folder_exists(changes["folder_id"]):
            raise FolderNotFoundError(changes["folder_id"])

        for field, value in changes.items():
            setattr(video, field, value)
        await self.db.commit()
        await self.db.refresh(video)
        return video

    async def delete(self, video_id: int) -> bool:
        """Delete a video row. Returns True if a row was actually removed."""
        result = await self.db.execute(delete(Video).where(Video.id == video_id))
        await self.db.commit()
        return (result.rowcount or 0) > 0

    async def increment_views(self, video_id: int) -> None:
        """Atomic views = views + 1, done in SQL so concurrent streams don't lose counts."""
        await self.db.execute(
            update(Video)
            .where(Video.id == video_id)
            .values(views=func.coalesce(Video.views, 0) + 1)
        )
        await self.db.commit()

    async def totals(self) -> LibraryTotals:
        result = await self.db.execute(
            select(
                func.count(Video.id),
                func.coalesce(func.sum(Video.size), 0),
                func.coalesce(func.sum(Video.duration), 0),
            )
        )
        count, total_size, total_duration = result.one()
        return LibraryTotals(
            video_count=count or 0,
            total_size=int(total_size or 0),
            total_duration=int(total_duration or 0),
        )

    async def _custom_id_taken(self, custom_id: str) -> bool:
        result = await self.db.execute(select(Video.id).where(Video.custom_id == custom_id))
        return result.scalar_one_or_none() is not None

    async def _folder_exists(self, folder_id: int) -> bool:
        result = await self.db.execute(select(Folder.id).where(Folder.id == folder_id))
        return result.scalar_one_or_none() is not None

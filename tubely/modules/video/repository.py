"""Video repository for database operations."""

from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tubely.modules.video.models import Video
from tubely.modules.video.schemas import VideoRecord


class VideoStore(ABC):
    """Record store consumed by the upload pipeline."""

    @abstractmethod
    async def get_by_id(self, video_id: str) -> Optional[VideoRecord]:
        """Load a record, or None if it does not exist."""

    @abstractmethod
    async def set_thumbnail_url(self, video_id: str, url: str) -> VideoRecord:
        """Set only ``thumbnail_url`` and return the stored record."""

    @abstractmethod
    async def set_video_url(self, video_id: str, url: str) -> VideoRecord:
        """Set only ``video_url`` and return the stored record."""


class VideoRepository(VideoStore):
    """Repository for Video CRUD operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(
        self,
        user_id: str,
        title: str,
        description: Optional[str] = None,
    ) -> VideoRecord:
        """Create a new draft video owned by ``user_id``."""
        video = Video(user_id=user_id, title=title, description=description)
        self.session.add(video)
        await self.session.commit()
        await self.session.refresh(video)
        return VideoRecord.model_validate(video)

    async def _get(self, video_id: str) -> Optional[Video]:
        result = await self.session.execute(select(Video).where(Video.id == video_id))
        return result.scalar_one_or_none()

    async def get_by_id(self, video_id: str) -> Optional[VideoRecord]:
        """Get video by ID.

        Returns:
            VideoRecord | None: The record, or None if no such video exists
        """
        video = await self._get(video_id)
        if video is None:
            return None
        return VideoRecord.model_validate(video)

    async def list_by_user(
        self,
        user_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> list[VideoRecord]:
        """Get videos owned by a user, newest first."""
        result = await self.session.execute(
            select(Video)
            .where(Video.user_id == user_id)
            .order_by(Video.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return [VideoRecord.model_validate(v) for v in result.scalars().all()]

    async def set_thumbnail_url(self, video_id: str, url: str) -> VideoRecord:
        """Point ``thumbnail_url`` at a stored thumbnail.

        Raises:
            LookupError: If the video no longer exists
        """
        return await self._set_columns(video_id, thumbnail_url=url)

    async def set_video_url(self, video_id: str, url: str) -> VideoRecord:
        """Point ``video_url`` at a stored video.

        Raises:
            LookupError: If the video no longer exists
        """
        return await self._set_columns(video_id, video_url=url)

    async def _set_columns(self, video_id: str, **values: str) -> VideoRecord:
        # Single UPDATE so concurrent uploads to other columns are not overwritten
        result = await self.session.execute(
            update(Video)
            .where(Video.id == video_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.rollback()
            raise LookupError(f"Video {video_id} not found")
        await self.session.commit()

        video = await self._get(video_id)
        if video is None:
            raise LookupError(f"Video {video_id} not found")
        await self.session.refresh(video)
        return VideoRecord.model_validate(video)

    async def delete(self, video_id: str) -> bool:
        """Delete a video. Returns False if it did not exist."""
        video = await self._get(video_id)
        if video is None:
            return False
        await self.session.delete(video)
        await self.session.commit()
        return True

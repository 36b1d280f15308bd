"""Video API router.

Draft creation, listing, retrieval and deletion of the caller's videos.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tubely.core.database import get_db
from tubely.modules.auth.jwt import get_current_user_id
from tubely.modules.video.repository import VideoRepository
from tubely.modules.video.schemas import VideoCreate, VideoRecord

router = APIRouter(prefix="/videos", tags=["videos"])


@router.post("", response_model=VideoRecord, status_code=status.HTTP_201_CREATED)
async def create_video(
    request: VideoCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create a draft video owned by the caller."""
    repo = VideoRepository(db)
    return await repo.create(
        user_id=user_id,
        title=request.title,
        description=request.description,
    )


@router.get("", response_model=list[VideoRecord])
async def list_videos(
    limit: int = 100,
    offset: int = 0,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get all videos owned by the caller."""
    repo = VideoRepository(db)
    return await repo.list_by_user(user_id, limit=limit, offset=offset)


@router.get("/{video_id}", response_model=VideoRecord)
async def get_video(
    video_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get video by ID."""
    repo = VideoRepository(db)
    video = await repo.get_by_id(video_id)
    if video is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Video {video_id} not found")
    return video


@router.delete("/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_video(
    video_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete a video. Only its owner may delete it."""
    repo = VideoRepository(db)
    video = await repo.get_by_id(video_id)
    if video is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Video {video_id} not found")
    if video.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User cannot delete a video owned by another user",
        )
    await repo.delete(video_id)

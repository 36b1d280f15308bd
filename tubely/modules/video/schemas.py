"""Pydantic schemas for the video module."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

MAX_TITLE_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 5000


class VideoCreate(BaseModel):
    """Request schema for creating a draft video."""

    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)


class VideoRecord(BaseModel):
    """A video record as read from and written back to the store.

    Also the JSON response body of every video and upload endpoint.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

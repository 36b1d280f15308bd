"""Video record module."""

from tubely.modules.video.models import Video
from tubely.modules.video.repository import VideoRepository, VideoStore
from tubely.modules.video.schemas import VideoCreate, VideoRecord

__all__ = [
    "Video",
    "VideoRepository",
    "VideoStore",
    "VideoCreate",
    "VideoRecord",
]

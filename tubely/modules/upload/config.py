"""Explicit configuration handed to every upload pipeline component."""

from dataclasses import dataclass, field
from pathlib import Path

from tubely.core.config import Settings
from tubely.core.storage import StorageConfig


@dataclass(frozen=True)
class UploadConfig:
    """Configuration for one upload pipeline.

    Built once from ``Settings`` at the application edge; components never
    read process-wide settings themselves.
    """

    secret_key: str
    assets_root: Path
    assets_base_url: str
    storage: StorageConfig
    max_thumbnail_size: int = 10 << 20
    max_video_size: int = 1 << 30
    video_media_type: str = "video/mp4"
    ffprobe_path: str = "ffprobe"
    ffmpeg_path: str = "ffmpeg"
    probe_timeout: float = 30.0
    transcode_timeout: float = 600.0
    chunk_size: int = field(default=1 << 20)

    @classmethod
    def from_settings(cls, settings: Settings) -> "UploadConfig":
        return cls(
            secret_key=settings.SECRET_KEY,
            assets_root=Path(settings.ASSETS_ROOT),
            assets_base_url=settings.ASSETS_BASE_URL.rstrip("/"),
            storage=StorageConfig(
                backend=settings.STORAGE_BACKEND,
                bucket=settings.S3_BUCKET,
                region=settings.S3_REGION,
                access_key=settings.S3_ACCESS_KEY,
                secret_key=settings.S3_SECRET_KEY,
                endpoint_url=settings.S3_ENDPOINT_URL,
                local_path=settings.LOCAL_STORAGE_PATH,
                cdn_domain=settings.CDN_DOMAIN,
            ),
            max_thumbnail_size=settings.MAX_THUMBNAIL_SIZE,
            max_video_size=settings.MAX_VIDEO_SIZE,
            video_media_type=settings.VIDEO_MEDIA_TYPE,
            ffprobe_path=settings.FFPROBE_PATH,
            ffmpeg_path=settings.FFMPEG_PATH,
            probe_timeout=settings.PROBE_TIMEOUT_SECONDS,
            transcode_timeout=settings.TRANSCODE_TIMEOUT_SECONDS,
        )

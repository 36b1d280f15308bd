"""Upload API router.

Both endpoints authorize the caller before the multipart body is parsed.
"""

from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from tubely.core.config import settings
from tubely.core.database import get_db
from tubely.core.exceptions import BadRequest, ServiceError
from tubely.core.storage import StorageBackend, create_backend
from tubely.modules.upload.config import UploadConfig
from tubely.modules.upload.pipeline import FieldLoader, UploadPipeline
from tubely.modules.upload.process import AsyncProcessRunner, ProcessRunner
from tubely.modules.video.repository import VideoRepository
from tubely.modules.video.schemas import VideoRecord

router = APIRouter(tags=["uploads"])


@lru_cache
def get_upload_config() -> UploadConfig:
    return UploadConfig.from_settings(settings)


def get_process_runner() -> ProcessRunner:
    return AsyncProcessRunner()


@lru_cache
def get_storage_backend() -> StorageBackend:
    return create_backend(get_upload_config().storage)


async def get_upload_pipeline(
    db: AsyncSession = Depends(get_db),
    config: UploadConfig = Depends(get_upload_config),
    runner: ProcessRunner = Depends(get_process_runner),
    backend: StorageBackend = Depends(get_storage_backend),
) -> UploadPipeline:
    return UploadPipeline(config, VideoRepository(db), runner, backend)


def form_field(request: Request, name: str) -> FieldLoader:
    """Deferred lookup of the multipart part ``name``."""

    async def load() -> object:
        try:
            form = await request.form()
        except (MultiPartException, StarletteHTTPException) as e:
            raise BadRequest(f"Malformed multipart body: {getattr(e, 'detail', e)}")
        return form.get(name)

    return load


@router.post("/thumbnail_upload/{video_id}", response_model=VideoRecord)
async def upload_thumbnail(
    video_id: str,
    request: Request,
    pipeline: UploadPipeline = Depends(get_upload_pipeline),
):
    """Upload a thumbnail image for a video.

    Multipart field ``thumbnail``; any ``image/*`` type up to the configured
    thumbnail ceiling.
    """
    try:
        return await pipeline.upload_thumbnail(
            video_id, request.headers, form_field(request, "thumbnail")
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    finally:
        await request.close()


@router.post("/video_upload/{video_id}", response_model=VideoRecord)
async def upload_video(
    video_id: str,
    request: Request,
    pipeline: UploadPipeline = Depends(get_upload_pipeline),
):
    """Upload a video file.

    Multipart field ``video``; the configured video media type only. The file
    is classified by aspect ratio, remuxed for fast start and stored remotely
    under ``{aspect}/{name}.mp4``.
    """
    try:
        return await pipeline.upload_video(
            video_id, request.headers, form_field(request, "video")
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    finally:
        await request.close()

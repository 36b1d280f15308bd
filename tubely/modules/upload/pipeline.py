"""Upload pipeline orchestration.

Video uploads run strictly in sequence::

    authorize -> stage -> probe -> transcode -> store remotely -> update record

Every local file created along the way is registered for deletion as soon as
it exists, so success, any classified failure, an unexpected error and task
cancellation all leave the asset directory as they found it. The record is
updated exactly once, only after the media is completely stored, and only
the URL column for the uploaded artifact is written.

Thumbnail uploads are the single-step variant: authorize, stage straight
into the asset directory, update the record.
"""

import logging
import time
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Awaitable, Callable, Iterator, Mapping

from tubely.core.exceptions import NotFound, ServiceError
from tubely.core.logging import log_error, log_info, log_warning
from tubely.core.metrics import UPLOAD_STAGE_DURATION_SECONDS, UPLOADS_TOTAL
from tubely.core.storage import StorageBackend
from tubely.modules.upload.authorizer import UploadAuthorizer
from tubely.modules.upload.config import UploadConfig
from tubely.modules.upload.intake import exact_media_type, image_media_type, stage
from tubely.modules.upload.probe import MediaProbe
from tubely.modules.upload.process import ProcessRunner
from tubely.modules.upload.transcoder import FastStartTranscoder, faststart_output_path
from tubely.modules.upload.uploader import ObjectStoreUploader, build_storage_key
from tubely.modules.video.repository import VideoStore
from tubely.modules.video.schemas import VideoRecord

logger = logging.getLogger(__name__)

# Returns the multipart file part; only awaited once the caller is authorized
FieldLoader = Callable[[], Awaitable[object]]


@contextmanager
def _timed(stage_name: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        UPLOAD_STAGE_DURATION_SECONDS.labels(stage=stage_name).observe(
            time.perf_counter() - start
        )


class UploadPipeline:
    """Runs thumbnail and video uploads against explicit collaborators."""

    def __init__(
        self,
        config: UploadConfig,
        store: VideoStore,
        runner: ProcessRunner,
        backend: StorageBackend,
    ):
        self.config = config
        self.store = store
        self.authorizer = UploadAuthorizer(store, config.secret_key)
        self.probe = MediaProbe(runner, config.ffprobe_path, config.probe_timeout)
        self.transcoder = FastStartTranscoder(runner, config.ffmpeg_path, config.transcode_timeout)
        self.uploader = ObjectStoreUploader(backend)

    async def upload_thumbnail(
        self,
        video_id: str,
        headers: Mapping[str, str],
        load_field: FieldLoader,
    ) -> VideoRecord:
        """Store a thumbnail image and point the video's ``thumbnail_url`` at it."""
        try:
            updated = await self._upload_thumbnail(video_id, headers, load_field)
        except BaseException as e:
            self._record_failure("thumbnail", video_id, e)
            raise
        UPLOADS_TOTAL.labels(kind="thumbnail", outcome="success").inc()
        return updated

    async def upload_video(
        self,
        video_id: str,
        headers: Mapping[str, str],
        load_field: FieldLoader,
    ) -> VideoRecord:
        """Process and store a video and point the video's ``video_url`` at it."""
        try:
            updated = await self._upload_video(video_id, headers, load_field)
        except BaseException as e:
            self._record_failure("video", video_id, e)
            raise
        UPLOADS_TOTAL.labels(kind="video", outcome="success").inc()
        return updated

    async def _upload_thumbnail(
        self,
        video_id: str,
        headers: Mapping[str, str],
        load_field: FieldLoader,
    ) -> VideoRecord:
        with _timed("authorize"):
            _, user_id = await self.authorizer.authorize(video_id, headers)
        log_info(logger, "Uploading thumbnail", video_id=video_id, user_id=user_id)

        field = await load_field()
        with _timed("stage"):
            asset = await stage(
                field,
                self.config.max_thumbnail_size,
                image_media_type,
                self.config.assets_root,
                self.config.chunk_size,
            )

        url = f"{self.config.assets_base_url}/{asset.filename}"
        try:
            with _timed("record_update"):
                updated = await self._update_record(
                    video_id, self.store.set_thumbnail_url(video_id, url)
                )
        except BaseException:
            # The record never pointed at it, so the asset is an orphan
            asset.discard()
            raise

        log_info(logger, "Thumbnail uploaded", video_id=video_id, thumbnail_url=url)
        return updated

    async def _upload_video(
        self,
        video_id: str,
        headers: Mapping[str, str],
        load_field: FieldLoader,
    ) -> VideoRecord:
        with _timed("authorize"):
            _, user_id = await self.authorizer.authorize(video_id, headers)
        log_info(logger, "Uploading video", video_id=video_id, user_id=user_id)

        field = await load_field()
        with ExitStack() as cleanup:
            with _timed("stage"):
                staged = await stage(
                    field,
                    self.config.max_video_size,
                    exact_media_type(self.config.video_media_type, "mp4"),
                    self.config.assets_root,
                    self.config.chunk_size,
                )
            cleanup.callback(staged.discard)

            with _timed("probe"):
                aspect = await self.probe.probe(staged.path)
            key = build_storage_key(aspect, staged.name)

            cleanup.callback(faststart_output_path(staged.path).unlink, missing_ok=True)
            with _timed("transcode"):
                processed = await self.transcoder.optimize_for_streaming(staged.path)

            with _timed("store"):
                await self.uploader.upload(processed, key, staged.media_type)

        url = self.uploader.public_url(key)
        try:
            with _timed("record_update"):
                updated = await self._update_record(
                    video_id, self.store.set_video_url(video_id, url)
                )
        except BaseException:
            await self._discard_remote(key)
            raise

        log_info(logger, "Video uploaded", video_id=video_id, key=key, video_url=url)
        return updated

    async def _update_record(
        self,
        video_id: str,
        update: Awaitable[VideoRecord],
    ) -> VideoRecord:
        try:
            return await update
        except LookupError:
            raise NotFound(f"Couldn't find video {video_id}")

    async def _discard_remote(self, key: str) -> None:
        try:
            await self.uploader.delete(key)
        except Exception as e:
            log_error(logger, "Failed to remove orphaned object", e, key=key)

    def _record_failure(self, kind: str, video_id: str, error: BaseException) -> None:
        if isinstance(error, ServiceError):
            outcome = error.error_code
            log_warning(
                logger,
                f"{kind.capitalize()} upload rejected: {error.message}",
                video_id=video_id,
                error_code=error.error_code,
            )
        elif isinstance(error, Exception):
            outcome = "internal_error"
            log_error(logger, f"{kind.capitalize()} upload failed", error, video_id=video_id)
        else:
            outcome = "cancelled"
            log_warning(logger, f"{kind.capitalize()} upload cancelled", video_id=video_id)
        UPLOADS_TOTAL.labels(kind=kind, outcome=outcome).inc()

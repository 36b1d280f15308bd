"""Shared fixtures and fakes for the test suite.

Environment defaults are set before any ``tubely`` import so ``Settings``
can be constructed without a .env file.
"""

import asyncio
import io
import json
import os
import tempfile
from datetime import timedelta
from pathlib import Path
from typing import Optional, Sequence

os.environ.setdefault("SECRET_KEY", "unit-test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ASSETS_ROOT", tempfile.mkdtemp(prefix="tubely-assets-"))
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("LOG_JSON", "false")

import pytest
from botocore.exceptions import ClientError
from starlette.datastructures import Headers, UploadFile

from tubely.core.storage import S3Storage, StorageConfig
from tubely.modules.auth.jwt import create_access_token
from tubely.modules.upload.config import UploadConfig
from tubely.modules.upload.pipeline import UploadPipeline
from tubely.modules.upload.process import ProcessResult, ProcessRunner
from tubely.modules.video.repository import VideoStore
from tubely.modules.video.schemas import VideoRecord

SECRET_KEY = "unit-test-secret"
OWNER_ID = "user-1"
OTHER_USER_ID = "user-2"
VIDEO_ID = "video-1"
BUCKET = "tubely-test"
REGION = "us-east-1"


class FakeProcessRunner(ProcessRunner):
    """Deterministic stand-in for ffprobe/ffmpeg.

    ffprobe reports ``width`` x ``height``; ffmpeg copies its input to the
    output path unless told to fail or hang.
    """

    def __init__(self, width: int = 1920, height: int = 1080):
        self.calls: list[list[str]] = []
        self.probe_result = self.probe_ok(width, height)
        self.transcode_returncode = 0
        self.transcode_writes_output = True
        self.transcode_error: Optional[BaseException] = None
        self.transcode_hangs = False
        self.transcode_gate: Optional[asyncio.Event] = None
        self.transcode_started = asyncio.Event()

    @staticmethod
    def probe_ok(width: int, height: int) -> ProcessResult:
        stdout = json.dumps({"streams": [{"width": width, "height": height}]}).encode()
        return ProcessResult(stdout=stdout, stderr=b"", returncode=0)

    @property
    def tools_called(self) -> list[str]:
        return [Path(call[0]).name for call in self.calls]

    async def run(self, args: Sequence[str], timeout: Optional[float] = None) -> ProcessResult:
        args = [str(a) for a in args]
        self.calls.append(args)

        if Path(args[0]).name.startswith("ffprobe"):
            return self.probe_result

        self.transcode_started.set()
        if self.transcode_writes_output:
            source = Path(args[args.index("-i") + 1])
            Path(args[-1]).write_bytes(source.read_bytes())
        if self.transcode_hangs:
            await asyncio.Event().wait()
        if self.transcode_gate is not None:
            await self.transcode_gate.wait()
        if self.transcode_error is not None:
            raise self.transcode_error
        stderr = b"" if self.transcode_returncode == 0 else b"moov atom not found"
        return ProcessResult(stdout=b"", stderr=stderr, returncode=self.transcode_returncode)


class InMemoryVideoStore(VideoStore):
    """Dict-backed record store counting reads and URL writes.

    ``updates`` holds one ``(column, video_id, url)`` tuple per write.
    """

    def __init__(self, *records: VideoRecord):
        self.records = {r.id: r for r in records}
        self.reads = 0
        self.updates: list[tuple[str, str, str]] = []
        self.update_error: Optional[Exception] = None

    async def get_by_id(self, video_id: str) -> Optional[VideoRecord]:
        self.reads += 1
        return self.records.get(video_id)

    async def set_thumbnail_url(self, video_id: str, url: str) -> VideoRecord:
        return self._set("thumbnail_url", video_id, url)

    async def set_video_url(self, video_id: str, url: str) -> VideoRecord:
        return self._set("video_url", video_id, url)

    def _set(self, column: str, video_id: str, url: str) -> VideoRecord:
        if self.update_error is not None:
            raise self.update_error
        if video_id not in self.records:
            raise LookupError(video_id)
        self.updates.append((column, video_id, url))
        record = self.records[video_id].model_copy(update={column: url})
        self.records[video_id] = record
        return record


class FakeS3Client:
    """Minimal boto3 S3 client double keeping objects in memory."""

    def __init__(self):
        self.objects: dict[str, dict] = {}
        self.fail_puts = False

    def put_object(self, Bucket: str, Key: str, Body, ContentType: str) -> dict:
        if self.fail_puts:
            raise ClientError(
                {"Error": {"Code": "InternalError", "Message": "We encountered an internal error"}},
                "PutObject",
            )
        self.objects[Key] = {"bucket": Bucket, "body": Body.read(), "content_type": ContentType}
        return {"ETag": '"abc123"'}

    def head_object(self, Bucket: str, Key: str) -> dict:
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {"ContentType": self.objects[Key]["content_type"]}

    def delete_object(self, Bucket: str, Key: str) -> dict:
        self.objects.pop(Key, None)
        return {}


def make_upload(
    data: bytes,
    content_type: str,
    size: Optional[int] = -1,
    filename: str = "upload.bin",
) -> UploadFile:
    """Build a Starlette ``UploadFile`` as the multipart parser would."""
    return UploadFile(
        file=io.BytesIO(data),
        size=len(data) if size == -1 else size,
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def field_loader(field: object):
    """Field loader that records whether the pipeline asked for the body."""

    async def load() -> object:
        load.called = True
        return field

    load.called = False
    return load


def bearer(user_id: str, secret_key: str = SECRET_KEY, expires: timedelta = timedelta(minutes=5)) -> dict:
    return {"authorization": f"Bearer {create_access_token(user_id, secret_key, expires)}"}


@pytest.fixture
def assets_root(tmp_path: Path) -> Path:
    return tmp_path / "assets"


@pytest.fixture
def upload_config(assets_root: Path) -> UploadConfig:
    return UploadConfig(
        secret_key=SECRET_KEY,
        assets_root=assets_root,
        assets_base_url="http://localhost:8091/assets",
        storage=StorageConfig(backend="s3", bucket=BUCKET, region=REGION),
        max_thumbnail_size=10 << 20,
        max_video_size=1 << 30,
    )


@pytest.fixture
def video_record() -> VideoRecord:
    return VideoRecord(id=VIDEO_ID, user_id=OWNER_ID, title="Boots in the wild")


@pytest.fixture
def store(video_record: VideoRecord) -> InMemoryVideoStore:
    return InMemoryVideoStore(video_record)


@pytest.fixture
def runner() -> FakeProcessRunner:
    return FakeProcessRunner()


@pytest.fixture
def s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def backend(s3_client: FakeS3Client) -> S3Storage:
    return S3Storage(StorageConfig(backend="s3", bucket=BUCKET, region=REGION), client=s3_client)


@pytest.fixture
def pipeline(upload_config, store, runner, backend) -> UploadPipeline:
    return UploadPipeline(upload_config, store, runner, backend)


def local_files(directory: Path) -> list[Path]:
    """All files left under ``directory`` (empty if it was never created)."""
    if not directory.exists():
        return []
    return [p for p in directory.rglob("*") if p.is_file()]

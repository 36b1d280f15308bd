"""Tests for multipart intake validation and staging."""

import os
import re
import threading
from pathlib import Path

import pytest

from tubely.core.exceptions import BadRequest, PayloadTooLarge, UnsupportedMediaType
from tubely.modules.upload.intake import (
    exact_media_type,
    image_media_type,
    random_name,
    stage,
)

from conftest import local_files, make_upload

MP4 = exact_media_type("video/mp4", "mp4")


class TestMediaTypePolicies:

    @pytest.mark.parametrize(
        "media_type,extension",
        [("image/png", "png"), ("image/jpeg", "jpeg"), ("image/svg+xml", "svg+xml"), ("IMAGE/PNG; q=1", "png")],
    )
    def test_image_subtype_is_extension(self, media_type: str, extension: str) -> None:
        assert image_media_type(media_type) == extension

    @pytest.mark.parametrize("media_type", ["application/pdf", "image/", "image/../x", "", "text/plain"])
    def test_non_image_rejected(self, media_type: str) -> None:
        with pytest.raises(UnsupportedMediaType):
            image_media_type(media_type)

    def test_exact_policy(self) -> None:
        assert MP4("video/mp4") == "mp4"
        with pytest.raises(UnsupportedMediaType):
            MP4("video/quicktime")


class TestRandomName:

    def test_names_are_64_hex_and_unique(self) -> None:
        names = {random_name() for _ in range(100)}

        assert len(names) == 100
        assert all(re.fullmatch(r"[0-9a-f]{64}", n) for n in names)


class TestStage:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", [None, "just a string", b"bytes"])
    async def test_non_file_field_is_bad_request(self, field, tmp_path: Path) -> None:
        with pytest.raises(BadRequest):
            await stage(field, 100, image_media_type, tmp_path)
        assert local_files(tmp_path) == []

    @pytest.mark.asyncio
    async def test_exact_maximum_is_accepted(self, tmp_path: Path) -> None:
        data = b"x" * 100

        staged = await stage(make_upload(data, "image/png"), 100, image_media_type, tmp_path, chunk_size=7)

        assert staged.size == 100
        assert staged.path.read_bytes() == data
        assert staged.filename == f"{staged.name}.png"
        assert re.fullmatch(r"[0-9a-f]{64}", staged.name)
        assert local_files(tmp_path) == [staged.path]

    @pytest.mark.asyncio
    async def test_declared_size_over_maximum_rejected_before_write(self, tmp_path: Path) -> None:
        with pytest.raises(PayloadTooLarge):
            await stage(make_upload(b"x" * 101, "image/png"), 100, image_media_type, tmp_path)
        assert local_files(tmp_path) == []

    @pytest.mark.asyncio
    async def test_undeclared_size_over_maximum_rejected_while_streaming(self, tmp_path: Path) -> None:
        upload = make_upload(b"x" * 101, "video/mp4", size=None)

        with pytest.raises(PayloadTooLarge):
            await stage(upload, 100, MP4, tmp_path, chunk_size=16)

        assert local_files(tmp_path) == []

    @pytest.mark.asyncio
    async def test_empty_file_is_bad_request(self, tmp_path: Path) -> None:
        with pytest.raises(BadRequest):
            await stage(make_upload(b"", "image/png"), 100, image_media_type, tmp_path)
        assert local_files(tmp_path) == []

    @pytest.mark.asyncio
    async def test_wrong_type_rejected_before_any_write(self, tmp_path: Path) -> None:
        target = tmp_path / "assets"

        with pytest.raises(UnsupportedMediaType):
            await stage(make_upload(b"%PDF-1.7", "application/pdf"), 100, image_media_type, target)

        assert not target.exists()

    @pytest.mark.asyncio
    async def test_media_type_parameters_are_dropped(self, tmp_path: Path) -> None:
        staged = await stage(make_upload(b"data", "video/mp4; codecs=avc1"), 100, MP4, tmp_path)

        assert staged.media_type == "video/mp4"
        assert staged.extension == "mp4"

    @pytest.mark.asyncio
    async def test_fsync_runs_off_event_loop(self, tmp_path: Path, monkeypatch) -> None:
        fsync_threads = []
        fsync = os.fsync

        def recording_fsync(fd: int) -> None:
            fsync_threads.append(threading.get_ident())
            fsync(fd)

        monkeypatch.setattr(os, "fsync", recording_fsync)

        staged = await stage(make_upload(b"data", "video/mp4"), 100, MP4, tmp_path)

        assert staged.path.read_bytes() == b"data"
        assert len(fsync_threads) == 1
        assert fsync_threads[0] != threading.get_ident()

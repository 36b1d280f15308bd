"""Upload intake: validate a multipart file part and stage it to disk."""

import asyncio
import logging
import os
import re
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from starlette.datastructures import UploadFile

from tubely.core.exceptions import BadRequest, PayloadTooLarge, UnsupportedMediaType

logger = logging.getLogger(__name__)

# Maps a declared media type to the file extension to store it under, or raises
MediaTypePolicy = Callable[[str], str]

_SUBTYPE_RE = re.compile(r"^[a-z0-9][a-z0-9.+-]*$")


@dataclass(frozen=True)
class StagedFile:
    """Uploaded bytes held in a local file under a random name."""
    path: Path
    name: str
    extension: str
    media_type: str
    size: int

    @property
    def filename(self) -> str:
        return self.path.name

    def discard(self) -> None:
        self.path.unlink(missing_ok=True)


def _bare_media_type(media_type: str) -> str:
    return media_type.split(";", 1)[0].strip().lower()


def image_media_type(media_type: str) -> str:
    """Accept any ``image/<subtype>``; the subtype becomes the extension."""
    type_, _, subtype = _bare_media_type(media_type).partition("/")
    if type_ != "image" or not _SUBTYPE_RE.match(subtype):
        raise UnsupportedMediaType(f"Incorrect media type {media_type!r}, expected an image")
    return subtype


def exact_media_type(expected: str, extension: str) -> MediaTypePolicy:
    """Accept only ``expected``, stored under ``extension``."""

    def policy(media_type: str) -> str:
        if _bare_media_type(media_type) != expected:
            raise UnsupportedMediaType(f"Incorrect media type {media_type!r}, expected {expected}")
        return extension

    return policy


def random_name() -> str:
    """256 random bits, hex encoded."""
    return secrets.token_hex(32)


async def stage(
    field: object,
    max_bytes: int,
    policy: MediaTypePolicy,
    directory: Path,
    chunk_size: int = 1 << 20,
) -> StagedFile:
    """Validate ``field`` and copy its bytes into ``directory``.

    Checks run in order: the field is a file part, its declared size is
    within ``max_bytes``, its media type satisfies ``policy``. Nothing is
    written before all three pass. Bytes are streamed to a hidden temporary
    file and renamed into place once complete; a body that turns out larger
    than ``max_bytes`` while streaming is discarded.

    Raises:
        BadRequest: If the field is missing, not a file part, or empty
        PayloadTooLarge: If the upload exceeds ``max_bytes``
        UnsupportedMediaType: If ``policy`` rejects the declared type
    """
    if not isinstance(field, UploadFile):
        raise BadRequest("Upload file missing")

    if field.size is not None and field.size > max_bytes:
        raise PayloadTooLarge(f"File size exceeds the {max_bytes} byte maximum upload size")

    media_type = field.content_type or ""
    extension = policy(media_type)

    directory.mkdir(parents=True, exist_ok=True)
    name = random_name()
    final_path = directory / f"{name}.{extension}"
    partial_path = directory / f".{name}.part"

    size = 0
    try:
        with open(partial_path, "xb") as out:
            while True:
                chunk = await field.read(chunk_size)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    raise PayloadTooLarge(
                        f"File size exceeds the {max_bytes} byte maximum upload size"
                    )
                out.write(chunk)
            out.flush()
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, os.fsync, out.fileno())
        if size == 0:
            raise BadRequest("Upload file is empty")
        os.replace(partial_path, final_path)
    except BaseException:
        partial_path.unlink(missing_ok=True)
        raise

    logger.debug("Staged %s bytes", size, extra={"staged_path": str(final_path)})
    return StagedFile(
        path=final_path,
        name=name,
        extension=extension,
        media_type=_bare_media_type(media_type),
        size=size,
    )

"""Pushes finished media to durable object storage."""

import asyncio
import logging
from pathlib import Path

from tubely.core.exceptions import StorageWriteFailed
from tubely.core.storage import StorageBackend
from tubely.modules.upload.probe import AspectClass

logger = logging.getLogger(__name__)


def build_storage_key(aspect: AspectClass, name: str) -> str:
    """Storage key ``{aspect}/{name}.mp4``; the aspect class is the partition prefix."""
    return f"{aspect.value}/{name}.mp4"


class ObjectStoreUploader:
    """Streams local files to a ``StorageBackend`` under a given key.

    Re-uploading under the same key overwrites the object.
    """

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    async def upload(self, local_path: Path, key: str, media_type: str) -> str:
        """Upload ``local_path`` under ``key`` with ``media_type`` as content type.

        The blocking backend call runs in a worker thread and is not
        cancelled once started.

        Returns:
            str: The storage key

        Raises:
            StorageWriteFailed: If the backend reports a failed write
        """
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(
            None,
            self.backend.upload,
            str(local_path),
            key,
            media_type,
        )
        if not result.success:
            logger.warning(
                "Storage write failed",
                extra={"key": key, "error": result.error_message},
            )
            raise StorageWriteFailed(f"Failed to store {key}")
        return result.key

    async def delete(self, key: str) -> bool:
        """Remove the object under ``key`` without blocking the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.backend.delete, key)

    def public_url(self, key: str) -> str:
        return self.backend.public_url(key)

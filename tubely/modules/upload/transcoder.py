"""Fast-start remuxing with ffmpeg.

Moves the MP4 index (moov atom) to the front of the file so playback can
start before the download completes. Streams are copied, not re-encoded.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from tubely.core.exceptions import ProcessTimeout, TranscodeFailed
from tubely.modules.upload.process import ProcessRunner

logger = logging.getLogger(__name__)

PROCESSED_SUFFIX = ".processed.mp4"


def faststart_output_path(input_path: Path) -> Path:
    """Sibling output path for ``input_path``: ``<stem>.processed.mp4``."""
    return input_path.with_name(f"{input_path.stem}{PROCESSED_SUFFIX}")


def build_faststart_command(ffmpeg_path: str, input_path: str, output_path: str) -> list[str]:
    """Build the ffmpeg command for a lossless fast-start MP4 remux."""
    return [
        ffmpeg_path,
        "-nostdin",
        "-v", "error",
        "-y",  # Overwrite output
        "-i", input_path,
        "-movflags", "faststart",
        "-map_metadata", "0",
        "-codec", "copy",
        "-f", "mp4",
        output_path,
    ]


class FastStartTranscoder:
    """Produces a progressive-playback copy of a staged video."""

    def __init__(
        self,
        runner: ProcessRunner,
        ffmpeg_path: str = "ffmpeg",
        timeout: Optional[float] = 600.0,
    ):
        self.runner = runner
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout

    async def optimize_for_streaming(self, input_path: Path) -> Path:
        """Remux ``input_path`` for fast start.

        Any partially written output is removed before an error propagates,
        including when the calling task is cancelled.

        Returns:
            Path: The transcoded sibling file

        Raises:
            TranscodeFailed: If ffmpeg exits non-zero, times out or writes nothing
        """
        output_path = faststart_output_path(input_path)
        cmd = build_faststart_command(self.ffmpeg_path, str(input_path), str(output_path))

        try:
            result = await self.runner.run(cmd, timeout=self.timeout)
        except ProcessTimeout as e:
            output_path.unlink(missing_ok=True)
            raise TranscodeFailed(f"Error processing video for fast start: {e}")
        except asyncio.CancelledError:
            output_path.unlink(missing_ok=True)
            raise

        if not result.ok:
            output_path.unlink(missing_ok=True)
            logger.warning(
                "ffmpeg exited with code %s",
                result.returncode,
                extra={"input_path": str(input_path), "diagnostics": result.stderr_text()},
            )
            raise TranscodeFailed(
                f"Error processing video for fast start (exit code {result.returncode})"
            )

        if not output_path.is_file():
            raise TranscodeFailed("Error processing video for fast start: no output written")

        return output_path

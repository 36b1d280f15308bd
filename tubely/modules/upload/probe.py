"""Media probing and aspect-ratio classification.

Runs ffprobe against a staged file, reads the primary video stream's
dimensions and buckets them into a coarse ``AspectClass``.
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from tubely.core.exceptions import ProbeFailed, ProbeParseError, ProcessTimeout
from tubely.modules.upload.process import ProcessRunner

logger = logging.getLogger(__name__)


class AspectClass(str, Enum):
    """Coarse orientation bucket, also used as the storage key prefix."""

    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"
    OTHER = "other"


def classify_aspect_ratio(width: int, height: int) -> AspectClass:
    """Classify pixel dimensions by the integer floor of ``width / height``.

    A ratio of 0 (narrower than tall) is portrait, 1 is landscape, anything
    else is other. This is deliberately coarse: 16:9 and 1:1 both land in
    landscape, and 2:1 or wider is other.

    Raises:
        ValueError: If either dimension is not a positive integer
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid dimensions {width}x{height}")

    ratio = width // height
    if ratio == 0:
        return AspectClass.PORTRAIT
    if ratio == 1:
        return AspectClass.LANDSCAPE
    return AspectClass.OTHER


def build_probe_command(ffprobe_path: str, input_path: str) -> list[str]:
    """Build the ffprobe command reading width/height of stream ``v:0`` as JSON."""
    return [
        ffprobe_path,
        "-v", "error",
        "-select_streams", "v:0",
        "-show_entries", "stream=width,height",
        "-of", "json",
        input_path,
    ]


def parse_probe_output(stdout: bytes) -> tuple[int, int]:
    """Extract ``(width, height)`` from ffprobe JSON output.

    Raises:
        ProbeParseError: If the output is not JSON or lacks a sized video stream
    """
    try:
        data = json.loads(stdout)
    except (ValueError, TypeError) as e:
        raise ProbeParseError(f"Probe output is not valid JSON: {e}")

    streams = data.get("streams") if isinstance(data, dict) else None
    if not isinstance(streams, list) or not streams:
        raise ProbeParseError("Probe output contains no video stream")

    stream = streams[0]
    if not isinstance(stream, dict):
        raise ProbeParseError("Probe output stream is not an object")
    width = stream.get("width")
    height = stream.get("height")
    if not isinstance(width, int) or not isinstance(height, int):
        raise ProbeParseError("Probe output is missing stream width/height")
    if width <= 0 or height <= 0:
        raise ProbeParseError(f"Probe reported invalid dimensions {width}x{height}")

    return width, height


class MediaProbe:
    """Reads video dimensions with ffprobe and classifies orientation."""

    def __init__(
        self,
        runner: ProcessRunner,
        ffprobe_path: str = "ffprobe",
        timeout: Optional[float] = 30.0,
    ):
        self.runner = runner
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout

    async def dimensions(self, path: Path) -> tuple[int, int]:
        """Return ``(width, height)`` of the primary video stream.

        Raises:
            ProbeFailed: If ffprobe exits non-zero or times out
            ProbeParseError: If its output lacks the expected fields
        """
        cmd = build_probe_command(self.ffprobe_path, str(path))
        try:
            result = await self.runner.run(cmd, timeout=self.timeout)
        except ProcessTimeout as e:
            raise ProbeFailed("Media probe timed out", diagnostics=str(e))

        if not result.ok:
            diagnostics = result.stderr_text()
            logger.warning(
                "ffprobe exited with code %s",
                result.returncode,
                extra={"input_path": str(path), "diagnostics": diagnostics},
            )
            raise ProbeFailed(
                f"Media probe could not read the video (exit code {result.returncode})",
                diagnostics=diagnostics,
            )

        return parse_probe_output(result.stdout)

    async def probe(self, path: Path) -> AspectClass:
        """Classify the orientation of the video at ``path``."""
        width, height = await self.dimensions(path)
        aspect = classify_aspect_ratio(width, height)
        logger.debug(
            "Probed %sx%s as %s", width, height, aspect.value,
            extra={"input_path": str(path)},
        )
        return aspect

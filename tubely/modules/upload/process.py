"""External process invocation.

The probe and transcode steps talk to their binaries only through the
``ProcessRunner`` interface so tests can substitute deterministic fakes.
"""

import asyncio
import logging
from dataclasses import dataclass
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from tubely.core.exceptions import ProcessTimeout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Captured outcome of one external process run."""
    stdout: bytes
    stderr: bytes
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def stderr_text(self, limit: int = 4000) -> str:
        return self.stderr.decode("utf-8", errors="replace").strip()[-limit:]


class ProcessRunner(ABC):
    """Runs a command to completion and captures its output."""

    @abstractmethod
    async def run(self, args: Sequence[str], timeout: Optional[float] = None) -> ProcessResult:
        """Run ``args``, waiting at most ``timeout`` seconds."""


async def _terminate(process: asyncio.subprocess.Process, name: str) -> None:
    """Kill ``process`` if it is still running and reap it."""
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        # Exited between the returncode check and kill()
        pass
    try:
        await asyncio.wait_for(process.wait(), timeout=5)
    except asyncio.TimeoutError:
        logger.warning("Process did not exit after kill", extra={"command": name})


class AsyncProcessRunner(ProcessRunner):
    """``ProcessRunner`` backed by ``asyncio.create_subprocess_exec``.

    Both pipes are captured. On timeout the child is killed and
    ``ProcessTimeout`` raised; if the awaiting task is cancelled the child is
    killed before the cancellation propagates.
    """

    async def run(self, args: Sequence[str], timeout: Optional[float] = None) -> ProcessResult:
        args = [str(a) for a in args]
        process = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            raise ProcessTimeout(args, timeout or 0.0)
        finally:
            await _terminate(process, args[0])

        return ProcessResult(stdout=stdout, stderr=stderr, returncode=process.returncode)

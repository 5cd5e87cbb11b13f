"""Process runner with output and time limits.

Spawns one external command (no shell) and races it against:
- a cumulative stdout size cap
- a wall-clock timeout

Either breach kills the process. Nothing is retried.
"""

import asyncio
import contextlib
import os
import time
from dataclasses import dataclass, field
from pathlib import Path

from adaptive_sandbox.errors import (
    CommandFailedError,
    ExecutionTimeoutError,
    OutputLimitExceededError,
    SpawnError,
)
from adaptive_sandbox.logging import Loggers

logger = Loggers.runner()

_READ_CHUNK_BYTES = 64 * 1024
_KILL_GRACE_SECONDS = 5.0


@dataclass
class ExecutionLimits:
    """Resource limits for command execution.

    Attributes:
        timeout_ms: Maximum wall-clock execution time.
        max_output_bytes: Maximum cumulative stdout before the process is killed.
        env: Extra environment variables layered over the current environment.
    """

    timeout_ms: int = 60000
    max_output_bytes: int = 10 * 1024 * 1024
    env: dict[str, str] = field(default_factory=lambda: {"NODE_ENV": "development"})


class ProcessRunner:
    """Runs commands in a fixed working directory under ExecutionLimits."""

    def __init__(self, working_dir: Path | str, limits: ExecutionLimits | None = None):
        """Initialize the runner.

        Args:
            working_dir: Directory every command runs in.
            limits: Resource limits to apply.
        """
        self.working_dir = Path(working_dir)
        self.limits = limits or ExecutionLimits()

    async def run(self, command: str, args: list[str]) -> str:
        """Run a command and return its stdout.

        Args:
            command: Executable name or path.
            args: Arguments passed verbatim (no shell interpretation).

        Returns:
            Decoded stdout of a zero-exit run.

        Raises:
            SpawnError: The process could not be started.
            OutputLimitExceededError: Stdout exceeded max_output_bytes.
            ExecutionTimeoutError: The timeout fired first.
            CommandFailedError: The process exited non-zero.
        """
        start_time = time.time()

        try:
            process = await asyncio.create_subprocess_exec(
                command,
                *args,
                cwd=self.working_dir,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, **self.limits.env},
            )
        except OSError as e:
            logger.warning("spawn_failed", command=command, error=str(e))
            raise SpawnError(command, str(e), not_found=isinstance(e, FileNotFoundError)) from e

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                self._collect(process),
                timeout=self.limits.timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            await self._kill(process)
            logger.warning("command_timeout", command=command, timeout_ms=self.limits.timeout_ms)
            raise ExecutionTimeoutError(self.limits.timeout_ms) from None
        except OutputLimitExceededError:
            await self._kill(process)
            logger.warning(
                "output_limit_exceeded",
                command=command,
                max_output_bytes=self.limits.max_output_bytes,
            )
            raise
        except BaseException:
            # Cancellation of the awaiting task
            await self._kill(process)
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        return_code = process.returncode

        if return_code != 0:
            stderr = self._decode(stderr_bytes)
            logger.info(
                "command_failed",
                command=command,
                return_code=return_code,
                duration_ms=duration_ms,
            )
            raise CommandFailedError(return_code, stderr)

        logger.debug(
            "command_completed",
            command=command,
            duration_ms=duration_ms,
            output_bytes=len(stdout_bytes),
        )
        return self._decode(stdout_bytes)

    async def _collect(self, process: asyncio.subprocess.Process) -> tuple[bytes, bytes]:
        """Read stdout chunk by chunk, enforcing the output cap."""
        # Drain stderr concurrently so a chatty stderr cannot block the child
        stderr_task = asyncio.ensure_future(process.stderr.read())
        chunks: list[bytes] = []
        total = 0
        try:
            while True:
                chunk = await process.stdout.read(_READ_CHUNK_BYTES)
                if not chunk:
                    break
                total += len(chunk)
                if total > self.limits.max_output_bytes:
                    raise OutputLimitExceededError(self.limits.max_output_bytes)
                chunks.append(chunk)
            stderr = await stderr_task
            await process.wait()
        finally:
            if not stderr_task.done():
                stderr_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await stderr_task
        return b"".join(chunks), stderr

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        """Kill the process if still running and reap it.

        Remaining pipe data is drained and discarded, since wait() does not
        resolve while a paused pipe still holds unread output.
        """
        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
        try:
            await asyncio.wait_for(
                asyncio.gather(process.stdout.read(), process.stderr.read(), process.wait()),
                timeout=_KILL_GRACE_SECONDS,
            )
        except (asyncio.TimeoutError, ProcessLookupError):
            # A grandchild may still hold the pipes open; the child itself is dead.
            logger.debug("kill_drain_incomplete", pid=process.pid)

    @staticmethod
    def _decode(data: bytes) -> str:
        return data.decode("utf-8", errors="replace")

    def get_limits_description(self) -> str:
        """Get human-readable description of current limits."""
        return (
            f"Timeout: {self.limits.timeout_ms}ms, "
            f"Output: {self.limits.max_output_bytes} bytes"
        )

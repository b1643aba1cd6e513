"""Local shell command runner."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from pathlib import Path

from context_engine.backends.base import CommandResult

logger = logging.getLogger(__name__)

# Cap captured output per stream to prevent memory issues.
_MAX_OUTPUT_BYTES = 10 * 1024 * 1024  # 10 MB


class CommandRunner:
    """Runs one command through the shell.  Holds no state between calls."""

    def __init__(self, cwd: str | Path | None = None, env: dict[str, str] | None = None):
        self.cwd = str(cwd) if cwd is not None else None
        self.env = env

    def _environment(self) -> dict[str, str]:
        env = dict(os.environ)
        if self.env:
            env.update(self.env)
        # Keep git and friends from opening an interactive pager.
        env["PAGER"] = "cat"
        return env

    async def run(self, command: str, cwd: str | Path | None = None) -> CommandResult:
        workdir = str(cwd) if cwd is not None else self.cwd

        t0 = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=workdir,
                env=self._environment(),
            )
            stdout_raw, stderr_raw = await proc.communicate()
        except ProcessLookupError:
            return CommandResult(
                command=command,
                success=False,
                error="Process exited before output could be collected",
                exit_code=-1,
                duration_ms=round((time.monotonic() - t0) * 1000),
            )
        except OSError as exc:
            return CommandResult(
                command=command,
                success=False,
                error=str(exc),
                exit_code=-1,
                duration_ms=round((time.monotonic() - t0) * 1000),
            )

        duration_ms = round((time.monotonic() - t0) * 1000)

        truncated = (
            len(stdout_raw) > _MAX_OUTPUT_BYTES or len(stderr_raw) > _MAX_OUTPUT_BYTES
        )
        stdout = stdout_raw[:_MAX_OUTPUT_BYTES].decode("utf-8", errors="replace").strip()
        stderr = stderr_raw[:_MAX_OUTPUT_BYTES].decode("utf-8", errors="replace").strip()

        logger.debug(
            "Command %r exited %s in %dms", command, proc.returncode, duration_ms
        )

        if proc.returncode == 0:
            return CommandResult(
                command=command,
                success=True,
                output=stdout or stderr,
                exit_code=0,
                duration_ms=duration_ms,
                truncated=truncated,
            )
        return CommandResult(
            command=command,
            success=False,
            output=stdout or stderr,
            error=stderr or f"Command exited with status {proc.returncode}",
            exit_code=proc.returncode,
            duration_ms=duration_ms,
            truncated=truncated,
        )

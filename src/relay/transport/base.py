"""
Subprocess-backed executor base.

Both concrete executors spawn one child process per command with
``asyncio.create_subprocess_exec``; they differ only in the argv that wraps
the shell command (``ssh user@host -- cmd`` versus ``/bin/sh -c cmd``).

Guardrails:
    - Every command has a time limit; on expiry the child is killed and
      ``CommandTimeoutError`` is raised
    - Each child leads its own process group; timeout and cancellation kill
      the whole group, so a shell or wrapper script cannot leave a
      grandchild holding the output pipe
    - Any OS-level spawn failure surfaces as ``TransportError``
    - File writes go through ``<path>.tmp`` + ``mv`` so a concurrent reader
      never sees a half-written queue document
"""

from __future__ import annotations

import asyncio
import os
import shlex
import signal
from abc import ABC, abstractmethod

from relay.core.errors import CommandTimeoutError, RemoteCommandError, TransportError
from relay.core.logging import get_logger

logger = get_logger(__name__)


class SubprocessExecutor(ABC):
    """Run shell commands through a local child process."""

    name: str = "subprocess"

    def __init__(self, *, command_timeout: float = 30.0, kill_timeout: float = 5.0) -> None:
        self._command_timeout = command_timeout
        self._kill_timeout = kill_timeout

    @abstractmethod
    def build_argv(self, command: str) -> list[str]:
        """Translate a shell command line into the argv to spawn."""

    @abstractmethod
    def describe(self) -> dict:
        """Connection summary for status output."""

    async def run(
        self,
        command: str,
        *,
        stdin: str | None = None,
        timeout: float | None = None,
    ) -> str:
        argv = self.build_argv(command)
        limit_s = timeout if timeout is not None else self._command_timeout

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as exc:
            raise TransportError(
                f"Cannot start {argv[0]}: {exc}", cause=exc
            ).with_context(command=command) from exc

        payload = stdin.encode("utf-8") if stdin is not None else None
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(payload), timeout=limit_s)
        except TimeoutError as exc:
            await self._kill(process)
            raise CommandTimeoutError(
                f"Remote command exceeded {limit_s:.1f}s"
            ).with_context(command=command) from exc
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        if process.returncode != 0:
            err_text = stderr.decode("utf-8", errors="replace").strip()
            raise RemoteCommandError(
                f"Remote command failed with exit code {process.returncode}: {err_text[:200]}",
                exit_code=process.returncode,
                stderr=err_text,
            ).with_context(command=command)

        if stderr:
            logger.debug("transport.stderr", command=command, stderr=stderr.decode(errors="replace")[:500])
        return stdout.decode("utf-8", errors="replace")

    async def read_file(self, path: str, *, timeout: float | None = None) -> str:
        return await self.run(f"cat {shlex.quote(path)}", timeout=timeout)

    async def write_file(self, path: str, content: str, *, timeout: float | None = None) -> None:
        # content goes over stdin, never argv
        quoted = shlex.quote(path)
        tmp = shlex.quote(f"{path}.tmp")
        await self.run(f"cat > {tmp} && mv -f {tmp} {quoted}", stdin=content, timeout=timeout)

    async def exists(self, path: str, *, timeout: float | None = None) -> bool:
        out = await self.run(
            f"if [ -f {shlex.quote(path)} ]; then echo yes; else echo no; fi", timeout=timeout
        )
        return out.strip() == "yes"

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        # the group outlives its leader while any grandchild is still running
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            pass
        try:
            await asyncio.wait_for(process.wait(), timeout=self._kill_timeout)
        except TimeoutError:
            logger.warning("transport.kill_timeout", pid=process.pid)

"""RemoteExecutor protocol definition."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class RemoteExecutor(Protocol):
    """
    Protocol for running commands on the worker host.

    Executors are responsible for:
    - Running a shell command and returning its stdout
    - Reading a whole file
    - Replacing a whole file with new content

    Failures raise ``TransportError`` subclasses. Cancelling the awaiting
    task must terminate any child process the executor started.
    """

    name: str

    async def run(
        self,
        command: str,
        *,
        stdin: str | None = None,
        timeout: float | None = None,
    ) -> str:
        """
        Run a shell command on the worker host.

        Args:
            command: Shell command line, interpreted by the remote shell
            stdin: Optional text piped to the command
            timeout: Seconds before the command is killed (executor default if None)

        Returns:
            The command's stdout
        """
        ...

    async def read_file(self, path: str, *, timeout: float | None = None) -> str:
        """Return the full text of ``path``."""
        ...

    async def write_file(self, path: str, content: str, *, timeout: float | None = None) -> None:
        """Replace ``path`` with ``content`` (atomically where the host allows)."""
        ...

    async def exists(self, path: str, *, timeout: float | None = None) -> bool:
        """True if ``path`` is a regular file on the worker host."""
        ...

    def describe(self) -> dict:
        """Connection summary for status output (no secrets)."""
        ...

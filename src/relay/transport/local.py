"""Local executor: the queue lives on this machine.

Used by the worker-side tools (queue helper, webhook notifier) running next
to the queue file, and by single-host setups where the agent and the
dispatcher share a filesystem.
"""

from __future__ import annotations

from relay.transport.base import SubprocessExecutor


class LocalExecutor(SubprocessExecutor):
    name = "local"

    def __init__(self, *, shell: str = "/bin/sh", command_timeout: float = 30.0) -> None:
        super().__init__(command_timeout=command_timeout)
        self.shell = shell

    def build_argv(self, command: str) -> list[str]:
        return [self.shell, "-c", command]

    def describe(self) -> dict:
        return {"transport": self.name, "shell": self.shell}

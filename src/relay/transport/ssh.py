"""SSH executor: runs queue commands on the worker host over OpenSSH.

Two invocation styles are supported:

- direct: ``ssh -p PORT -i KEY -o BatchMode=yes USER@HOST -- COMMAND``
- wrapper: ``WRAPPER COMMAND`` for hosts only reachable through a jump
  script (the wrapper owns host, port and key selection)
"""

from __future__ import annotations

from pathlib import Path

from relay.core.errors import ConfigError
from relay.transport.base import SubprocessExecutor


class SshExecutor(SubprocessExecutor):
    name = "ssh"

    def __init__(
        self,
        host: str,
        *,
        user: str | None = None,
        port: int = 22,
        key_path: str | Path | None = None,
        wrapper: str | Path | None = None,
        connect_timeout: int = 10,
        ssh_binary: str = "ssh",
        command_timeout: float = 30.0,
    ) -> None:
        super().__init__(command_timeout=command_timeout)
        if not host and wrapper is None:
            raise ConfigError("SshExecutor needs a host or a wrapper script")
        self.host = host
        self.user = user
        self.port = port
        self.key_path = Path(key_path).expanduser() if key_path else None
        self.wrapper = Path(wrapper).expanduser() if wrapper else None
        self.connect_timeout = connect_timeout
        self.ssh_binary = ssh_binary

    @property
    def target(self) -> str:
        return f"{self.user}@{self.host}" if self.user else self.host

    def build_argv(self, command: str) -> list[str]:
        if self.wrapper is not None:
            return [str(self.wrapper), command]

        argv = [
            self.ssh_binary,
            "-p",
            str(self.port),
            "-o",
            "BatchMode=yes",
            "-o",
            f"ConnectTimeout={self.connect_timeout}",
        ]
        if self.key_path is not None:
            argv += ["-i", str(self.key_path)]
        argv += [self.target, "--", command]
        return argv

    def describe(self) -> dict:
        if self.wrapper is not None:
            return {"transport": self.name, "wrapper": str(self.wrapper)}
        return {"transport": self.name, "host": self.host, "port": self.port, "user": self.user}

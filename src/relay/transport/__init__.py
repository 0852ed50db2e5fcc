"""
Remote execution adapters.

Modules
-------
protocol    RemoteExecutor protocol
base        SubprocessExecutor (asyncio child process, kill on cancel)
ssh         SshExecutor (OpenSSH or wrapper script)
local       LocalExecutor (/bin/sh -c)
"""

from __future__ import annotations

from relay.core.errors import ConfigError
from relay.core.settings import RelaySettings
from relay.transport.base import SubprocessExecutor
from relay.transport.local import LocalExecutor
from relay.transport.protocol import RemoteExecutor
from relay.transport.ssh import SshExecutor


def create_executor(settings: RelaySettings) -> RemoteExecutor:
    """Build the executor named by ``settings.transport``."""
    if settings.transport == "local":
        return LocalExecutor(command_timeout=settings.command_timeout_seconds)
    if settings.transport == "ssh":
        return SshExecutor(
            settings.remote_host,
            user=settings.remote_user,
            port=settings.remote_port,
            key_path=settings.ssh_key_path,
            wrapper=settings.ssh_wrapper,
            command_timeout=settings.command_timeout_seconds,
        )
    raise ConfigError(f"Unknown transport: {settings.transport}")


__all__ = [
    "LocalExecutor",
    "RemoteExecutor",
    "SshExecutor",
    "SubprocessExecutor",
    "create_executor",
]

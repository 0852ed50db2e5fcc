"""Relay settings.

All values can be overridden via environment variables prefixed with
``RELAY_`` (``RELAY_REMOTE_HOST``, ``RELAY_POLL_INTERVAL_MS``, ...) or a
``.env`` file in the working directory.

Durations keep the millisecond units of the wire contract
(``poll_interval_ms``, ``message_timeout_ms``); the ``*_seconds``
properties are what the asyncio code consumes.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RelaySettings(BaseSettings):
    """Settings for the dispatcher, notification server and notifier.

    Order of precedence (highest → lowest):
        1. Constructor arguments
        2. Environment variables (``RELAY_*``)
        3. ``.env`` file
        4. Defaults below
    """

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Transport ────────────────────────────────────────────────────────
    transport: Literal["ssh", "local"] = Field(
        default="ssh", description="How queue commands reach the worker host"
    )
    remote_host: str = Field(default="localhost", description="Worker host name")
    remote_port: int = Field(default=22, description="SSH port")
    remote_user: str = Field(default="ubuntu", description="SSH login user")
    ssh_key_path: Path = Field(
        default_factory=lambda: Path.home() / ".ssh" / "id_relay",
        description="Private key passed to ssh -i",
    )
    ssh_wrapper: Path | None = Field(
        default=None,
        description="Optional wrapper script invoked as `<wrapper> <command>` instead of ssh",
    )
    command_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Upper bound for a single remote command"
    )

    # ── Queue ────────────────────────────────────────────────────────────
    queue_path: str = Field(
        default="/home/ubuntu/relay/message-queue.json",
        description="Path of the queue document on the worker host",
    )
    origin: str = Field(default="relay", description="Producer tag written as the record's user")

    # ── Waiting ──────────────────────────────────────────────────────────
    poll_interval_ms: int = Field(default=5000, gt=0)
    message_timeout_ms: int = Field(default=180000, gt=0)

    # ── Notification endpoint ────────────────────────────────────────────
    use_webhooks: bool = True
    notification_host: str = "0.0.0.0"
    notification_port: int = Field(default=9000, ge=0, le=65535)
    cache_ttl_seconds: float = Field(default=60.0, gt=0)

    # ── Worker side ──────────────────────────────────────────────────────
    webhook_url: str | None = Field(
        default=None, description="Where the notifier POSTs completions, e.g. http://host:9000/notify"
    )
    notifier_interval_ms: int = Field(default=10000, gt=0)
    tmux_session: str | None = Field(
        default=None, description="Remote tmux session that hosts the agent"
    )
    trigger_text: str = "check queue"
    auto_trigger: bool = False

    # ── Observability ────────────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000

    @property
    def message_timeout_seconds(self) -> float:
        return self.message_timeout_ms / 1000

    @property
    def notifier_interval_seconds(self) -> float:
        return self.notifier_interval_ms / 1000


@lru_cache(maxsize=1)
def get_settings() -> RelaySettings:
    """Return the process-wide settings (read once from the environment)."""
    return RelaySettings()

"""
Notification endpoint schemas.

Field names follow the wire contract used by the worker-side notifier
(``messageId``, ``pendingMessages``); Python attributes stay snake_case
and map through aliases.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class NotifyRequest(_WireModel):
    """Inbound completion signal. Extra keys (``timestamp``) are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message_id: int | str | None = Field(default=None, alias="messageId")
    status: str | None = Field(default="completed")


class NotifyResponse(_WireModel):
    success: bool = True
    message_id: int | str = Field(alias="messageId")


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(_WireModel):
    status: str = "ok"
    uptime: float
    pending_messages: int = Field(alias="pendingMessages")
    cached_completions: int = Field(alias="cachedCompletions")


class PendingWaiter(_WireModel):
    message_id: int | str = Field(alias="messageId")
    waiting_since: str = Field(alias="waitingSince")
    age: int = Field(description="Milliseconds since registration")


class PendingResponse(BaseModel):
    count: int
    pending: list[PendingWaiter]


class CachedCompletion(_WireModel):
    message_id: int | str = Field(alias="messageId")
    status: str
    arrived_at: str = Field(alias="arrivedAt")
    age: int = Field(description="Milliseconds since the signal arrived")


class CachedResponse(BaseModel):
    count: int
    cached: list[CachedCompletion]

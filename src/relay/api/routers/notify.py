"""Completion webhook endpoints.

Endpoints
---------
``POST /notify``   completion signal from the worker host
``GET  /health``   liveness plus waiter / cache counts
``GET  /pending``  live waiter registrations
``GET  /cached``   completions that arrived before anyone waited
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from relay.api.deps import Hub
from relay.api.schemas import (
    CachedResponse,
    ErrorResponse,
    HealthResponse,
    NotifyRequest,
    NotifyResponse,
    PendingResponse,
)
from relay.core.errors import InvalidSignalError
from relay.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["notifications"])


@router.post(
    "/notify",
    response_model=NotifyResponse,
    response_model_by_alias=True,
    responses={400: {"model": ErrorResponse}},
)
async def notify(hub: Hub, body: NotifyRequest | None = None) -> NotifyResponse | JSONResponse:
    """Accept a completion signal and wake (or pre-arm) the waiter."""
    body = body or NotifyRequest()
    logger.info("webhook.received", message_id=body.message_id, status=body.status)
    try:
        hub.signal(body.message_id, body.status)
    except InvalidSignalError as exc:
        return JSONResponse(status_code=400, content={"error": exc.message})
    return NotifyResponse(message_id=body.message_id)


@router.get("/health", response_model=HealthResponse, response_model_by_alias=True)
async def health(hub: Hub) -> HealthResponse:
    status = hub.get_status()
    return HealthResponse(
        status="ok",
        uptime=status["uptime"],
        pending_messages=status["pendingMessages"],
        cached_completions=status["cachedCompletions"],
    )


@router.get("/pending", response_model=PendingResponse, response_model_by_alias=True)
async def pending(hub: Hub) -> PendingResponse:
    items = hub.pending_snapshot()
    return PendingResponse(count=len(items), pending=items)


@router.get("/cached", response_model=CachedResponse, response_model_by_alias=True)
async def cached(hub: Hub) -> CachedResponse:
    items = hub.cached_snapshot()
    return CachedResponse(count=len(items), cached=items)

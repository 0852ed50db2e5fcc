"""
FastAPI application factory for the notification endpoint.

``create_app()`` wires the hub, the router and the error handler into a
single ``FastAPI`` instance. The hub is passed in by the owner (dispatcher
or ``relay serve``) so the HTTP handler and the waiters share one registry.

Tags:
    relay, api, app-factory, webhook, FastAPI

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from relay import __version__
from relay.coordination.hub import NotificationHub
from relay.core.errors import RelayError, ValidationError
from relay.core.logging import get_logger

logger = get_logger("relay.api")


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Map relay errors to ``{"error": ...}`` bodies."""
    status_code = 400 if isinstance(exc, ValidationError) else 500
    logger.warning("api.relay_error", path=request.url.path, **exc.to_dict())
    return JSONResponse(status_code=status_code, content={"error": exc.message})


def create_app(hub: NotificationHub | None = None) -> FastAPI:
    """Build the notification endpoint app.

    Parameters
    ----------
    hub : NotificationHub | None
        Shared hub. When ``None`` the app creates and owns one, and closes
        it on shutdown.
    """
    owns_hub = hub is None
    hub = hub or NotificationHub()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("notification endpoint starting", version=__version__)
        yield
        if owns_hub:
            hub.close()
        logger.info("notification endpoint shutting down")

    app = FastAPI(
        title="relay notification endpoint",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.hub = hub

    app.add_exception_handler(RelayError, relay_error_handler)

    from relay.api.routers import notify

    app.include_router(notify.router)
    return app

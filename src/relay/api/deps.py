"""
FastAPI dependencies for the notification endpoint.

The hub is owned by whoever builds the app (the dispatcher or
``relay serve``) and stashed on ``app.state.hub``; routers receive it
through :data:`Hub` instead of importing a module-level instance.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from relay.coordination.hub import NotificationHub


def get_hub(request: Request) -> NotificationHub:
    hub: NotificationHub | None = getattr(request.app.state, "hub", None)
    if hub is None:
        raise HTTPException(status_code=503, detail="notification hub not configured")
    return hub


Hub = Annotated[NotificationHub, Depends(get_hub)]

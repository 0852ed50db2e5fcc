"""
Notification endpoint (FastAPI) and its in-process server.

Modules
-------
app       create_app() factory
server    NotificationServer (uvicorn task on the caller's loop)
deps      Hub dependency
schemas   wire models for /notify, /health, /pending, /cached
"""

from relay.api.app import create_app
from relay.api.server import NotificationServer

__all__ = ["NotificationServer", "create_app"]

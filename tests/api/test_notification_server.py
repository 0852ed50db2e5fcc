"""Tests for the in-process NotificationServer."""

from __future__ import annotations

import socket

import httpx
import pytest

from relay.api.server import NotificationServer
from relay.coordination.hub import NotificationHub
from relay.core.errors import NotificationServerError


@pytest.mark.integration
class TestNotificationServer:
    @pytest.mark.asyncio
    async def test_start_serve_stop(self):
        hub = NotificationHub()
        server = NotificationServer(hub, host="127.0.0.1", port=0)

        port = await server.start()
        try:
            assert port > 0
            assert server.running
            assert server.url == f"http://127.0.0.1:{port}"

            future = hub.await_completion(5, timeout=5.0)
            async with httpx.AsyncClient(trust_env=False) as client:
                resp = await client.post(f"{server.url}/notify", json={"messageId": 5})
                health = (await client.get(f"{server.url}/health")).json()

            assert resp.status_code == 200
            assert (await future).via_signal
            assert health["status"] == "ok"
            assert server.get_status()["running"] is True
        finally:
            await server.stop()

        assert not server.running
        # the hub belongs to the caller and outlives the server
        assert not hub.closed

    @pytest.mark.asyncio
    async def test_busy_port(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen()
            server = NotificationServer(
                NotificationHub(), host="127.0.0.1", port=blocker.getsockname()[1]
            )

            with pytest.raises(NotificationServerError):
                await server.start()
            assert not server.running

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        server = NotificationServer(NotificationHub(), host="127.0.0.1", port=0)
        await server.stop()
        assert not server.running

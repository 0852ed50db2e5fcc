"""Tests for the worker-side webhook notifier."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from relay.core.errors import ConfigError, RemoteCommandError
from relay.ops.notifier import WebhookNotifier
from relay.store.queue import QueueStore
from tests._support.fakes import QUEUE_PATH, FakeExecutor, make_record

URL = "http://dispatcher:9000/notify"


class Endpoint:
    """Records POST bodies; answers with ``status_code``."""

    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.bodies: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.bodies.append(json.loads(request.content))
        return httpx.Response(self.status_code, json={"success": self.status_code == 200})


def _notifier(executor: FakeExecutor, endpoint: Endpoint, **kwargs) -> WebhookNotifier:
    client = httpx.AsyncClient(transport=httpx.MockTransport(endpoint))
    return WebhookNotifier(QueueStore(executor, QUEUE_PATH), URL, client=client, **kwargs)


class TestCheckOnce:
    @pytest.mark.asyncio
    async def test_already_processed_are_skipped(self, executor):
        executor.put_document(processed=[make_record(1, response="old")])
        endpoint = Endpoint()
        notifier = _notifier(executor, endpoint)

        assert await notifier.check_once() == []
        assert notifier.primed
        assert await notifier.check_once() == []
        assert endpoint.bodies == []

    @pytest.mark.asyncio
    async def test_new_completion_is_posted_once(self, executor):
        executor.put_document(pending=[make_record(2)])
        endpoint = Endpoint()
        notifier = _notifier(executor, endpoint)
        await notifier.prime()

        executor.answer(2, "fresh")
        assert await notifier.check_once() == [2]
        assert await notifier.check_once() == []

        [body] = endpoint.bodies
        assert body["messageId"] == 2
        assert body["status"] == "completed"
        assert body["timestamp"].endswith("Z")
        assert notifier.has_notified("2")

    @pytest.mark.asyncio
    async def test_other_origins_are_marked_seen_silently(self, executor):
        executor.put_document(pending=[make_record(3, user="slack-user")])
        endpoint = Endpoint()
        notifier = _notifier(executor, endpoint)
        await notifier.prime()

        executor.answer(3, "for slack")
        assert await notifier.check_once() == []
        assert endpoint.bodies == []
        assert notifier.has_notified(3)

    @pytest.mark.asyncio
    async def test_rejected_post_is_retried(self, executor):
        executor.put_document(pending=[make_record(4)])
        endpoint = Endpoint(status_code=503)
        notifier = _notifier(executor, endpoint)
        await notifier.prime()
        executor.answer(4, "done")

        assert await notifier.check_once() == []
        assert not notifier.has_notified(4)

        endpoint.status_code = 200
        assert await notifier.check_once() == [4]
        assert len(endpoint.bodies) == 2

    @pytest.mark.asyncio
    async def test_connection_error_is_retried(self, executor):
        executor.put_document(pending=[make_record(5)])
        calls = {"n": 0}

        def _flaky(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            if calls["n"] == 1:
                raise httpx.ConnectError("tunnel down", request=request)
            return httpx.Response(200, json={"success": True})

        client = httpx.AsyncClient(transport=httpx.MockTransport(_flaky))
        notifier = WebhookNotifier(QueueStore(executor, QUEUE_PATH), URL, client=client)
        await notifier.prime()
        executor.answer(5, "done")

        assert await notifier.check_once() == []
        assert await notifier.check_once() == [5]

    @pytest.mark.asyncio
    async def test_check_without_client_is_config_error(self, executor):
        executor.put_document(pending=[make_record(3)])
        notifier = WebhookNotifier(QueueStore(executor, QUEUE_PATH), URL)
        await notifier.prime()

        executor.answer(3, "done")
        with pytest.raises(ConfigError):
            await notifier.check_once()
        assert not notifier.has_notified(3)


class TestRun:
    @pytest.mark.asyncio
    async def test_run_until_stopped(self, executor):
        executor.put_document(pending=[make_record(6)])
        endpoint = Endpoint()
        notifier = _notifier(executor, endpoint, interval=0.01)

        task = asyncio.create_task(notifier.run())
        await asyncio.sleep(0.03)
        executor.answer(6, "done")
        await asyncio.sleep(0.05)
        notifier.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert [b["messageId"] for b in endpoint.bodies] == [6]

    @pytest.mark.asyncio
    async def test_read_errors_do_not_stop_the_loop(self, executor):
        executor.read_errors = [RemoteCommandError("cat failed", exit_code=1)]
        notifier = _notifier(executor, Endpoint(), interval=0.01)

        task = asyncio.create_task(notifier.run())
        await asyncio.sleep(0.05)
        notifier.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert notifier.primed

"""Tests for the worker-side queue helper."""

from __future__ import annotations

import pytest

from relay.core.errors import OriginMismatchError, RequestNotFoundError
from relay.ops.queue_admin import initialize_store, list_pending, respond
from relay.store.queue import QueueStore
from tests._support.fakes import QUEUE_PATH, FakeExecutor, make_record


class TestListPending:
    @pytest.mark.asyncio
    async def test_returns_queue_order(self, executor, store):
        executor.put_document(pending=[make_record(2), make_record(1)])
        assert [r.id for r in await list_pending(store)] == [2, 1]

    @pytest.mark.asyncio
    async def test_empty(self, store):
        assert await list_pending(store) == []


class TestRespond:
    @pytest.mark.asyncio
    async def test_moves_record_with_response(self, executor, store):
        executor.put_document(pending=[make_record(1700000000000, channel="C1")])

        record = await respond(store, "1700000000000", "The answer")

        doc = executor.document()
        assert doc["pending"] == []
        [processed] = doc["processed"]
        assert processed["response"] == "The answer"
        assert processed["channel"] == "C1"
        assert processed["respondedAt"] == record.responded_at

    @pytest.mark.asyncio
    async def test_origin_guard_rejects_other_producer(self, executor, store):
        executor.put_document(pending=[make_record(1, user="slack-user")])

        with pytest.raises(OriginMismatchError):
            await respond(store, 1, "nope", origin="relay")
        assert executor.document()["pending"][0]["id"] == 1

    @pytest.mark.asyncio
    async def test_origin_guard_accepts_matching_producer(self, executor, store):
        executor.put_document(pending=[make_record(1)])
        await respond(store, 1, "yes", origin="relay")
        assert executor.document()["processed"][0]["response"] == "yes"

    @pytest.mark.asyncio
    async def test_unknown_id(self, store):
        with pytest.raises(RequestNotFoundError):
            await respond(store, 99, "x")


class TestInitialize:
    @pytest.mark.asyncio
    async def test_creates_missing_document(self):
        executor = FakeExecutor()
        store = QueueStore(executor, QUEUE_PATH)
        assert await initialize_store(store) is True
        assert executor.document() == {"pending": [], "processing": [], "processed": [], "version": 0}

    @pytest.mark.asyncio
    async def test_keeps_existing_document(self, executor, store):
        executor.put_document(pending=[make_record(1)])
        assert await initialize_store(store) is False
        assert executor.document()["pending"][0]["id"] == 1

"""Shared fixtures for relay tests."""

from __future__ import annotations

import pytest

from relay.store.queue import QueueStore
from tests._support.fakes import QUEUE_PATH, FakeExecutor


@pytest.fixture
def executor() -> FakeExecutor:
    fake = FakeExecutor()
    fake.put_document()
    return fake


@pytest.fixture
def store(executor: FakeExecutor) -> QueueStore:
    return QueueStore(executor, QUEUE_PATH)

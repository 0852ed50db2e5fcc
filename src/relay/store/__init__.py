"""Shared queue document access."""

from relay.store.queue import QueueStore

__all__ = ["QueueStore"]

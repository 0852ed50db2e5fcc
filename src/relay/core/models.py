"""
Queue document and request record models.

The queue document is shared with tooling we do not own (the worker's queue
helper, the webhook notifier), so these models are lenient readers and
faithful writers: unknown fields on a record or at the top level survive a
read/write cycle, and optional wire fields are only written back when they
were present or set.

Wire shape::

    {
      "pending":    [Request, ...],
      "processing": [Request, ...],       # optional bucket
      "processed":  [Request & {response, respondedAt}, ...],
      "version":    3                     # bumped by relay on every write
    }

Tags:
    models, queue, wire-format, relay

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from relay.core.errors import MalformedStoreError

BUCKETS: tuple[str, ...] = ("pending", "processing", "processed")

# record keys with a dedicated attribute; everything else goes to ``extra``
_RECORD_KEYS = frozenset(
    {
        "id",
        "query",
        "user",
        "channel",
        "timestamp",
        "sessionName",
        "messageTs",
        "images",
        "imageCount",
        "retries",
        "response",
        "respondedAt",
    }
)


def utcnow_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def id_key(message_id: int | str) -> str:
    """Canonical comparison key: ``42`` and ``"42"`` name the same request."""
    return str(message_id).strip()


@dataclass
class RequestRecord:
    """One request as stored in a queue bucket.

    ``origin`` is persisted as ``user`` and ``created_at`` as ``timestamp``
    because that is what the worker-side tooling routes on.
    """

    id: int | str
    query: str = ""
    origin: str | None = None
    channel: str | None = None
    created_at: str | None = None
    session_name: str | None = None
    message_ts: str | None = None
    images: list[str] | None = None
    image_count: int | None = None
    retries: int = 0
    response: Any = None
    responded_at: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return id_key(self.id)

    def matches(self, message_id: int | str) -> bool:
        return self.key == id_key(message_id)

    @property
    def is_answered(self) -> bool:
        return self.response is not None or self.responded_at is not None

    @classmethod
    def from_dict(cls, data: Any) -> RequestRecord:
        if not isinstance(data, dict):
            raise MalformedStoreError(f"queue record is not an object: {data!r:.80}")
        if data.get("id") in (None, ""):
            raise MalformedStoreError("queue record without id")
        retries = data.get("retries", 0)
        return cls(
            id=data["id"],
            query=data.get("query", ""),
            origin=data.get("user"),
            channel=data.get("channel"),
            created_at=data.get("timestamp"),
            session_name=data.get("sessionName"),
            message_ts=data.get("messageTs"),
            images=data.get("images"),
            image_count=data.get("imageCount"),
            retries=retries if isinstance(retries, int) else 0,
            response=data.get("response"),
            responded_at=data.get("respondedAt"),
            extra={k: v for k, v in data.items() if k not in _RECORD_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "query": self.query}
        optional = {
            "user": self.origin,
            "channel": self.channel,
            "timestamp": self.created_at,
            "sessionName": self.session_name,
            "messageTs": self.message_ts,
            "images": self.images,
            "imageCount": self.image_count,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        data["retries"] = self.retries
        if self.response is not None:
            data["response"] = self.response
        if self.responded_at is not None:
            data["respondedAt"] = self.responded_at
        data.update(self.extra)
        return data


@dataclass
class QueueDocument:
    """The three-bucket queue document.

    ``etag`` is the SHA-256 of the raw text this document was parsed from;
    it is not serialized and is ``None`` for documents built in memory.
    """

    pending: list[RequestRecord] = field(default_factory=list)
    processing: list[RequestRecord] = field(default_factory=list)
    processed: list[RequestRecord] = field(default_factory=list)
    version: int = 0
    extra: dict[str, Any] = field(default_factory=dict)
    etag: str | None = None
    has_processing: bool = False

    @staticmethod
    def compute_etag(raw: str) -> str:
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    @classmethod
    def from_json(cls, raw: str) -> QueueDocument:
        """Parse the raw document text.

        Raises:
            MalformedStoreError: not JSON, not an object, a bucket that is
                not a list, or a record that is not an object with an id.
        """
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as exc:
            raise MalformedStoreError(f"queue document is not valid JSON: {exc}", cause=exc) from exc
        if not isinstance(data, dict):
            raise MalformedStoreError("queue document is not a JSON object")

        buckets: dict[str, list[RequestRecord]] = {}
        for name in BUCKETS:
            items = data.get(name, [])
            if items is None:
                items = []
            if not isinstance(items, list):
                raise MalformedStoreError(f"queue bucket {name!r} is not a list")
            buckets[name] = [RequestRecord.from_dict(item) for item in items]

        version = data.get("version", 0)
        return cls(
            pending=buckets["pending"],
            processing=buckets["processing"],
            processed=buckets["processed"],
            version=version if isinstance(version, int) else 0,
            extra={k: v for k, v in data.items() if k not in BUCKETS and k != "version"},
            etag=cls.compute_etag(raw),
            has_processing="processing" in data,
        )

    def to_json(self) -> str:
        data: dict[str, Any] = {
            "pending": [r.to_dict() for r in self.pending],
        }
        if self.has_processing or self.processing:
            data["processing"] = [r.to_dict() for r in self.processing]
        data["processed"] = [r.to_dict() for r in self.processed]
        data["version"] = self.version
        data.update(self.extra)
        return json.dumps(data, indent=2, ensure_ascii=False)

    def bucket(self, name: str) -> list[RequestRecord]:
        if name not in BUCKETS:
            raise ValueError(f"unknown bucket: {name}")
        return getattr(self, name)

    def find(self, bucket: str, message_id: int | str) -> RequestRecord | None:
        """First record with this id in one bucket, or None."""
        for record in self.bucket(bucket):
            if record.matches(message_id):
                return record
        return None

    def locate(self, message_id: int | str) -> tuple[str, RequestRecord] | None:
        """Find the single bucket holding ``message_id``.

        An id that appears more than once across the buckets breaks the
        producer contract and is reported as not found.
        """
        hits = [
            (name, record)
            for name in BUCKETS
            for record in self.bucket(name)
            if record.matches(message_id)
        ]
        if len(hits) != 1:
            return None
        return hits[0]

    def duplicates(self, message_id: int | str) -> int:
        return sum(1 for name in BUCKETS for r in self.bucket(name) if r.matches(message_id))

    def counts(self) -> dict[str, int]:
        return {name: len(self.bucket(name)) for name in BUCKETS}


@dataclass(frozen=True)
class Completion:
    """Outcome of waiting on a request.

    Exactly one of ``via_signal``, ``polled`` or ``timed_out`` is set.
    Timing out is a normal outcome, not an exception.
    """

    message_id: int | str
    status: str | None = None
    via_signal: bool = False
    polled: bool = False
    timed_out: bool = False
    response: Any = None

    @classmethod
    def signaled(cls, message_id: int | str, status: str) -> Completion:
        return cls(message_id=message_id, status=status, via_signal=True)

    @classmethod
    def from_poll(cls, message_id: int | str, response: Any) -> Completion:
        return cls(message_id=message_id, polled=True, response=response)

    @classmethod
    def timeout(cls, message_id: int | str) -> Completion:
        return cls(message_id=message_id, timed_out=True)

    @property
    def path(self) -> str:
        if self.via_signal:
            return "signal"
        if self.polled:
            return "poll"
        return "timeout"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"messageId": self.message_id}
        if self.via_signal:
            data.update(status=self.status, viaSignal=True)
        elif self.polled:
            data.update(polled=True, response=self.response)
        else:
            data["timedOut"] = True
        return data

"""
Structured error types for relay.

Every failure the coordination layer can surface carries a category, a
retryable flag, and a small context (message id, remote host, queue path) so
that the CLI and the logs can say *which* request failed and *why* without
string-matching exception messages.

Manifesto:
    - **Typed hierarchy:** transport, store, request, coordination errors
    - **Explicit retry semantics:** transport failures are retryable, a
      malformed store or a conflicting write is not
    - **Timeout is an outcome:** internally a timeout is a result value; only
      the dispatcher converts it to ``RequestTimeoutError``
    - **Error chaining:** wrap the underlying exception as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                          RelayError                          │
        │          (category, retryable, context, cause)               │
        ├──────────────────────────────────────────────────────────────┤
        │  TransientError        StoreError           RequestError     │
        │   TransportError        MalformedStore       RequestTimeout  │
        │   RemoteCommandError    StoreWriteError      PayloadMissing  │
        │   CommandTimeoutError   StoreConflictError   RequestNotFound │
        │                                                              │
        │  ValidationError       CoordinationError    ConfigError      │
        │   InvalidSignalError    DuplicateRegistration                │
        │   OriginMismatchError   NotificationServerError              │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> err = RemoteCommandError("ssh exited 255", exit_code=255)
    >>> err.retryable
    True
    >>> RequestTimeoutError(42, elapsed=180.2, timeout=180.0).context.message_id
    42

Tags:
    error-handling, exception-hierarchy, retry-logic, relay

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and log routing."""

    NETWORK = "NETWORK"            # ssh / http unreachable, command failed
    STORAGE = "STORAGE"            # queue document read/write
    PARSE = "PARSE"                # queue document not valid JSON
    VALIDATION = "VALIDATION"      # bad inbound signal, wrong origin
    CONFIG = "CONFIG"              # missing host, bad transport name
    REQUEST = "REQUEST"            # timeout, not found, missing payload
    COORDINATION = "COORDINATION"  # waiter registration, notification server
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error for logging."""

    message_id: int | str | None = None
    remote_host: str | None = None
    queue_path: str | None = None
    command: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ("message_id", "remote_host", "queue_path", "command"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RelayError(Exception):
    """
    Base exception for all relay errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    may override both per instance.

    Examples:
        >>> err = RelayError("boom").with_context(message_id=7, attempt=2)
        >>> err.to_dict()["context"]
        {'message_id': 7, 'attempt': 2}
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RelayError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS (retried by the poll loop)
# =============================================================================


class TransientError(RelayError):
    """Temporary error that may succeed on the next attempt."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class TransportError(TransientError):
    """The remote execution transport could not be used at all."""


class RemoteCommandError(TransportError):
    """A remote command ran but exited non-zero."""

    def __init__(
        self,
        message: str,
        *,
        exit_code: int | None = None,
        stderr: str = "",
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.exit_code = exit_code
        self.stderr = stderr
        if exit_code is not None:
            self.context.metadata["exit_code"] = exit_code


class CommandTimeoutError(TransportError):
    """A remote command did not finish within its time limit."""


# =============================================================================
# STORE ERRORS
# =============================================================================


class StoreError(RelayError):
    """Queue document could not be read or written."""

    default_category = ErrorCategory.STORAGE


class MalformedStoreError(StoreError):
    """Queue document is not a JSON object with the expected buckets."""

    default_category = ErrorCategory.PARSE


class StoreWriteError(StoreError):
    """Writing the queue document failed; the request was not queued."""


class StoreConflictError(StoreError):
    """The document changed between our read and our write."""

    def __init__(self, message: str, *, expected: str, actual: str, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.expected = expected
        self.actual = actual


# =============================================================================
# REQUEST ERRORS (surfaced to the dispatcher's caller)
# =============================================================================


class RequestError(RelayError):
    """A submitted request could not be answered."""

    default_category = ErrorCategory.REQUEST


class RequestTimeoutError(RequestError):
    """No answer arrived before the request deadline."""

    def __init__(self, message_id: int | str, *, elapsed: float, timeout: float, **kwargs: Any):
        super().__init__(
            f"Timeout waiting for response to message {message_id} "
            f"after {elapsed * 1000:.0f}ms (limit {timeout * 1000:.0f}ms)",
            **kwargs,
        )
        self.message_id = message_id
        self.elapsed = elapsed
        self.timeout = timeout
        self.context.message_id = message_id


class PayloadMissingError(RequestError):
    """Completion was reported but the processed record is not in the store."""

    def __init__(self, message_id: int | str, *, via: str, **kwargs: Any):
        super().__init__(
            f"Message {message_id} resolved via {via} but payload missing from processed queue",
            **kwargs,
        )
        self.message_id = message_id
        self.via = via
        self.context.message_id = message_id


class RequestNotFoundError(RequestError):
    """The store never produced a record with this identifier."""

    def __init__(self, message_id: int | str, *, bucket: str | None = None, **kwargs: Any):
        where = f" in {bucket} queue" if bucket else ""
        super().__init__(f"Message {message_id} not found{where}", **kwargs)
        self.message_id = message_id
        self.context.message_id = message_id


# =============================================================================
# VALIDATION / COORDINATION / CONFIG
# =============================================================================


class ValidationError(RelayError):
    """Input rejected before any state changed."""

    default_category = ErrorCategory.VALIDATION


class InvalidSignalError(ValidationError):
    """Inbound completion signal without a message id."""


class OriginMismatchError(ValidationError):
    """A record belongs to a different producer than the caller expected."""


class CoordinationError(RelayError):
    """Misuse of the waiter registry or notification server failure."""

    default_category = ErrorCategory.COORDINATION


class DuplicateRegistrationError(CoordinationError):
    """A second live waiter was registered for the same message id."""


class NotificationServerError(CoordinationError):
    """The notification HTTP server could not be started."""


class ConfigError(RelayError):
    """Missing or invalid configuration."""

    default_category = ErrorCategory.CONFIG


def is_retryable(error: BaseException) -> bool:
    """True for relay errors flagged retryable; other exceptions are not."""
    if isinstance(error, RelayError):
        return error.retryable
    return False


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RelayError",
    "TransientError",
    "TransportError",
    "RemoteCommandError",
    "CommandTimeoutError",
    "StoreError",
    "MalformedStoreError",
    "StoreWriteError",
    "StoreConflictError",
    "RequestError",
    "RequestTimeoutError",
    "PayloadMissingError",
    "RequestNotFoundError",
    "ValidationError",
    "InvalidSignalError",
    "OriginMismatchError",
    "CoordinationError",
    "DuplicateRegistrationError",
    "NotificationServerError",
    "ConfigError",
    "is_retryable",
]

"""
Relay core primitives: errors, logging, settings, queue models.

Modules
-------
errors      RelayError hierarchy with categories and retry flags
logging     structlog configuration and LogContext
settings    RelaySettings (pydantic-settings, RELAY_ prefix)
models      RequestRecord, QueueDocument, Completion
ids         IdAllocator for time-derived unique message ids
"""

from relay.core.errors import (
    CommandTimeoutError,
    ConfigError,
    CoordinationError,
    DuplicateRegistrationError,
    ErrorCategory,
    ErrorContext,
    InvalidSignalError,
    MalformedStoreError,
    NotificationServerError,
    OriginMismatchError,
    PayloadMissingError,
    RelayError,
    RemoteCommandError,
    RequestError,
    RequestNotFoundError,
    RequestTimeoutError,
    StoreConflictError,
    StoreError,
    StoreWriteError,
    TransientError,
    TransportError,
    ValidationError,
    is_retryable,
)
from relay.core.ids import IdAllocator
from relay.core.models import BUCKETS, Completion, QueueDocument, RequestRecord, id_key

__all__ = [
    "BUCKETS",
    "CommandTimeoutError",
    "Completion",
    "ConfigError",
    "CoordinationError",
    "DuplicateRegistrationError",
    "ErrorCategory",
    "ErrorContext",
    "IdAllocator",
    "InvalidSignalError",
    "MalformedStoreError",
    "NotificationServerError",
    "OriginMismatchError",
    "PayloadMissingError",
    "QueueDocument",
    "RelayError",
    "RemoteCommandError",
    "RequestError",
    "RequestNotFoundError",
    "RequestRecord",
    "RequestTimeoutError",
    "StoreConflictError",
    "StoreError",
    "StoreWriteError",
    "TransientError",
    "TransportError",
    "ValidationError",
    "id_key",
    "is_retryable",
]

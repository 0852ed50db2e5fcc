"""Tests for the relay error hierarchy."""

from __future__ import annotations

from relay.core.errors import (
    CommandTimeoutError,
    ErrorCategory,
    InvalidSignalError,
    MalformedStoreError,
    PayloadMissingError,
    RelayError,
    RemoteCommandError,
    RequestTimeoutError,
    StoreWriteError,
    TransportError,
    ValidationError,
    is_retryable,
)


class TestCategories:
    def test_transport_errors_are_retryable(self):
        assert is_retryable(TransportError("down"))
        assert is_retryable(CommandTimeoutError("slow"))
        assert TransportError("down").category == ErrorCategory.NETWORK

    def test_store_errors_are_not_retryable(self):
        assert not is_retryable(StoreWriteError("disk full"))
        assert MalformedStoreError("bad").category == ErrorCategory.PARSE

    def test_plain_exceptions_are_not_retryable(self):
        assert not is_retryable(ValueError("x"))

    def test_invalid_signal_is_validation(self):
        assert isinstance(InvalidSignalError("messageId required"), ValidationError)


class TestMessages:
    def test_timeout_names_id_and_elapsed(self):
        err = RequestTimeoutError(1700000000000, elapsed=1.5, timeout=1.0)
        assert "1700000000000" in err.message
        assert "1500ms" in err.message
        assert err.context.message_id == 1700000000000

    def test_payload_missing_names_path(self):
        err = PayloadMissingError(9, via="signal")
        assert "9" in err.message
        assert "signal" in err.message

    def test_remote_command_exit_code_in_context(self):
        err = RemoteCommandError("failed", exit_code=255, stderr="Connection refused")
        assert err.to_dict()["context"]["exit_code"] == 255


class TestContext:
    def test_with_context_and_to_dict(self):
        cause = OSError("boom")
        err = RelayError("wrapped", cause=cause).with_context(queue_path="/q.json", attempt=3)
        data = err.to_dict()
        assert data["error_type"] == "RelayError"
        assert data["context"] == {"queue_path": "/q.json", "attempt": 3}
        assert data["cause"] == "boom"
        assert err.__cause__ is cause

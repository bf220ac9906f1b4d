"""Tests for error classification and wrapping."""

from __future__ import annotations

import pytest

from kluster._errors import ErrorKind, classify, handle_errors, is_not_found, wrap_error
from kluster.exceptions import (
    KlusterError,
    NotFoundError,
    RateLimitError,
    TransientAbsenceError,
    ValidationError,
)


class TestClassify:
    """Test classify()."""

    @pytest.mark.parametrize("target", ["Terminated", "Deleted", "DELETED"])
    def test_not_found_for_removed_target_is_success(self, target: str) -> None:
        """Not-found while waiting for a removed state should be success."""
        assert classify(NotFoundError("Not found"), target) is ErrorKind.NOT_FOUND_AS_SUCCESS

    def test_not_found_message_for_removed_target_is_success(self) -> None:
        """A remote Not found message should count as not-found."""
        err = KlusterError("Error getting cluster: Not found")

        assert classify(err, "Terminated") is ErrorKind.NOT_FOUND_AS_SUCCESS

    def test_not_found_for_running_is_fatal(self) -> None:
        """Not-found while waiting for Running should be fatal."""
        assert classify(NotFoundError("Not found"), "Running") is ErrorKind.FATAL

    def test_transient_absence_is_retryable(self) -> None:
        """Transient absence should be retryable."""
        assert classify(TransientAbsenceError("no agent found"), "active") is ErrorKind.RETRYABLE

    def test_everything_else_is_fatal(self) -> None:
        """Other errors should be fatal."""
        assert classify(KlusterError("Server error: boom"), "Running") is ErrorKind.FATAL
        assert classify(ValidationError("bad"), "Terminated") is ErrorKind.FATAL

    def test_is_not_found(self) -> None:
        """is_not_found should recognise the class and the remote message."""
        assert is_not_found(NotFoundError("gone"))
        assert is_not_found(KlusterError("Not found"))
        assert not is_not_found(KlusterError("Not found yet, retry"))
        assert not is_not_found(ValueError("Not found"))


class TestWrapError:
    """Test wrap_error() and handle_errors()."""

    def test_keeps_class_and_prefixes_message(self) -> None:
        """Wrapping should keep the error class and prefix the action."""
        original = NotFoundError("Not found", resource_id="demo")

        wrapped = wrap_error("Error deleting cluster", original)

        assert isinstance(wrapped, NotFoundError)
        assert wrapped.message == "Error deleting cluster: Not found"
        assert str(wrapped) == "Error deleting cluster: Not found"
        assert wrapped.resource_id == "demo"
        assert wrapped.__cause__ is original
        assert original.message == "Not found"

    def test_keeps_extra_attributes(self) -> None:
        """Wrapping should keep error specific attributes."""
        wrapped = wrap_error("Error updating cluster", RateLimitError("slow down", retry_after=3))

        assert isinstance(wrapped, RateLimitError)
        assert wrapped.retry_after == 3

    def test_handle_errors(self) -> None:
        """handle_errors should wrap errors raised in the block."""
        with pytest.raises(ValidationError, match="^Error creating cluster: bad spec$"):
            with handle_errors("Error creating cluster"):
                raise ValidationError("bad spec")

    def test_handle_errors_ignores_foreign_exceptions(self) -> None:
        """handle_errors should let other exceptions through untouched."""
        with pytest.raises(KeyError):
            with handle_errors("Error creating cluster"):
                raise KeyError("x")

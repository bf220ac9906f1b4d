"""Kluster SDK exceptions.

All exceptions inherit from KlusterError for easy catching.

Transport failures map onto the HTTP-oriented classes (NotFoundError,
AuthenticationError, ...). Waiting for a remote object to converge adds its
own classes: TransientAbsenceError, FatalRemoteEventError,
UnexpectedStateError, WaitTimeoutError and CancelledError.
"""

from __future__ import annotations

from typing import Any


class KlusterError(Exception):
    """Base exception for all Kluster SDK errors."""

    def __init__(self, message: str, *, response: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.response = response

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class AuthenticationError(KlusterError):
    """Invalid or missing token.

    Check that KLUSTER_TOKEN is set or pass token to KlusterClient.
    """


class RateLimitError(KlusterError):
    """Rate limit exceeded.

    Check retry_after for when to retry.
    """

    def __init__(
        self, message: str, *, retry_after: int | None = None, response: Any = None
    ) -> None:
        super().__init__(message, response=response)
        self.retry_after = retry_after


class ValidationError(KlusterError):
    """Request or input validation failed.

    Raised locally (duplicate node pool names, empty identities) before any
    network call is made, and for 422 responses from the remote API.
    """

    def __init__(
        self, message: str, *, errors: list[dict[str, Any]] | None = None, response: Any = None
    ) -> None:
        super().__init__(message, response=response)
        self.errors = errors or []


class NotFoundError(KlusterError):
    """Resource not found.

    During a deletion wait this is terminal absence: the object is gone.
    """

    def __init__(
        self, message: str, *, resource_type: str = "", resource_id: str = "", response: Any = None
    ) -> None:
        super().__init__(message, response=response)
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConnectionError(KlusterError):
    """Failed to connect to the remote API.

    Check network connectivity and base_url configuration.
    """


class TimeoutError(KlusterError):
    """Request timed out."""


class TransientAbsenceError(KlusterError):
    """The object is not visible yet.

    Retried while a positive wait timeout remains, surfaced immediately otherwise.
    """


class FatalRemoteEventError(KlusterError):
    """The remote system reported an explicit failure event."""

    def __init__(self, message: str, *, reason: str = "", response: Any = None) -> None:
        super().__init__(message, response=response)
        self.reason = reason


class UnexpectedStateError(KlusterError):
    """The object reported a status that is neither the target nor pending."""

    def __init__(self, message: str, *, label: str = "", response: Any = None) -> None:
        super().__init__(message, response=response)
        self.label = label


class WaitTimeoutError(TimeoutError):
    """The wait deadline elapsed while the object was still pending."""

    def __init__(self, message: str, *, last_label: str = "", response: Any = None) -> None:
        super().__init__(message, response=response)
        self.last_label = last_label


class CancelledError(KlusterError):
    """The caller cancelled the wait, or its context deadline expired."""

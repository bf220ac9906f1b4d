"""Classification and wrapping of remote failures."""

from __future__ import annotations

import copy
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum

from kluster.exceptions import KlusterError, NotFoundError, TransientAbsenceError

# Targets that mean "the object is gone"; a not-found during such a wait is success.
REMOVED_LABELS = frozenset({"Terminated", "Deleted", "DELETED"})

# Payload message the cluster API returns for missing clusters.
NOT_FOUND_MESSAGE = "Not found"


class ErrorKind(str, Enum):
    """How a failure affects a convergence wait."""

    FATAL = "fatal"
    NOT_FOUND_AS_SUCCESS = "not_found_as_success"
    RETRYABLE = "retryable"


def is_not_found(err: BaseException) -> bool:
    """Return True if the error means the remote object does not exist."""
    if isinstance(err, NotFoundError):
        return True
    if isinstance(err, KlusterError):
        return err.message == NOT_FOUND_MESSAGE or err.message.endswith(f": {NOT_FOUND_MESSAGE}")
    return False


def classify(err: BaseException, target: str | None = None) -> ErrorKind:
    """Map a remote failure onto its effect on a wait for ``target``.

    Args:
        err: The raised error.
        target: The status label being waited for, if any.

    Returns:
        NOT_FOUND_AS_SUCCESS when waiting for a removed label and the object is
        gone, RETRYABLE for transient absence, FATAL for everything else.
    """
    if target in REMOVED_LABELS and is_not_found(err):
        return ErrorKind.NOT_FOUND_AS_SUCCESS
    if isinstance(err, TransientAbsenceError):
        return ErrorKind.RETRYABLE
    return ErrorKind.FATAL


def wrap_error(action: str, err: KlusterError) -> KlusterError:
    """Prefix an error with the action that failed, keeping its class.

    ``wrap_error("Error deleting cluster", NotFoundError("Not found"))`` is
    still a NotFoundError, with message ``"Error deleting cluster: Not found"``.
    """
    wrapped = copy.copy(err)
    wrapped.message = f"{action}: {err.message}"
    wrapped.args = (wrapped.message,)
    wrapped.__cause__ = err
    return wrapped


@contextmanager
def handle_errors(action: str) -> Iterator[None]:
    """Re-raise any KlusterError from the block prefixed with ``action``."""
    try:
        yield
    except KlusterError as e:
        raise wrap_error(action, e) from e

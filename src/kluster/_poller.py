"""Convergence polling for eventually-consistent remote objects.

A mutation against the remote control plane returns immediately while the
object converges in the background. The pollers here sample the object's
status label through a family-specific refresher until it reaches a target,
reports something fatal, or the timeout elapses.

Handles:
- Single-shot checks (timeout == 0)
- Non-decreasing backoff between samples, bounded by the poll interval
- Terminal absence as success for deletion targets
- Transient absence as a pending state under a positive timeout
- Prompt cancellation through a WaitContext
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Collection, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from kluster._errors import ErrorKind, classify
from kluster.exceptions import (
    CancelledError,
    KlusterError,
    UnexpectedStateError,
    ValidationError,
    WaitTimeoutError,
)

logger = logging.getLogger("kluster.poller")

ABSENT_LABEL = "absent"


def as_label(value: Any) -> str:
    """Return the plain string label of a status value or enum member."""
    return value.value if isinstance(value, Enum) else str(value)


@dataclass(frozen=True)
class ConvergenceSpec:
    """What to wait for and how often to look.

    Attributes:
        target: Status label that means the object has converged.
        pending: Labels that mean "not yet, keep polling".
        timeout: Seconds to wait. 0 samples once and never sleeps.
        poll_interval: Upper bound of the sleep between samples.
        min_poll_interval: First sleep between samples.
        delay: Seconds to wait before the first sample in blocking mode.
    """

    target: str
    pending: Collection[str] = field(default_factory=frozenset)
    timeout: float = 0.0
    poll_interval: float = 10.0
    min_poll_interval: float = 1.0
    delay: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "target", as_label(self.target))
        object.__setattr__(self, "pending", frozenset(as_label(p) for p in self.pending))
        if self.target in self.pending:
            raise ValidationError(f"target state {self.target!r} must not be a pending state")
        if self.timeout < 0:
            raise ValidationError(f"timeout must not be negative, got {self.timeout}")
        if self.min_poll_interval <= 0:
            raise ValidationError("min_poll_interval must be positive")
        if self.poll_interval < self.min_poll_interval:
            raise ValidationError("poll_interval must not be smaller than min_poll_interval")
        if self.delay < 0:
            raise ValidationError("delay must not be negative")

    def intervals(self) -> Iterator[float]:
        """Yield sleep durations: doubling from min_poll_interval, capped at poll_interval."""
        interval = self.min_poll_interval
        while True:
            yield interval
            interval = min(interval * 2, self.poll_interval)


@dataclass(frozen=True)
class Sample:
    """One observation of a remote object.

    Attributes:
        obj: The fetched object (None when it is absent).
        label: Status label derived by the refresher.
        reason: Human-readable detail for the label, if any.
        absent: True when the object was not visible yet.
    """

    obj: Any
    label: str
    reason: str = ""
    absent: bool = False


class StateRefresher(Protocol):
    """Samples the current status of one object family."""

    def refresh(self, identity: str) -> Sample:
        """Fetch the object once and derive its status label.

        Raises:
            KlusterError: If the remote call fails or reports a fatal event.
        """
        ...


class AsyncStateRefresher(Protocol):
    """Async variant of StateRefresher."""

    async def refresh(self, identity: str) -> Sample: ...


class WaitContext:
    """Cancellation and deadline shared between a caller and a blocking wait.

    Example:
        ```python
        ctx = WaitContext(timeout=120)
        threading.Timer(5, ctx.cancel).start()
        poller.await_state("my-cluster", spec, refresher, ctx=ctx)
        ```
    """

    def __init__(
        self,
        cancel_event: threading.Event | None = None,
        *,
        deadline: float | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the context.

        Args:
            cancel_event: Event the caller sets to cancel. Created if omitted.
            deadline: Absolute time.monotonic() value after which waits stop.
            timeout: Relative alternative to deadline, in seconds.
        """
        self._event = cancel_event or threading.Event()
        if timeout is not None:
            deadline = time.monotonic() + timeout
        self._deadline = deadline

    def cancel(self) -> None:
        """Cancel every wait using this context."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def remaining(self) -> float | None:
        """Seconds until the context deadline, or None without one."""
        if self._deadline is None:
            return None
        return self._deadline - time.monotonic()

    def raise_if_cancelled(self) -> None:
        """Raise CancelledError if cancelled or past the deadline."""
        if self._event.is_set():
            raise CancelledError("wait cancelled")
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise CancelledError("context deadline exceeded")

    def sleep(self, seconds: float) -> None:
        """Sleep, waking up as soon as the context is cancelled."""
        self.raise_if_cancelled()
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if seconds > 0:
            self._event.wait(seconds)
        self.raise_if_cancelled()


def _absorb(identity: str, spec: ConvergenceSpec, err: KlusterError, *, blocking: bool) -> Sample:
    kind = classify(err, spec.target)
    if kind is ErrorKind.NOT_FOUND_AS_SUCCESS:
        logger.debug("%s no longer exists, treating as %s", identity, spec.target)
        return Sample(None, spec.target)
    if kind is ErrorKind.RETRYABLE and blocking:
        return Sample(None, ABSENT_LABEL, reason=err.message, absent=True)
    raise err


def _is_pending(spec: ConvergenceSpec, sample: Sample) -> bool:
    return sample.absent or sample.label in spec.pending


def _not_converged(identity: str, spec: ConvergenceSpec, sample: Sample) -> KlusterError:
    message = f"unexpected state {sample.label!r} for {identity}, wanted target {spec.target!r}"
    if sample.reason:
        message = f"{message}: {sample.reason}"
    return UnexpectedStateError(message, label=sample.label)


def _timed_out(identity: str, spec: ConvergenceSpec, sample: Sample) -> WaitTimeoutError:
    message = (
        f"timeout while waiting for {identity} to become {spec.target!r} "
        f"(last state: {sample.label!r}, timeout: {spec.timeout}s)"
    )
    if sample.reason:
        message = f"{message}: {sample.reason}"
    return WaitTimeoutError(message, last_label=sample.label)


class ConvergencePoller:
    """Blocks the calling thread until an object converges.

    The poller holds no state between calls; one instance can serve any
    number of concurrent waits for different identities.
    """

    def await_state(
        self,
        identity: str,
        spec: ConvergenceSpec,
        refresher: StateRefresher,
        *,
        ctx: WaitContext | None = None,
    ) -> Any:
        """Wait for ``identity`` to reach ``spec.target``.

        Args:
            identity: Key of the object, passed to the refresher.
            spec: Target, pending states and timing.
            refresher: Family-specific status sampler.
            ctx: Optional cancellation / deadline context.

        Returns:
            The object from the sample that reported the target, or None if
            the object disappeared while waiting for a removed state.

        Raises:
            UnexpectedStateError: A label outside pending and target was seen.
            WaitTimeoutError: The timeout elapsed while still pending.
            CancelledError: The context was cancelled or expired.
            KlusterError: The refresher failed fatally.
        """
        ctx = ctx or WaitContext()

        if spec.timeout == 0:
            ctx.raise_if_cancelled()
            sample = self._sample(identity, spec, refresher, blocking=False)
            if sample.label == spec.target:
                return sample.obj
            raise _not_converged(identity, spec, sample)

        logger.debug("Waiting for %s to become %s", identity, spec.target)
        deadline = time.monotonic() + spec.timeout
        if spec.delay:
            ctx.sleep(min(spec.delay, spec.timeout))

        intervals = spec.intervals()
        attempts = 0
        while True:
            ctx.raise_if_cancelled()
            sample = self._sample(identity, spec, refresher, blocking=True)
            attempts += 1
            logger.debug("%s: state %r after %d attempt(s)", identity, sample.label, attempts)

            if sample.label == spec.target:
                return sample.obj
            if not _is_pending(spec, sample):
                raise _not_converged(identity, spec, sample)

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise _timed_out(identity, spec, sample)
            ctx.sleep(min(next(intervals), remaining))

    def _sample(
        self,
        identity: str,
        spec: ConvergenceSpec,
        refresher: StateRefresher,
        *,
        blocking: bool,
    ) -> Sample:
        try:
            return refresher.refresh(identity)
        except KlusterError as e:
            return _absorb(identity, spec, e, blocking=blocking)


class AsyncConvergencePoller:
    """Async variant of ConvergencePoller.

    Cancellation follows anyio: cancelling the enclosing task or cancel scope
    interrupts the sleep between samples immediately.
    """

    async def await_state(
        self,
        identity: str,
        spec: ConvergenceSpec,
        refresher: AsyncStateRefresher,
    ) -> Any:
        """Wait for ``identity`` to reach ``spec.target``."""
        import anyio

        if spec.timeout == 0:
            sample = await self._sample(identity, spec, refresher, blocking=False)
            if sample.label == spec.target:
                return sample.obj
            raise _not_converged(identity, spec, sample)

        logger.debug("Waiting for %s to become %s", identity, spec.target)
        deadline = time.monotonic() + spec.timeout
        if spec.delay:
            await anyio.sleep(min(spec.delay, spec.timeout))

        intervals = spec.intervals()
        while True:
            sample = await self._sample(identity, spec, refresher, blocking=True)
            logger.debug("%s: state %r", identity, sample.label)

            if sample.label == spec.target:
                return sample.obj
            if not _is_pending(spec, sample):
                raise _not_converged(identity, spec, sample)

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise _timed_out(identity, spec, sample)
            await anyio.sleep(min(next(intervals), remaining))

    async def _sample(
        self,
        identity: str,
        spec: ConvergenceSpec,
        refresher: AsyncStateRefresher,
        *,
        blocking: bool,
    ) -> Sample:
        try:
            return await refresher.refresh(identity)
        except KlusterError as e:
            return _absorb(identity, spec, e, blocking=blocking)

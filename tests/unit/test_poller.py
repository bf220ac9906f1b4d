"""Tests for the blocking convergence poller."""

from __future__ import annotations

import threading
import time
from typing import Any

import pytest

from kluster._poller import ConvergencePoller, ConvergenceSpec, Sample, WaitContext
from kluster.exceptions import (
    CancelledError,
    KlusterError,
    NotFoundError,
    TransientAbsenceError,
    UnexpectedStateError,
    ValidationError,
    WaitTimeoutError,
)
from kluster.models.cluster import ClusterPhase

PENDING = ("Pending", "Creating", "Upgrading")


class ScriptedRefresher:
    """Returns (or raises) the scripted steps in order, repeating the last one."""

    def __init__(self, *steps: Any) -> None:
        self.steps = list(steps)
        self.calls = 0

    def refresh(self, identity: str) -> Sample:
        step = self.steps[min(self.calls, len(self.steps) - 1)]
        self.calls += 1
        if isinstance(step, Exception):
            raise step
        if isinstance(step, Sample):
            return step
        return Sample({"name": identity, "phase": step}, step)


def fast_spec(target: str = "Running", pending: Any = PENDING, timeout: float = 5.0) -> ConvergenceSpec:
    return ConvergenceSpec(
        target=target,
        pending=pending,
        timeout=timeout,
        poll_interval=0.005,
        min_poll_interval=0.001,
    )


class TestConvergenceSpec:
    """Test ConvergenceSpec validation."""

    def test_target_in_pending_rejected(self) -> None:
        """The target must not be a pending state."""
        with pytest.raises(ValidationError):
            ConvergenceSpec(target="Running", pending={"Pending", "Running"})

    def test_negative_timeout_rejected(self) -> None:
        """A negative timeout should be rejected."""
        with pytest.raises(ValidationError):
            ConvergenceSpec(target="Running", timeout=-1)

    def test_poll_interval_below_minimum_rejected(self) -> None:
        """The poll interval must not be below the minimum interval."""
        with pytest.raises(ValidationError):
            ConvergenceSpec(target="Running", poll_interval=0.5, min_poll_interval=1)

    def test_enum_labels_are_normalized(self) -> None:
        """Enum labels should be stored as plain strings."""
        spec = ConvergenceSpec(
            target=ClusterPhase.RUNNING,
            pending=[ClusterPhase.PENDING, ClusterPhase.CREATING],
        )

        assert spec.target == "Running"
        assert spec.pending == frozenset({"Pending", "Creating"})

    def test_intervals_double_up_to_poll_interval(self) -> None:
        """Intervals should double from the minimum up to the poll interval."""
        spec = ConvergenceSpec(target="Running", poll_interval=10, min_poll_interval=1)
        intervals = spec.intervals()

        assert [next(intervals) for _ in range(6)] == [1, 2, 4, 8, 10, 10]


class TestSingleShot:
    """Test timeout == 0 behavior."""

    def test_target_returns_object_after_one_call(self) -> None:
        """A zero timeout should return after one call on the target."""
        refresher = ScriptedRefresher("Running")

        result = ConvergencePoller().await_state("demo", fast_spec(timeout=0), refresher)

        assert result == {"name": "demo", "phase": "Running"}
        assert refresher.calls == 1

    def test_pending_label_fails_without_retry(self) -> None:
        """A zero timeout should fail on a pending label without retrying."""
        refresher = ScriptedRefresher("Pending", "Running")

        with pytest.raises(UnexpectedStateError) as exc_info:
            ConvergencePoller().await_state("demo", fast_spec(timeout=0), refresher)

        assert exc_info.value.label == "Pending"
        assert refresher.calls == 1

    def test_transient_absence_surfaces(self) -> None:
        """A zero timeout should surface transient absence."""
        refresher = ScriptedRefresher(TransientAbsenceError("no agent found"))

        with pytest.raises(TransientAbsenceError):
            ConvergencePoller().await_state("", fast_spec("active", (), timeout=0), refresher)

        assert refresher.calls == 1


class TestBlockingWait:
    """Test the polling loop."""

    def test_one_call_per_sample_until_target(self) -> None:
        """Poller should sample once per state until the target."""
        refresher = ScriptedRefresher("Pending", "Creating", "Creating", "Running")

        result = ConvergencePoller().await_state("demo", fast_spec(), refresher)

        assert result["phase"] == "Running"
        assert refresher.calls == 4

    def test_unexpected_label_stops_immediately(self) -> None:
        """An unexpected label should stop the wait immediately."""
        refresher = ScriptedRefresher("Pending", "Terminating", "Running")

        with pytest.raises(UnexpectedStateError) as exc_info:
            ConvergencePoller().await_state("demo", fast_spec(), refresher)

        assert exc_info.value.label == "Terminating"
        assert refresher.calls == 2

    def test_reason_is_included_in_error(self) -> None:
        """The sample reason should appear in the error."""
        refresher = ScriptedRefresher(Sample(None, "failed", reason="exit code 1"))

        with pytest.raises(UnexpectedStateError, match="exit code 1"):
            ConvergencePoller().await_state("job-1", fast_spec("complete", ("queued",)), refresher)

    def test_fatal_error_is_not_retried(self) -> None:
        """Refresher errors should not be retried."""
        refresher = ScriptedRefresher(KlusterError("Server error: boom"), "Running")

        with pytest.raises(KlusterError, match="boom"):
            ConvergencePoller().await_state("demo", fast_spec(), refresher)

        assert refresher.calls == 1

    def test_not_found_while_waiting_for_terminated_is_success(self) -> None:
        """Not-found while waiting for Terminated should be success."""
        refresher = ScriptedRefresher("Terminating", NotFoundError("Not found"))
        spec = fast_spec("Terminated", ("Pending", "Running", "Terminating"))

        result = ConvergencePoller().await_state("demo", spec, refresher)

        assert result is None
        assert refresher.calls == 2

    def test_wrapped_not_found_message_is_success(self) -> None:
        """A wrapped Not found message should also count as gone."""
        refresher = ScriptedRefresher(KlusterError("unable to get cluster: Not found"))
        spec = fast_spec("Terminated", ("Terminating",))

        assert ConvergencePoller().await_state("demo", spec, refresher) is None

    def test_not_found_while_waiting_for_running_is_fatal(self) -> None:
        """Not-found while waiting for Running should be fatal."""
        refresher = ScriptedRefresher(NotFoundError("Not found"))

        with pytest.raises(NotFoundError):
            ConvergencePoller().await_state("demo", fast_spec(), refresher)

    def test_transient_absence_is_retried(self) -> None:
        """Transient absence should be retried under a positive timeout."""
        refresher = ScriptedRefresher(
            TransientAbsenceError("no agent found"),
            TransientAbsenceError("no agent found"),
            Sample({"agent_id": "a-1"}, "active"),
        )

        result = ConvergencePoller().await_state("", fast_spec("active", ()), refresher)

        assert result == {"agent_id": "a-1"}
        assert refresher.calls == 3

    def test_timeout_reports_last_label(self) -> None:
        """A timeout should name the last observed label."""
        refresher = ScriptedRefresher("Pending", "Creating")

        with pytest.raises(WaitTimeoutError) as exc_info:
            ConvergencePoller().await_state("demo", fast_spec(timeout=0.05), refresher)

        assert exc_info.value.last_label == "Creating"
        assert "Running" in exc_info.value.message
        assert refresher.calls >= 2

    def test_timeout_during_absence_reports_absent(self) -> None:
        """A timeout during absence should report the absent label."""
        refresher = ScriptedRefresher(TransientAbsenceError("no agent found"))

        with pytest.raises(WaitTimeoutError) as exc_info:
            ConvergencePoller().await_state("", fast_spec("active", (), timeout=0.02), refresher)

        assert exc_info.value.last_label == "absent"

    def test_wait_timeout_is_a_timeout_error(self) -> None:
        """WaitTimeoutError should be a TimeoutError."""
        from kluster.exceptions import TimeoutError

        refresher = ScriptedRefresher("Pending")

        with pytest.raises(TimeoutError):
            ConvergencePoller().await_state("demo", fast_spec(timeout=0.01), refresher)


class TestCancellation:
    """Test WaitContext cancellation."""

    def test_cancel_interrupts_sleep_promptly(self) -> None:
        """Cancelling should wake the poller without waiting out the interval."""
        refresher = ScriptedRefresher("Pending")
        spec = ConvergenceSpec(
            target="Running",
            pending=PENDING,
            timeout=60,
            poll_interval=5,
            min_poll_interval=5,
        )
        ctx = WaitContext()
        timer = threading.Timer(0.1, ctx.cancel)

        start = time.monotonic()
        timer.start()
        try:
            with pytest.raises(CancelledError, match="cancelled"):
                ConvergencePoller().await_state("demo", spec, refresher, ctx=ctx)
        finally:
            timer.cancel()

        assert time.monotonic() - start < 1.0
        assert refresher.calls == 1

    def test_cancelled_context_makes_no_calls(self) -> None:
        """A cancelled context should prevent any refresh."""
        refresher = ScriptedRefresher("Running")
        ctx = WaitContext()
        ctx.cancel()

        with pytest.raises(CancelledError):
            ConvergencePoller().await_state("demo", fast_spec(), refresher, ctx=ctx)

        assert refresher.calls == 0

    def test_context_deadline(self) -> None:
        """An expired context deadline should raise CancelledError."""
        refresher = ScriptedRefresher("Pending")
        spec = ConvergenceSpec(
            target="Running", pending=PENDING, timeout=60, poll_interval=5, min_poll_interval=5
        )
        ctx = WaitContext(timeout=0.05)

        start = time.monotonic()
        with pytest.raises(CancelledError, match="deadline"):
            ConvergencePoller().await_state("demo", spec, refresher, ctx=ctx)

        assert time.monotonic() - start < 1.0

    def test_shared_event(self) -> None:
        """A caller supplied event should cancel the wait."""
        event = threading.Event()
        ctx = WaitContext(event)

        event.set()

        assert ctx.cancelled

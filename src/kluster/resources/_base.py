"""Base resource class."""

from __future__ import annotations

from collections.abc import Collection
from typing import TYPE_CHECKING

from kluster._config import PollingConfig
from kluster._poller import ConvergenceSpec

if TYPE_CHECKING:
    from kluster._http import AsyncHttpClient, HttpClient


class _Polling:
    _polling: PollingConfig

    def _convergence(
        self,
        target: str,
        pending: Collection[str],
        timeout: float,
    ) -> ConvergenceSpec:
        """Build a ConvergenceSpec using the configured intervals."""
        return ConvergenceSpec(
            target=target,
            pending=pending,
            timeout=timeout,
            poll_interval=max(self._polling.poll_interval, self._polling.min_poll_interval),
            min_poll_interval=self._polling.min_poll_interval,
            delay=self._polling.delay,
        )


class SyncResource(_Polling):
    """Base class for synchronous API resources."""

    def __init__(self, http: HttpClient, polling: PollingConfig | None = None) -> None:
        self._http = http
        self._polling = polling or PollingConfig()


class AsyncResource(_Polling):
    """Base class for asynchronous API resources."""

    def __init__(self, http: AsyncHttpClient, polling: PollingConfig | None = None) -> None:
        self._http = http
        self._polling = polling or PollingConfig()

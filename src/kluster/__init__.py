"""
Kluster SDK - Python SDK for Kubernetes-as-a-service clusters, agents and jobs.

Mutations return immediately; the SDK waits for remote objects to converge.
"""

from kluster._poller import (
    AsyncConvergencePoller,
    ConvergencePoller,
    ConvergenceSpec,
    Sample,
    WaitContext,
)
from kluster._version import __version__
from kluster.client import AsyncKlusterClient, KlusterClient
from kluster.exceptions import (
    AuthenticationError,
    CancelledError,
    ConnectionError,
    FatalRemoteEventError,
    KlusterError,
    NotFoundError,
    RateLimitError,
    TimeoutError,
    TransientAbsenceError,
    UnexpectedStateError,
    ValidationError,
    WaitTimeoutError,
)
from kluster.reconcile import AsyncNodePoolReconciler, NodePoolReconciler, plan_node_pools

__all__ = [
    # Version
    "__version__",
    # Clients
    "KlusterClient",
    "AsyncKlusterClient",
    # Convergence
    "ConvergencePoller",
    "AsyncConvergencePoller",
    "ConvergenceSpec",
    "Sample",
    "WaitContext",
    "NodePoolReconciler",
    "AsyncNodePoolReconciler",
    "plan_node_pools",
    # Exceptions
    "KlusterError",
    "AuthenticationError",
    "RateLimitError",
    "ValidationError",
    "NotFoundError",
    "ConnectionError",
    "TimeoutError",
    "TransientAbsenceError",
    "FatalRemoteEventError",
    "UnexpectedStateError",
    "WaitTimeoutError",
    "CancelledError",
]

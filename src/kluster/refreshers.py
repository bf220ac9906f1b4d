"""Status refreshers for each remote object family.

A refresher performs one fetch per call and derives the status label the
poller understands. The rules deciding what counts as pending, fatal or
absent live here so the pollers stay family-agnostic.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from kluster._errors import REMOVED_LABELS, wrap_error
from kluster._poller import Sample, WaitContext, as_label
from kluster.exceptions import (
    FatalRemoteEventError,
    KlusterError,
    NotFoundError,
    TransientAbsenceError,
    ValidationError,
)
from kluster.models.agent import Agent, AgentState
from kluster.models.cluster import Cluster, ClusterEvent, ClusterPhase
from kluster.models.job import Job

# Substrings of an event reason that mark a failed cluster operation.
FAILURE_MARKERS = ("Error", "Failed")


class ClusterSource(Protocol):
    def get(self, name: str) -> Cluster: ...

    def get_events(self, name: str) -> list[ClusterEvent]: ...


class AsyncClusterSource(Protocol):
    async def get(self, name: str) -> Cluster: ...

    async def get_events(self, name: str) -> list[ClusterEvent]: ...


class JobSource(Protocol):
    def get(self, request_id: str) -> Job: ...


class AsyncJobSource(Protocol):
    async def get(self, request_id: str) -> Job: ...


class AgentSource(Protocol):
    def get(self, agent_id: str) -> Agent: ...

    def list(self, *, filter: str | None = None) -> list[Agent]: ...


class AsyncAgentSource(Protocol):
    async def get(self, agent_id: str) -> Agent: ...

    async def list(self, *, filter: str | None = None) -> list[Agent]: ...


def require_identity(identity: str, kind: str) -> None:
    """Reject an empty identity before any network call."""
    if not identity or not identity.strip():
        raise ValidationError(f"{kind} must not be empty")


def check_events(events: Sequence[ClusterEvent]) -> None:
    """Fail on the most recent event if it reports a failure.

    Raises:
        FatalRemoteEventError: The latest event's reason contains a failure marker.
    """
    if not events:
        return
    event = events[-1]
    if any(marker in event.reason for marker in FAILURE_MARKERS):
        raise FatalRemoteEventError(event.message or event.reason, reason=event.reason)


def cluster_state(cluster: Cluster) -> Sample:
    """Derive a cluster's label, correcting for stale remote phases.

    The remote phase is reported verbatim unless one of these holds:

    - The phase says Running but the apiserver still reports an older version
      than the spec requests. The control plane flips to Running for a moment
      before the upgrade starts, so this is reported as Upgrading.
    - A node pool's desired size differs from its healthy member count, or the
      reported pools are not the desired pools yet. This is reported as Pending.
    """
    spec, status = cluster.spec, cluster.status

    if (
        status.phase == ClusterPhase.RUNNING.value
        and spec.version
        and spec.version != status.apiserver_version
    ):
        return Sample(
            cluster,
            ClusterPhase.UPGRADING.value,
            reason=f"apiserver version {status.apiserver_version!r}, want {spec.version!r}",
        )

    reported = {p.name: p for p in status.node_pools}
    for pool in spec.node_pools:
        observed = reported.get(pool.name)
        # status size lags behind, healthy members are authoritative
        if observed is not None and pool.size != observed.healthy:
            return Sample(
                cluster,
                ClusterPhase.PENDING.value,
                reason=f"node pool {pool.name}: {observed.healthy}/{pool.size} healthy",
            )

    if {p.name for p in spec.node_pools} != set(reported):
        return Sample(cluster, ClusterPhase.PENDING.value, reason="node pools not reported yet")

    return Sample(cluster, as_label(status.phase))


class ClusterRefresher:
    """Samples a cluster's phase.

    Waits for a removed state read the phase verbatim: a terminating cluster's
    events and pools are irrelevant, and its disappearance ends the wait.
    With a ``ctx`` the second request of a sample is skipped once it is cancelled.
    """

    def __init__(
        self, clusters: ClusterSource, target: str, *, ctx: WaitContext | None = None
    ) -> None:
        self._clusters = clusters
        self._target = as_label(target)
        self._ctx = ctx

    def refresh(self, identity: str) -> Sample:
        require_identity(identity, "cluster name")
        cluster = self._clusters.get(identity)
        if self._target in REMOVED_LABELS:
            return Sample(cluster, as_label(cluster.status.phase))

        if self._ctx is not None:
            self._ctx.raise_if_cancelled()
        check_events(self._clusters.get_events(identity))
        return cluster_state(cluster)


class AsyncClusterRefresher:
    """Async variant of ClusterRefresher."""

    def __init__(self, clusters: AsyncClusterSource, target: str) -> None:
        self._clusters = clusters
        self._target = as_label(target)

    async def refresh(self, identity: str) -> Sample:
        require_identity(identity, "cluster name")
        cluster = await self._clusters.get(identity)
        if self._target in REMOVED_LABELS:
            return Sample(cluster, as_label(cluster.status.phase))

        check_events(await self._clusters.get_events(identity))
        return cluster_state(cluster)


class JobRefresher:
    """Samples a job's status. Any fetch failure is fatal."""

    def __init__(self, jobs: JobSource) -> None:
        self._jobs = jobs

    def refresh(self, identity: str) -> Sample:
        require_identity(identity, "job request id")
        try:
            job = self._jobs.get(identity)
        except KlusterError as e:
            raise wrap_error(f"unable to retrieve {identity} job", e) from e
        return Sample(job, as_label(job.status))


class AsyncJobRefresher:
    """Async variant of JobRefresher."""

    def __init__(self, jobs: AsyncJobSource) -> None:
        self._jobs = jobs

    async def refresh(self, identity: str) -> Sample:
        require_identity(identity, "job request id")
        try:
            job = await self._jobs.get(identity)
        except KlusterError as e:
            raise wrap_error(f"unable to retrieve {identity} job", e) from e
        return Sample(job, as_label(job.status))


def _select_agent(agents: Sequence[Agent]) -> Agent:
    if not agents:
        raise TransientAbsenceError("no agent found")
    if len(agents) > 1:
        raise ValidationError(f"more than one agent found ({len(agents)})")
    return agents[0]


class AgentRefresher:
    """Samples an agent by id, or by filter when no id is given.

    An agent that is not registered yet is transient absence, so waiting for
    it keeps polling. An ambiguous filter is a caller error.
    """

    def __init__(self, agents: AgentSource, *, filter: str | None = None) -> None:
        self._agents = agents
        self._filter = filter

    def refresh(self, identity: str) -> Sample:
        if not identity and not self._filter:
            raise ValidationError("at least one of agent_id or filter is expected")

        if identity:
            try:
                agent = self._agents.get(identity)
            except NotFoundError as e:
                raise TransientAbsenceError(f"unable to retrieve {identity} agent: {e.message}") from e
            except KlusterError as e:
                raise wrap_error(f"unable to retrieve {identity} agent", e) from e
        else:
            try:
                agents = self._agents.list(filter=self._filter)
            except KlusterError as e:
                raise wrap_error("unable to list agents", e) from e
            agent = _select_agent(agents)

        return Sample(agent, AgentState.ACTIVE.value)


class AsyncAgentRefresher:
    """Async variant of AgentRefresher."""

    def __init__(self, agents: AsyncAgentSource, *, filter: str | None = None) -> None:
        self._agents = agents
        self._filter = filter

    async def refresh(self, identity: str) -> Sample:
        if not identity and not self._filter:
            raise ValidationError("at least one of agent_id or filter is expected")

        if identity:
            try:
                agent = await self._agents.get(identity)
            except NotFoundError as e:
                raise TransientAbsenceError(f"unable to retrieve {identity} agent: {e.message}") from e
            except KlusterError as e:
                raise wrap_error(f"unable to retrieve {identity} agent", e) from e
        else:
            try:
                agents = await self._agents.list(filter=self._filter)
            except KlusterError as e:
                raise wrap_error("unable to list agents", e) from e
            agent = _select_agent(agents)

        return Sample(agent, AgentState.ACTIVE.value)

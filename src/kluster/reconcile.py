"""Node pool reconciliation.

The cluster API accepts only whole node pool lists and cannot apply several
pool changes atomically. Moving from one pool set to another therefore takes
up to three update-and-wait cycles:

1. Scale removed pools down to zero, keeping them in the spec.
2. Drop them from the spec. Always runs, re-asserting size and zone drift.
3. Submit the final list, unless it equals what step 2 already applied.

Each step waits for the cluster to converge before the next one starts.
A failure aborts the remaining steps; nothing is rolled back.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from kluster._errors import handle_errors
from kluster._poller import (
    AsyncConvergencePoller,
    AsyncStateRefresher,
    ConvergencePoller,
    ConvergenceSpec,
    StateRefresher,
    WaitContext,
)
from kluster.exceptions import ValidationError
from kluster.models.cluster import NodePool
from kluster.refreshers import require_identity

logger = logging.getLogger("kluster.reconcile")

SUBMIT_ACTION = "Error updating cluster"
WAIT_ACTION = "Error waiting for cluster node pools Running state"


@dataclass(frozen=True)
class NodePoolDiffPlan:
    """The pool lists submitted by each reconciliation step.

    Attributes:
        keep: Pools present in both configurations, with zones merged.
        to_delete: Pools only in the old configuration, sized to zero.
        final: The requested configuration.
    """

    keep: list[NodePool]
    to_delete: list[NodePool]
    final: list[NodePool]

    @property
    def needs_create(self) -> bool:
        return self.keep != self.final

    def steps(self) -> list[list[NodePool]]:
        """Pool lists to submit, in order."""
        steps = []
        if self.to_delete:
            steps.append(self.keep + self.to_delete)
        steps.append(list(self.keep))
        if self.needs_create:
            steps.append(list(self.final))
        return steps


def validate_unique_names(pools: Sequence[NodePool]) -> None:
    """Raise ValidationError if two pools share a name."""
    seen: set[str] = set()
    for pool in pools:
        if pool.name in seen:
            raise ValidationError(f"duplicate node pool name found: {pool.name}")
        seen.add(pool.name)


def _matches(old: NodePool, new: NodePool) -> bool:
    # an unset zone on the new pool accepts whatever the remote assigned
    return (
        old.name == new.name
        and old.flavor == new.flavor
        and old.image == new.image
        and (not new.availability_zone or old.availability_zone == new.availability_zone)
    )


def plan_node_pools(old: Sequence[NodePool], new: Sequence[NodePool]) -> NodePoolDiffPlan:
    """Split the old configuration into pools to keep and pools to delete.

    A pool is kept when the new configuration has one with the same name,
    flavor and image, and a compatible availability zone. Changing flavor or
    image therefore replaces the pool.

    Raises:
        ValidationError: Either list contains duplicate names.
    """
    validate_unique_names(old)
    validate_unique_names(new)

    keep: list[NodePool] = []
    to_delete: list[NodePool] = []
    for old_pool in old:
        match = next((p for p in new if _matches(old_pool, p)), None)
        if match is None:
            to_delete.append(old_pool.model_copy(update={"size": 0}, deep=True))
            continue
        if not match.availability_zone:
            match = match.model_copy(update={"availability_zone": old_pool.availability_zone})
        keep.append(match.model_copy(deep=True))

    return NodePoolDiffPlan(keep=keep, to_delete=to_delete, final=list(new))


def _dump(pools: Sequence[NodePool]) -> str:
    return json.dumps([p.model_dump(mode="json") for p in pools], indent=2)


def _prepare(
    identity: str,
    old: Sequence[NodePool],
    new: Sequence[NodePool],
    skip_unchanged: bool,
) -> list[list[NodePool]]:
    require_identity(identity, "cluster name")
    plan = plan_node_pools(old, new)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Old node pools: %s", _dump(old))
        logger.debug("New node pools: %s", _dump(new))
        logger.debug("Keep node pools: %s", _dump(plan.keep))
        logger.debug("Downscale node pools: %s", _dump(plan.to_delete))

    if skip_unchanged and list(old) == list(new):
        logger.debug("Node pools of %s are unchanged", identity)
        return []
    return plan.steps()


class NodePoolReconciler:
    """Drives a cluster's node pools from one configuration to another.

    Example:
        ```python
        reconciler = NodePoolReconciler(
            submit=lambda pools: clusters.update(name, spec.model_copy(update={"node_pools": pools})),
            refresher=ClusterRefresher(clusters, "Running"),
        )
        reconciler.reconcile(name, old_pools, new_pools, wait_spec)
        ```
    """

    def __init__(
        self,
        submit: Callable[[list[NodePool]], object],
        refresher: StateRefresher,
        poller: ConvergencePoller | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            submit: Sends one update carrying the given node pool list.
            refresher: Samples the cluster between steps.
            poller: Poller to wait with.
        """
        self._submit = submit
        self._refresher = refresher
        self._poller = poller or ConvergencePoller()

    def reconcile(
        self,
        identity: str,
        old: Sequence[NodePool],
        new: Sequence[NodePool],
        spec: ConvergenceSpec,
        *,
        ctx: WaitContext | None = None,
        skip_unchanged: bool = False,
    ) -> None:
        """Apply ``new`` to the cluster currently configured with ``old``.

        Args:
            identity: Cluster name.
            old: Previously applied pools, with remotely assigned zones.
            new: Requested pools.
            spec: Convergence target and pending states for every step.
            ctx: Optional cancellation / deadline context.
            skip_unchanged: Issue no calls at all if ``old == new``.

        Raises:
            ValidationError: Duplicate pool names or an empty identity. No
                call has been made in that case.
            KlusterError: A step failed; earlier steps remain applied.
        """
        ctx = ctx or WaitContext()
        for step, pools in enumerate(_prepare(identity, old, new, skip_unchanged), start=1):
            logger.debug("%s: node pool step %d, submitting %d pool(s)", identity, step, len(pools))
            ctx.raise_if_cancelled()
            with handle_errors(SUBMIT_ACTION):
                self._submit(pools)
            with handle_errors(WAIT_ACTION):
                self._poller.await_state(identity, spec, self._refresher, ctx=ctx)


class AsyncNodePoolReconciler:
    """Async variant of NodePoolReconciler."""

    def __init__(
        self,
        submit: Callable[[list[NodePool]], Awaitable[object]],
        refresher: AsyncStateRefresher,
        poller: AsyncConvergencePoller | None = None,
    ) -> None:
        self._submit = submit
        self._refresher = refresher
        self._poller = poller or AsyncConvergencePoller()

    async def reconcile(
        self,
        identity: str,
        old: Sequence[NodePool],
        new: Sequence[NodePool],
        spec: ConvergenceSpec,
        *,
        skip_unchanged: bool = False,
    ) -> None:
        """Apply ``new`` to the cluster currently configured with ``old``."""
        from anyio.lowlevel import checkpoint_if_cancelled

        for step, pools in enumerate(_prepare(identity, old, new, skip_unchanged), start=1):
            logger.debug("%s: node pool step %d, submitting %d pool(s)", identity, step, len(pools))
            await checkpoint_if_cancelled()
            with handle_errors(SUBMIT_ACTION):
                await self._submit(pools)
            with handle_errors(WAIT_ACTION):
                await self._poller.await_state(identity, spec, self._refresher)

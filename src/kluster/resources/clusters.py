"""Clusters resource for Kluster SDK."""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from typing import TYPE_CHECKING

from kluster._errors import handle_errors
from kluster._poller import AsyncConvergencePoller, ConvergencePoller, WaitContext
from kluster.exceptions import ValidationError
from kluster.models.cluster import Cluster, ClusterEvent, ClusterInfo, ClusterPhase, NodePool
from kluster.reconcile import AsyncNodePoolReconciler, NodePoolReconciler, validate_unique_names
from kluster.refreshers import AsyncClusterRefresher, ClusterRefresher
from kluster.resources._base import AsyncResource, SyncResource

if TYPE_CHECKING:
    from kluster._config import PollingConfig
    from kluster._http import AsyncHttpClient, HttpClient

logger = logging.getLogger("kluster.resources")

CLUSTERS_PATH = "/api/v1/clusters"

CREATE_PENDING = (ClusterPhase.PENDING, ClusterPhase.CREATING, ClusterPhase.UPGRADING)
UPDATE_PENDING = CREATE_PENDING + (ClusterPhase.TERMINATING,)
DELETE_PENDING = UPDATE_PENDING + (ClusterPhase.RUNNING,)


def _with_pools(cluster: Cluster, pools: list[NodePool]) -> Cluster:
    spec = cluster.spec.model_copy(update={"node_pools": pools})
    return cluster.model_copy(update={"spec": spec})


def _check_version(info: ClusterInfo, version: str) -> None:
    if version not in info.available_cluster_versions:
        raise ValidationError(
            f"version {version!r} is not supported, "
            f"supported versions: {info.available_cluster_versions}"
        )


class Clusters(SyncResource):
    """Clusters resource for managing Kubernetes clusters.

    Example:
        ```python
        from kluster import KlusterClient
        from kluster.models import Cluster, ClusterSpec, NodePool

        client = KlusterClient(token="...")

        # Create a cluster and wait until it is Running
        cluster = client.clusters.create(
            Cluster(
                name="demo",
                spec=ClusterSpec(
                    node_pools=[NodePool(name="small", flavor="m1.small", image="flatcar", size=2)]
                ),
            )
        )

        # Delete it and wait until it is gone
        client.clusters.delete("demo")
        ```
    """

    def __init__(self, http: HttpClient, polling: PollingConfig | None = None) -> None:
        """Initialize clusters resource.

        Args:
            http: HTTP client for the cluster API.
            polling: Convergence polling defaults.
        """
        super().__init__(http, polling)
        self._poller = ConvergencePoller()

    def list(self) -> list[Cluster]:
        """List all clusters."""
        data = self._http.get(CLUSTERS_PATH)
        return [Cluster.model_validate(item) for item in data or []]

    def get(self, name: str) -> Cluster:
        """Get a specific cluster.

        Args:
            name: The cluster name.

        Returns:
            Cluster spec and status.
        """
        data = self._http.get(f"{CLUSTERS_PATH}/{name}")
        return Cluster.model_validate(data)

    def get_events(self, name: str) -> list[ClusterEvent]:
        """Get a cluster's events, oldest first."""
        data = self._http.get(f"{CLUSTERS_PATH}/{name}/events")
        return [ClusterEvent.model_validate(item) for item in data or []]

    def get_credentials(self, name: str) -> str:
        """Download the cluster's kubeconfig.

        Args:
            name: The cluster name.

        Returns:
            The kubeconfig document.
        """
        with handle_errors("failed to download kubeconfig"):
            data = self._http.get(f"{CLUSTERS_PATH}/{name}/credentials")
        return (data or {}).get("kubeconfig", "")

    def info(self) -> ClusterInfo:
        """Get the versions the cluster API can provision."""
        data = self._http.get("/info")
        return ClusterInfo.model_validate(data)

    def verify_version(self, version: str) -> None:
        """Raise ValidationError unless ``version`` can be provisioned."""
        with handle_errors("failed to check supported Kubernetes versions"):
            info = self.info()
        _check_version(info, version)

    def create(
        self,
        cluster: Cluster,
        *,
        wait: bool = True,
        timeout: float | None = None,
        ctx: WaitContext | None = None,
    ) -> Cluster:
        """Create a cluster.

        Args:
            cluster: Name and spec of the new cluster.
            wait: Wait until the cluster is Running.
            timeout: Maximum wait time in seconds.
            ctx: Optional cancellation / deadline context.

        Returns:
            The created cluster, as observed when it became Running if waiting.

        Raises:
            ValidationError: Duplicate node pool names or an unsupported version.
        """
        validate_unique_names(cluster.spec.node_pools)
        if cluster.spec.version:
            self.verify_version(cluster.spec.version)

        logger.debug("Creating cluster %s", cluster.name)
        with handle_errors("Error creating cluster"):
            data = self._http.post(CLUSTERS_PATH, json=cluster.to_payload())
        created = Cluster.model_validate(data) if data else cluster

        if not wait:
            return created

        with handle_errors("Error waiting for running cluster state"):
            return self.wait_for(
                cluster.name,
                ClusterPhase.RUNNING,
                CREATE_PENDING,
                timeout=self._polling.create_timeout if timeout is None else timeout,
                ctx=ctx,
            )

    def update(self, name: str, cluster: Cluster) -> Cluster:
        """Submit a cluster spec without waiting for it to apply.

        Args:
            name: The cluster name.
            cluster: Desired cluster, including its complete node pool list.

        Returns:
            The updated cluster as returned by the API.
        """
        data = self._http.put(f"{CLUSTERS_PATH}/{name}", json=cluster.to_payload())
        return Cluster.model_validate(data) if data else cluster

    def update_node_pools(
        self,
        name: str,
        cluster: Cluster,
        old_pools: Sequence[NodePool],
        new_pools: Sequence[NodePool],
        *,
        timeout: float | None = None,
        ctx: WaitContext | None = None,
        skip_unchanged: bool = False,
    ) -> None:
        """Move a cluster's node pools from ``old_pools`` to ``new_pools``.

        Every step submits ``cluster`` with its pool list replaced and waits
        for the cluster to be Running again. See ``kluster.reconcile``.

        Args:
            name: The cluster name.
            cluster: Desired cluster settings other than node pools.
            old_pools: Currently applied pools, with their assigned zones.
            new_pools: Requested pools.
            timeout: Maximum wait time per step in seconds.
            ctx: Optional cancellation / deadline context.
            skip_unchanged: Make no calls if the pool lists are equal. By default an
                unchanged list still costs one update-and-wait cycle, which re-asserts
                pool sizes and zones.
        """
        spec = self._convergence(
            ClusterPhase.RUNNING,
            UPDATE_PENDING,
            self._polling.update_timeout if timeout is None else timeout,
        )
        reconciler = NodePoolReconciler(
            submit=lambda pools: self.update(name, _with_pools(cluster, pools)),
            refresher=ClusterRefresher(self, ClusterPhase.RUNNING, ctx=ctx),
            poller=self._poller,
        )
        with handle_errors("Error waiting for cluster to be updated"):
            reconciler.reconcile(
                name, old_pools, new_pools, spec, ctx=ctx, skip_unchanged=skip_unchanged
            )

    def delete(
        self,
        name: str,
        *,
        wait: bool = True,
        timeout: float | None = None,
        ctx: WaitContext | None = None,
    ) -> None:
        """Terminate a cluster.

        Args:
            name: The cluster name.
            wait: Wait until the cluster is gone.
            timeout: Maximum wait time in seconds.
            ctx: Optional cancellation / deadline context.
        """
        logger.debug("Deleting cluster %s", name)
        with handle_errors("Error deleting cluster"):
            self._http.delete(f"{CLUSTERS_PATH}/{name}")

        if wait:
            with handle_errors("Error waiting for cluster to be deleted"):
                self.wait_for(
                    name,
                    ClusterPhase.TERMINATED,
                    DELETE_PENDING,
                    timeout=self._polling.delete_timeout if timeout is None else timeout,
                    ctx=ctx,
                )

    def wait_for(
        self,
        name: str,
        target: str = ClusterPhase.RUNNING,
        pending: Collection[str] = UPDATE_PENDING,
        *,
        timeout: float | None = None,
        ctx: WaitContext | None = None,
    ) -> Cluster | None:
        """Wait for a cluster to reach ``target``.

        Args:
            name: The cluster name.
            target: Phase to wait for.
            pending: Phases to keep waiting through.
            timeout: Maximum wait time in seconds; 0 checks once.
            ctx: Optional cancellation / deadline context.

        Returns:
            The cluster, or None when waiting for Terminated and it is gone.
        """
        spec = self._convergence(
            target, pending, self._polling.update_timeout if timeout is None else timeout
        )
        refresher = ClusterRefresher(self, target, ctx=ctx)
        return self._poller.await_state(name, spec, refresher, ctx=ctx)


class AsyncClusters(AsyncResource):
    """Async clusters resource for managing Kubernetes clusters."""

    def __init__(self, http: AsyncHttpClient, polling: PollingConfig | None = None) -> None:
        super().__init__(http, polling)
        self._poller = AsyncConvergencePoller()

    async def list(self) -> list[Cluster]:
        """List all clusters."""
        data = await self._http.get(CLUSTERS_PATH)
        return [Cluster.model_validate(item) for item in data or []]

    async def get(self, name: str) -> Cluster:
        """Get a specific cluster."""
        data = await self._http.get(f"{CLUSTERS_PATH}/{name}")
        return Cluster.model_validate(data)

    async def get_events(self, name: str) -> list[ClusterEvent]:
        """Get a cluster's events, oldest first."""
        data = await self._http.get(f"{CLUSTERS_PATH}/{name}/events")
        return [ClusterEvent.model_validate(item) for item in data or []]

    async def get_credentials(self, name: str) -> str:
        """Download the cluster's kubeconfig."""
        with handle_errors("failed to download kubeconfig"):
            data = await self._http.get(f"{CLUSTERS_PATH}/{name}/credentials")
        return (data or {}).get("kubeconfig", "")

    async def info(self) -> ClusterInfo:
        """Get the versions the cluster API can provision."""
        data = await self._http.get("/info")
        return ClusterInfo.model_validate(data)

    async def verify_version(self, version: str) -> None:
        """Raise ValidationError unless ``version`` can be provisioned."""
        with handle_errors("failed to check supported Kubernetes versions"):
            info = await self.info()
        _check_version(info, version)

    async def create(
        self,
        cluster: Cluster,
        *,
        wait: bool = True,
        timeout: float | None = None,
    ) -> Cluster:
        """Create a cluster."""
        validate_unique_names(cluster.spec.node_pools)
        if cluster.spec.version:
            await self.verify_version(cluster.spec.version)

        with handle_errors("Error creating cluster"):
            data = await self._http.post(CLUSTERS_PATH, json=cluster.to_payload())
        created = Cluster.model_validate(data) if data else cluster

        if not wait:
            return created

        with handle_errors("Error waiting for running cluster state"):
            return await self.wait_for(
                cluster.name,
                ClusterPhase.RUNNING,
                CREATE_PENDING,
                timeout=self._polling.create_timeout if timeout is None else timeout,
            )

    async def update(self, name: str, cluster: Cluster) -> Cluster:
        """Submit a cluster spec without waiting for it to apply."""
        data = await self._http.put(f"{CLUSTERS_PATH}/{name}", json=cluster.to_payload())
        return Cluster.model_validate(data) if data else cluster

    async def update_node_pools(
        self,
        name: str,
        cluster: Cluster,
        old_pools: Sequence[NodePool],
        new_pools: Sequence[NodePool],
        *,
        timeout: float | None = None,
        skip_unchanged: bool = False,
    ) -> None:
        """Move a cluster's node pools from ``old_pools`` to ``new_pools``.

        Unless ``skip_unchanged`` is set, an unchanged pool list still costs one
        update-and-wait cycle.
        """
        spec = self._convergence(
            ClusterPhase.RUNNING,
            UPDATE_PENDING,
            self._polling.update_timeout if timeout is None else timeout,
        )

        async def submit(pools: list[NodePool]) -> Cluster:
            return await self.update(name, _with_pools(cluster, pools))

        reconciler = AsyncNodePoolReconciler(
            submit=submit,
            refresher=AsyncClusterRefresher(self, ClusterPhase.RUNNING),
            poller=self._poller,
        )
        with handle_errors("Error waiting for cluster to be updated"):
            await reconciler.reconcile(
                name, old_pools, new_pools, spec, skip_unchanged=skip_unchanged
            )

    async def delete(
        self,
        name: str,
        *,
        wait: bool = True,
        timeout: float | None = None,
    ) -> None:
        """Terminate a cluster."""
        with handle_errors("Error deleting cluster"):
            await self._http.delete(f"{CLUSTERS_PATH}/{name}")

        if wait:
            with handle_errors("Error waiting for cluster to be deleted"):
                await self.wait_for(
                    name,
                    ClusterPhase.TERMINATED,
                    DELETE_PENDING,
                    timeout=self._polling.delete_timeout if timeout is None else timeout,
                )

    async def wait_for(
        self,
        name: str,
        target: str = ClusterPhase.RUNNING,
        pending: Collection[str] = UPDATE_PENDING,
        *,
        timeout: float | None = None,
    ) -> Cluster | None:
        """Wait for a cluster to reach ``target``."""
        spec = self._convergence(
            target, pending, self._polling.update_timeout if timeout is None else timeout
        )
        return await self._poller.await_state(name, spec, AsyncClusterRefresher(self, target))

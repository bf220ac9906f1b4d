"""Cluster models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import Field

from kluster.models.common import CamelModel


class ClusterPhase(str, Enum):
    """Cluster lifecycle phase."""

    PENDING = "Pending"
    CREATING = "Creating"
    RUNNING = "Running"
    UPGRADING = "Upgrading"
    TERMINATING = "Terminating"
    TERMINATED = "Terminated"


class NodePoolConfig(CamelModel):
    """Reboot / replace policy of a node pool."""

    allow_reboot: bool | None = None
    allow_replace: bool | None = None


class NodePool(CamelModel):
    """Desired state of one node pool."""

    name: str
    flavor: str = ""
    image: str = ""
    size: int = 0
    availability_zone: str = ""
    taints: list[str] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    custom_root_disk_size: int = 0
    config: NodePoolConfig | None = None


class NodePoolStatus(CamelModel):
    """Reported member counts of one node pool."""

    name: str
    size: int = 0
    running: int = 0
    healthy: int = 0
    schedulable: int = 0


class OpenstackSpec(CamelModel):
    """Cloud networking settings of a cluster."""

    lb_floating_network_id: str | None = Field(None, alias="lbFloatingNetworkID")
    lb_subnet_id: str | None = Field(None, alias="lbSubnetID")
    network_id: str | None = Field(None, alias="networkID")
    router_id: str | None = Field(None, alias="routerID")
    security_group_name: str | None = None


class ClusterSpec(CamelModel):
    """Requested cluster configuration."""

    name: str | None = None
    version: str | None = None
    node_pools: list[NodePool] = Field(default_factory=list)
    openstack: OpenstackSpec | None = None
    advertise_address: str | None = None
    advertise_port: int | None = None
    audit: str | None = None
    backup: str | None = None
    cluster_cidr: str | None = Field(None, alias="clusterCIDR")
    service_cidr: str | None = Field(None, alias="serviceCIDR")
    dns_address: str | None = None
    dns_domain: str | None = None
    ssh_public_key: str | None = None
    no_cloud: bool | None = None
    dex: bool | None = None
    dashboard: bool | None = None


class ClusterStatus(CamelModel):
    """Reported cluster state."""

    phase: str = ""
    apiserver_version: str = ""
    node_pools: list[NodePoolStatus] = Field(default_factory=list)
    apiserver: str | None = None
    dashboard: str | None = None
    wormhole: str | None = None


class Cluster(CamelModel):
    """Cluster resource."""

    name: str
    spec: ClusterSpec = Field(default_factory=ClusterSpec)
    status: ClusterStatus = Field(default_factory=ClusterStatus)


class ClusterEvent(CamelModel):
    """An entry from a cluster's event log."""

    reason: str = ""
    message: str = ""
    type: str | None = None
    count: int | None = None
    first_timestamp: datetime | None = None
    last_timestamp: datetime | None = None


class ClusterInfo(CamelModel):
    """Service information of the cluster API."""

    available_cluster_versions: list[str] = Field(default_factory=list)
    default_cluster_version: str | None = None
    supported_cluster_versions: list[str] = Field(default_factory=list)

"""API resource modules."""

from kluster.resources.agents import Agents, AsyncAgents
from kluster.resources.clusters import AsyncClusters, Clusters
from kluster.resources.jobs import AsyncJobs, Jobs
from kluster.resources.quotas import AsyncQuotas, AsyncRBACPolicies, Quotas, RBACPolicies

__all__ = [
    # Kubernetes clusters
    "Clusters",
    "AsyncClusters",
    # Arc agents and jobs
    "Agents",
    "AsyncAgents",
    "Jobs",
    "AsyncJobs",
    # Endpoint services
    "Quotas",
    "AsyncQuotas",
    "RBACPolicies",
    "AsyncRBACPolicies",
]

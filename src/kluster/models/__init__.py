"""Pydantic models for Kluster SDK."""

from kluster.models.agent import Agent, AgentState
from kluster.models.cluster import (
    Cluster,
    ClusterEvent,
    ClusterInfo,
    ClusterPhase,
    ClusterSpec,
    ClusterStatus,
    NodePool,
    NodePoolConfig,
    NodePoolStatus,
    OpenstackSpec,
)
from kluster.models.common import CamelModel, KlusterModel
from kluster.models.job import Job, JobCreate, JobStatus, JobUser
from kluster.models.quota import Quota, RBACPolicy

__all__ = [
    # Common
    "KlusterModel",
    "CamelModel",
    # Cluster
    "Cluster",
    "ClusterEvent",
    "ClusterInfo",
    "ClusterPhase",
    "ClusterSpec",
    "ClusterStatus",
    "NodePool",
    "NodePoolConfig",
    "NodePoolStatus",
    "OpenstackSpec",
    # Job
    "Job",
    "JobCreate",
    "JobStatus",
    "JobUser",
    # Agent
    "Agent",
    "AgentState",
    # Quota / RBAC
    "Quota",
    "RBACPolicy",
]

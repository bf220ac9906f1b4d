"""Endpoint quota and RBAC policy models."""

from __future__ import annotations

from typing import Any

from kluster.models.common import KlusterModel


class Quota(KlusterModel):
    """Endpoint and service quota of a project."""

    project_id: str | None = None
    endpoint: int | None = None
    service: int | None = None
    in_use_endpoint: int | None = None
    in_use_service: int | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize the writable fields."""
        return self.model_dump(mode="json", include={"endpoint", "service"}, exclude_none=True)


class RBACPolicy(KlusterModel):
    """Access policy for an endpoint service."""

    id: str | None = None
    service_id: str
    project_id: str | None = None
    target: str
    target_type: str = "project"

    def to_payload(self) -> dict[str, Any]:
        """Serialize the writable fields."""
        return self.model_dump(mode="json", exclude={"id"}, exclude_none=True)

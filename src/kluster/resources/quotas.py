"""Endpoint quota and RBAC policy resources for Kluster SDK."""

from __future__ import annotations

import logging
from typing import Any

from kluster._errors import handle_errors, wrap_error
from kluster.exceptions import KlusterError, NotFoundError
from kluster.models.quota import Quota, RBACPolicy
from kluster.resources._base import AsyncResource, SyncResource

logger = logging.getLogger("kluster.resources")

QUOTAS_PATH = "/quotas"
RBAC_PATH = "/rbac-policies"


def _require(data: Any, action: str) -> Any:
    if not data:
        raise KlusterError(f"{action}: empty response")
    return data


class Quotas(SyncResource):
    """Per-project endpoint quotas."""

    def get(self, project_id: str) -> Quota:
        """Get a project's quota and current usage."""
        action = "error reading endpoint quota"
        with handle_errors(action):
            data = self._http.get(f"{QUOTAS_PATH}/{project_id}")
        quota = Quota.model_validate(_require(data, action))
        return quota.model_copy(update={"project_id": project_id})

    def set(self, project_id: str, quota: Quota) -> Quota:
        """Set a project's quota.

        Args:
            project_id: The project id.
            quota: Endpoint and service limits; unset limits are left unchanged.
        """
        action = "error setting endpoint quota"
        with handle_errors(action):
            data = self._http.put(f"{QUOTAS_PATH}/{project_id}", json=quota.to_payload())
        logger.debug("Set endpoint quota for %s: %s", project_id, data)
        result = Quota.model_validate(_require(data, action))
        return result.model_copy(update={"project_id": project_id})

    def delete(self, project_id: str) -> None:
        """Reset a project's quota. A missing quota is not an error."""
        try:
            self._http.delete(f"{QUOTAS_PATH}/{project_id}")
        except NotFoundError:
            logger.debug("Endpoint quota for %s already gone", project_id)
        except KlusterError as e:
            raise wrap_error("error deleting endpoint quota", e) from e


class RBACPolicies(SyncResource):
    """Access policies for endpoint services."""

    def list(self, *, project_id: str | None = None) -> list[RBACPolicy]:
        """List RBAC policies, optionally for one project."""
        with handle_errors("error listing RBAC policies"):
            data = self._http.get(RBAC_PATH, params={"project_id": project_id})
        items = data.get("items", []) if isinstance(data, dict) else data or []
        return [RBACPolicy.model_validate(item) for item in items]

    def get(self, policy_id: str) -> RBACPolicy:
        """Get a specific RBAC policy."""
        action = "error reading RBAC policy"
        with handle_errors(action):
            data = self._http.get(f"{RBAC_PATH}/{policy_id}")
        return RBACPolicy.model_validate(_require(data, action))

    def create(self, policy: RBACPolicy) -> RBACPolicy:
        """Create an RBAC policy."""
        action = "error creating RBAC policy"
        with handle_errors(action):
            data = self._http.post(RBAC_PATH, json=policy.to_payload())
        logger.debug("Created RBAC policy: %s", data)
        return RBACPolicy.model_validate(_require(data, action))

    def update(self, policy_id: str, policy: RBACPolicy) -> RBACPolicy:
        """Update an RBAC policy."""
        action = "error updating RBAC policy"
        with handle_errors(action):
            data = self._http.put(f"{RBAC_PATH}/{policy_id}", json=policy.to_payload())
        return RBACPolicy.model_validate(_require(data, action))

    def delete(self, policy_id: str) -> None:
        """Delete an RBAC policy. A missing policy is not an error."""
        try:
            self._http.delete(f"{RBAC_PATH}/{policy_id}")
        except NotFoundError:
            logger.debug("RBAC policy %s already gone", policy_id)
        except KlusterError as e:
            raise wrap_error("error deleting RBAC policy", e) from e


class AsyncQuotas(AsyncResource):
    """Async per-project endpoint quotas."""

    async def get(self, project_id: str) -> Quota:
        action = "error reading endpoint quota"
        with handle_errors(action):
            data = await self._http.get(f"{QUOTAS_PATH}/{project_id}")
        quota = Quota.model_validate(_require(data, action))
        return quota.model_copy(update={"project_id": project_id})

    async def set(self, project_id: str, quota: Quota) -> Quota:
        action = "error setting endpoint quota"
        with handle_errors(action):
            data = await self._http.put(f"{QUOTAS_PATH}/{project_id}", json=quota.to_payload())
        result = Quota.model_validate(_require(data, action))
        return result.model_copy(update={"project_id": project_id})

    async def delete(self, project_id: str) -> None:
        try:
            await self._http.delete(f"{QUOTAS_PATH}/{project_id}")
        except NotFoundError:
            logger.debug("Endpoint quota for %s already gone", project_id)
        except KlusterError as e:
            raise wrap_error("error deleting endpoint quota", e) from e


class AsyncRBACPolicies(AsyncResource):
    """Async access policies for endpoint services."""

    async def list(self, *, project_id: str | None = None) -> list[RBACPolicy]:
        with handle_errors("error listing RBAC policies"):
            data = await self._http.get(RBAC_PATH, params={"project_id": project_id})
        items = data.get("items", []) if isinstance(data, dict) else data or []
        return [RBACPolicy.model_validate(item) for item in items]

    async def get(self, policy_id: str) -> RBACPolicy:
        action = "error reading RBAC policy"
        with handle_errors(action):
            data = await self._http.get(f"{RBAC_PATH}/{policy_id}")
        return RBACPolicy.model_validate(_require(data, action))

    async def create(self, policy: RBACPolicy) -> RBACPolicy:
        action = "error creating RBAC policy"
        with handle_errors(action):
            data = await self._http.post(RBAC_PATH, json=policy.to_payload())
        return RBACPolicy.model_validate(_require(data, action))

    async def update(self, policy_id: str, policy: RBACPolicy) -> RBACPolicy:
        action = "error updating RBAC policy"
        with handle_errors(action):
            data = await self._http.put(f"{RBAC_PATH}/{policy_id}", json=policy.to_payload())
        return RBACPolicy.model_validate(_require(data, action))

    async def delete(self, policy_id: str) -> None:
        try:
            await self._http.delete(f"{RBAC_PATH}/{policy_id}")
        except NotFoundError:
            logger.debug("RBAC policy %s already gone", policy_id)
        except KlusterError as e:
            raise wrap_error("error deleting RBAC policy", e) from e

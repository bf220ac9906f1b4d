"""Tests for endpoint quota and RBAC policy resources."""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from kluster._http import HttpClient
from kluster.exceptions import KlusterError, NotFoundError
from kluster.models.quota import Quota, RBACPolicy
from kluster.resources.quotas import Quotas, RBACPolicies

ARCHER_URL = "https://archer.test"


class TestQuotas:
    """Test Quotas resource."""

    @respx.mock
    def test_get(self, archer_http: HttpClient) -> None:
        """Quotas should get a project's quota."""
        respx.get(f"{ARCHER_URL}/quotas/p-1").mock(
            return_value=httpx.Response(
                200, json={"endpoint": 5, "service": 2, "in_use_endpoint": 1, "in_use_service": 0}
            )
        )

        quota = Quotas(archer_http).get("p-1")

        assert quota.project_id == "p-1"
        assert quota.endpoint == 5
        assert quota.in_use_endpoint == 1

    @respx.mock
    def test_set_sends_only_limits(self, archer_http: HttpClient) -> None:
        """Setting a quota should send only the limits."""
        route = respx.put(f"{ARCHER_URL}/quotas/p-1").mock(
            return_value=httpx.Response(200, json={"endpoint": 5, "service": 2})
        )

        Quotas(archer_http).set("p-1", Quota(endpoint=5, service=2, in_use_endpoint=3))

        assert json.loads(route.calls[0].request.content) == {"endpoint": 5, "service": 2}

    @respx.mock
    def test_empty_response(self, archer_http: HttpClient) -> None:
        """An empty quota response should be an error."""
        respx.put(f"{ARCHER_URL}/quotas/p-1").mock(return_value=httpx.Response(204))

        with pytest.raises(KlusterError, match="^error setting endpoint quota: empty response$"):
            Quotas(archer_http).set("p-1", Quota(endpoint=5))

    @respx.mock
    def test_read_error_is_wrapped(self, archer_http: HttpClient) -> None:
        """A failed quota read should carry the action."""
        respx.get(f"{ARCHER_URL}/quotas/p-1").mock(
            return_value=httpx.Response(404, json={"message": "Not found"})
        )

        with pytest.raises(NotFoundError, match="^error reading endpoint quota: Not found$"):
            Quotas(archer_http).get("p-1")

    @respx.mock
    def test_delete_missing_is_ignored(self, archer_http: HttpClient) -> None:
        """Deleting a missing quota should succeed."""
        respx.delete(f"{ARCHER_URL}/quotas/p-1").mock(
            return_value=httpx.Response(404, json={"message": "Not found"})
        )

        Quotas(archer_http).delete("p-1")

    @respx.mock
    def test_delete_error_is_wrapped(self, archer_http: HttpClient) -> None:
        """A failed quota delete should carry the action."""
        respx.delete(f"{ARCHER_URL}/quotas/p-1").mock(
            return_value=httpx.Response(500, json={"message": "boom"})
        )

        with pytest.raises(KlusterError, match="^error deleting endpoint quota: Server error: boom$"):
            Quotas(archer_http).delete("p-1")


class TestRBACPolicies:
    """Test RBACPolicies resource."""

    @respx.mock
    def test_create(self, archer_http: HttpClient) -> None:
        """RBAC policies should be created."""
        route = respx.post(f"{ARCHER_URL}/rbac-policies").mock(
            return_value=httpx.Response(
                201,
                json={"id": "r-1", "service_id": "s-1", "project_id": "p-1", "target": "p-2"},
            )
        )

        policy = RBACPolicies(archer_http).create(
            RBACPolicy(service_id="s-1", project_id="p-1", target="p-2")
        )

        assert policy.id == "r-1"
        assert json.loads(route.calls[0].request.content) == {
            "service_id": "s-1",
            "project_id": "p-1",
            "target": "p-2",
            "target_type": "project",
        }

    @respx.mock
    def test_list_items(self, archer_http: HttpClient) -> None:
        """RBAC policies should be listed from an items envelope."""
        route = respx.get(f"{ARCHER_URL}/rbac-policies").mock(
            return_value=httpx.Response(
                200, json={"items": [{"id": "r-1", "service_id": "s-1", "target": "p-2"}]}
            )
        )

        policies = RBACPolicies(archer_http).list(project_id="p-1")

        assert [p.id for p in policies] == ["r-1"]
        assert route.calls[0].request.url.params["project_id"] == "p-1"

    @respx.mock
    def test_create_empty_response(self, archer_http: HttpClient) -> None:
        """An empty create response should be an error."""
        respx.post(f"{ARCHER_URL}/rbac-policies").mock(return_value=httpx.Response(204))

        with pytest.raises(KlusterError, match="error creating RBAC policy: empty response"):
            RBACPolicies(archer_http).create(RBACPolicy(service_id="s-1", target="p-2"))

    @respx.mock
    def test_delete_missing_is_ignored(self, archer_http: HttpClient) -> None:
        """Deleting a missing RBAC policy should succeed."""
        route = respx.delete(f"{ARCHER_URL}/rbac-policies/r-1").mock(
            return_value=httpx.Response(404, json={"message": "Not found"})
        )

        RBACPolicies(archer_http).delete("r-1")

        assert route.called

"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest
import respx

from kluster._config import KlusterConfig, PollingConfig
from kluster._http import HttpClient
from kluster.auth import TokenAuth
from kluster.client import KlusterClient

BASE_URL = "https://kubernikus.test"
ARC_URL = "https://arc.test"
ARCHER_URL = "https://archer.test"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def token() -> str:
    """Test auth token."""
    return "test-token-12345"


@pytest.fixture
def fast_polling() -> PollingConfig:
    """Polling settings that keep waits in the millisecond range."""
    return PollingConfig(
        delay=0,
        min_poll_interval=0.001,
        poll_interval=0.005,
        create_timeout=5,
        update_timeout=5,
        delete_timeout=5,
    )


@pytest.fixture
def http(token: str) -> Generator[HttpClient, None, None]:
    """HTTP client for the cluster API."""
    c = HttpClient(base_url=BASE_URL, auth=TokenAuth(token=token))
    yield c
    c.close()


@pytest.fixture
def arc_http(token: str) -> Generator[HttpClient, None, None]:
    """HTTP client for the agent / job service."""
    c = HttpClient(base_url=ARC_URL, auth=TokenAuth(token=token))
    yield c
    c.close()


@pytest.fixture
def archer_http(token: str) -> Generator[HttpClient, None, None]:
    """HTTP client for the endpoint service."""
    c = HttpClient(base_url=ARCHER_URL, auth=TokenAuth(token=token))
    yield c
    c.close()


@pytest.fixture
def client(token: str, fast_polling: PollingConfig) -> Generator[KlusterClient, None, None]:
    """Create a test KlusterClient."""
    config = KlusterConfig(
        token=token,
        base_url=BASE_URL,
        arc_url=ARC_URL,
        archer_url=ARCHER_URL,
        polling=fast_polling,
    )
    c = KlusterClient(config=config)
    yield c
    c.close()


@pytest.fixture
def mock_api() -> Generator[respx.MockRouter, None, None]:
    """Mock cluster API router."""
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as router:
        yield router


def _make_cluster(
    name: str = "demo",
    phase: str = "Running",
    *,
    version: str | None = None,
    apiserver_version: str = "",
    pools: list[dict[str, Any]] | None = None,
    healthy: dict[str, int] | None = None,
) -> dict[str, Any]:
    """Build a cluster payload whose reported pools match the spec by default."""
    pools = pools if pools is not None else [
        {"name": "small", "flavor": "m1.small", "image": "flatcar", "size": 2}
    ]
    healthy = healthy or {}
    spec: dict[str, Any] = {"nodePools": pools}
    if version:
        spec["version"] = version
    return {
        "name": name,
        "spec": spec,
        "status": {
            "phase": phase,
            "apiserverVersion": apiserver_version,
            "nodePools": [
                {
                    "name": p["name"],
                    "size": p.get("size", 0),
                    "healthy": healthy.get(p["name"], p.get("size", 0)),
                }
                for p in pools
            ],
        },
    }


@pytest.fixture
def make_cluster() -> Any:
    """Factory for cluster payloads."""
    return _make_cluster


@pytest.fixture
def sample_job() -> dict[str, Any]:
    """Sample job response."""
    return {
        "request_id": "job-123",
        "status": "complete",
        "version": 1,
        "sender": "terraform",
        "to": "agent-1",
        "timeout": 3600,
        "agent": "execute",
        "action": "script",
        "payload": "uptime",
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-01T00:01:00Z",
        "project": "p-1",
        "user": {"id": "u-1", "name": "admin", "domain_id": "d-1", "domain_name": "Default"},
    }


@pytest.fixture
def sample_agent() -> dict[str, Any]:
    """Sample agent response."""
    return {
        "agent_id": "agent-1",
        "display_name": "web-1",
        "project": "p-1",
        "organization": "o-1",
        "facts": {},
        "tags": {"role": "web"},
        "created_at": "2024-01-01T00:00:00Z",
    }

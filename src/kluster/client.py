"""Kluster SDK Client.

Main entry point for talking to the cluster, agent/job and endpoint services.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from kluster._config import KlusterConfig
from kluster._http import AsyncHttpClient, HttpClient
from kluster.auth import AuthProvider, TokenAuth
from kluster.exceptions import AuthenticationError, KlusterError
from kluster.resources.agents import Agents, AsyncAgents
from kluster.resources.clusters import AsyncClusters, Clusters
from kluster.resources.jobs import AsyncJobs, Jobs
from kluster.resources.quotas import AsyncQuotas, AsyncRBACPolicies, Quotas, RBACPolicies

H = TypeVar("H", HttpClient, AsyncHttpClient)

# Secondary services: attribute prefix -> (environment variable, display name)
SERVICES = {
    "arc": ("KLUSTER_ARC_URL", "Arc"),
    "archer": ("KLUSTER_ARCHER_URL", "Archer"),
}


class _ClientBase(Generic[H]):
    """Settings resolution and per-service HTTP clients shared by both clients."""

    _http_class: type[H]

    def __init__(
        self,
        token: str | None = None,
        *,
        auth: AuthProvider | None = None,
        base_url: str | None = None,
        arc_url: str | None = None,
        archer_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        verify_ssl: bool | None = None,
        config: KlusterConfig | None = None,
    ) -> None:
        config = config or KlusterConfig.load()

        self._base_url = base_url or config.base_url
        self._urls = {
            "arc": arc_url or config.arc_url,
            "archer": archer_url or config.archer_url,
        }
        self._http_options = {
            "timeout": config.timeout if timeout is None else timeout,
            "max_retries": config.max_retries if max_retries is None else max_retries,
            "verify_ssl": config.verify_ssl if verify_ssl is None else verify_ssl,
        }
        self._polling = config.polling
        self._auth = auth or self._token_auth(token or config.token)

        self._http: H = self._make_http(self._base_url)
        self._service_http: dict[str, H] = {}
        self._resources: dict[str, Any] = {}

    @staticmethod
    def _token_auth(token: str | None) -> AuthProvider:
        if not token:
            raise AuthenticationError(
                "Token is required. Set KLUSTER_TOKEN environment variable, "
                "pass token argument, or configure in ~/.kluster/config.toml"
            )
        return TokenAuth(token=token)

    def _make_http(self, url: str) -> H:
        return self._http_class(base_url=url, auth=self._auth, **self._http_options)

    def _service(self, name: str) -> H:
        """HTTP client for a secondary service, created on first use."""
        if name not in self._service_http:
            url = self._urls[name]
            if not url:
                env_var, display = SERVICES[name]
                raise KlusterError(
                    f"{display} service URL not configured. Set {env_var} environment "
                    f"variable or pass {name}_url to {type(self).__name__}()."
                )
            self._service_http[name] = self._make_http(url)
        return self._service_http[name]

    def _resource(self, key: str, service: str, cls: type) -> Any:
        if key not in self._resources:
            self._resources[key] = cls(self._service(service), self._polling)
        return self._resources[key]

    def _open_clients(self) -> list[H]:
        return [self._http, *self._service_http.values()]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_url={self._base_url!r})"

    @property
    def base_url(self) -> str:
        return self._base_url


class KlusterClient(_ClientBase[HttpClient]):
    """Synchronous client for the Kluster services.

    The cluster API lives at ``base_url``. Agents and jobs are served by a
    separate service at ``arc_url``, endpoint quotas and RBAC policies by one
    at ``archer_url``; their HTTP clients are created on first use.

    Example:
        ```python
        from kluster import KlusterClient

        with KlusterClient(token="gAAAAAB...", arc_url="https://arc.example.com") as client:
            for cluster in client.clusters.list():
                print(cluster.name, cluster.status.phase)

            agent = client.agents.wait_for(filter="@metadata_name = 'web-1'", timeout=300)
        ```

    Args:
        token: Auth token. Falls back to KLUSTER_TOKEN or the config file.
        auth: Explicit AuthProvider instance to use.
        base_url: Cluster API URL (KLUSTER_URL).
        arc_url: Agent / job service URL (KLUSTER_ARC_URL).
        archer_url: Endpoint service URL (KLUSTER_ARCHER_URL).
        timeout: Request timeout in seconds (KLUSTER_TIMEOUT, default 60).
        max_retries: Retries for transport failures (KLUSTER_MAX_RETRIES, default 0).
        verify_ssl: Whether to verify SSL certificates.
        config: Preloaded configuration; loaded from env and file if omitted.
    """

    _http_class = HttpClient

    def __init__(self, token: str | None = None, **kwargs: Any) -> None:
        super().__init__(token, **kwargs)
        self.clusters = Clusters(self._http, self._polling)

    @property
    def jobs(self) -> Jobs:
        return self._resource("jobs", "arc", Jobs)

    @property
    def agents(self) -> Agents:
        return self._resource("agents", "arc", Agents)

    @property
    def quotas(self) -> Quotas:
        return self._resource("quotas", "archer", Quotas)

    @property
    def rbac_policies(self) -> RBACPolicies:
        return self._resource("rbac_policies", "archer", RBACPolicies)

    def close(self) -> None:
        """Close the client and release resources."""
        for http in self._open_clients():
            http.close()

    def __enter__(self) -> KlusterClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class AsyncKlusterClient(_ClientBase[AsyncHttpClient]):
    """Asynchronous client for the Kluster services.

    Example:
        ```python
        import anyio
        from kluster import AsyncKlusterClient

        async def main():
            async with AsyncKlusterClient(token="gAAAAAB...") as client:
                await client.clusters.delete("demo")

        anyio.run(main)
        ```
    """

    _http_class = AsyncHttpClient

    def __init__(self, token: str | None = None, **kwargs: Any) -> None:
        super().__init__(token, **kwargs)
        self.clusters = AsyncClusters(self._http, self._polling)

    @property
    def jobs(self) -> AsyncJobs:
        return self._resource("jobs", "arc", AsyncJobs)

    @property
    def agents(self) -> AsyncAgents:
        return self._resource("agents", "arc", AsyncAgents)

    @property
    def quotas(self) -> AsyncQuotas:
        return self._resource("quotas", "archer", AsyncQuotas)

    @property
    def rbac_policies(self) -> AsyncRBACPolicies:
        return self._resource("rbac_policies", "archer", AsyncRBACPolicies)

    async def close(self) -> None:
        """Close the client and release resources."""
        for http in self._open_clients():
            await http.close()

    async def __aenter__(self) -> AsyncKlusterClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

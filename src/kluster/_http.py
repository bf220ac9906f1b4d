"""HTTP transport shared by every Kluster service client.

Each service (cluster API, agent/job API, endpoint API) gets its own client
instance bound to one base URL. Failed responses are raised as
:mod:`kluster.exceptions` types. Transport failures are not retried unless
``max_retries`` is raised above its default of 0.
"""

from __future__ import annotations

import contextlib
import logging
import time
from typing import TYPE_CHECKING, Any

import httpx

from kluster._version import __version__
from kluster.exceptions import (
    AuthenticationError,
    ConnectionError,
    KlusterError,
    NotFoundError,
    RateLimitError,
    TimeoutError,
    ValidationError,
)

if TYPE_CHECKING:
    from kluster.auth import AuthProvider

logger = logging.getLogger("kluster.http")

USER_AGENT = f"kluster-sdk-python/{__version__}"

# Client errors that describe the request itself; sending it again cannot help.
NEVER_RETRY = (AuthenticationError, ValidationError, NotFoundError)


class _BaseHttpClient:
    def __init__(
        self,
        base_url: str,
        auth: AuthProvider | None = None,
        timeout: float = 60.0,
        max_retries: int = 0,
        verify_ssl: bool = True,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = auth
        self._timeout = timeout
        self._max_retries = max_retries
        self._verify_ssl = verify_ssl

    @property
    def base_url(self) -> str:
        return self._base_url

    def _client_options(self) -> dict[str, Any]:
        return {
            "base_url": self._base_url,
            "headers": {
                "User-Agent": USER_AGENT,
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            "timeout": self._timeout,
            "verify": self._verify_ssl,
        }

    def _build(self, params: dict[str, Any] | None, json: Any) -> dict[str, Any]:
        return {
            "params": {k: v for k, v in params.items() if v is not None} if params else None,
            "json": json,
            "headers": self._auth.get_headers() if self._auth else {},
        }

    def _next_delay(self, attempt: int, err: KlusterError) -> float | None:
        """Seconds to wait before attempt ``attempt + 1``, or None to give up."""
        if attempt >= self._max_retries or isinstance(err, NEVER_RETRY):
            return None
        if isinstance(err, RateLimitError) and err.retry_after:
            return float(err.retry_after)
        return 0.1 * 2 ** (attempt + 1)


def _transport_error(err: httpx.TransportError) -> KlusterError:
    if isinstance(err, httpx.TimeoutException):
        return TimeoutError(f"Request timed out: {err}")
    return ConnectionError(f"Failed to connect: {err}")


class HttpClient(_BaseHttpClient):
    """Synchronous HTTP client for one remote API."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._client = httpx.Client(**self._client_options())

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return self._request("GET", path, params=params)

    def get_content(self, path: str) -> bytes:
        """GET ``path`` and return the undecoded body."""
        return self._request("GET", path, raw=True)

    def post(self, path: str, *, json: Any = None) -> Any:
        return self._request("POST", path, json=json)

    def put(self, path: str, *, json: Any = None) -> Any:
        return self._request("PUT", path, json=json)

    def delete(self, path: str) -> Any:
        return self._request("DELETE", path)

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        raw: bool = False,
    ) -> Any:
        attempt = 0
        while True:
            try:
                try:
                    response = self._client.request(method, path, **self._build(params, json))
                except httpx.TransportError as e:
                    raise _transport_error(e) from e
                return _handle_response(response, raw=raw)
            except KlusterError as e:
                delay = self._next_delay(attempt, e)
                if delay is None:
                    raise
                logger.debug("%s %s failed (%s), retrying in %.1fs", method, path, e, delay)
                time.sleep(delay)
                attempt += 1


class AsyncHttpClient(_BaseHttpClient):
    """Asynchronous HTTP client for one remote API."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._client = httpx.AsyncClient(**self._client_options())

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncHttpClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self._request("GET", path, params=params)

    async def get_content(self, path: str) -> bytes:
        """GET ``path`` and return the undecoded body."""
        return await self._request("GET", path, raw=True)

    async def post(self, path: str, *, json: Any = None) -> Any:
        return await self._request("POST", path, json=json)

    async def put(self, path: str, *, json: Any = None) -> Any:
        return await self._request("PUT", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self._request("DELETE", path)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        raw: bool = False,
    ) -> Any:
        import anyio

        attempt = 0
        while True:
            try:
                try:
                    response = await self._client.request(method, path, **self._build(params, json))
                except httpx.TransportError as e:
                    raise _transport_error(e) from e
                return _handle_response(response, raw=raw)
            except KlusterError as e:
                delay = self._next_delay(attempt, e)
                if delay is None:
                    raise
                logger.debug("%s %s failed (%s), retrying in %.1fs", method, path, e, delay)
                await anyio.sleep(delay)
                attempt += 1


def _handle_response(response: httpx.Response, *, raw: bool = False) -> Any:
    """Return the decoded body of a successful response or raise its error."""
    if response.is_success:
        if raw:
            return response.content
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    try:
        data = response.json()
    except ValueError:
        data = None
    message = _error_message(data, response)
    status = response.status_code

    if status == 401:
        raise AuthenticationError(message, response=response)
    if status == 404:
        raise NotFoundError(message, response=response)
    if status == 422:
        errors = data.get("errors", []) if isinstance(data, dict) else []
        raise ValidationError(message, errors=errors, response=response)
    if status == 429:
        retry_after: int | None = None
        with contextlib.suppress(TypeError, ValueError):
            retry_after = int(response.headers.get("Retry-After"))
        raise RateLimitError(message, retry_after=retry_after, response=response)
    if status >= 500:
        raise KlusterError(f"Server error: {message}", response=response)
    raise KlusterError(message, response=response)


def _error_message(data: Any, response: httpx.Response) -> str:
    # kubernikus sends {"code", "message"}, the endpoint API {"error": {...}}
    if isinstance(data, dict):
        error = data.get("message") or data.get("error") or data.get("detail")
        if isinstance(error, dict):
            error = error.get("message")
        if error:
            return str(error)
    return f"HTTP {response.status_code}: {response.reason_phrase}"

"""Tests for the HTTP client error mapping and retries."""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest
import respx

from kluster._http import HttpClient
from kluster.auth import TokenAuth
from kluster.exceptions import (
    AuthenticationError,
    ConnectionError,
    KlusterError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)

URL = "https://kubernikus.test"


def make_http(max_retries: int = 0) -> HttpClient:
    return HttpClient(base_url=URL, auth=TokenAuth(token="t"), max_retries=max_retries)


class TestErrorMapping:
    """Test status code to exception mapping."""

    @pytest.mark.parametrize(
        ("status", "error"),
        [
            (401, AuthenticationError),
            (404, NotFoundError),
            (422, ValidationError),
            (429, RateLimitError),
        ],
    )
    @respx.mock
    def test_status_codes(self, status: int, error: type[KlusterError]) -> None:
        """Each error status should map to its exception."""
        respx.get(f"{URL}/x").mock(return_value=httpx.Response(status, json={"message": "nope"}))

        with pytest.raises(error, match="nope"):
            make_http().get("/x")

    @respx.mock
    def test_server_error(self) -> None:
        """Server errors should be prefixed."""
        respx.get(f"{URL}/x").mock(return_value=httpx.Response(503, json={"error": "down"}))

        with pytest.raises(KlusterError, match="^Server error: down$"):
            make_http().get("/x")

    @respx.mock
    def test_message_fallback(self) -> None:
        """A body without a message should fall back to the status line."""
        respx.get(f"{URL}/x").mock(return_value=httpx.Response(400, text="bad"))

        with pytest.raises(KlusterError, match="HTTP 400"):
            make_http().get("/x")

    @respx.mock
    def test_raw_content(self) -> None:
        """get_content should return the raw body."""
        respx.get(f"{URL}/log").mock(return_value=httpx.Response(200, content=b"\x00raw"))

        assert make_http().get_content("/log") == b"\x00raw"


class TestRetries:
    """Test transport retry behavior."""

    @respx.mock
    def test_connect_error_fatal_without_retries(self) -> None:
        """Connection errors should be fatal without retries."""
        route = respx.get(f"{URL}/x").mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(ConnectionError):
            make_http().get("/x")

        assert route.call_count == 1

    @respx.mock
    def test_connect_error_retried_when_enabled(self) -> None:
        """Connection errors should be retried when retries are enabled."""
        route = respx.get(f"{URL}/x").mock(
            side_effect=[httpx.ConnectError("refused"), httpx.Response(200, json={"ok": True})]
        )

        with patch("kluster._http.time.sleep"):
            assert make_http(max_retries=2).get("/x") == {"ok": True}

        assert route.call_count == 2

    @respx.mock
    def test_not_found_never_retried(self) -> None:
        """Not found should never be retried."""
        route = respx.get(f"{URL}/x").mock(return_value=httpx.Response(404, json={}))

        with pytest.raises(NotFoundError):
            make_http(max_retries=3).get("/x")

        assert route.call_count == 1


class TestTokenAuth:
    """Test TokenAuth."""

    def test_headers(self) -> None:
        """TokenAuth should send X-Auth-Token only when a token is set."""
        assert TokenAuth(token="abc").get_headers() == {"X-Auth-Token": "abc"}
        assert TokenAuth(token="").get_headers() == {}

    def test_token_not_in_repr(self) -> None:
        """TokenAuth should not leak the token in its repr."""
        assert "abc" not in repr(TokenAuth(token="abc"))

"""Tests for KlusterClient construction."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from kluster._config import KlusterConfig
from kluster.auth import TokenAuth
from kluster.client import AsyncKlusterClient, KlusterClient
from kluster.exceptions import AuthenticationError, KlusterError


class TestKlusterClient:
    """Test KlusterClient."""

    def test_token_argument(self) -> None:
        """Client should use an explicit token."""
        with patch.dict(os.environ, {}, clear=True):
            client = KlusterClient(token="abc", base_url="https://k.test", config=KlusterConfig())

        assert isinstance(client._auth, TokenAuth)
        assert client.base_url == "https://k.test"
        client.close()

    def test_token_from_config_file(self, tmp_path: Path) -> None:
        """Client should load the token from the config file."""
        config_file = tmp_path / "config.toml"
        config_file.write_text('token = "file-token"\nurl = "https://file.test"\n')

        with (
            patch("kluster._config.CONFIG_FILE", config_file),
            patch.dict(os.environ, {}, clear=True),
        ):
            client = KlusterClient()

        assert client._auth.get_headers() == {"X-Auth-Token": "file-token"}
        assert client.base_url == "https://file.test"
        client.close()

    def test_missing_token(self) -> None:
        """Client should require a token."""
        with pytest.raises(AuthenticationError):
            KlusterClient(config=KlusterConfig())

    def test_arc_resources_need_url(self) -> None:
        """Agent and job resources should require the arc URL."""
        client = KlusterClient(token="abc", config=KlusterConfig())

        with pytest.raises(KlusterError, match="KLUSTER_ARC_URL"):
            _ = client.jobs
        client.close()

    def test_resources_share_service_client(self) -> None:
        """Resources of one service should share its HTTP client."""
        config = KlusterConfig(token="abc", arc_url="https://arc.test", archer_url="https://archer.test")

        with KlusterClient(config=config) as client:
            assert client.jobs._http is client.agents._http
            assert client.quotas._http is client.rbac_policies._http
            assert client.jobs._http.base_url == "https://arc.test"
            assert client.clusters._polling is config.polling


@pytest.mark.anyio
async def test_async_client_context() -> None:
    """Async client should work as an async context manager."""
    config = KlusterConfig(token="abc", arc_url="https://arc.test")

    async with AsyncKlusterClient(config=config) as client:
        assert client.agents._http.base_url == "https://arc.test"

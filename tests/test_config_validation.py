"""
Config validation tests for ServerConfig.

Tests __post_init__ validation: required API key, transport names,
PORT fallback and port ranges.
"""

from __future__ import annotations

import os
from unittest import mock

import pytest

from canlii_mcp.server.config import ServerConfig


class TestApiKey:
    """CANLII_API is required."""

    def test_key_from_env(self) -> None:
        with mock.patch.dict(os.environ, {"CANLII_API": "env-key"}, clear=True):
            config = ServerConfig()
        assert config.api_key == "env-key"

    def test_explicit_key_wins(self) -> None:
        with mock.patch.dict(os.environ, {"CANLII_API": "env-key"}, clear=True):
            config = ServerConfig(api_key="explicit")
        assert config.api_key == "explicit"

    def test_missing_key_rejected(self) -> None:
        with (
            mock.patch.dict(os.environ, {}, clear=True),
            pytest.raises(ValueError, match="CANLII_API environment variable is required"),
        ):
            ServerConfig()

    def test_empty_key_rejected(self) -> None:
        with (
            mock.patch.dict(os.environ, {"CANLII_API": ""}, clear=True),
            pytest.raises(ValueError, match="CANLII_API"),
        ):
            ServerConfig()

    def test_key_not_in_repr(self) -> None:
        config = ServerConfig(api_key="do-not-print")
        assert "do-not-print" not in repr(config)


class TestTransport:
    """Transport selection."""

    def test_default_is_stdio(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            config = ServerConfig(api_key="k")
        assert config.transport == "stdio"

    def test_http_accepted(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            config = ServerConfig(api_key="k", transport="http")
        assert config.transport == "http"

    def test_unknown_transport_rejected(self) -> None:
        with pytest.raises(ValueError, match='Unknown transport: sse. Use "stdio" or "http".'):
            ServerConfig(api_key="k", transport="sse")  # type: ignore[arg-type]


class TestPorts:
    """HTTP and metrics ports."""

    def test_port_defaults_to_3000(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            config = ServerConfig(api_key="k")
        assert config.port == 3000
        assert config.host == "0.0.0.0"

    def test_port_from_env(self) -> None:
        with mock.patch.dict(os.environ, {"PORT": "8080"}, clear=True):
            config = ServerConfig(api_key="k")
        assert config.port == 8080

    def test_explicit_port_wins(self) -> None:
        with mock.patch.dict(os.environ, {"PORT": "8080"}, clear=True):
            config = ServerConfig(api_key="k", port=9000)
        assert config.port == 9000

    def test_non_numeric_port_env_rejected(self) -> None:
        with (
            mock.patch.dict(os.environ, {"PORT": "http"}, clear=True),
            pytest.raises(ValueError, match="PORT must be an integer"),
        ):
            ServerConfig(api_key="k")

    def test_port_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="port must be 1..65535"):
            ServerConfig(api_key="k", port=70000)

    def test_metrics_port_zero_valid(self) -> None:
        """Port 0 disables the metrics server."""
        config = ServerConfig(api_key="k", port=3000, metrics_port=0)
        assert config.metrics_port == 0

    def test_invalid_metrics_port_negative(self) -> None:
        with pytest.raises(ValueError, match="metrics_port"):
            ServerConfig(api_key="k", port=3000, metrics_port=-1)

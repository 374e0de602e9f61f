"""Tests for client configuration and streaming endpoint derivation."""

import pytest

from colonies.config import DEFAULT_SERVER_URL, ColoniesConfig
from colonies.errors import ColoniesError, ConfigError


class TestWsUrl:
    @pytest.mark.parametrize(
        "server_url, ws_url",
        [
            ("http://localhost:50080/api", "ws://localhost:50080/pubsub"),
            ("https://colonies.example.com/api", "wss://colonies.example.com/pubsub"),
            ("https://example.com/colonies/api/", "wss://example.com/colonies/pubsub"),
            ("http://localhost:50080", "ws://localhost:50080/pubsub"),
        ],
    )
    def test_scheme_and_path_mapping(self, server_url, ws_url):
        assert ColoniesConfig(server_url=server_url).ws_url == ws_url

    def test_unsupported_scheme_rejected_at_construction(self):
        with pytest.raises(ConfigError, match="scheme"):
            ColoniesConfig(server_url="ftp://host/api")

    def test_unsupported_scheme_is_a_colonies_error(self):
        with pytest.raises(ColoniesError):
            ColoniesConfig().with_server_url("localhost:50080/api")


class TestConfig:
    def test_defaults(self):
        config = ColoniesConfig()
        assert config.server_url == DEFAULT_SERVER_URL == "http://localhost:50080/api"
        assert config.verify is True

    def test_with_server_url_returns_copy(self):
        base = ColoniesConfig(timeout=7)
        changed = base.with_server_url("https://other/api")
        assert base.server_url == DEFAULT_SERVER_URL
        assert changed.server_url == "https://other/api"
        assert changed.timeout == 7

    def test_is_immutable(self):
        with pytest.raises(AttributeError):
            ColoniesConfig().server_url = "http://x/api"


class TestFromEnv:
    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in (
            "COLONIES_SERVER_URL",
            "COLONIES_SERVER_HOST",
            "COLONIES_SERVER_PORT",
            "COLONIES_SERVER_TLS",
            "COLONIES_TIMEOUT",
        ):
            monkeypatch.delenv(name, raising=False)

    def test_defaults_without_env(self):
        assert ColoniesConfig.from_env() == ColoniesConfig()

    def test_host_port_tls(self, monkeypatch):
        monkeypatch.setenv("COLONIES_SERVER_HOST", "colonies.example.com")
        monkeypatch.setenv("COLONIES_SERVER_PORT", "443")
        monkeypatch.setenv("COLONIES_SERVER_TLS", "true")
        monkeypatch.setenv("COLONIES_TIMEOUT", "12.5")
        config = ColoniesConfig.from_env()
        assert config.server_url == "https://colonies.example.com:443/api"
        assert config.timeout == 12.5

    def test_url_wins(self, monkeypatch):
        monkeypatch.setenv("COLONIES_SERVER_URL", "http://direct:1/api")
        monkeypatch.setenv("COLONIES_SERVER_HOST", "ignored")
        assert ColoniesConfig.from_env().server_url == "http://direct:1/api"

"""Client configuration: the server endpoint every exchange is sent to.

The configuration is an immutable value handed to each client rather than
process-wide state, so concurrent callers never observe a half-updated URL.

Environment variables read by ``ColoniesConfig.from_env`` (all optional):
    COLONIES_SERVER_URL   – full API URL, wins over the three below
    COLONIES_SERVER_HOST  – server host (default localhost)
    COLONIES_SERVER_PORT  – server port (default 50080)
    COLONIES_SERVER_TLS   – "true" to use https/wss (default false)
    COLONIES_TIMEOUT      – HTTP timeout in seconds (default 30)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from urllib.parse import urlsplit, urlunsplit

from .errors import ConfigError

DEFAULT_SERVER_URL = "http://localhost:50080/api"
DEFAULT_TIMEOUT = 30.0
API_SEGMENT = "api"
PUBSUB_SEGMENT = "pubsub"

_WS_SCHEMES = {"http": "ws", "https": "wss"}


@dataclass(frozen=True)
class ColoniesConfig:
    server_url: str = DEFAULT_SERVER_URL
    timeout: float = DEFAULT_TIMEOUT
    verify: bool = True

    def __post_init__(self):
        scheme = urlsplit(self.server_url).scheme
        if scheme not in _WS_SCHEMES:
            raise ConfigError(
                f"Unsupported server URL scheme {scheme!r} in {self.server_url!r}"
            )

    @classmethod
    def from_env(cls) -> "ColoniesConfig":
        """Build a configuration from ``COLONIES_*`` environment variables."""
        url = os.environ.get("COLONIES_SERVER_URL")
        if not url:
            host = os.environ.get("COLONIES_SERVER_HOST", "localhost")
            port = os.environ.get("COLONIES_SERVER_PORT", "50080")
            tls = os.environ.get("COLONIES_SERVER_TLS", "false").lower() in (
                "1", "true", "yes",
            )
            scheme = "https" if tls else "http"
            url = f"{scheme}://{host}:{port}/{API_SEGMENT}"
        timeout = float(os.environ.get("COLONIES_TIMEOUT", DEFAULT_TIMEOUT))
        return cls(server_url=url, timeout=timeout)

    def with_server_url(self, server_url: str) -> "ColoniesConfig":
        return replace(self, server_url=server_url)

    @property
    def ws_url(self) -> str:
        """Streaming endpoint: ws(s) scheme, last ``api`` segment → ``pubsub``."""
        parts = urlsplit(self.server_url)
        scheme = _WS_SCHEMES[parts.scheme]
        segments = parts.path.rstrip("/").split("/")
        if segments[-1] == API_SEGMENT:
            segments[-1] = PUBSUB_SEGMENT
        else:
            segments.append(PUBSUB_SEGMENT)
        path = "/".join(segments)
        if not path.startswith("/"):
            path = "/" + path
        return urlunsplit((scheme, parts.netloc, path, parts.query, ""))

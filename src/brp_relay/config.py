"""Relay configuration.

The endpoint is either given explicitly or derived from the hosting
origin plus a path, e.g. ``https://example.com:1334`` with the default
path becomes ``wss://example.com:1334/brp-relay``.

Environment variables:
    BRP_RELAY_URL     Explicit endpoint URL
    BRP_RELAY_PATH    Path appended when deriving the URL
    BRP_RELAY_ORIGIN  Hosting origin used when deriving the URL
"""

from __future__ import annotations

import os
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict

DEFAULT_RELAY_PATH = "brp-relay"
DEFAULT_ORIGIN = "http://localhost:1334"


class RelayConfig(BaseModel):
    """Immutable relay settings, fixed before the connection is made."""

    model_config = ConfigDict(frozen=True)

    url: str | None = None
    path: str = DEFAULT_RELAY_PATH
    origin: str = DEFAULT_ORIGIN

    # Keep-alive settings handed to the websockets client
    ping_interval: float | None = 20.0
    ping_timeout: float | None = 20.0

    def resolve_url(self) -> str:
        """Return the explicit URL, or derive one from origin and path."""
        if self.url:
            return self.url
        return derive_url(self.origin, self.path)

    @classmethod
    def from_env(cls) -> RelayConfig:
        """Build a config from BRP_RELAY_* environment variables."""
        values: dict[str, str] = {}
        if url := os.getenv("BRP_RELAY_URL"):
            values["url"] = url
        if path := os.getenv("BRP_RELAY_PATH"):
            values["path"] = path
        if origin := os.getenv("BRP_RELAY_ORIGIN"):
            values["origin"] = origin
        return cls(**values)


def derive_url(origin: str, path: str) -> str:
    """Map a hosting origin to the relay WebSocket URL.

    The scheme mirrors the origin's security: https gives wss,
    anything else gives ws.

    Raises:
        ValueError: If the origin has no host
    """
    parts = urlsplit(origin)
    if not parts.netloc:
        raise ValueError(f"No host in origin: {origin!r}")
    scheme = "wss" if parts.scheme == "https" else "ws"
    return f"{scheme}://{parts.netloc}/{path.lstrip('/')}"

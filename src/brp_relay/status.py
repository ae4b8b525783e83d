"""Relay connection status.

A single advisory flag recording whether the relay socket is open.
Only the connection lifecycle writes it; anyone may read it, from any
thread. Readers may observe a value slightly behind the socket itself.
"""

from __future__ import annotations

import threading


class RelayStatus:
    """Last-known connectivity of the relay connection."""

    def __init__(self) -> None:
        self._connected = threading.Event()

    @property
    def connected(self) -> bool:
        """Return True if the relay socket is currently open."""
        return self._connected.is_set()

    def mark_connected(self) -> None:
        self._connected.set()

    def mark_disconnected(self) -> None:
        self._connected.clear()

    def __repr__(self) -> str:
        return f"RelayStatus(connected={self.connected})"

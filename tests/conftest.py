"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
from typing import Any

import pytest


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


class RecordingSink:
    """FrameSink that keeps every frame written to it.

    Fails with ConnectionError once ``fail_after`` frames were written.
    """

    def __init__(self, fail_after: int | None = None) -> None:
        self.raw: list[str] = []
        self._fail_after = fail_after

    @property
    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(frame) for frame in self.raw]

    async def send_frame(self, frame: str) -> None:
        if self._fail_after is not None and len(self.raw) >= self._fail_after:
            raise ConnectionError("socket closed")
        self.raw.append(frame)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_sink():
    """Factory for sinks that fail after a number of frames."""
    return RecordingSink

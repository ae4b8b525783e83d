"""Channels between the relay and the executor.

The executor owns an intake stream of ``BrpMessage``. Each message
carries the send half of a bounded response stream; the executor sends
zero or more outcomes on it and then closes it. Closing the receive half
(relay side) makes further sends raise ``anyio.BrokenResourceError``,
which is how a producer learns nobody is listening any more.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

# An outcome is either a result value or a BrpError
ResponseSender = MemoryObjectSendStream[Any]
ResponseReceiver = MemoryObjectReceiveStream[Any]


@dataclass
class BrpMessage:
    """A request handed to the executor."""

    method: str
    params: Any
    sender: ResponseSender


IntakeSender = MemoryObjectSendStream[BrpMessage]
IntakeReceiver = MemoryObjectReceiveStream[BrpMessage]


def create_response_channel(capacity: int) -> tuple[ResponseSender, ResponseReceiver]:
    """Create the per-request response stream with the given buffer size."""
    return anyio.create_memory_object_stream[Any](max_buffer_size=capacity)


def create_intake(capacity: float = math.inf) -> tuple[IntakeSender, IntakeReceiver]:
    """Create the executor intake. Unbounded unless a capacity is given."""
    return anyio.create_memory_object_stream[BrpMessage](max_buffer_size=capacity)

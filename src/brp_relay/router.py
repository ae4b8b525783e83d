"""Message router.

Turns inbound text frames into executor submissions:

1. Parse and validate the envelope (errors answered locally)
2. Classify the request (watch vs single-shot) and size its response stream
3. Submit ``BrpMessage(method, params, sender)`` to the executor intake
4. Relay the outcomes back to the peer

Each frame is handled in its own task, so a slow request never blocks the
connection's receive loop, and identical frames are independent requests.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

import anyio

from .channel import BrpMessage, IntakeSender, create_response_channel
from .protocol.envelope import InboundRequest, ParseFailure, parse_request
from .protocol.errors import INTERNAL_ERROR
from .protocol.frames import make_error_response
from .relay import FrameSink, relay_responses

logger = logging.getLogger(__name__)

CHANNEL_CLOSED_MESSAGE = "BRP channel closed"


class MessageRouter:
    """Routes inbound frames to the executor and relays the responses.

    Usage:
        router = MessageRouter(intake, connection)
        router.dispatch('{"id": 1, "method": "world.query"}')
        ...
        await router.cancel_pending()  # on shutdown
    """

    def __init__(self, intake: IntakeSender, sink: FrameSink) -> None:
        """Initialize router.

        Args:
            intake: Send half of the executor intake
            sink: Where response frames are written
        """
        self._intake = intake
        self._sink = sink
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        """Number of requests still being processed."""
        return len(self._tasks)

    def dispatch(self, text: str) -> asyncio.Task[None]:
        """Handle a text frame in the background and return its task."""
        task = asyncio.create_task(self.process(text))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def process(self, text: str) -> None:
        """Handle one text frame through to its last response."""
        request = parse_request(text)
        if isinstance(request, ParseFailure):
            logger.debug(f"Rejected frame: {request.message}")
            await self._send_error(request.id, request.code, request.message)
            return

        await self._submit(request)

    async def cancel_pending(self) -> None:
        """Cancel every in-flight request and wait for the tasks to finish."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if tasks:
            logger.info(f"Cancelled {len(tasks)} pending request(s)")

    async def _submit(self, request: InboundRequest) -> None:
        sender, receiver = create_response_channel(request.channel_capacity)
        message = BrpMessage(method=request.method, params=request.params, sender=sender)
        logger.debug(f"Submitting {request.method} (id={request.id!r})")

        try:
            await self._intake.send(message)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            sender.close()
            receiver.close()
            logger.warning(f"Executor intake closed, rejecting {request.method}")
            await self._send_error(request.id, INTERNAL_ERROR, CHANNEL_CLOSED_MESSAGE)
            return

        await relay_responses(receiver, request.id, self._sink, watch=request.is_watch)

    async def _send_error(self, request_id: Any, code: int, message: str) -> None:
        try:
            await self._sink.send_frame(make_error_response(request_id, code, message))
        except ConnectionError as e:
            logger.warning(f"Failed to send error response: {e}")

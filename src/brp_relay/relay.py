"""Response relay.

One relay runs per accepted request. It drains the request's response
stream and writes a correlated frame for each outcome:

- Single-shot: at most one frame. If the executor closes the stream
  without sending anything, no frame is written.
- Watch: one frame per outcome until the executor closes the stream or a
  write fails. No closing frame is sent.

The receive half is closed when the relay exits, so an executor still
producing for a dead relay gets ``anyio.BrokenResourceError``.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import anyio

from .channel import ResponseReceiver
from .protocol.frames import make_response

logger = logging.getLogger(__name__)


@runtime_checkable
class FrameSink(Protocol):
    """Anything that can write a text frame to the relay peer.

    Implementations raise ConnectionError when the frame cannot be sent.
    Must be safe to call from many tasks at once.
    """

    async def send_frame(self, frame: str) -> None: ...


async def relay_single(receiver: ResponseReceiver, request_id: Any, sink: FrameSink) -> bool:
    """Forward the one outcome of a single-shot request.

    Returns:
        True if a frame was written
    """
    with receiver:
        try:
            outcome = await receiver.receive()
        except anyio.EndOfStream:
            logger.debug(f"Request {request_id!r} closed without a response")
            return False

        try:
            await sink.send_frame(make_response(request_id, outcome))
        except ConnectionError as e:
            logger.warning(f"Failed to send response for request {request_id!r}: {e}")
            return False
        return True


async def relay_watch(receiver: ResponseReceiver, request_id: Any, sink: FrameSink) -> int:
    """Forward every outcome of a watch request, in production order.

    Returns:
        Number of frames written
    """
    sent = 0
    with receiver:
        async for outcome in receiver:
            try:
                await sink.send_frame(make_response(request_id, outcome))
            except ConnectionError as e:
                logger.warning(f"Stopping watch {request_id!r} after {sent} frames: {e}")
                break
            sent += 1
    logger.debug(f"Watch {request_id!r} finished after {sent} frames")
    return sent


async def relay_responses(
    receiver: ResponseReceiver, request_id: Any, sink: FrameSink, watch: bool
) -> None:
    """Run the relay appropriate for the request class."""
    if watch:
        await relay_watch(receiver, request_id, sink)
    else:
        await relay_single(receiver, request_id, sink)

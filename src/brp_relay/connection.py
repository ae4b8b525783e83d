"""WebSocket connection to the relay server.

Owns the single socket the relay runs over. Socket events are fed
through the lifecycle state machine and its effects applied here:
status updates, routing of text frames, and error logging.

There is no reconnection. Once the socket closes the connection is
finished and a new RelayConnection is needed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException

from .channel import IntakeSender
from .lifecycle import ConnectionState, Effect, LifecycleEvent, transition
from .router import MessageRouter
from .status import RelayStatus

logger = logging.getLogger(__name__)

# Close code reported when the socket goes away without a close frame
ABNORMAL_CLOSURE = 1006


class RelayConnection:
    """Client side of the relay socket.

    Usage:
        connection = RelayConnection("ws://localhost:1334/brp-relay", intake)
        await connection.run()  # Returns once the socket closes

    Writes are serialized with a lock, so any number of relay tasks may
    call send_frame() concurrently.
    """

    def __init__(
        self,
        url: str,
        intake: IntakeSender,
        status: RelayStatus | None = None,
        ping_interval: float | None = 20.0,
        ping_timeout: float | None = 20.0,
    ):
        self.url = url
        self.status = status or RelayStatus()
        self.router = MessageRouter(intake, self)
        self._ping_interval = ping_interval
        self._ping_timeout = ping_timeout
        self._state = ConnectionState.DISCONNECTED
        self._websocket: Any = None  # websockets ClientConnection
        self._send_lock = asyncio.Lock()

    @property
    def state(self) -> ConnectionState:
        """Current lifecycle state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    async def connect(self) -> None:
        """Open the socket.

        Raises:
            InvalidTransition: If this connection was already used
            ConnectionError: If the socket could not be opened
        """
        self._apply(LifecycleEvent.CONNECT)
        logger.info(f"BRP WebSocket relay: connecting to {self.url}")

        try:
            self._websocket = await websockets.connect(
                self.url,
                ping_interval=self._ping_interval,
                ping_timeout=self._ping_timeout,
            )
        except (OSError, WebSocketException) as e:
            self.handle_error(e)
            self.handle_close(ABNORMAL_CLOSURE, str(e))
            raise ConnectionError(f"Failed to connect to {self.url}: {e}") from e

        self.handle_open()

    async def run(self) -> None:
        """Connect and process frames until the socket closes."""
        try:
            await self.connect()
        except ConnectionError as e:
            logger.debug(f"Relay not started: {e}")
            return

        try:
            await self._receive_loop()
        finally:
            await self.router.cancel_pending()

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the socket. The receive loop reports the close event."""
        if self._websocket is not None:
            await self._websocket.close(code, reason)

    async def send_frame(self, frame: str) -> None:
        """Write a text frame to the relay server.

        Raises:
            ConnectionError: If the socket is not open or the write fails
        """
        async with self._send_lock:
            if not self.is_connected or self._websocket is None:
                raise ConnectionError("Not connected")
            try:
                await self._websocket.send(frame)
            except ConnectionClosed as e:
                raise ConnectionError(f"Connection closed: {e}") from e

    # Socket events

    def handle_open(self) -> None:
        self._apply(LifecycleEvent.OPEN)

    def handle_message(self, payload: str | bytes) -> None:
        self._apply(LifecycleEvent.MESSAGE, payload)

    def handle_close(self, code: int, reason: str) -> None:
        if self._state != ConnectionState.CLOSED:
            logger.warning(f"BRP WebSocket relay: disconnected (code={code}, reason={reason})")
        self._apply(LifecycleEvent.CLOSE)

    def handle_error(self, error: BaseException) -> None:
        self._apply(LifecycleEvent.ERROR, error)

    async def _receive_loop(self) -> None:
        websocket = self._websocket
        try:
            async for message in websocket:
                self.handle_message(message)
        except ConnectionClosedError as e:
            self.handle_error(e)
        finally:
            code = websocket.close_code
            self.handle_close(
                code if code is not None else ABNORMAL_CLOSURE,
                websocket.close_reason or "",
            )

    def _apply(self, event: LifecycleEvent, payload: Any = None) -> None:
        step = transition(self._state, event)
        self._state = step.state

        for effect in step.effects:
            match effect:
                case Effect.MARK_CONNECTED:
                    logger.info("BRP WebSocket relay: connected")
                    self.status.mark_connected()

                case Effect.MARK_DISCONNECTED:
                    self.status.mark_disconnected()

                case Effect.ROUTE_MESSAGE:
                    if isinstance(payload, str):
                        self.router.dispatch(payload)
                    else:
                        # No id is recoverable from a binary frame
                        logger.debug("Dropping non-text frame")

                case Effect.LOG_ERROR:
                    logger.error(f"BRP WebSocket relay: connection error: {payload}")

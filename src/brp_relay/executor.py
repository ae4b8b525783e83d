"""In-process executor for hosts serving BRP methods.

A host registers handlers by method name and serves the relay intake:

    registry = MethodRegistry()
    registry.register("world.ping", lambda params: "pong")
    registry.register_watch("world.clock+watch", clock)
    await registry.serve(intake_receiver)

Single-shot handlers take ``params`` and return a value (sync or async).
Watch handlers are async generators yielding successive values. Raising
``BrpException`` answers with its error; any other exception becomes an
internal error.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import AsyncGenerator, Callable
from typing import Any

import anyio

from .channel import BrpMessage, IntakeReceiver, ResponseSender
from .protocol.envelope import is_watch_method
from .protocol.errors import BrpError, BrpException

logger = logging.getLogger(__name__)

MethodHandler = Callable[[Any], Any]
WatchHandler = Callable[[Any], AsyncGenerator[Any, None]]


class MethodRegistry:
    """Maps method names to handlers and executes BrpMessages."""

    def __init__(self) -> None:
        self._methods: dict[str, MethodHandler] = {}
        self._watches: dict[str, WatchHandler] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    def register(self, method: str, handler: MethodHandler) -> None:
        """Register a single-shot method.

        Raises:
            ValueError: If the name is already taken or marks a watch method
        """
        if is_watch_method(method):
            raise ValueError(f"Watch method {method!r} needs register_watch()")
        self._check_free(method)
        self._methods[method] = handler

    def register_watch(self, method: str, handler: WatchHandler) -> None:
        """Register a streaming method; the name must contain ``+watch``."""
        if not is_watch_method(method):
            raise ValueError(f"Watch method {method!r} must contain '+watch'")
        self._check_free(method)
        self._watches[method] = handler

    def methods(self) -> list[str]:
        """List registered method names."""
        return sorted([*self._methods, *self._watches])

    async def serve(self, intake: IntakeReceiver) -> None:
        """Execute messages from the intake until it closes."""
        async with intake:
            async for message in intake:
                task = asyncio.create_task(self.execute(message))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        logger.debug("Executor intake closed")

    async def execute(self, message: BrpMessage) -> None:
        """Run one message and close its response stream."""
        async with message.sender:
            try:
                if message.method in self._watches:
                    await self._run_watch(message.method, message.params, message.sender)
                elif message.method in self._methods:
                    outcome = await self._call(message.method, message.params)
                    await message.sender.send(outcome)
                else:
                    await message.sender.send(BrpError.method_not_found(message.method))
            except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                logger.debug(f"Nobody is listening for {message.method} any more")

    async def _call(self, method: str, params: Any) -> Any:
        try:
            result = self._methods[method](params)
            if inspect.isawaitable(result):
                result = await result
            return result
        except BrpException as e:
            return e.error
        except Exception as e:
            logger.exception(f"Handler for {method} failed")
            return BrpError.internal(str(e))

    async def _run_watch(self, method: str, params: Any, sender: ResponseSender) -> None:
        stream = self._watches[method](params)
        try:
            async for value in stream:
                await sender.send(value)
        except BrpException as e:
            await sender.send(e.error)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            raise
        except Exception as e:
            logger.exception(f"Watch handler for {method} failed")
            await sender.send(BrpError.internal(str(e)))
        finally:
            await stream.aclose()

    def _check_free(self, method: str) -> None:
        if method in self._methods or method in self._watches:
            raise ValueError(f"Method {method!r} is already registered")

"""Unit tests for MessageRouter.

The executor is played by small helper coroutines reading the real
intake stream; the socket is a recording sink.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import anyio
import pytest

from brp_relay.channel import BrpMessage, IntakeReceiver, create_intake
from brp_relay.protocol.errors import BrpError
from brp_relay.router import CHANNEL_CLOSED_MESSAGE, MessageRouter

# =============================================================================
# Helpers
# =============================================================================


async def answer(intake: IntakeReceiver, *outcomes: Any) -> BrpMessage:
    """Take one message from the intake, send outcomes, then close."""
    message = await intake.receive()
    async with message.sender:
        for outcome in outcomes:
            await message.sender.send(outcome)
    return message


@pytest.fixture
def intake():
    sender, receiver = create_intake()
    yield sender, receiver
    sender.close()
    receiver.close()


# =============================================================================
# Local errors
# =============================================================================


class TestLocalErrors:
    """Frames answered without reaching the executor."""

    @pytest.mark.asyncio
    async def test_parse_error(self, intake, sink):
        router = MessageRouter(intake[0], sink)

        await router.process("not-json")

        [frame] = sink.frames
        assert frame["jsonrpc"] == "2.0"
        assert frame["id"] is None
        assert frame["error"]["code"] == -32700
        assert frame["error"]["message"].startswith("Parse error: ")
        assert set(frame["error"]) == {"code", "message"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "text",
        [
            "NaN",
            '{"id": Infinity, "method": "x"}',
            "[" * 200_000,
            '{"id": "\\ud800"}',
            '{"id": 1, "method": "x", "params": "\\udc00"}',
        ],
        ids=["nan", "infinity-id", "deep-nesting", "surrogate-id", "surrogate-params"],
    )
    async def test_non_strict_json_is_parse_error(self, intake, sink, text):
        """Exactly one encodable -32700 frame with a null id."""
        router = MessageRouter(intake[0], sink)

        await router.process(text)

        [raw] = sink.raw
        raw.encode("utf-8")
        frame = json.loads(raw)
        assert frame["id"] is None
        assert frame["error"]["code"] == -32700
        assert intake[1].statistics().current_buffer_used == 0

    @pytest.mark.asyncio
    async def test_non_finite_result_is_internal_error(self, intake, sink):
        router = MessageRouter(intake[0], sink)
        executor = asyncio.create_task(answer(intake[1], float("nan")))

        await router.process('{"id": 4, "method": "world.query"}')
        await executor

        [raw] = sink.raw
        assert "NaN" not in raw
        frame = json.loads(raw)
        assert frame["id"] == 4
        assert frame["error"]["code"] == -32603

    @pytest.mark.asyncio
    async def test_missing_method(self, intake, sink):
        router = MessageRouter(intake[0], sink)

        await router.process('{"id":3}')

        assert sink.raw == [
            '{"jsonrpc":"2.0","id":3,"error":{"code":-32600,"message":"Missing method field"}}'
        ]

    @pytest.mark.asyncio
    async def test_local_errors_never_reach_executor(self, intake, sink):
        router = MessageRouter(intake[0], sink)

        await router.process("{")
        await router.process('{"params": {}}')

        assert intake[1].statistics().current_buffer_used == 0

    @pytest.mark.asyncio
    async def test_intake_receiver_closed(self, sink):
        sender, receiver = create_intake()
        receiver.close()
        router = MessageRouter(sender, sink)

        await router.process('{"id": 5, "method": "world.query"}')

        assert sink.frames == [
            {"jsonrpc": "2.0", "id": 5, "error": {"code": -32603, "message": CHANNEL_CLOSED_MESSAGE}}
        ]

    @pytest.mark.asyncio
    async def test_intake_sender_closed(self, sink):
        sender, receiver = create_intake()
        sender.close()
        router = MessageRouter(sender, sink)

        await router.process('{"id": "abc", "method": "world.query"}')

        [frame] = sink.frames
        assert frame["id"] == "abc"
        assert frame["error"] == {"code": -32603, "message": "BRP channel closed"}
        receiver.close()

    @pytest.mark.asyncio
    async def test_error_write_failure_is_swallowed(self, intake, make_sink):
        router = MessageRouter(intake[0], make_sink(fail_after=0))

        await router.process("not-json")


# =============================================================================
# Submission and relay
# =============================================================================


class TestSubmission:
    @pytest.mark.asyncio
    async def test_single_shot_round_trip(self, intake, sink):
        router = MessageRouter(intake[0], sink)
        executor = asyncio.create_task(answer(intake[1], {"entity": 12}))

        await router.process('{"id": 7, "method": "world.spawn", "params": {"name": "x"}}')
        message = await executor

        assert message.method == "world.spawn"
        assert message.params == {"name": "x"}
        assert sink.frames == [{"jsonrpc": "2.0", "id": 7, "result": {"entity": 12}}]

    @pytest.mark.asyncio
    async def test_single_shot_error(self, intake, sink):
        router = MessageRouter(intake[0], sink)
        executor = asyncio.create_task(answer(intake[1], BrpError.method_not_found("nope")))

        await router.process('{"id": 7, "method": "nope"}')
        await executor

        [frame] = sink.frames
        assert frame["id"] == 7
        assert frame["error"]["code"] == -32601
        assert "result" not in frame

    @pytest.mark.asyncio
    async def test_single_shot_without_answer(self, intake, sink):
        router = MessageRouter(intake[0], sink)
        executor = asyncio.create_task(answer(intake[1]))

        await router.process('{"id": 7, "method": "world.despawn"}')
        await executor

        assert sink.raw == []

    @pytest.mark.asyncio
    async def test_watch_streams_every_outcome(self, intake, sink):
        router = MessageRouter(intake[0], sink)
        executor = asyncio.create_task(answer(intake[1], "a", "b", "c"))

        await router.process('{"id": 1, "method": "entity+watch"}')
        await executor

        assert [(f["id"], f["result"]) for f in sink.frames] == [(1, "a"), (1, "b"), (1, "c")]

    @pytest.mark.asyncio
    async def test_channel_capacity_by_request_class(self, intake, sink):
        router = MessageRouter(intake[0], sink)

        router.dispatch('{"id": 1, "method": "entity+watch"}')
        router.dispatch('{"id": 2, "method": "entity.get"}')
        watch = await intake[1].receive()
        single = await intake[1].receive()

        assert watch.sender.statistics().max_buffer_size == 8
        assert single.sender.statistics().max_buffer_size == 1

        watch.sender.close()
        single.sender.close()
        await router.cancel_pending()

    @pytest.mark.asyncio
    async def test_missing_params_submitted_as_none(self, intake, sink):
        router = MessageRouter(intake[0], sink)
        executor = asyncio.create_task(answer(intake[1], True))

        await router.process('{"id": 1, "method": "relay.ping"}')
        message = await executor

        assert message.params is None


# =============================================================================
# Dispatch and concurrency
# =============================================================================


class TestDispatch:
    @pytest.mark.asyncio
    async def test_dispatch_does_not_wait(self, intake, sink):
        """dispatch() returns while the request is still in flight."""
        router = MessageRouter(intake[0], sink)

        task = router.dispatch('{"id": 1, "method": "slow"}')
        message = await intake[1].receive()

        assert router.pending == 1
        assert not task.done()

        async with message.sender:
            await message.sender.send("done")
        await task

        assert router.pending == 0
        assert sink.frames[0]["result"] == "done"

    @pytest.mark.asyncio
    async def test_identical_requests_are_independent(self, intake, sink):
        router = MessageRouter(intake[0], sink)
        frame = '{"id": 9, "method": "world.query"}'

        first = router.dispatch(frame)
        second = router.dispatch(frame)
        messages = [await intake[1].receive(), await intake[1].receive()]

        assert messages[0].sender is not messages[1].sender
        for n, message in enumerate(messages):
            async with message.sender:
                await message.sender.send(n)
        await asyncio.gather(first, second)

        assert sorted(f["result"] for f in sink.frames) == [0, 1]
        assert all(f["id"] == 9 for f in sink.frames)

    @pytest.mark.asyncio
    async def test_concurrent_requests_complete_out_of_order(self, intake, sink):
        router = MessageRouter(intake[0], sink)

        tasks = [router.dispatch(json.dumps({"id": n, "method": "m"})) for n in range(3)]
        messages = [await intake[1].receive() for _ in range(3)]
        for message, value in zip(reversed(messages), ("c", "b", "a"), strict=True):
            async with message.sender:
                await message.sender.send(value)
        await asyncio.gather(*tasks)

        by_id = {f["id"]: f["result"] for f in sink.frames}
        assert by_id == {0: "a", 1: "b", 2: "c"}

    @pytest.mark.asyncio
    async def test_cancel_pending_releases_stuck_requests(self, intake, sink):
        """Cancelling closes the response stream so the producer can stop."""
        router = MessageRouter(intake[0], sink)

        router.dispatch('{"id": 1, "method": "never+watch"}')
        message = await intake[1].receive()
        await asyncio.sleep(0)

        await router.cancel_pending()

        assert router.pending == 0
        with pytest.raises(anyio.BrokenResourceError):
            await message.sender.send("late")
        assert sink.raw == []
        message.sender.close()

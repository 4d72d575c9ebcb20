"""Unit tests for the response stream state machine."""

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import pytest

from chat_relay.domain.message import Message
from chat_relay.errors import (
    InvalidStreamTransition,
    StreamCancelled,
    UpstreamRateLimited,
    UpstreamTransportError,
)
from chat_relay.models.message import MessageRole, Usage
from chat_relay.models.stream import TextDelta
from chat_relay.services.aggregator import EMPTY_RESPONSE_NOTICE, ResponseStream, StreamState


async def items_then(items: list[Any], error: BaseException | None = None) -> AsyncIterator[Any]:
    for item in items:
        yield item
    if error is not None:
        raise error


@pytest.fixture
def stream() -> ResponseStream:
    return ResponseStream(Message.placeholder("gpt-4o"))


class TestResponseStream:
    """Tests for ResponseStream transitions."""

    def test_starts_pending_and_loading(self, stream: ResponseStream) -> None:
        assert stream.state == StreamState.PENDING
        assert stream.message.loading is True
        assert stream.message.content == ""

    def test_deltas_concatenate_in_order(self, stream: ResponseStream) -> None:
        for text in ["The", " quick", " fox"]:
            stream.feed(TextDelta(text=text))

        assert stream.state == StreamState.STREAMING
        assert stream.message.content == "The quick fox"
        assert stream.message.loading is True

    def test_complete(self, stream: ResponseStream) -> None:
        usage = Usage(prompt_tokens=3, completion_tokens=2)
        stream.feed(TextDelta(text="Done"))

        message = stream.complete(usage)

        assert stream.state == StreamState.COMPLETED
        assert message.content == "Done"
        assert message.usage == usage
        assert message.loading is False
        assert message.role == MessageRole.ASSISTANT

    def test_complete_from_pending_uses_notice(self, stream: ResponseStream) -> None:
        message = stream.complete()

        assert message.content == EMPTY_RESPONSE_NOTICE
        assert stream.state == StreamState.COMPLETED

    def test_fail_keeps_partial_content(self, stream: ResponseStream) -> None:
        error = UpstreamTransportError("connection reset", provider="openai")
        stream.feed(TextDelta(text="Half an answer"))

        message = stream.fail(error)

        assert stream.state == StreamState.FAILED
        assert message.role == MessageRole.ERROR
        assert message.loading is False
        assert message.content == f"Half an answer\n\n{error.user_message}"
        assert stream.error is error

    def test_fail_without_content(self, stream: ResponseStream) -> None:
        error = UpstreamRateLimited("slow down", provider="openai", status_code=429)

        message = stream.fail(error)

        assert message.content == error.user_message

    def test_fail_with_unknown_error_uses_generic_notice(self, stream: ResponseStream) -> None:
        message = stream.fail(RuntimeError("database password is hunter2"))
        assert "hunter2" not in message.content

    @pytest.mark.parametrize("terminal", ["complete", "fail"])
    def test_terminal_states_are_final(self, stream: ResponseStream, terminal: str) -> None:
        if terminal == "complete":
            stream.complete()
        else:
            stream.fail(StreamCancelled())
        content = stream.message.content

        with pytest.raises(InvalidStreamTransition):
            stream.feed(TextDelta(text="late"))
        with pytest.raises(InvalidStreamTransition):
            stream.complete()
        with pytest.raises(InvalidStreamTransition):
            stream.fail(StreamCancelled())
        assert stream.message.content == content

    def test_observers_see_every_change(self, stream: ResponseStream) -> None:
        seen: list[tuple[str, StreamState]] = []
        stream.subscribe(lambda message, state: seen.append((message.content, state)))

        stream.feed(TextDelta(text="a"))
        stream.feed(TextDelta(text="b"))
        stream.complete()

        assert seen == [
            ("a", StreamState.STREAMING),
            ("ab", StreamState.STREAMING),
            ("ab", StreamState.COMPLETED),
        ]


class TestConsume:
    """Tests for driving a ResponseStream from an adapter stream."""

    @pytest.mark.asyncio
    async def test_consume_success(self, stream: ResponseStream) -> None:
        usage = Usage(prompt_tokens=4, completion_tokens=2, estimated=False)

        message = await stream.consume(
            items_then([TextDelta(text="Hi"), TextDelta(text="!"), usage])
        )

        assert message.content == "Hi!"
        assert message.usage == usage
        assert stream.state == StreamState.COMPLETED

    @pytest.mark.asyncio
    async def test_consume_taxonomy_error_is_not_raised(self, stream: ResponseStream) -> None:
        error = UpstreamTransportError("dropped", provider="mistral")

        message = await stream.consume(items_then([TextDelta(text="Par")], error))

        assert stream.state == StreamState.FAILED
        assert message.content.startswith("Par\n\n")
        assert stream.error is error

    @pytest.mark.asyncio
    async def test_consume_unexpected_error_propagates(self, stream: ResponseStream) -> None:
        with pytest.raises(RuntimeError):
            await stream.consume(items_then([], RuntimeError("bug")))

        assert stream.state == StreamState.FAILED

    @pytest.mark.asyncio
    async def test_consume_cancellation(self, stream: ResponseStream) -> None:
        started = asyncio.Event()

        async def hanging() -> AsyncIterator[TextDelta]:
            yield TextDelta(text="Par")
            started.set()
            await asyncio.Event().wait()

        task = asyncio.create_task(stream.consume(hanging()))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert stream.state == StreamState.FAILED
        assert isinstance(stream.error, StreamCancelled)
        assert stream.message.content == "Par\n\nResponse generation was cancelled."
        assert stream.message.loading is False

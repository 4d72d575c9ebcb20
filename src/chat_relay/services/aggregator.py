"""Response stream state machine for chat_relay.

A ResponseStream owns one placeholder assistant Message and moves it
through Pending -> Streaming -> Completed | Failed as deltas arrive.
"""

import asyncio
from collections.abc import AsyncIterable, Callable, Iterable
from enum import StrEnum

from chat_relay.domain.message import Message
from chat_relay.errors import ChatRelayError, InvalidStreamTransition, StreamCancelled
from chat_relay.logging import get_logger
from chat_relay.models.message import MessageRole, Usage
from chat_relay.models.stream import TextDelta

__all__ = [
    "EMPTY_RESPONSE_NOTICE",
    "ResponseStream",
    "StreamObserver",
    "StreamState",
]

logger = get_logger(__name__)

EMPTY_RESPONSE_NOTICE = (
    "I couldn't generate a response. Please try again or select a different model."
)

_GENERIC_FAILURE = "Sorry, something went wrong. Please try again."


class StreamState(StrEnum):
    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StreamState.COMPLETED, StreamState.FAILED)


StreamObserver = Callable[[Message, StreamState], None]


class ResponseStream:
    """State machine for one in-flight response.

    Deltas are appended in arrival order and observers are called
    synchronously after every change. Terminal states are final: any
    further ``feed``/``complete``/``fail`` raises InvalidStreamTransition.

    Example:
        stream = ResponseStream(Message.placeholder("gpt-4o"))
        message = await stream.consume(adapter.stream(history, "gpt-4o"))
    """

    def __init__(self, message: Message, observers: Iterable[StreamObserver] = ()) -> None:
        """Initialize with the placeholder message.

        Args:
            message: Placeholder assistant message; it is mutated in place
            observers: Callables notified after every state change
        """
        message.loading = True
        self._message = message
        self._observers = list(observers)
        self._state = StreamState.PENDING
        self._error: BaseException | None = None

    @property
    def message(self) -> Message:
        return self._message

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def error(self) -> BaseException | None:
        """Failure that ended the stream, if it failed."""
        return self._error

    def subscribe(self, observer: StreamObserver) -> None:
        self._observers.append(observer)

    def _notify(self) -> None:
        for observer in self._observers:
            observer(self._message, self._state)

    def _guard(self, action: str) -> None:
        if self._state.is_terminal:
            raise InvalidStreamTransition(self._state.value, action)

    def feed(self, delta: TextDelta) -> None:
        """Append one delta."""
        self._guard("feed")
        self._state = StreamState.STREAMING
        self._message.content += delta.text
        self._notify()

    def complete(self, usage: Usage | None = None) -> Message:
        """Finish cleanly.

        Empty content is replaced with a fixed notice so a completed
        message is never blank.
        """
        self._guard("complete")
        if not self._message.content:
            self._message.content = EMPTY_RESPONSE_NOTICE
        self._message.usage = usage
        self._message.loading = False
        self._state = StreamState.COMPLETED
        logger.info(
            "stream_completed",
            message_id=self._message.id,
            model_id=self._message.model_id,
            total_tokens=usage.total_tokens if usage else None,
        )
        self._notify()
        return self._message

    def fail(self, error: BaseException) -> Message:
        """Finish with a failure.

        Content already received is kept; the caller-facing notice is
        appended after it.
        """
        self._guard("fail")
        notice = error.user_message if isinstance(error, ChatRelayError) else _GENERIC_FAILURE
        partial = self._message.content
        self._message.content = f"{partial}\n\n{notice}" if partial else notice
        self._message.role = MessageRole.ERROR
        self._message.loading = False
        self._error = error
        self._state = StreamState.FAILED
        logger.warning(
            "stream_failed",
            message_id=self._message.id,
            model_id=self._message.model_id,
            error_type=type(error).__name__,
            partial_length=len(partial),
        )
        self._notify()
        return self._message

    async def consume(self, items: AsyncIterable[TextDelta | Usage]) -> Message:
        """Drive the state machine from an adapter stream.

        Taxonomy errors end in Failed and are not re-raised; inspect
        ``error``. Cancellation and unexpected exceptions also end in
        Failed but propagate.

        Returns:
            The finalized message
        """
        usage: Usage | None = None
        try:
            async for item in items:
                if isinstance(item, Usage):
                    usage = item
                else:
                    self.feed(item)
        except asyncio.CancelledError:
            self.fail(StreamCancelled())
            raise
        except ChatRelayError as e:
            return self.fail(e)
        except Exception as e:
            self.fail(e)
            raise
        return self.complete(usage)

"""
Broadcast Streams

One writer, many readers. A BroadcastStream hands every value pushed into it
to all subscriptions that exist at that moment; late subscribers see only
what is pushed after they joined. Readers are either callbacks (delivered
synchronously, in subscription order, with error isolation) or async
iterators that each own an independent asyncio.Queue.

Closing a stream ends every subscription: callback readers get their
`on_done`, iterator readers drain what was already delivered and then stop.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

_CLOSED = object()


class StreamClosedError(RuntimeError):
    """Raised when a value is pushed into a closed stream"""
    pass


class StreamSubscription(Generic[T]):
    """A single reader attached to a BroadcastStream."""

    def __init__(
        self,
        stream: 'BroadcastStream[T]',
        on_data: Optional[Callable[[T], Any]] = None,
        on_done: Optional[Callable[[], Any]] = None,
    ):
        self._stream = stream
        self._on_data = on_data
        self._on_done = on_done
        self._queue: Optional[asyncio.Queue] = None if on_data else asyncio.Queue()
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Detach from the stream. Safe to call more than once."""
        if self._cancelled:
            return
        self._cancelled = True
        self._stream._detach(self)
        if self._queue is not None:
            self._queue.put_nowait(_CLOSED)

    def _deliver(self, value: T) -> None:
        if self._cancelled:
            return
        if self._queue is not None:
            self._queue.put_nowait(value)
            return
        try:
            self._on_data(value)
        except Exception:
            logger.exception(f"Listener {self._on_data!r} failed on {self._stream.name}")

    def _close(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._queue is not None:
            self._queue.put_nowait(_CLOSED)
        elif self._on_done is not None:
            try:
                self._on_done()
            except Exception:
                logger.exception(f"Done callback failed on {self._stream.name}")

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        if self._queue is None:
            raise TypeError("Callback subscriptions cannot be iterated")
        value = await self._queue.get()
        if value is _CLOSED:
            raise StopAsyncIteration
        return value


class BroadcastStream(Generic[T]):
    """
    Fan-out channel with no history.

    Examples:
        sub = stream.listen(print)
        async for value in stream:
            ...
    """

    def __init__(self, name: str = "stream"):
        self.name = name
        self._subscriptions: List[StreamSubscription[T]] = []
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def listen(
        self,
        on_data: Callable[[T], Any],
        on_done: Optional[Callable[[], Any]] = None,
    ) -> StreamSubscription[T]:
        """Subscribe a callback. On a closed stream the subscription is done at once."""
        subscription = StreamSubscription(self, on_data=on_data, on_done=on_done)
        if self._closed:
            subscription._close()
        else:
            self._subscriptions.append(subscription)
        return subscription

    def subscribe(self) -> StreamSubscription[T]:
        """Open a queue-backed subscription to consume with `async for`."""
        subscription = StreamSubscription(self)
        if self._closed:
            subscription._close()
        else:
            self._subscriptions.append(subscription)
        return subscription

    def __aiter__(self) -> AsyncIterator[T]:
        return self.subscribe()

    def add(self, value: T) -> None:
        if self._closed:
            raise StreamClosedError(f"Cannot add to closed {self.name}")
        for subscription in list(self._subscriptions):
            subscription._deliver(value)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription._close()

    def _detach(self, subscription: StreamSubscription[T]) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)


__all__ = ["BroadcastStream", "StreamSubscription", "StreamClosedError"]

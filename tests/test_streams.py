"""
BroadcastStream Tests

Fan-out to callbacks and async iterators, late subscribers, closing.
"""

import asyncio

import pytest

from statekit import BroadcastStream, StreamClosedError


class TestCallbacks:

    def test_every_listener_receives_values_in_order(self):
        stream = BroadcastStream()
        first, second = [], []
        stream.listen(first.append)
        stream.listen(second.append)
        stream.add(1)
        stream.add(2)
        assert first == [1, 2]
        assert second == [1, 2]

    def test_late_listener_misses_earlier_values(self):
        stream = BroadcastStream()
        stream.add("early")
        received = []
        stream.listen(received.append)
        stream.add("late")
        assert received == ["late"]

    def test_failing_listener_does_not_break_others(self):
        stream = BroadcastStream()
        received = []

        def broken(value):
            raise RuntimeError("listener failure")

        stream.listen(broken)
        stream.listen(received.append)
        stream.add(1)
        assert received == [1]

    def test_cancelled_listener_stops_receiving(self):
        stream = BroadcastStream()
        received = []
        subscription = stream.listen(received.append)
        stream.add(1)
        subscription.cancel()
        subscription.cancel()
        stream.add(2)
        assert received == [1]
        assert stream.subscriber_count == 0

    def test_close_calls_on_done_and_rejects_new_values(self):
        stream = BroadcastStream()
        done = []
        stream.listen(lambda value: None, on_done=lambda: done.append(True))
        stream.close()
        stream.close()
        assert done == [True]
        with pytest.raises(StreamClosedError):
            stream.add(1)

    def test_listening_to_a_closed_stream_is_done_immediately(self):
        stream = BroadcastStream()
        stream.close()
        done = []
        subscription = stream.listen(lambda value: None, on_done=lambda: done.append(True))
        assert subscription.is_cancelled
        assert done == [True]


class TestAsyncIteration:

    @pytest.mark.asyncio
    async def test_reader_drains_delivered_values_after_close(self):
        stream = BroadcastStream()
        reader = stream.subscribe()
        stream.add(1)
        stream.add(2)
        stream.close()
        assert [value async for value in reader] == [1, 2]

    @pytest.mark.asyncio
    async def test_close_unblocks_waiting_reader(self):
        stream = BroadcastStream()
        received = []

        async def consume():
            async for value in stream:
                received.append(value)

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        stream.add("a")
        stream.close()
        await asyncio.wait_for(task, timeout=1)
        assert received == ["a"]

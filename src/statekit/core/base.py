"""
Core - Event/State/Effect Engine

⚙️ The per-feature state container:
A Core owns one AsyncValue state, a table of event handlers and two
broadcast streams (state changes and effects). Events come in through
`add`, handlers move the state through `update_state`, `run_and_update`
or `compute_and_update_state`, and side effects leave through
`add_effect`. Every step is reported to the shared InterceptorRegistry,
and every effect is relayed by the SagaProcessor the Core registers with.

Concurrency model:
- synchronous operations run on the caller's event loop without locking
- at most one async transition is in flight; extra requests are dropped
- debounce/throttle timers are scheduled with `loop.call_later` on the
  same loop, so they never race with other Core methods
"""

import asyncio
import inspect
import logging
from concurrent.futures import Executor
from datetime import timedelta
from typing import (
    Any, Awaitable, Callable, Dict, Generic, Optional, Set, Type, TypeVar, Union
)

from .async_value import AsyncData, AsyncError, AsyncLoading, AsyncValue
from .events import Effect, Event
from .interceptors import InterceptorRegistry
from .streams import BroadcastStream
from ..di.locator import ServiceLocator, get_locator
from ..saga.processor import SagaProcessor

logger = logging.getLogger(__name__)

E = TypeVar('E', bound=Event)
S = TypeVar('S')
Q = TypeVar('Q')

Handler = Callable[[Any], Union[None, Awaitable[None]]]
Delay = Union[float, int, timedelta]


class DisposedCoreError(RuntimeError):
    """Raised when a disposed Core is asked to change"""
    pass


def _seconds(delay: Delay) -> float:
    if isinstance(delay, timedelta):
        return delay.total_seconds()
    return float(delay)


def _run_isolated(computation: Callable[[Any], Any], message: Any) -> Any:
    """Worker-side entry point of compute_and_update_state."""
    result = computation(message)
    if inspect.iscoroutine(result):
        return asyncio.run(result)
    if inspect.isawaitable(result):
        async def _wait():
            return await result
        return asyncio.run(_wait())
    return result


class Core(Generic[E, S]):
    """
    Base class for state containers.

    Subclasses register their handlers in `__init__`:

        class CounterCore(Core[CounterEvent, int]):
            def __init__(self, **kwargs):
                super().__init__(0, **kwargs)
                self.on(Incremented, self._on_incremented)

            def _on_incremented(self, event):
                self.update_state(AsyncData(self.state.value + event.amount))

    Args:
        initial_state: Payload of the initial AsyncData state
        loading: Start in AsyncLoading instead; `initial_state` is ignored
        locator: Locator to resolve the InterceptorRegistry, the
            SagaProcessor and the compute executor from; defaults to the
            process default locator
        executor: Executor for compute_and_update_state; defaults to an
            Executor registered in the locator, else the loop's default

    Raises:
        UnregisteredTypeError: if the registry or the processor is missing
    """

    def __init__(self, initial_state: Optional[S] = None, *, loading: bool = False,
                 locator: Optional[ServiceLocator] = None, executor: Optional[Executor] = None):
        self._current_state: AsyncValue[S] = AsyncLoading() if loading else AsyncData(initial_state)
        self._state_stream: BroadcastStream[AsyncValue[S]] = BroadcastStream(f"{type(self).__name__}.state_stream")
        self._effect_stream: BroadcastStream[Effect] = BroadcastStream(f"{type(self).__name__}.effect_stream")

        self._busy = False
        self._disposed = False

        self._event_handlers: Dict[Type[Event], Handler] = {}
        self._debounce_timers: Dict[Type[Event], asyncio.TimerHandle] = {}
        self._throttle_gates: Dict[Type[Event], bool] = {}
        self._throttle_timers: Dict[Type[Event], asyncio.TimerHandle] = {}
        self._tasks: Set[asyncio.Future] = set()

        self._locator = locator or get_locator()
        self._registry: InterceptorRegistry = self._locator.find(InterceptorRegistry)
        if executor is None and self._locator.is_registered(Executor):
            executor = self._locator.find(Executor)
        self._executor = executor
        self._locator.find(SagaProcessor).register_core(self)

    # State access

    @property
    def state(self) -> AsyncValue[S]:
        return self._current_state

    @property
    def state_stream(self) -> BroadcastStream[AsyncValue[S]]:
        return self._state_stream

    @property
    def effect_stream(self) -> BroadcastStream[Effect]:
        return self._effect_stream

    @property
    def registry(self) -> InterceptorRegistry:
        return self._registry

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    # Handler registration

    def on(self, event_type: Type[E], handler: Handler) -> None:
        """Handle every `event_type` dispatch, replacing any previous handler."""
        self._event_handlers[event_type] = handler

    def on_debounced(self, event_type: Type[E], handler: Handler, delay: Delay) -> None:
        """
        Handle `event_type` on the trailing edge: only the last dispatch fires,
        once `delay` has passed without another dispatch of the same type.
        """
        seconds = _seconds(delay)

        def debounced(event):
            pending = self._debounce_timers.pop(event_type, None)
            if pending is not None:
                pending.cancel()
            loop = asyncio.get_running_loop()
            self._debounce_timers[event_type] = loop.call_later(
                seconds, self._fire_debounced, event_type, handler, event
            )

        self._event_handlers[event_type] = debounced

    def on_throttled(self, event_type: Type[E], handler: Handler, delay: Delay) -> None:
        """
        Handle `event_type` on the leading edge: the first dispatch fires at
        once and further dispatches are dropped until `delay` has passed.
        """
        seconds = _seconds(delay)

        def throttled(event):
            if self._throttle_gates.get(event_type, False):
                return
            self._throttle_gates[event_type] = True
            loop = asyncio.get_running_loop()
            self._throttle_timers[event_type] = loop.call_later(seconds, self._reopen_gate, event_type)
            self._invoke(handler, event)

        self._event_handlers[event_type] = throttled

    def _fire_debounced(self, event_type: Type[Event], handler: Handler, event: Event) -> None:
        self._debounce_timers.pop(event_type, None)
        if self._disposed:
            return
        try:
            self._invoke(handler, event)
        except Exception as e:
            logger.exception(f"Debounced handler for {event_type.__name__} failed in {type(self).__name__}")
            self._registry.notify_error(self, e, e.__traceback__)

    def _reopen_gate(self, event_type: Type[Event]) -> None:
        self._throttle_timers.pop(event_type, None)
        self._throttle_gates[event_type] = False

    # Dispatch

    def add(self, event: E) -> None:
        """
        Dispatch an event. Interceptors see it first, then the handler
        registered for its exact class runs.

        Raises:
            DisposedCoreError: if the Core has been disposed
        """
        if self._disposed:
            raise DisposedCoreError(f"Cannot add event to a disposed {type(self).__name__}")
        self._registry.notify_event(self, event)
        handler = self._event_handlers.get(type(event))
        if handler is None:
            logger.warning(f"No handler found for event {type(event).__name__} in {type(self).__name__}")
            return
        self._invoke(handler, event)

    def _invoke(self, handler: Handler, event: Event) -> None:
        result = handler(event)
        if inspect.isawaitable(result):
            self._spawn(result)

    def _spawn(self, awaitable: Awaitable[Any]) -> asyncio.Future:
        """Run an awaitable in the background, reporting its failure."""
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background task of {type(self).__name__} failed: {error!r}")
            self._registry.notify_error(self, error, error.__traceback__)

    # State transitions

    def update_state(self, new_state: AsyncValue[S]) -> None:
        """
        Replace the state and notify observers, unless `new_state` equals
        the current one.

        Raises:
            DisposedCoreError: if the Core has been disposed
        """
        if self._disposed:
            raise DisposedCoreError(f"Cannot update state on a disposed {type(self).__name__}")
        previous = self._current_state
        if new_state == previous:
            return
        self._current_state = new_state
        self._state_stream.add(new_state)
        self._registry.notify_state_change(self, previous, new_state)

    async def run_and_update(self, producer: Callable[[], Union[Awaitable[S], S]]) -> None:
        """
        Move through Loading to the outcome of `producer`.

        Does nothing while another transition is in flight. Failures of
        `producer` become an AsyncError state and an error notification;
        they are never raised.
        """
        async def work():
            result = producer()
            if inspect.isawaitable(result):
                result = await result
            return result

        await self._transition(work)

    async def compute_and_update_state(self, computation: Callable[[Q], Union[Awaitable[S], S]],
                                       message: Q) -> None:
        """
        Same contract as `run_and_update`, but `computation(message)` runs in
        the Core's executor, off the event loop. With a ProcessPoolExecutor
        both `computation` and `message` must be picklable.
        """
        async def work():
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(self._executor, _run_isolated, computation, message)

        await self._transition(work)

    async def _transition(self, work: Callable[[], Awaitable[S]]) -> None:
        if self._busy:
            return
        self._busy = True
        try:
            self.update_state(AsyncLoading())
            # Observers get one tick to see Loading, even for instant work
            await asyncio.sleep(0)
            try:
                result = await work()
            except Exception as e:
                self._settle(AsyncError(e, e.__traceback__))
                self._registry.notify_error(self, e, e.__traceback__)
            else:
                self._settle(AsyncData(result))
        finally:
            self._busy = False

    def _settle(self, outcome: AsyncValue[S]) -> None:
        if self._disposed:
            logger.debug(f"{type(self).__name__} disposed while working, dropping {outcome!r}")
            return
        self.update_state(outcome)

    # Effects

    def add_effect(self, effect: Effect) -> None:
        """
        Emit an effect on the effect stream.

        Raises:
            DisposedCoreError: if the Core has been disposed
        """
        if self._disposed:
            raise DisposedCoreError(f"Cannot add effect to a disposed {type(self).__name__}")
        self._registry.notify_effect(type(self), effect)
        self._effect_stream.add(effect)

    # Lifecycle

    def dispose(self) -> None:
        """Close both streams and cancel pending timers. Idempotent."""
        if self._disposed:
            return
        self._disposed = True
        self._state_stream.close()
        self._effect_stream.close()
        for timer in self._debounce_timers.values():
            timer.cancel()
        self._debounce_timers.clear()
        for timer in self._throttle_timers.values():
            timer.cancel()
        self._throttle_timers.clear()
        for task in list(self._tasks):
            task.cancel()
        logger.debug(f"{type(self).__name__} disposed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.dispose()


__all__ = ["Core", "DisposedCoreError"]

"""
Sagas - Effect Orchestration

🚀 Effect-Driven Workflows:
The SagaProcessor is the central effect relay. It listens to the effect
stream of every Core registered with it and republishes each effect on its
own broadcast stream, so Sagas can react to effects from anywhere in the
application. Sagas may emit new effects back through the processor, which
allows effect chains (effect A triggers saga logic that emits effect B).

The processor is a pure multiplexer: no deduplication, no buffering, no
replay. Subscribers that join late miss earlier effects.
"""

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, List, Optional, Set

from ..core.events import Effect
from ..core.interceptors import InterceptorRegistry
from ..core.streams import BroadcastStream, StreamSubscription
from ..di.locator import ServiceLocator, get_locator

if TYPE_CHECKING:
    from ..core.base import Core

logger = logging.getLogger(__name__)


class SagaProcessor:
    """
    Relays effects from Cores and external callers to every bound Saga.

    Args:
        registry: Registry to notify; resolved from the locator when omitted
        locator: Locator used to resolve the registry
    """

    def __init__(self, registry: Optional[InterceptorRegistry] = None, *,
                 locator: Optional[ServiceLocator] = None):
        if registry is None:
            registry = (locator or get_locator()).find(InterceptorRegistry)
        self._registry = registry
        self._effect_stream: BroadcastStream[Effect] = BroadcastStream("SagaProcessor.effect_stream")
        self._core_subscriptions: List[StreamSubscription[Effect]] = []

    @property
    def effect_stream(self) -> BroadcastStream[Effect]:
        return self._effect_stream

    @property
    def registry(self) -> InterceptorRegistry:
        return self._registry

    def register_core(self, core: 'Core') -> StreamSubscription[Effect]:
        """Relay every effect of `core` for the rest of its life."""
        origin = type(core)

        def relay(effect: Effect) -> None:
            self._registry.notify_effect(origin, effect)
            if not self._effect_stream.is_closed:
                self._effect_stream.add(effect)

        subscription = core.effect_stream.listen(relay)
        # Subscriptions of disposed Cores are already done
        self._core_subscriptions = [s for s in self._core_subscriptions if not s.is_cancelled]
        if not subscription.is_cancelled:
            self._core_subscriptions.append(subscription)
        logger.debug(f"Registered {origin.__name__} with SagaProcessor")
        return subscription

    def add_effect(self, effect: Effect) -> None:
        """Inject an effect that has no originating Core."""
        self._registry.notify_effect(None, effect)
        self._effect_stream.add(effect)

    def dispose(self) -> None:
        """Stop relaying and end all saga subscriptions. Idempotent."""
        for subscription in list(self._core_subscriptions):
            subscription.cancel()
        self._core_subscriptions.clear()
        self._effect_stream.close()


class Saga(ABC):
    """
    Base class for effect-driven workflows.

    Subclasses implement `process_effect`, which may be a plain method or a
    coroutine. Its failures are logged and reported to the registry, never
    propagated to the processor.

        class WelcomeSaga(Saga):
            def process_effect(self, effect):
                if isinstance(effect, UserRegistered):
                    self.add_effect(SendWelcomeMail(user=effect.user))
    """

    _processor: Optional[SagaProcessor] = None
    _subscription: Optional[StreamSubscription[Effect]] = None

    @property
    def is_bound(self) -> bool:
        return self._subscription is not None and not self._subscription.is_cancelled

    def bind(self, processor: SagaProcessor) -> None:
        """Start handling the effects of `processor`, leaving any previous one."""
        if self._subscription is None:
            self._tasks: Set[asyncio.Future] = set()
        else:
            self._subscription.cancel()
        self._processor = processor
        self._registry = processor.registry
        self._subscription = processor.effect_stream.listen(self._handle)

    def _handle(self, effect: Effect) -> None:
        try:
            self._registry.notify_effect(type(self), effect)
            result = self.process_effect(effect)
            if inspect.isawaitable(result):
                self._spawn(result, effect)
        except Exception as e:
            self._report(effect, e)

    def _spawn(self, awaitable, effect: Effect) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)

        def done(finished):
            self._tasks.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                self._report(effect, finished.exception())

        task.add_done_callback(done)

    def _report(self, effect: Effect, error: BaseException) -> None:
        logger.error(
            f"Error processing effect {type(effect).__name__} in {type(self).__name__}: {error!r}",
            exc_info=(type(error), error, error.__traceback__),
        )
        self._registry.notify_error(self, error, error.__traceback__)

    @abstractmethod
    def process_effect(self, effect: Effect) -> Any:
        pass

    def add_effect(self, effect: Effect) -> None:
        """Emit an effect through the bound processor."""
        if self._processor is None:
            raise RuntimeError(f"{type(self).__name__} is not bound to a SagaProcessor")
        self._processor.add_effect(effect)

    def dispose(self) -> None:
        """Stop handling effects and cancel unfinished async handling."""
        if self._subscription is None:
            return
        self._subscription.cancel()
        for task in list(self._tasks):
            task.cancel()


__all__ = ["SagaProcessor", "Saga"]

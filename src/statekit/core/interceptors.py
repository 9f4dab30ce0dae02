"""
Interceptors - Cross-Cutting Observation

Interceptors watch the traffic of every Core: dispatched events, state
transitions, emitted effects and errors. The InterceptorRegistry fans each
notification out to all registered interceptors in registration order and
isolates them from each other, so a failing observer can never break the
observed system or the other observers.
"""

import logging
import traceback
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from .async_value import AsyncValue
from .events import Effect, Event, PersistenceEffect

if TYPE_CHECKING:
    from .base import Core

logger = logging.getLogger(__name__)


class Interceptor:
    """
    Base class for interceptors. Every hook is a no-op; override the ones
    you need.
    """

    def on_event(self, core: 'Core', event: Event) -> None:
        pass

    def on_state_change(self, core: 'Core', previous_state: AsyncValue, next_state: AsyncValue) -> None:
        pass

    def on_effect(self, origin: Optional[type], effect: Effect) -> None:
        pass

    def on_error(self, source: Any, error: BaseException, stack_trace: Any) -> None:
        pass


def _describe(state: AsyncValue) -> str:
    return state.match(
        loading=lambda: "State: Loading",
        data=lambda d: f"Data: {d!r}",
        error=lambda e, s: f"Error: {e!r}",
    )


def _format_trace(error: BaseException, stack_trace: Any) -> str:
    if stack_trace is None:
        return "<no traceback>"
    return "".join(traceback.format_exception(type(error), error, stack_trace)).rstrip()


class LoggingInterceptor(Interceptor):
    """
    Writes every notification to the `statekit.interceptor` logger.

    Args:
        enabled: Turns output on or off without unregistering
        level: Log level for event/state/effect lines; errors always use ERROR
        logger: Logger to write to instead of the default one
    """

    def __init__(self, enabled: bool = True, level: int = logging.DEBUG,
                 logger: Optional[logging.Logger] = None):
        self.enabled = enabled
        self.level = level
        self._logger = logger or logging.getLogger("statekit.interceptor")

    def on_event(self, core, event):
        if self.enabled:
            self._logger.log(self.level, f"[EVENT] Core: {type(core).__name__}, Event: {type(event).__name__}")

    def on_state_change(self, core, previous_state, next_state):
        if not self.enabled:
            return
        self._logger.log(
            self.level,
            f"[STATE] Core: {type(core).__name__}\n"
            f"  Previous: {type(previous_state).__name__}\n"
            f"    {_describe(previous_state)}\n"
            f"  Next: {type(next_state).__name__}\n"
            f"    {_describe(next_state)}",
        )

    def on_effect(self, origin, effect):
        if not self.enabled:
            return
        details = str(effect)
        if isinstance(effect, PersistenceEffect):
            try:
                details = str(effect.to_json())
            except Exception:
                details = str(effect)
        origin_name = origin.__name__ if origin is not None else "Unknown"
        self._logger.log(
            self.level,
            f"[EFFECT] Origin: {origin_name}, Effect: {type(effect).__name__}, Data: {details}",
        )

    def on_error(self, source, error, stack_trace):
        if self.enabled:
            self._logger.error(
                f"[ERROR] Source: {type(source).__name__}, Error: {error!r}\n"
                f"  StackTrace: {_format_trace(error, stack_trace)}"
            )


class InterceptorRegistry:
    """
    Ordered, shared collection of interceptors.

    One registry normally lives for the whole application and is resolved
    through the ServiceLocator by every Core, SagaProcessor and Saga.
    """

    def __init__(self):
        self._interceptors: List[Interceptor] = []

    @property
    def interceptors(self) -> Tuple[Interceptor, ...]:
        return tuple(self._interceptors)

    def register(self, interceptor: Interceptor) -> None:
        self._interceptors.append(interceptor)

    def unregister(self, interceptor: Interceptor) -> None:
        if interceptor in self._interceptors:
            self._interceptors.remove(interceptor)

    def notify_event(self, core: 'Core', event: Event) -> None:
        for interceptor in list(self._interceptors):
            try:
                interceptor.on_event(core, event)
            except Exception:
                logger.exception(f"Error in on_event for {type(interceptor).__name__}")

    def notify_state_change(self, core: 'Core', previous_state: AsyncValue, next_state: AsyncValue) -> None:
        for interceptor in list(self._interceptors):
            try:
                interceptor.on_state_change(core, previous_state, next_state)
            except Exception:
                logger.exception(f"Error in on_state_change for {type(interceptor).__name__}")

    def notify_effect(self, origin: Optional[type], effect: Effect) -> None:
        for interceptor in list(self._interceptors):
            try:
                interceptor.on_effect(origin, effect)
            except Exception:
                logger.exception(f"Error in on_effect for {type(interceptor).__name__}")

    def notify_error(self, source: Any, error: BaseException, stack_trace: Any = None) -> None:
        if stack_trace is None:
            stack_trace = error.__traceback__
        for interceptor in list(self._interceptors):
            try:
                interceptor.on_error(source, error, stack_trace)
            except Exception:
                logger.exception(f"Error in on_error for {type(interceptor).__name__}")


__all__ = ["Interceptor", "LoggingInterceptor", "InterceptorRegistry"]

"""
Shared fixtures for the StateKit test suite.

Every test gets a fresh ServiceLocator installed as the process default,
with an InterceptorRegistry, a SagaProcessor and a recording interceptor.
"""

from typing import Any, List, Tuple

import pytest

from statekit import (
    AsyncData, Core, Event, Effect, Interceptor, InterceptorRegistry,
    SagaProcessor, ServiceLocator, reset_locator, set_locator,
)


class RecordingInterceptor(Interceptor):
    """Records every notification as a tuple, in arrival order"""

    def __init__(self):
        self.calls: List[Tuple[Any, ...]] = []

    def on_event(self, core, event):
        self.calls.append(("event", core, event))

    def on_state_change(self, core, previous_state, next_state):
        self.calls.append(("state", core, previous_state, next_state))

    def on_effect(self, origin, effect):
        self.calls.append(("effect", origin, effect))

    def on_error(self, source, error, stack_trace):
        self.calls.append(("error", source, error, stack_trace))

    def of_kind(self, kind: str) -> List[Tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == kind]


class Incremented(Event):
    amount: int = 1


class Reset(Event):
    pass


class Unhandled(Event):
    pass


class Toast(Effect):
    message: str


class CounterCore(Core[Event, int]):
    """Counter used across the suite"""

    def __init__(self, initial: int = 0, **kwargs):
        super().__init__(initial, **kwargs)
        self.on(Incremented, self._on_incremented)
        self.on(Reset, lambda event: self.update_state(AsyncData(0)))

    def _on_incremented(self, event: Incremented):
        self.update_state(AsyncData(self.state.value + event.amount))


@pytest.fixture
def registry() -> InterceptorRegistry:
    return InterceptorRegistry()


@pytest.fixture
def recorder(registry) -> RecordingInterceptor:
    interceptor = RecordingInterceptor()
    registry.register(interceptor)
    return interceptor


@pytest.fixture
def processor(registry) -> SagaProcessor:
    return SagaProcessor(registry)


@pytest.fixture
def locator(registry, processor):
    locator = ServiceLocator()
    locator.register_singleton(InterceptorRegistry, registry, global_scope=True)
    locator.register_singleton(SagaProcessor, processor, global_scope=True)
    set_locator(locator)
    yield locator
    reset_locator()


@pytest.fixture
def counter(locator, recorder) -> CounterCore:
    core = CounterCore()
    yield core
    core.dispose()

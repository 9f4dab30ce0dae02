"""
StateKit - Reactive State Containers for asyncio

Cores accept typed events, move through loading/data/error states, emit
observable state changes and one-way effects, and report all of their
traffic to shared interceptors. Sagas orchestrate workflows over the
effects of every Core.

Quick Start:
    from statekit import Core, Event, AsyncData, configure_statekit

    class Incremented(Event):
        pass

    class Counter(Core):
        def __init__(self):
            super().__init__(0)
            self.on(Incremented, lambda e: self.update_state(AsyncData(self.state.value + 1)))

    configure_statekit()
    counter = Counter()
    counter.add(Incremented())
"""

from .core import (
    AsyncValue, AsyncLoading, AsyncData, AsyncError, InvalidStateAccess,
    Event, Effect, PersistenceEffect,
    PersistenceLoadAttemptEffect, PersistenceLoadSuccessEffect,
    PersistenceSaveAttemptEffect, PersistenceSaveSuccessEffect,
    PersistenceClearAttemptEffect, PersistenceClearSuccessEffect,
    BroadcastStream, StreamSubscription, StreamClosedError,
    Interceptor, LoggingInterceptor, InterceptorRegistry,
    Core, DisposedCoreError,
)
from .di import ServiceLocator, LocatorError, UnregisteredTypeError, get_locator, set_locator, reset_locator
from .saga import SagaProcessor, Saga
from .persistence import (
    PersistenceAdapter, MemoryAdapter, LocalFileAdapter,
    PersistentCore, PersistenceConfigurationError,
)
from .config import StateKitConfig, Environment, LoggingConfig, ComputeConfig, configure_logging, get_config, set_config
from .bootstrap import configure_statekit

__version__ = "0.1.0"

__all__ = [
    # AsyncValue
    'AsyncValue',
    'AsyncLoading',
    'AsyncData',
    'AsyncError',
    'InvalidStateAccess',

    # Events and effects
    'Event',
    'Effect',
    'PersistenceEffect',
    'PersistenceLoadAttemptEffect',
    'PersistenceLoadSuccessEffect',
    'PersistenceSaveAttemptEffect',
    'PersistenceSaveSuccessEffect',
    'PersistenceClearAttemptEffect',
    'PersistenceClearSuccessEffect',

    # Engine
    'BroadcastStream',
    'StreamSubscription',
    'StreamClosedError',
    'Interceptor',
    'LoggingInterceptor',
    'InterceptorRegistry',
    'Core',
    'DisposedCoreError',

    # Wiring
    'ServiceLocator',
    'LocatorError',
    'UnregisteredTypeError',
    'get_locator',
    'set_locator',
    'reset_locator',
    'configure_statekit',

    # Sagas
    'SagaProcessor',
    'Saga',

    # Persistence
    'PersistenceAdapter',
    'MemoryAdapter',
    'LocalFileAdapter',
    'PersistentCore',
    'PersistenceConfigurationError',

    # Configuration
    'StateKitConfig',
    'Environment',
    'LoggingConfig',
    'ComputeConfig',
    'configure_logging',
    'get_config',
    'set_config',
]

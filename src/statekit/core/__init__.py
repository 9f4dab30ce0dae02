"""
StateKit Core Module

The state/event/effect engine and the values that flow through it.
"""

from .async_value import AsyncValue, AsyncLoading, AsyncData, AsyncError, InvalidStateAccess
from .events import (
    Event, Effect, PersistenceEffect,
    PersistenceLoadAttemptEffect, PersistenceLoadSuccessEffect,
    PersistenceSaveAttemptEffect, PersistenceSaveSuccessEffect,
    PersistenceClearAttemptEffect, PersistenceClearSuccessEffect,
)
from .streams import BroadcastStream, StreamSubscription, StreamClosedError
from .interceptors import Interceptor, LoggingInterceptor, InterceptorRegistry
from .base import Core, DisposedCoreError

__all__ = [
    "AsyncValue", "AsyncLoading", "AsyncData", "AsyncError", "InvalidStateAccess",
    "Event", "Effect", "PersistenceEffect",
    "PersistenceLoadAttemptEffect", "PersistenceLoadSuccessEffect",
    "PersistenceSaveAttemptEffect", "PersistenceSaveSuccessEffect",
    "PersistenceClearAttemptEffect", "PersistenceClearSuccessEffect",
    "BroadcastStream", "StreamSubscription", "StreamClosedError",
    "Interceptor", "LoggingInterceptor", "InterceptorRegistry",
    "Core", "DisposedCoreError",
]

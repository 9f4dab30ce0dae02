"""
StateKit Persistence Layer - Instrumented Adapters

Shared plumbing for adapters that report their activity: every operation
emits an attempt effect, then a success effect or an error notification
on the InterceptorRegistry.
"""

import logging
from typing import Optional

from .base import PersistenceAdapter, T
from ..core.events import Effect
from ..core.interceptors import InterceptorRegistry
from ..di.locator import ServiceLocator, get_locator

logger = logging.getLogger(__name__)


class InstrumentedAdapter(PersistenceAdapter[T]):
    """
    Base class for adapters that report to an InterceptorRegistry.

    Args:
        operation_key: Identifies what the adapter stores (file name, key)
        registry: Registry to report to; resolved lazily from the locator
        locator: Locator used to resolve the registry
    """

    def __init__(self, operation_key: str, registry: Optional[InterceptorRegistry] = None,
                 locator: Optional[ServiceLocator] = None):
        self.operation_key = operation_key
        self._registry = registry
        self._locator = locator

    @property
    def adapter_name(self) -> str:
        return type(self).__name__

    @property
    def registry(self) -> InterceptorRegistry:
        if self._registry is None:
            self._registry = (self._locator or get_locator()).find(InterceptorRegistry)
        return self._registry

    def _report(self, effect: Effect) -> None:
        self.registry.notify_effect(type(self), effect)

    def _fail(self, operation: str, error: BaseException) -> None:
        logger.error(f"{self.adapter_name}: {operation} error for {self.operation_key}: {error!r}")
        self.registry.notify_error(self, error, error.__traceback__)


__all__ = ["InstrumentedAdapter"]

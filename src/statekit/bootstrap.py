"""
StateKit Bootstrap

🚀 Application Setup:
Wires the shared services every Core needs into a ServiceLocator: the
InterceptorRegistry, the SagaProcessor and the compute executor.
"""

import logging
from concurrent.futures import Executor
from typing import Iterable, Optional

from .config import StateKitConfig, configure_logging, get_config
from .core.interceptors import InterceptorRegistry, LoggingInterceptor
from .di.locator import ServiceLocator, get_locator
from .saga.processor import Saga, SagaProcessor

logger = logging.getLogger(__name__)


def configure_statekit(config: Optional[StateKitConfig] = None,
                       locator: Optional[ServiceLocator] = None,
                       sagas: Iterable[Saga] = (),
                       setup_logging: bool = True) -> ServiceLocator:
    """
    Register the shared StateKit services in the global scope of `locator`.

    Args:
        config: Configuration to apply; defaults to the current global config
        locator: Locator to populate; defaults to the process default locator
        sagas: Sagas to bind to the new SagaProcessor
        setup_logging: Also install the configured logging handler

    Returns:
        The populated locator
    """
    config = config or get_config()
    locator = locator or get_locator()

    if setup_logging:
        configure_logging(config.logging)

    registry = InterceptorRegistry()
    if config.log_interceptor:
        registry.register(LoggingInterceptor())
    locator.register_singleton(InterceptorRegistry, registry, global_scope=True)

    processor = SagaProcessor(registry)
    locator.register_singleton(SagaProcessor, processor, global_scope=True)

    locator.register_lazy_singleton(Executor, config.compute.create_executor, global_scope=True)

    for saga in sagas:
        saga.bind(processor)

    logger.info(f"StateKit configured for {config.environment.value}")
    return locator


__all__ = ["configure_statekit"]

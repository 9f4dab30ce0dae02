"""
StateKit Persistence Module

The adapter contract, reference adapters and the persistent Core.
"""

from .base import PersistenceAdapter
from .instrumented import InstrumentedAdapter
from .memory import MemoryAdapter
from .file import LocalFileAdapter
from .core import PersistentCore, PersistenceConfigurationError

__all__ = [
    "PersistenceAdapter",
    "InstrumentedAdapter",
    "MemoryAdapter",
    "LocalFileAdapter",
    "PersistentCore",
    "PersistenceConfigurationError",
]

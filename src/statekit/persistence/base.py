"""
StateKit Persistence Layer - Adapter Contract

This module provides the abstract interface PersistentCore talks to.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar('T')


class PersistenceAdapter(ABC, Generic[T]):
    """
    Abstract base class for persistence adapters.

    Implementations store one JSON-like document. Failures should be
    reported (logged, sent to the InterceptorRegistry) rather than raised.
    """

    @abstractmethod
    async def save(self, json: Dict[str, Any]) -> None:
        """
        Persist the document, replacing any previous one.

        Args:
            json: JSON-compatible mapping to store
        """
        pass

    @abstractmethod
    async def load(self) -> Optional[Dict[str, Any]]:
        """
        Load the stored document.

        Returns:
            The stored mapping, or None when nothing is stored
        """
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Remove the stored document."""
        pass


__all__ = ["PersistenceAdapter"]

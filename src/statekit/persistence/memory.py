"""
StateKit Persistence Layer - Memory Adapter

In-memory persistence for development and testing.
Data is lost when the process exits.
"""

import copy
from typing import Any, Dict, Optional

from .instrumented import InstrumentedAdapter, T
from ..core.events import (
    PersistenceClearAttemptEffect, PersistenceClearSuccessEffect,
    PersistenceLoadAttemptEffect, PersistenceLoadSuccessEffect,
    PersistenceSaveAttemptEffect, PersistenceSaveSuccessEffect,
)


class MemoryAdapter(InstrumentedAdapter[T]):
    """
    Stores a deep copy of the saved document under `key`.

    Adapters created with the same `store` dict share their documents,
    which lets tests simulate a restart by building a second adapter.
    """

    def __init__(self, key: str = "default", store: Optional[Dict[str, Dict[str, Any]]] = None, **kwargs):
        super().__init__(operation_key=key, **kwargs)
        self._data: Dict[str, Dict[str, Any]] = store if store is not None else {}

    async def save(self, json: Dict[str, Any]) -> None:
        self._report(PersistenceSaveAttemptEffect(
            adapter_name=self.adapter_name, operation_key=self.operation_key, data=json))
        try:
            self._data[self.operation_key] = copy.deepcopy(json)
        except Exception as e:
            self._fail("Save", e)
            return
        self._report(PersistenceSaveSuccessEffect(
            adapter_name=self.adapter_name, operation_key=self.operation_key))

    async def load(self) -> Optional[Dict[str, Any]]:
        self._report(PersistenceLoadAttemptEffect(
            adapter_name=self.adapter_name, operation_key=self.operation_key))
        try:
            stored = self._data.get(self.operation_key)
            data = copy.deepcopy(stored) if stored is not None else None
        except Exception as e:
            self._fail("Load", e)
            return None
        self._report(PersistenceLoadSuccessEffect(
            adapter_name=self.adapter_name, operation_key=self.operation_key, data=data))
        return data

    async def clear(self) -> None:
        self._report(PersistenceClearAttemptEffect(
            adapter_name=self.adapter_name, operation_key=self.operation_key))
        self._data.pop(self.operation_key, None)
        self._report(PersistenceClearSuccessEffect(
            adapter_name=self.adapter_name, operation_key=self.operation_key))


__all__ = ["MemoryAdapter"]

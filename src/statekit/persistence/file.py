"""
StateKit Persistence Layer - Local File Adapter

Saves the document as JSON in a single local file. Blocking file I/O runs
in a worker thread so the event loop stays responsive.
"""

import asyncio
import json as jsonlib
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .instrumented import InstrumentedAdapter, T
from ..core.events import (
    PersistenceClearAttemptEffect, PersistenceClearSuccessEffect,
    PersistenceLoadAttemptEffect, PersistenceLoadSuccessEffect,
    PersistenceSaveAttemptEffect, PersistenceSaveSuccessEffect,
)


class LocalFileAdapter(InstrumentedAdapter[T]):
    """
    Persists to `file_name`. A missing or empty file loads as None.

    Args:
        file_name: Path of the JSON file
    """

    def __init__(self, file_name: Union[str, Path], **kwargs):
        super().__init__(operation_key=str(file_name), **kwargs)
        self.path = Path(file_name)

    def _read(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        contents = self.path.read_text(encoding="utf-8")
        if not contents.strip():
            return None
        data = jsonlib.loads(contents)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object in {self.path}, got {type(data).__name__}")
        return data

    def _write(self, document: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(jsonlib.dumps(document), encoding="utf-8")

    def _delete(self) -> None:
        if self.path.exists():
            self.path.unlink()

    async def load(self) -> Optional[Dict[str, Any]]:
        self._report(PersistenceLoadAttemptEffect(
            adapter_name=self.adapter_name, operation_key=self.operation_key))
        try:
            data = await asyncio.to_thread(self._read)
        except Exception as e:
            self._fail("Load", e)
            return None
        self._report(PersistenceLoadSuccessEffect(
            adapter_name=self.adapter_name, operation_key=self.operation_key, data=data))
        return data

    async def save(self, json: Dict[str, Any]) -> None:
        self._report(PersistenceSaveAttemptEffect(
            adapter_name=self.adapter_name, operation_key=self.operation_key, data=json))
        try:
            await asyncio.to_thread(self._write, json)
        except Exception as e:
            self._fail("Save", e)
            return
        self._report(PersistenceSaveSuccessEffect(
            adapter_name=self.adapter_name, operation_key=self.operation_key))

    async def clear(self) -> None:
        self._report(PersistenceClearAttemptEffect(
            adapter_name=self.adapter_name, operation_key=self.operation_key))
        try:
            await asyncio.to_thread(self._delete)
        except Exception as e:
            self._fail("Clear", e)
            return
        self._report(PersistenceClearSuccessEffect(
            adapter_name=self.adapter_name, operation_key=self.operation_key))


__all__ = ["LocalFileAdapter"]

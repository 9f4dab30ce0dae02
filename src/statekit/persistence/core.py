"""
PersistentCore - Versioned State Persistence

A Core that rehydrates its state from a PersistenceAdapter when it is
created and saves every data transition afterwards. Documents are stored
as {"@version": version, "data": to_json(state)}; a stored version that
differs from the Core's own resets the state to the initial one.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from ..core.async_value import AsyncData, AsyncValue
from ..core.base import Core, E, S
from ..di.locator import ServiceLocator
from .base import PersistenceAdapter

logger = logging.getLogger(__name__)

VERSION_KEY = "@version"
DATA_KEY = "data"


class PersistenceConfigurationError(ValueError):
    """Raised when an adapter is given without both serialization functions"""
    pass


class PersistentCore(Core[E, S]):
    """
    Base class for Cores whose state survives restarts.

    Must be created inside a running event loop when an adapter is given,
    since loading is asynchronous; `await core.ready()` waits for it.

    Args:
        initial_state_factory: Builds the state used when nothing valid is stored
        adapter: Where to load from and save to; persistence is off without one
        from_json: Rebuilds a state from its stored `data`
        to_json: Turns a state into a JSON-compatible mapping
        version: Schema version written with every save
    """

    def __init__(self, initial_state_factory: Callable[[], S], *,
                 adapter: Optional[PersistenceAdapter] = None,
                 from_json: Optional[Callable[[Any], S]] = None,
                 to_json: Optional[Callable[[S], Dict[str, Any]]] = None,
                 version: int = 1,
                 locator: Optional[ServiceLocator] = None,
                 **kwargs):
        if adapter is not None and (from_json is None or to_json is None):
            raise PersistenceConfigurationError(
                "If adapter is provided, from_json and to_json must also be provided."
            )
        self.adapter = adapter
        self.from_json = from_json
        self.to_json = to_json
        self.initial_state_factory = initial_state_factory
        self.version = version
        super().__init__(loading=True, locator=locator, **kwargs)

        self._pending_document: Optional[Dict[str, Any]] = None
        self._save_task: Optional[asyncio.Future] = None

        if adapter is None:
            self._hydration: Optional[asyncio.Future] = None
            self._reset_to_initial()
        else:
            self._hydration = self._spawn(self._rehydrate())

    async def ready(self) -> None:
        """Wait until the stored state has been loaded (or reset)."""
        if self._hydration is not None:
            await asyncio.shield(self._hydration)

    async def _rehydrate(self) -> None:
        try:
            stored = await self.adapter.load()
        except Exception as e:
            logger.error(f"Failed to load state for {type(self).__name__}: {e!r}. Resetting state.")
            self._registry.notify_error(self, e, e.__traceback__)
            stored = None
        if self.is_disposed:
            return
        if stored is None:
            self._reset_to_initial()
            return
        try:
            saved_version = stored.get(VERSION_KEY)
            if saved_version is None:
                saved_version = 0
            if saved_version != self.version:
                logger.warning(
                    f"State version mismatch for {type(self).__name__}. "
                    f"Expected: {self.version}, Found: {saved_version}. Resetting state."
                )
                self._reset_to_initial()
            else:
                self.update_state(AsyncData(self.from_json(stored[DATA_KEY])))
        except Exception as e:
            logger.warning(f"Failed to rehydrate state for {type(self).__name__}. Error: {e!r}. Resetting state.")
            self._reset_to_initial()

    def _reset_to_initial(self) -> None:
        self.update_state(AsyncData(self.initial_state_factory()))

    def update_state(self, new_state: AsyncValue[S]) -> None:
        previous = self.state
        super().update_state(new_state)
        if self.state is previous:
            return
        if self.adapter is not None and isinstance(new_state, AsyncData):
            self._pending_document = {VERSION_KEY: self.version, DATA_KEY: self.to_json(new_state.data)}
            if self._save_task is None or self._save_task.done():
                # Not tracked in _tasks, so dispose lets pending saves finish
                self._save_task = asyncio.ensure_future(self._write_pending())
                self._save_task.add_done_callback(self._on_task_done)

    async def _write_pending(self) -> None:
        """Save documents one at a time; only the newest waiting one is kept."""
        while self._pending_document is not None:
            document, self._pending_document = self._pending_document, None
            await self.adapter.save(document)

    async def flush(self) -> None:
        """Wait until every state saved so far has reached the adapter."""
        if self._save_task is not None:
            await asyncio.wait({self._save_task})

    async def clear(self) -> None:
        """Remove the stored state and go back to the initial one."""
        if self.adapter is not None:
            await self.flush()
            await self.adapter.clear()
        self._reset_to_initial()


__all__ = ["PersistentCore", "PersistenceConfigurationError"]

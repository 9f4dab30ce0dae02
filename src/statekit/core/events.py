"""
Events and Effects

Events are the inbound commands dispatched into a Core; effects are the
outbound one-way signals a Core, a Saga or an adapter emits. Both are
frozen pydantic models so they are immutable and compare structurally.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class Event(BaseModel):
    """
    Base class for all events.

    Handlers are registered against the concrete subclass, so every kind of
    command should be its own class:

        class Incremented(Event):
            amount: int = 1
    """
    model_config = ConfigDict(frozen=True)


class Effect(BaseModel):
    """
    Base class for all effects.

    `origin` optionally names the class of the component that produced the
    effect.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    origin: Optional[type] = None

    def to_json(self) -> Dict[str, Any]:
        """Serialize the effect for logging and debugging."""
        payload = self.model_dump(exclude={"origin"})
        return {
            "type": type(self).__name__,
            "origin": self.origin.__name__ if self.origin is not None else None,
            **payload,
        }


class PersistenceEffect(Effect):
    """Reports activity of a persistence adapter."""
    adapter_name: str
    operation_key: Optional[str] = None

    def __init__(self, **data: Any):
        if "origin" not in data:
            # Imported lazily: the adapter contract imports this module
            from ..persistence.base import PersistenceAdapter
            data["origin"] = PersistenceAdapter
        super().__init__(**data)

    def _additional_repr(self) -> str:
        return ""

    def __str__(self) -> str:
        return (
            f"{type(self).__name__}(adapter_name: {self.adapter_name}, "
            f"operation_key: {self.operation_key}{self._additional_repr()})"
        )


class PersistenceLoadAttemptEffect(PersistenceEffect):
    pass


class PersistenceLoadSuccessEffect(PersistenceEffect):
    data: Any = None

    def _additional_repr(self) -> str:
        return f", data: {self.data}"


class PersistenceSaveAttemptEffect(PersistenceEffect):
    data: Any = None

    def _additional_repr(self) -> str:
        return f", data: {self.data}"


class PersistenceSaveSuccessEffect(PersistenceEffect):
    pass


class PersistenceClearAttemptEffect(PersistenceEffect):
    pass


class PersistenceClearSuccessEffect(PersistenceEffect):
    pass


__all__ = [
    "Event", "Effect", "PersistenceEffect",
    "PersistenceLoadAttemptEffect", "PersistenceLoadSuccessEffect",
    "PersistenceSaveAttemptEffect", "PersistenceSaveSuccessEffect",
    "PersistenceClearAttemptEffect", "PersistenceClearSuccessEffect",
]

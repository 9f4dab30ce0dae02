"""
AsyncValue - Tri-State Async Wrapper

A container that is always exactly one of loading, data or error.
Cores carry their state inside an AsyncValue so observers can react to
the progress of asynchronous work, and equality is structural per variant
so a Core can suppress notifications for no-op transitions.
"""

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

T = TypeVar('T')
R = TypeVar('R')


class InvalidStateAccess(RuntimeError):
    """Raised when the value of a loading or error AsyncValue is requested"""
    pass


class AsyncValue(ABC, Generic[T]):
    """
    Base class of the three AsyncValue variants.

    `match` is the only inspection primitive; every other accessor is
    defined on top of it.
    """

    __slots__ = ()

    @abstractmethod
    def match(
        self,
        loading: Callable[[], R],
        data: Callable[[T], R],
        error: Callable[[BaseException, Optional[TracebackType]], R],
    ) -> R:
        pass

    def match_or_none(
        self,
        loading: Optional[Callable[[], Any]] = None,
        data: Optional[Callable[[T], Any]] = None,
        error: Optional[Callable[[BaseException, Optional[TracebackType]], Any]] = None,
    ) -> Any:
        """
        Like `match`, but every branch is optional and nothing escapes.

        Missing loading/error branches produce None, a missing data branch
        returns the payload. Exceptions raised inside the branches are
        swallowed and produce None.
        """
        try:
            return self.match(
                loading=loading or (lambda: None),
                data=data or (lambda d: d),
                error=error or (lambda e, s: None),
            )
        except Exception:
            return None

    @property
    def value_or_none(self) -> Optional[T]:
        return self.match_or_none(data=lambda d: d)

    @property
    def value(self) -> T:
        """The payload of a data value; raises InvalidStateAccess otherwise."""
        def _loading():
            raise InvalidStateAccess("AsyncValue is loading, has no value")

        def _error(e, s):
            raise InvalidStateAccess(f"AsyncValue is an error, has no value. Error: {e!r}")

        return self.match(loading=_loading, data=lambda d: d, error=_error)

    @property
    def is_loading(self) -> bool:
        return self.match(loading=lambda: True, data=lambda d: False, error=lambda e, s: False)

    @property
    def has_value(self) -> bool:
        return self.match(loading=lambda: False, data=lambda d: True, error=lambda e, s: False)

    @property
    def has_error(self) -> bool:
        return self.match(loading=lambda: False, data=lambda d: False, error=lambda e, s: True)

    @classmethod
    async def guard(cls, producer: Callable[[], Union[Awaitable[T], T]]) -> 'AsyncValue[T]':
        """Run producer and capture its outcome as AsyncData or AsyncError."""
        try:
            result = producer()
            if inspect.isawaitable(result):
                result = await result
            return AsyncData(result)
        except Exception as e:
            return AsyncError(e, e.__traceback__)


@dataclass(frozen=True)
class AsyncLoading(AsyncValue[T]):
    """Work is in progress; carries no payload."""

    def match(self, loading, data, error):
        return loading()

    def __repr__(self) -> str:
        return "AsyncLoading()"


@dataclass(frozen=True)
class AsyncData(AsyncValue[T]):
    """A successful value. Equal to another AsyncData with an equal payload."""
    data: T

    def match(self, loading, data, error):
        return data(self.data)

    def copy_with(self, updater: Callable[[T], T]) -> 'AsyncData[T]':
        return AsyncData(updater(self.data))


@dataclass(frozen=True)
class AsyncError(AsyncValue[T]):
    """A failure, compared by the (error, stack_trace) pair."""
    error: BaseException
    stack_trace: Optional[TracebackType] = field(default=None)

    def __post_init__(self):
        if self.stack_trace is None and self.error is not None:
            object.__setattr__(self, 'stack_trace', self.error.__traceback__)

    def match(self, loading, data, error):
        return error(self.error, self.stack_trace)

    def __repr__(self) -> str:
        return f"AsyncError({self.error!r})"


__all__ = [
    "AsyncValue", "AsyncLoading", "AsyncData", "AsyncError", "InvalidStateAccess"
]

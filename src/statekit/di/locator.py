"""
Service Locator

🔧 Scoped Service Resolution:
A stack of scopes mapping a type to its registration. The bottom scope is
the global scope and can never be removed; lookups walk from the innermost
scope outwards, so a nested scope can override a global registration for
as long as it is pushed.

Three kinds of registration are supported:
- singleton: an instance registered eagerly
- lazy singleton: a factory invoked on first lookup, then memoized
- factory: invoked on every lookup
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class LocatorError(Exception):
    """Base exception for service locator errors"""
    pass


class UnregisteredTypeError(LocatorError, LookupError):
    """Raised when a type has no registration in any visible scope"""

    def __init__(self, service_type: type):
        self.service_type = service_type
        super().__init__(f"No instance found for type {getattr(service_type, '__name__', service_type)}")


class RegistrationKind(Enum):
    """How a registration produces its instance"""
    SINGLETON = "singleton"
    LAZY_SINGLETON = "lazy_singleton"
    FACTORY = "factory"


@dataclass
class Registration:
    """A single entry of a scope"""
    kind: RegistrationKind
    instance: Any = None
    factory: Optional[Callable[[], Any]] = None
    _resolved: bool = field(default=False, repr=False)

    def resolve(self) -> Any:
        if self.kind == RegistrationKind.SINGLETON:
            return self.instance
        if self.kind == RegistrationKind.FACTORY:
            return self.factory()
        if not self._resolved:
            self.instance = self.factory()
            self._resolved = True
        return self.instance


class ServiceLocator:
    """
    Scoped registry resolving shared services by type.

    Pass a locator explicitly to the components that need one, or rely on
    the process default returned by `get_locator()`.
    """

    def __init__(self):
        self._scopes: List[Dict[type, Registration]] = [{}]

    @property
    def scope_depth(self) -> int:
        """Number of scopes, the global one included"""
        return len(self._scopes)

    def push_scope(self) -> None:
        self._scopes.append({})
        logger.debug(f"Pushed scope, depth is now {len(self._scopes)}")

    def pop_scope(self) -> None:
        """Drop the innermost scope; the global scope is never removed."""
        if len(self._scopes) > 1:
            self._scopes.pop()
            logger.debug(f"Popped scope, depth is now {len(self._scopes)}")

    @contextmanager
    def scope(self) -> Iterator['ServiceLocator']:
        self.push_scope()
        try:
            yield self
        finally:
            self.pop_scope()

    def _target(self, global_scope: bool) -> Dict[type, Registration]:
        return self._scopes[0] if global_scope else self._scopes[-1]

    def register_singleton(self, service_type: Type[T], instance: T, global_scope: bool = False) -> None:
        """
        Register an existing instance.

        Args:
            service_type: Key the instance is found under
            instance: The instance to return on every lookup
            global_scope: Write into the global scope instead of the current one
        """
        self._target(global_scope)[service_type] = Registration(RegistrationKind.SINGLETON, instance=instance)

    def register_lazy_singleton(self, service_type: Type[T], factory: Callable[[], T],
                                global_scope: bool = False) -> None:
        """Register a factory invoked once, on first lookup."""
        self._target(global_scope)[service_type] = Registration(RegistrationKind.LAZY_SINGLETON, factory=factory)

    def register_factory(self, service_type: Type[T], factory: Callable[[], T], global_scope: bool = False) -> None:
        """Register a factory invoked on every lookup."""
        self._target(global_scope)[service_type] = Registration(RegistrationKind.FACTORY, factory=factory)

    def unregister(self, service_type: type, global_scope: bool = False) -> bool:
        return self._target(global_scope).pop(service_type, None) is not None

    def is_registered(self, service_type: type) -> bool:
        return any(service_type in scope for scope in self._scopes)

    def find(self, service_type: Type[T]) -> T:
        """
        Resolve a type from the innermost scope that has it.

        Raises:
            UnregisteredTypeError: if no scope has a registration for the type
        """
        for scope in reversed(self._scopes):
            if service_type in scope:
                return scope[service_type].resolve()
        raise UnregisteredTypeError(service_type)


# Process default locator
_current_locator: Optional[ServiceLocator] = None


def get_locator() -> ServiceLocator:
    """Get the process default locator, creating it on first use"""
    global _current_locator
    if _current_locator is None:
        _current_locator = ServiceLocator()
    return _current_locator


def set_locator(locator: ServiceLocator) -> None:
    """Replace the process default locator"""
    global _current_locator
    _current_locator = locator


def reset_locator() -> None:
    """Forget the process default locator"""
    global _current_locator
    _current_locator = None


__all__ = [
    "ServiceLocator", "Registration", "RegistrationKind",
    "LocatorError", "UnregisteredTypeError",
    "get_locator", "set_locator", "reset_locator",
]

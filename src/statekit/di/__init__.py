"""
StateKit Dependency Injection

Scoped service locator used to wire Cores, Sagas and shared services.
"""

from .locator import (
    ServiceLocator, Registration, RegistrationKind,
    LocatorError, UnregisteredTypeError,
    get_locator, set_locator, reset_locator,
)

__all__ = [
    "ServiceLocator", "Registration", "RegistrationKind",
    "LocatorError", "UnregisteredTypeError",
    "get_locator", "set_locator", "reset_locator",
]

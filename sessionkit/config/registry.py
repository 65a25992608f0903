"""
Configuration Registries.

Registries accumulate the behaviour a session factory will carry:
type aliases, type handlers, plugins (interceptors) and scripting
language drivers.

Design Principle:
    Registries are written during a build and frozen with the
    configuration. After freezing, any registration raises
    ConfigurationFrozen; reads stay lock-free.

Registration order matters for explicit lists: a later registration
for the same key overwrites the earlier one.

Usage:
    @alias("user")
    class User: ...

    @mapped_types(Decimal)
    class MoneyHandler(TypeHandler): ...

    aliases = TypeAliasRegistry()
    aliases.register_alias(User)
    aliases.resolve_alias("USER")  # -> User
"""

from __future__ import annotations

import datetime
import decimal
import importlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any, TypeVar

from sessionkit.errors import ConfigurationFrozen, RegistrationError
from sessionkit.scripting import BUILTIN_DRIVERS, LanguageDriver, RawLanguageDriver

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=type)


# =============================================================================
# Decorators and helpers
# =============================================================================


def alias(name: str) -> Callable[[T], T]:
    """Give a class an explicit type alias."""

    def decorator(cls: T) -> T:
        cls.__type_alias__ = name
        return cls

    return decorator


def mapped_types(*types: type) -> Callable[[T], T]:
    """Declare the Python types a TypeHandler class converts."""

    def decorator(cls: T) -> T:
        cls.__mapped_types__ = tuple(types)
        return cls

    return decorator


def import_string(path: str) -> Any:
    """
    Import an object from "module:attr" or "module.attr".

    Raises:
        ImportError: If the module or attribute cannot be found
    """
    if ":" in path:
        module_name, _, attr_path = path.partition(":")
    else:
        module_name, _, attr_path = path.rpartition(".")
    if not module_name or not attr_path:
        raise ImportError(f"Not an import path: '{path}'")

    obj: Any = importlib.import_module(module_name)
    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise ImportError(f"'{module_name}' has no attribute '{attr_path}'") from e
    return obj


class TypeHandler(ABC):
    """
    Converts values between a Python type and its database representation.

    Subclasses declare their types with @mapped_types(...) or by
    setting the python_type class attribute.
    """

    python_type: type | None = None

    @abstractmethod
    def to_sql(self, value: Any) -> Any:
        """Convert a Python value into a bind parameter."""

    @abstractmethod
    def from_sql(self, value: Any) -> Any:
        """Convert a column value into a Python value."""


class _Freezable:
    """Shared freeze flag for registries."""

    def __init__(self) -> None:
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def _check_mutable(self, action: str) -> None:
        if self._frozen:
            raise ConfigurationFrozen(f"Cannot {action}: configuration is frozen")


# =============================================================================
# Type Aliases
# =============================================================================


BUILTIN_ALIASES: dict[str, type] = {
    "str": str,
    "string": str,
    "int": int,
    "integer": int,
    "float": float,
    "bool": bool,
    "boolean": bool,
    "bytes": bytes,
    "dict": dict,
    "map": dict,
    "list": list,
    "decimal": decimal.Decimal,
    "date": datetime.date,
    "datetime": datetime.datetime,
}


class TypeAliasRegistry(_Freezable):
    """Case-insensitive mapping of alias names to types."""

    def __init__(self) -> None:
        super().__init__()
        self._aliases: dict[str, type] = dict(BUILTIN_ALIASES)

    def register_alias(self, cls: type, name: str | None = None) -> str:
        """
        Register a type under an alias.

        Args:
            cls: Type to register
            name: Alias; defaults to @alias value, then the class name

        Returns:
            The normalized alias key

        Raises:
            RegistrationError: If cls is not a type
        """
        self._check_mutable("register type alias")
        if not isinstance(cls, type):
            raise RegistrationError(f"Type alias target must be a class, got {cls!r}")

        alias_name = name or getattr(cls, "__type_alias__", None) or cls.__name__
        key = alias_name.lower()

        previous = self._aliases.get(key)
        if previous is not None and previous is not cls:
            logger.debug(
                f"[alias_registry] Alias '{key}' overwritten: "
                f"{previous.__qualname__} -> {cls.__qualname__}"
            )
        self._aliases[key] = cls
        return key

    def resolve_alias(self, name: str) -> type:
        """
        Resolve an alias, or import a "module:Class" path.

        Raises:
            RegistrationError: If the alias is unknown and not importable
        """
        cls = self._aliases.get(name.lower())
        if cls is not None:
            return cls
        if ":" in name or "." in name:
            try:
                resolved = import_string(name)
            except ImportError as e:
                raise RegistrationError(f"Could not resolve type alias '{name}'", cause=e) from e
            if isinstance(resolved, type):
                return resolved
        raise RegistrationError(f"Could not resolve type alias '{name}'")

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._aliases

    @property
    def aliases(self) -> Mapping[str, type]:
        return MappingProxyType(self._aliases)


# =============================================================================
# Type Handlers
# =============================================================================


class TypeHandlerRegistry(_Freezable):
    """
    Mapping of Python types to handler instances.

    Handler classes are instantiated through the object factory supplied
    by the owning configuration.
    """

    def __init__(self, instantiate: Callable[[type], Any]):
        super().__init__()
        self._instantiate = instantiate
        self._handlers: dict[type, TypeHandler] = {}

    def register(self, handler: TypeHandler | type[TypeHandler]) -> tuple[type, ...]:
        """
        Register a handler instance or class.

        Returns:
            The Python types the handler was registered for

        Raises:
            RegistrationError: If the handler is malformed
        """
        self._check_mutable("register type handler")
        if handler is None:
            raise RegistrationError("Type handler cannot be None")

        if isinstance(handler, type):
            if not issubclass(handler, TypeHandler):
                raise RegistrationError(f"{handler.__qualname__} is not a TypeHandler")
            try:
                instance = self._instantiate(handler)
            except Exception as e:
                raise RegistrationError(
                    f"Could not instantiate type handler {handler.__qualname__}: {e}",
                    cause=e,
                ) from e
        elif isinstance(handler, TypeHandler):
            instance = handler
        else:
            raise RegistrationError(f"Not a type handler: {handler!r}")

        types = getattr(instance, "__mapped_types__", None) or (
            (instance.python_type,) if instance.python_type is not None else ()
        )
        if not types:
            raise RegistrationError(
                f"Type handler {type(instance).__qualname__} declares no mapped types"
            )

        for py_type in types:
            if py_type in self._handlers:
                logger.debug(f"[handler_registry] Handler for {py_type.__qualname__} overwritten")
            self._handlers[py_type] = instance
        return tuple(types)

    def get_handler(self, py_type: type) -> TypeHandler | None:
        """Find the handler for a type, walking its MRO."""
        for candidate in getattr(py_type, "__mro__", (py_type,)):
            handler = self._handlers.get(candidate)
            if handler is not None:
                return handler
        return None

    def has_handler(self, py_type: type) -> bool:
        return self.get_handler(py_type) is not None

    @property
    def handlers(self) -> Mapping[type, TypeHandler]:
        return MappingProxyType(self._handlers)


# =============================================================================
# Plugins
# =============================================================================


class InterceptorChain(_Freezable):
    """Ordered list of plugins."""

    def __init__(self) -> None:
        super().__init__()
        self._interceptors: list[Any] = []

    def add(self, interceptor: Any) -> None:
        """
        Append a plugin.

        Raises:
            RegistrationError: If the plugin has no callable intercept()
        """
        self._check_mutable("add plugin")
        if interceptor is None or not callable(getattr(interceptor, "intercept", None)):
            raise RegistrationError(f"Plugin must define intercept(): {interceptor!r}")
        self._interceptors.append(interceptor)

    def wrap(self, target: Any) -> Any:
        """Let every plugin that defines plugin() wrap the target, in order."""
        for interceptor in self._interceptors:
            plugin = getattr(interceptor, "plugin", None)
            if callable(plugin):
                target = plugin(target)
        return target

    @property
    def interceptors(self) -> tuple[Any, ...]:
        return tuple(self._interceptors)

    def __len__(self) -> int:
        return len(self._interceptors)


# =============================================================================
# Language Drivers
# =============================================================================


class LanguageDriverRegistry(_Freezable):
    """Registered language drivers, keyed by driver class, plus the default."""

    def __init__(self) -> None:
        super().__init__()
        self._drivers: dict[type, LanguageDriver] = {}
        self._default: type[LanguageDriver] = RawLanguageDriver
        self._drivers[RawLanguageDriver] = RawLanguageDriver()

    def register(self, driver: LanguageDriver | type[LanguageDriver]) -> type[LanguageDriver]:
        """
        Register a driver instance or class.

        Raises:
            RegistrationError: If the argument is not a LanguageDriver
        """
        self._check_mutable("register language driver")
        if isinstance(driver, type) and issubclass(driver, LanguageDriver):
            instance = driver()
        elif isinstance(driver, LanguageDriver):
            instance = driver
        else:
            raise RegistrationError(f"Not a language driver: {driver!r}")

        self._drivers[type(instance)] = instance
        return type(instance)

    def set_default(self, driver_class: type[LanguageDriver]) -> None:
        """
        Make a driver class the default, registering it when missing.

        Raises:
            RegistrationError: If the argument is not a LanguageDriver subclass
        """
        self._check_mutable("set default language driver")
        if not (isinstance(driver_class, type) and issubclass(driver_class, LanguageDriver)):
            raise RegistrationError(
                f"Default language driver must be a LanguageDriver class: {driver_class!r}"
            )
        if driver_class not in self._drivers:
            self.register(driver_class)
        self._default = driver_class

    @property
    def default_driver_class(self) -> type[LanguageDriver]:
        return self._default

    @property
    def default_driver(self) -> LanguageDriver:
        return self._drivers[self._default]

    def get(self, driver_class: type[LanguageDriver]) -> LanguageDriver | None:
        return self._drivers.get(driver_class)

    def resolve(self, name: str) -> type[LanguageDriver]:
        """
        Resolve a driver by short name ("raw", "template"), registered
        class name, or "module:Class" path.

        Raises:
            RegistrationError: If nothing matches
        """
        lowered = name.lower()
        for driver_class, instance in self._drivers.items():
            if instance.name == lowered or driver_class.__name__.lower() == lowered:
                return driver_class
        if lowered in BUILTIN_DRIVERS:
            return BUILTIN_DRIVERS[lowered]
        try:
            resolved = import_string(name)
        except ImportError as e:
            raise RegistrationError(f"Unknown language driver '{name}'", cause=e) from e
        if not (isinstance(resolved, type) and issubclass(resolved, LanguageDriver)):
            raise RegistrationError(f"'{name}' is not a LanguageDriver")
        return resolved

    @property
    def drivers(self) -> Mapping[type, LanguageDriver]:
        return MappingProxyType(self._drivers)

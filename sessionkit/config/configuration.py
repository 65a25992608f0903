"""
Session Configuration.

The mutable accumulator that every configuration source writes into.

Design Principle:
    Exclusive ownership during a build, then freeze.

    1. The assembler creates (or receives) one configuration per build
    2. Registrations, the descriptor parse and mapper parses write into it
    3. FactoryBuilder freezes it; ownership moves to the SessionFactory
    4. Afterwards only finalize() may rewrite statements, exactly once

Reads never lock: a frozen configuration is shared freely between
threads.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from sessionkit.environment import Environment
from sessionkit.errors import ConfigurationFrozen, LifecycleError, RegistrationError

from .registry import (
    InterceptorChain,
    LanguageDriverRegistry,
    TypeAliasRegistry,
    TypeHandlerRegistry,
)
from .statements import MappedStatement

logger = logging.getLogger(__name__)


# =============================================================================
# Object factories
# =============================================================================


class DefaultObjectFactory:
    """Creates objects by calling their class."""

    def create(self, cls: type, *args: Any, **kwargs: Any) -> Any:
        return cls(*args, **kwargs)

    def __repr__(self) -> str:
        return "DefaultObjectFactory()"


class DefaultObjectWrapperFactory:
    """Provides no custom wrappers."""

    def has_wrapper_for(self, obj: Any) -> bool:
        return False

    def __repr__(self) -> str:
        return "DefaultObjectWrapperFactory()"


# =============================================================================
# Column naming
# =============================================================================

COLUMN_STYLES = ("lowercase", "uppercase", "underline", "camelcase")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def apply_column_style(name: str, style: str | None) -> str:
    """Convert a property name into a column name for a naming style."""
    if not style:
        return name
    if style == "lowercase":
        return name.lower()
    if style == "uppercase":
        return name.upper()
    if style == "underline":
        return _CAMEL_BOUNDARY.sub("_", name).lower()
    if style == "camelcase":
        head, *rest = name.split("_")
        return head + "".join(part.capitalize() for part in rest)
    raise ValueError(f"Unknown column style '{style}'. Expected one of {COLUMN_STYLES}")


# =============================================================================
# Configuration
# =============================================================================


class SessionConfiguration:
    """
    Accumulates registered behaviour until frozen into a factory.

    Example:
        configuration = SessionConfiguration(variables={"schema": "main"})
        configuration.type_alias_registry.register_alias(User)
        configuration.database_id = "sqlite"
        configuration.freeze()
    """

    def __init__(self, variables: Mapping[str, Any] | None = None):
        self._frozen = False
        self._claimed = False
        self._statements_rewritten = False

        self.variables: dict[str, Any] = dict(variables or {})
        self.settings: dict[str, Any] = {}

        self._object_factory: Any = DefaultObjectFactory()
        self._object_wrapper_factory: Any = DefaultObjectWrapperFactory()
        self._vfs: Any = None
        self._database_id: str | None = None
        self._environment: Environment | None = None

        self._caches: dict[str, Any] = {}
        self._statements: dict[str, MappedStatement] = {}
        self._loaded_resources: set[str] = set()

        self.type_alias_registry = TypeAliasRegistry()
        self.type_handler_registry = TypeHandlerRegistry(lambda cls: self._object_factory.create(cls))
        self.interceptor_chain = InterceptorChain()
        self.language_registry = LanguageDriverRegistry()

    # ==================== Freezing ====================

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def claimed(self) -> bool:
        return self._claimed

    def claim(self) -> None:
        """
        Hand the configuration to a build. Each configuration is claimed
        at most once, whether that build succeeds or fails.

        Raises:
            LifecycleError: If already claimed or frozen
        """
        if self._frozen or self._claimed:
            raise LifecycleError(
                "Configuration was already used by a build; supply a fresh SessionConfiguration"
            )
        self._claimed = True

    def _check_mutable(self, action: str) -> None:
        if self._frozen:
            raise ConfigurationFrozen(f"Cannot {action}: configuration is frozen")

    def freeze(self) -> None:
        """Make the configuration and all registries read-only."""
        if self._frozen:
            return
        self.type_alias_registry.freeze()
        self.type_handler_registry.freeze()
        self.interceptor_chain.freeze()
        self.language_registry.freeze()
        self.variables = MappingProxyType(dict(self.variables))  # type: ignore[assignment]
        self.settings = MappingProxyType(dict(self.settings))  # type: ignore[assignment]
        self._frozen = True
        logger.debug(
            f"[configuration] Frozen | statements={len(self._statements)} | "
            f"database_id={self._database_id}"
        )

    # ==================== Simple fields ====================

    @property
    def object_factory(self) -> Any:
        return self._object_factory

    @object_factory.setter
    def object_factory(self, value: Any) -> None:
        self._check_mutable("set object factory")
        if not callable(getattr(value, "create", None)):
            raise RegistrationError(f"Object factory must define create(): {value!r}")
        self._object_factory = value

    @property
    def object_wrapper_factory(self) -> Any:
        return self._object_wrapper_factory

    @object_wrapper_factory.setter
    def object_wrapper_factory(self, value: Any) -> None:
        self._check_mutable("set object wrapper factory")
        self._object_wrapper_factory = value

    @property
    def vfs(self) -> Any:
        return self._vfs

    @vfs.setter
    def vfs(self, value: Any) -> None:
        self._check_mutable("set vfs")
        self._vfs = value

    @property
    def database_id(self) -> str | None:
        return self._database_id

    @database_id.setter
    def database_id(self, value: str | None) -> None:
        self._check_mutable("set database id")
        self._database_id = value

    @property
    def environment(self) -> Environment | None:
        return self._environment

    @environment.setter
    def environment(self, value: Environment) -> None:
        self._check_mutable("set environment")
        self._environment = value

    def merge_variables(self, overrides: Mapping[str, Any] | None) -> None:
        """Merge properties into the variables; overrides win on collision."""
        self._check_mutable("merge variables")
        if overrides:
            self.variables.update(overrides)

    def column_name(self, property_name: str) -> str:
        """Map a property name to a column name using databaseColumnStyle."""
        return apply_column_style(property_name, self.variables.get("databaseColumnStyle"))

    # ==================== Caches ====================

    def add_cache(self, cache: Any) -> None:
        """
        Register a cache under its id.

        Raises:
            RegistrationError: If the cache has no id
        """
        self._check_mutable("add cache")
        cache_id = getattr(cache, "id", None)
        if not cache_id:
            raise RegistrationError(f"Cache must have a non-empty 'id': {cache!r}")
        self._caches[cache_id] = cache

    def get_cache(self, cache_id: str) -> Any | None:
        return self._caches.get(cache_id)

    @property
    def caches(self) -> Mapping[str, Any]:
        return MappingProxyType(self._caches)

    # ==================== Language drivers ====================

    @property
    def default_language_driver(self) -> type:
        return self.language_registry.default_driver_class

    def set_default_language_driver(self, driver_class: type) -> None:
        self._check_mutable("set default language driver")
        self.language_registry.set_default(driver_class)

    # ==================== Statements ====================

    def add_statement(self, statement: MappedStatement) -> None:
        """
        Add a mapped statement.

        Raises:
            RegistrationError: If the full id is already taken
        """
        self._check_mutable("add mapped statement")
        key = statement.full_id
        existing = self._statements.get(key)
        if existing is not None:
            raise RegistrationError(
                f"Mapped statement '{key}' already defined in {existing.resource or 'unknown'}"
            )
        self._statements[key] = statement

    def has_statement(self, full_id: str) -> bool:
        return full_id in self._statements

    def get_statement(self, full_id: str) -> MappedStatement:
        try:
            return self._statements[full_id]
        except KeyError:
            raise KeyError(f"Mapped statement '{full_id}' not found") from None

    @property
    def statements(self) -> Mapping[str, MappedStatement]:
        return MappingProxyType(self._statements)

    def apply_statement_rewrites(
        self,
        rewrite: Callable[[MappedStatement], MappedStatement],
    ) -> int:
        """
        Rewrite every mapped statement once, after freezing.

        The new statement map is built completely before it replaces the
        old one, so readers never see a half-rewritten set.

        Returns:
            Number of statements whose SQL changed

        Raises:
            LifecycleError: If not frozen yet, or already rewritten
        """
        if not self._frozen:
            raise LifecycleError("Statements can only be rewritten after the build")
        if self._statements_rewritten:
            raise LifecycleError("Statements have already been rewritten")

        rewritten = {key: rewrite(statement) for key, statement in self._statements.items()}
        changed = sum(
            1 for key, statement in rewritten.items() if statement.sql != self._statements[key].sql
        )
        self._statements = rewritten
        self._statements_rewritten = True
        return changed

    # ==================== Resources ====================

    def add_loaded_resource(self, identity: str) -> None:
        self._check_mutable("record loaded resource")
        self._loaded_resources.add(identity)

    def is_resource_loaded(self, identity: str) -> bool:
        return identity in self._loaded_resources

    @property
    def loaded_resources(self) -> frozenset[str]:
        return frozenset(self._loaded_resources)

    def __repr__(self) -> str:
        return (
            f"SessionConfiguration(statements={len(self._statements)}, "
            f"database_id={self._database_id!r}, frozen={self._frozen})"
        )

"""
Registration Pipeline.

Applies explicit and discovered registrations to a configuration.

Ordering rules:
    - Explicit lists are applied in caller order; a later registration
      for the same key overwrites an earlier one.
    - Scanned types come from a set. They are applied sorted by dotted
      name, but callers must not depend on any order.
    - Scanned registrations are applied before explicit ones, so an
      explicit entry wins over a discovered one with the same key.
    - apply_drivers() never touches the default driver. The assembler
      sets the default after the descriptor parse.

Malformed input raises RegistrationError and aborts the build. Per-type
scan failures are recorded by the scanner and do not.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

from sessionkit.errors import RegistrationError
from sessionkit.scanning import ResourceScanner, ScanResult, alias_filter, handler_filter

if TYPE_CHECKING:
    from sessionkit.config.configuration import SessionConfiguration

logger = logging.getLogger(__name__)


def _explicit_items(items: Sequence[Any] | None, what: str) -> list[Any]:
    """Validate an explicit registration list."""
    if items is None:
        return []
    if isinstance(items, (str, bytes)) or not isinstance(items, Iterable):
        raise RegistrationError(f"{what} must be a list, got {type(items).__name__}")
    items = list(items)
    for position, item in enumerate(items):
        if item is None:
            raise RegistrationError(f"{what}[{position}] is None")
    return items


def _sorted_types(result: ScanResult) -> list[type]:
    return sorted(result.types, key=lambda cls: (cls.__module__, cls.__qualname__))


class RegistrationPipeline:
    """
    Applies registrations to a configuration in place.

    Example:
        pipeline = RegistrationPipeline(ResourceScanner())
        pipeline.apply_aliases(configuration, [User, Order], package="myapp.models.*")
        pipeline.apply_plugins(configuration, [AuditPlugin()])
    """

    def __init__(self, scanner: ResourceScanner | None = None):
        self._scanner = scanner or ResourceScanner()
        self.scan_results: list[ScanResult] = []

    def apply_factories(
        self,
        configuration: SessionConfiguration,
        *,
        object_factory: Any = None,
        object_wrapper_factory: Any = None,
        vfs: Any = None,
    ) -> None:
        """Set object factory, wrapper factory and vfs when supplied."""
        if object_factory is not None:
            configuration.object_factory = object_factory
        if object_wrapper_factory is not None:
            configuration.object_wrapper_factory = object_wrapper_factory
        if vfs is not None:
            configuration.vfs = vfs

    def apply_aliases(
        self,
        configuration: SessionConfiguration,
        explicit: Sequence[type] | None = None,
        *,
        package: str | None = None,
        super_type: type | None = None,
    ) -> int:
        """
        Register type aliases from a package scan and an explicit list.

        Returns:
            Number of registrations applied
        """
        registry = configuration.type_alias_registry
        count = 0

        if package:
            result = self._scan(package, alias_filter(super_type))
            for cls in _sorted_types(result):
                registry.register_alias(cls)
                count += 1

        for cls in _explicit_items(explicit, "type_aliases"):
            key = registry.register_alias(cls)
            logger.debug(f"[registration] Registered type alias: '{key}' -> {cls!r}")
            count += 1

        return count

    def apply_handlers(
        self,
        configuration: SessionConfiguration,
        explicit: Sequence[Any] | None = None,
        *,
        package: str | None = None,
    ) -> int:
        """
        Register type handlers from a package scan and an explicit list.

        Returns:
            Number of handlers registered
        """
        registry = configuration.type_handler_registry
        count = 0

        if package:
            result = self._scan(package, handler_filter())
            for cls in _sorted_types(result):
                registry.register(cls)
                count += 1

        for handler in _explicit_items(explicit, "type_handlers"):
            types = registry.register(handler)
            logger.debug(f"[registration] Registered type handler: {handler!r} for {types}")
            count += 1

        return count

    def apply_plugins(self, configuration: SessionConfiguration, plugins: Sequence[Any] | None) -> int:
        """Append plugins in caller order."""
        items = _explicit_items(plugins, "plugins")
        for plugin in items:
            configuration.interceptor_chain.add(plugin)
            logger.debug(f"[registration] Registered plugin: {plugin!r}")
        return len(items)

    def apply_drivers(self, configuration: SessionConfiguration, drivers: Sequence[Any] | None) -> int:
        """Register auxiliary language drivers. Never sets the default."""
        items = _explicit_items(drivers, "scripting_language_drivers")
        for driver in items:
            configuration.language_registry.register(driver)
            logger.debug(f"[registration] Registered scripting language driver: {driver!r}")
        return len(items)

    def apply_cache(self, configuration: SessionConfiguration, cache: Any) -> bool:
        """Register the cache when supplied."""
        if cache is None:
            return False
        configuration.add_cache(cache)
        logger.debug(f"[registration] Registered cache: {cache.id!r}")
        return True

    def _scan(self, package: str, candidate_filter: Any) -> ScanResult:
        result = self._scanner.scan(package, candidate_filter)
        self.scan_results.append(result)
        return result

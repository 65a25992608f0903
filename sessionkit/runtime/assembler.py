"""
Configuration Assembler.

Builds one immutable SessionFactory from explicit objects, a descriptor
resource, registration lists, package scans and mapper resources.

Design Principle:
    Ordering decides precedence.

    Caller fields that must not be overridden by the descriptor are
    applied before it is parsed. Caller fields that must override the
    descriptor's defaults are applied after. The database id is looked
    up before any descriptor or mapper content is parsed, because that
    content may branch on it.

Build sequence:
    1.  Resolve the base configuration (explicit, descriptor, default)
    2.  Object factory, object-wrapper factory, vfs
    3.  Type aliases (scanned, then explicit)
    4.  Plugins
    5.  Type handlers (scanned, then explicit)
    6.  Auxiliary scripting drivers
    7.  Database id lookup
    8.  Cache
    9.  Descriptor parse
    10. Default scripting driver
    11. Environment
    12. Mapper resources
    13. FactoryBuilder

Lifecycle:
    build()     - runs the sequence at most once per set of sources
    finalize()  - after the host is ready; rewrites statements, logs summary

Usage:
    assembler = ConfigurationAssembler(
        AssemblySources(
            data_source=CallableDataSource(lambda: sqlite3.connect("app.db")),
            descriptor=FileResource("session.json"),
            mapper_locations=tuple(resolve_mapper_locations("mappers")),
            database_id_provider=VendorDatabaseIdProvider({"sqlite": "sqlite"}),
        )
    )
    factory = assembler.build()
    assembler.finalize()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from sessionkit import __version__
from sessionkit.config.configuration import SessionConfiguration
from sessionkit.config.schemas import AssemblerSettings
from sessionkit.environment import Environment, ManagedTransactionFactory, unwrap_data_source
from sessionkit.errors import DatabaseIdLookupFailure, LifecycleError, MissingRequired
from sessionkit.logs import apply_log_toggles, is_enabled
from sessionkit.parsing.base import DescriptorParser, MapperParser
from sessionkit.parsing.json_parser import JsonDescriptorParser, JsonMapperParser
from sessionkit.resources import ResourceRef
from sessionkit.scanning import ResourceScanner
from sessionkit.scripting import LanguageDriver, TemplateLanguageDriver

from .builder import FactoryBuilder, SessionFactory
from .finalize import KeywordCaseTransformer, StatementTransformer, chain_transformers
from .mappers import MapperLoader
from .registration import RegistrationPipeline
from .resolver import SourceResolver

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT = "ConfigurationAssembler"

# Shared stateless collaborators, so independently built sources compare equal.
DEFAULT_FACTORY_BUILDER = FactoryBuilder()
DEFAULT_MAPPER_PARSER = JsonMapperParser()
DEFAULT_DESCRIPTOR_PARSER = JsonDescriptorParser(DEFAULT_MAPPER_PARSER)


# =============================================================================
# Sources
# =============================================================================


@dataclass(frozen=True)
class AssemblySources:
    """
    Every input of a build.

    Explicit registration lists are applied in the order given. A None
    mapper_locations means "not specified"; an empty sequence means
    "specified but nothing matched".
    """

    data_source: Any = None
    configuration: SessionConfiguration | None = None
    descriptor: ResourceRef | None = None
    mapper_locations: Sequence[ResourceRef | None] | None = None
    transaction_factory: Any = None
    configuration_properties: Mapping[str, Any] | None = None
    settings: AssemblerSettings = field(default_factory=AssemblerSettings)
    environment: str = DEFAULT_ENVIRONMENT

    plugins: Sequence[Any] = ()
    type_aliases: Sequence[type] = ()
    type_aliases_package: str | None = None
    type_aliases_super_type: type | None = None
    type_handlers: Sequence[Any] = ()
    type_handlers_package: str | None = None
    scripting_language_drivers: Sequence[Any] = ()
    default_scripting_language_driver: type[LanguageDriver] | str | None = None

    database_id_provider: Any = None
    vfs: Any = None
    cache: Any = None
    object_factory: Any = None
    object_wrapper_factory: Any = None

    factory_builder: Any = DEFAULT_FACTORY_BUILDER
    descriptor_parser: DescriptorParser | None = DEFAULT_DESCRIPTOR_PARSER
    mapper_parser: MapperParser | None = DEFAULT_MAPPER_PARSER
    statement_transformers: Sequence[StatementTransformer] = ()
    scanner: ResourceScanner | None = None

    def properties(self) -> dict[str, Any]:
        """Settings rendered as properties, overlaid by configuration_properties."""
        return {**self.settings.to_properties(), **(self.configuration_properties or {})}


# =============================================================================
# Assembler
# =============================================================================


class ConfigurationAssembler:
    """
    Assembles and caches a SessionFactory.

    Thread-safe: concurrent callers of build() block on a re-entrant
    lock; exactly one runs the sequence and the rest get the cached
    factory.
    """

    def __init__(self, sources: AssemblySources | None = None):
        self._sources = sources or AssemblySources()
        self._lock = threading.RLock()
        self._factory: SessionFactory | None = None
        self._finalized: SessionFactory | None = None

    @property
    def sources(self) -> AssemblySources:
        return self._sources

    @property
    def built(self) -> bool:
        return self._factory is not None

    def build(self, sources: AssemblySources | None = None) -> SessionFactory:
        """
        Build the session factory, or return the cached one.

        Args:
            sources: Replacement inputs. Equal to the current sources
                returns the cached factory; different ones rebuild.

        Raises:
            SessionKitError: Any fatal assembly error; nothing is cached
        """
        with self._lock:
            if sources is not None and sources != self._sources:
                if self._factory is not None:
                    logger.debug("[assembler] Sources changed, discarding cached factory")
                self._sources = sources
                self._factory = None
                self._finalized = None

            if self._factory is None:
                self._factory = self._assemble(self._sources)
            return self._factory

    def get_factory(self) -> SessionFactory:
        """Return the factory, building it on first use."""
        return self.build()

    # ==================== Build sequence ====================

    def _assemble(self, sources: AssemblySources) -> SessionFactory:
        resolver = SourceResolver(sources.descriptor_parser)

        if sources.data_source is None:
            raise MissingRequired("Property 'data_source' is required")
        if sources.factory_builder is None:
            raise MissingRequired("Property 'factory_builder' is required")
        resolver.classify(sources.configuration, sources.descriptor)

        data_source = unwrap_data_source(sources.data_source)
        properties = sources.properties()
        apply_log_toggles(properties)

        logger.debug(f"[assembler] Building session factory | environment={sources.environment}")

        # 1. Base configuration
        configuration, pending = resolver.resolve(
            sources.configuration, sources.descriptor, properties
        )
        pipeline = RegistrationPipeline(sources.scanner)

        # 2. Object factories and vfs
        pipeline.apply_factories(
            configuration,
            object_factory=sources.object_factory,
            object_wrapper_factory=sources.object_wrapper_factory,
            vfs=sources.vfs,
        )

        # 3. Type aliases
        pipeline.apply_aliases(
            configuration,
            sources.type_aliases,
            package=sources.type_aliases_package,
            super_type=sources.type_aliases_super_type,
        )

        # 4. Plugins
        pipeline.apply_plugins(configuration, sources.plugins)

        # 5. Type handlers
        pipeline.apply_handlers(
            configuration, sources.type_handlers, package=sources.type_handlers_package
        )

        # 6. Auxiliary scripting drivers
        pipeline.apply_drivers(configuration, sources.scripting_language_drivers)

        # 7. Database id, before anything is parsed
        if sources.database_id_provider is not None:
            configuration.database_id = self._lookup_database_id(
                sources.database_id_provider, data_source
            )

        # 8. Cache
        pipeline.apply_cache(configuration, sources.cache)

        # 9. Descriptor
        if pending is not None:
            pending(configuration)

        # 10. Default scripting driver, after the descriptor
        default_driver = self._default_driver(sources, configuration)
        if default_driver is not None:
            configuration.set_default_language_driver(default_driver)
            logger.debug(f"[assembler] Default scripting language driver: {default_driver.__name__}")

        # 11. Environment
        configuration.environment = Environment(
            name=sources.environment,
            transaction_factory=sources.transaction_factory or ManagedTransactionFactory(),
            data_source=data_source,
        )

        # 12. Mappers
        if sources.mapper_locations and sources.mapper_parser is None:
            raise MissingRequired("A mapper parser is required to parse mapper locations")
        MapperLoader(sources.mapper_parser).load(configuration, sources.mapper_locations)

        # 13. Freeze; the factory owns the configuration from here on
        factory = sources.factory_builder.build(configuration)
        del configuration

        failures = sum(len(result.failures) for result in pipeline.scan_results)
        logger.debug(
            f"[assembler] Session factory built | database_id={factory.database_id} | "
            f"statements={len(factory.statements)} | scan_failures={failures}"
        )
        return factory

    @staticmethod
    def _lookup_database_id(provider: Any, data_source: Any) -> str | None:
        try:
            database_id = provider.get_database_id(data_source)
        except Exception as e:
            raise DatabaseIdLookupFailure(f"Failed getting a databaseId: {e}", cause=e) from e
        logger.debug(f"[assembler] Resolved database id: {database_id}")
        return database_id

    @staticmethod
    def _default_driver(
        sources: AssemblySources,
        configuration: SessionConfiguration,
    ) -> type[LanguageDriver] | None:
        if sources.settings.enable_syntax_parsing:
            return TemplateLanguageDriver
        driver = sources.default_scripting_language_driver
        if isinstance(driver, str):
            return configuration.language_registry.resolve(driver)
        return driver

    # ==================== Lifecycle ====================

    def finalize(self, factory: SessionFactory | None = None) -> None:
        """
        Run deferred statement transformers once the host is ready.

        Args:
            factory: Factory to finalize; defaults to the cached one

        Raises:
            LifecycleError: If called before a successful build()
            ParseFailure: If a statement transformer fails
        """
        with self._lock:
            factory = factory or self._factory
            if factory is None:
                raise LifecycleError("finalize() called before build()")
            if self._finalized is factory:
                logger.debug("[assembler] Already finalized, skipping")
                return

            configuration = factory.configuration
            transformers = list(self._sources.statement_transformers)
            if is_enabled(configuration.variables.get("enableKeywordsToUppercase")):
                transformers.append(KeywordCaseTransformer())

            changed = 0
            if transformers:
                changed = configuration.apply_statement_rewrites(
                    chain_transformers(transformers, configuration)
                )
            self._finalized = factory

        self._log_loaded(factory, changed)

    @staticmethod
    def _log_loaded(factory: SessionFactory, changed: int) -> None:
        configuration = factory.configuration
        logger.info(f"[assembler] sessionkit {__version__} ready")
        logger.info(
            f"[assembler] Loaded | environment={getattr(factory.environment, 'name', None)} | "
            f"database_id={factory.database_id} | statements={len(factory.statements)} | "
            f"rewritten={changed} | aliases={len(configuration.type_alias_registry.aliases)} | "
            f"handlers={len(configuration.type_handler_registry.handlers)} | "
            f"plugins={len(configuration.interceptor_chain)}"
        )

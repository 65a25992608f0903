"""
Source Resolver.

Decides where the base configuration comes from.

Design Principle:
    The resolver is the single entry point for choosing a configuration
    source. It never parses a descriptor itself: parsing is handed back
    to the assembler as a PendingParse, so pre-parse fields can be set
    first and the descriptor cannot silently override caller intent.

Sources (mutually exclusive):
    EXPLICIT   - a caller-supplied SessionConfiguration
    DESCRIPTOR - a descriptor resource, parsed later
    DEFAULT    - a fresh SessionConfiguration

Usage:
    resolver = SourceResolver(descriptor_parser=JsonDescriptorParser())
    configuration, pending = resolver.resolve(None, FileResource("session.json"), overrides)

    # ... pre-parse registrations ...

    if pending is not None:
        pending(configuration)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

from sessionkit.config.configuration import SessionConfiguration
from sessionkit.errors import (
    ConfigConflict,
    LifecycleError,
    MissingRequired,
    ParseFailure,
    ResourceUnreadable,
)

if TYPE_CHECKING:
    from sessionkit.parsing.base import DescriptorParser
    from sessionkit.resources import ResourceRef

logger = logging.getLogger(__name__)


class SourceKind(str, Enum):
    """Where a build's base configuration came from."""

    EXPLICIT = "explicit"
    DESCRIPTOR = "descriptor"
    DEFAULT = "default"


class PendingParse:
    """
    Deferred descriptor parse.

    Invoked exactly once by the assembler, after every pre-parse
    registration and the database-id lookup.
    """

    def __init__(
        self,
        descriptor: ResourceRef,
        parser: DescriptorParser,
        property_overrides: Mapping[str, Any] | None,
    ):
        self._descriptor = descriptor
        self._parser = parser
        self._property_overrides = dict(property_overrides) if property_overrides else None
        self._done = False

    @property
    def identity(self) -> str:
        return self._descriptor.identity

    @property
    def done(self) -> bool:
        return self._done

    def __call__(self, configuration: SessionConfiguration) -> None:
        """
        Parse the descriptor into the configuration.

        Raises:
            LifecycleError: If already executed
            ResourceUnreadable: If the descriptor cannot be opened
            ParseFailure: If the parser fails
        """
        if self._done:
            raise LifecycleError("Descriptor parse already executed", resource=self.identity)
        self._done = True

        try:
            stream = self._descriptor.open()
        except OSError as e:
            raise ResourceUnreadable(
                f"Failed to open config resource: {e}", resource=self.identity, cause=e
            ) from e

        with stream:
            try:
                self._parser.parse_descriptor(stream, configuration, self._property_overrides)
            except Exception as e:
                raise ParseFailure(
                    f"Failed to parse config resource: {e}", resource=self.identity, cause=e
                ) from e

        logger.debug(f"[source_resolver] Parsed configuration file: {self.identity}")


class SourceResolver:
    """
    Resolves the base configuration for a build.

    Example:
        resolver = SourceResolver(descriptor_parser=parser)
        configuration, pending = resolver.resolve(explicit, None, {"schema": "main"})
        assert pending is None
    """

    def __init__(self, descriptor_parser: DescriptorParser | None = None):
        self._descriptor_parser = descriptor_parser

    def classify(
        self,
        explicit: SessionConfiguration | None,
        descriptor: ResourceRef | None,
    ) -> SourceKind:
        """
        Classify the supplied sources.

        Raises:
            ConfigConflict: If both explicit and descriptor are supplied
        """
        if explicit is not None and descriptor is not None:
            raise ConfigConflict(
                "Property 'configuration' and 'descriptor' can not be specified together"
            )
        if explicit is not None:
            return SourceKind.EXPLICIT
        if descriptor is not None:
            return SourceKind.DESCRIPTOR
        return SourceKind.DEFAULT

    def resolve(
        self,
        explicit: SessionConfiguration | None,
        descriptor: ResourceRef | None,
        property_overrides: Mapping[str, Any] | None = None,
    ) -> tuple[SessionConfiguration, PendingParse | None]:
        """
        Resolve the base configuration.

        Args:
            explicit: Caller-supplied configuration
            descriptor: Descriptor resource to parse later
            property_overrides: Caller properties

        Returns:
            (configuration, pending parse or None)

        Raises:
            ConfigConflict: If both explicit and descriptor are supplied
            MissingRequired: If a descriptor is given without a parser
            LifecycleError: If the explicit configuration was already
                used by an earlier build
        """
        kind = self.classify(explicit, descriptor)

        if kind is SourceKind.EXPLICIT:
            explicit.claim()
            explicit.merge_variables(property_overrides)
            logger.debug("[source_resolver] Using explicit configuration")
            return explicit, None

        configuration = SessionConfiguration(variables=property_overrides)

        if kind is SourceKind.DESCRIPTOR:
            if self._descriptor_parser is None:
                raise MissingRequired("A descriptor parser is required to parse a descriptor")
            logger.debug(f"[source_resolver] Descriptor parse deferred: {descriptor.identity}")
            pending = PendingParse(descriptor, self._descriptor_parser, property_overrides)
            return configuration, pending

        logger.debug(
            "[source_resolver] Property 'configuration' or 'descriptor' not specified, "
            "using default configuration"
        )
        return configuration, None

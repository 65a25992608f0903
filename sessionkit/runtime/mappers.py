"""
Mapper Loader.

Parses an ordered list of mapper resources into a configuration.

Fail-fast:
    The first resource that cannot be opened or parsed aborts the load.
    Later resources are not attempted. None entries are skipped.

Usage:
    loader = MapperLoader(JsonMapperParser())
    loader.load(configuration, resolve_mapper_locations("mappers"))
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from sessionkit.errors import ParseFailure, ResourceUnreadable

if TYPE_CHECKING:
    from sessionkit.config.configuration import SessionConfiguration
    from sessionkit.parsing.base import MapperParser
    from sessionkit.resources import ResourceRef

logger = logging.getLogger(__name__)


class MapperLoader:
    """Loads mapper resources through a MapperParser."""

    def __init__(self, parser: MapperParser):
        self._parser = parser

    def load(
        self,
        configuration: SessionConfiguration,
        mapper_refs: Sequence[ResourceRef | None] | None,
    ) -> int:
        """
        Parse each mapper resource in order.

        Args:
            configuration: Configuration receiving the mapped statements
            mapper_refs: Ordered resources; None entries are skipped

        Returns:
            Number of resources parsed

        Raises:
            ResourceUnreadable: If a resource cannot be opened
            ParseFailure: If the parser fails on a resource
        """
        if mapper_refs is None:
            logger.debug("[mapper_loader] Property 'mapper_locations' was not specified")
            return 0
        if len(mapper_refs) == 0:
            logger.warning(
                "[mapper_loader] Property 'mapper_locations' was specified "
                "but matching resources are not found"
            )
            return 0

        parsed = 0
        for ref in mapper_refs:
            if ref is None:
                continue
            self._load_one(configuration, ref)
            parsed += 1

        return parsed

    def _load_one(self, configuration: SessionConfiguration, ref: ResourceRef) -> None:
        identity = ref.identity
        try:
            stream = ref.open()
        except OSError as e:
            raise ResourceUnreadable(
                f"Failed to open mapping resource: {e}", resource=identity, cause=e
            ) from e

        with stream:
            try:
                self._parser.parse_mapper(stream, configuration, identity)
            except Exception as e:
                raise ParseFailure(
                    f"Failed to parse mapping resource: {e}", resource=identity, cause=e
                ) from e

        logger.debug(f"[mapper_loader] Parsed mapper file: '{identity}'")

"""
Parser Protocols.

The assembler never interprets descriptor or mapper content itself.
It hands streams to these collaborators, which write into the
configuration they are given.

Design Principle:
    Protocols define WHAT, implementations define HOW.
    The ordering guarantees (database id before parsing, default driver
    after the descriptor) hold for any grammar plugged in here.

Implementations:
    - JsonDescriptorParser / JsonMapperParser (sessionkit.parsing.json_parser)
    - Test doubles that record configuration state at call time
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, BinaryIO, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sessionkit.config.configuration import SessionConfiguration


@runtime_checkable
class DescriptorParser(Protocol):
    """Parses a descriptor resource into a configuration."""

    def parse_descriptor(
        self,
        stream: BinaryIO,
        configuration: SessionConfiguration,
        property_overrides: Mapping[str, Any] | None,
    ) -> None:
        """
        Parse a descriptor stream.

        Args:
            stream: Open descriptor byte stream
            configuration: Configuration built so far
            property_overrides: Caller properties (win over the descriptor's)

        Raises:
            Exception: Any failure; the caller wraps it as ParseFailure
        """
        ...


@runtime_checkable
class MapperParser(Protocol):
    """Parses one mapper resource into a configuration."""

    def parse_mapper(
        self,
        stream: BinaryIO,
        configuration: SessionConfiguration,
        identity: str,
    ) -> None:
        """
        Parse a mapper stream.

        Args:
            stream: Open mapper byte stream
            configuration: Configuration to add statements to
            identity: Resource identity, for messages and dedup

        Raises:
            Exception: Any failure; the caller wraps it as ParseFailure
        """
        ...

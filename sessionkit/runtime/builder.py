"""
Factory Builder.

Freezes a fully assembled configuration into a SessionFactory.

The builder holds no state and performs no fallible logic beyond
freezing. It can be replaced on the assembler by any object with a
compatible build(configuration) method.

Usage:
    factory = FactoryBuilder().build(configuration)
    statement = factory.get_statement("app.UserMapper.findAll")
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sessionkit.config.configuration import SessionConfiguration
    from sessionkit.config.statements import MappedStatement
    from sessionkit.environment import Environment

logger = logging.getLogger(__name__)


class SessionFactory:
    """
    Read-only view over a frozen configuration.

    Shared between threads without locking.
    """

    def __init__(self, configuration: SessionConfiguration):
        self._configuration = configuration

    @property
    def configuration(self) -> SessionConfiguration:
        return self._configuration

    @property
    def environment(self) -> Environment | None:
        return self._configuration.environment

    @property
    def database_id(self) -> str | None:
        return self._configuration.database_id

    @property
    def statements(self) -> Mapping[str, MappedStatement]:
        return self._configuration.statements

    def get_statement(self, full_id: str) -> MappedStatement:
        """
        Look up a mapped statement by its full id.

        Raises:
            KeyError: If no such statement exists
        """
        return self._configuration.get_statement(full_id)

    def has_statement(self, full_id: str) -> bool:
        return self._configuration.has_statement(full_id)

    def apply_plugins(self, target: Any) -> Any:
        """Wrap a target with every registered plugin, in registration order."""
        return self._configuration.interceptor_chain.wrap(target)

    def __repr__(self) -> str:
        return (
            f"SessionFactory(environment={getattr(self.environment, 'name', None)!r}, "
            f"database_id={self.database_id!r}, statements={len(self.statements)})"
        )


class FactoryBuilder:
    """Builds SessionFactory instances."""

    def build(self, configuration: SessionConfiguration) -> SessionFactory:
        configuration.freeze()
        factory = SessionFactory(configuration)
        logger.debug(f"[factory_builder] Built {factory!r}")
        return factory

"""
Scripting Language Drivers.

A language driver compiles raw statement text from a mapper into a
SqlSource. The configuration keeps a registry of drivers and one
default; mapper statements may name a specific driver with "lang".

Drivers:
    - RawLanguageDriver: text is used as written (the built-in default)
    - TemplateLanguageDriver: ${name} placeholders are substituted from
      configuration variables and whitespace is collapsed

Usage:
    driver = TemplateLanguageDriver()
    source = driver.create_sql_source(configuration, "select * from ${schema}.users")
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from string import Template
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sessionkit.config.configuration import SessionConfiguration

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class SqlSource:
    """Compiled statement text."""

    sql: str
    driver: str


class LanguageDriver(ABC):
    """Base class for scripting language drivers."""

    name: str = "driver"

    @abstractmethod
    def create_sql_source(self, configuration: SessionConfiguration, script: str) -> SqlSource:
        """Compile a statement script."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class RawLanguageDriver(LanguageDriver):
    """Uses statement text as written, trimmed."""

    name = "raw"

    def create_sql_source(self, configuration: SessionConfiguration, script: str) -> SqlSource:
        return SqlSource(sql=script.strip(), driver=self.name)


class TemplateLanguageDriver(LanguageDriver):
    """
    Substitutes ${name} placeholders from configuration variables.

    Unknown placeholders are kept verbatim so a later rewrite pass can
    still see them. Runs of whitespace collapse to a single space.
    """

    name = "template"

    def create_sql_source(self, configuration: SessionConfiguration, script: str) -> SqlSource:
        variables = {k: str(v) for k, v in configuration.variables.items()}
        sql = Template(script).safe_substitute(variables)
        sql = _WHITESPACE.sub(" ", sql).strip()
        logger.debug(f"[template_driver] Compiled: {sql}")
        return SqlSource(sql=sql, driver=self.name)


BUILTIN_DRIVERS: dict[str, type[LanguageDriver]] = {
    RawLanguageDriver.name: RawLanguageDriver,
    TemplateLanguageDriver.name: TemplateLanguageDriver,
}

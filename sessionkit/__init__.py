"""
sessionkit - ordered assembly of immutable session factories.

sessionkit merges an explicit configuration object, an external
descriptor, explicit registration lists and package scans into one
frozen SessionFactory, with a strict precedence discipline:

- **Pre-parse fields**: aliases, plugins, handlers and drivers are set
  before the descriptor is parsed
- **Post-parse fields**: the default scripting driver and environment
  override whatever the descriptor declared
- **Database id first**: the vendor id is known before any descriptor
  or mapper content is parsed
- **Metadata-first scanning**: package scans read class metadata from
  source and import only the candidates that survive

Quick Start:
    >>> from sessionkit import AssemblySources, ConfigurationAssembler
    >>> from sessionkit.environment import CallableDataSource
    >>> import sqlite3
    >>>
    >>> assembler = ConfigurationAssembler(
    ...     AssemblySources(data_source=CallableDataSource(lambda: sqlite3.connect(":memory:")))
    ... )
    >>> factory = assembler.build()
    >>> assembler.finalize()
"""

# Assigned before the subpackage imports below; runtime.assembler reads it at import time.
__version__ = "0.1.0"

from sessionkit.config import AssemblerSettings, SessionConfiguration
from sessionkit.errors import SessionKitError
from sessionkit.runtime import AssemblySources, ConfigurationAssembler, SessionFactory

__all__ = [
    "__version__",
    "AssemblerSettings",
    "AssemblySources",
    "ConfigurationAssembler",
    "SessionConfiguration",
    "SessionFactory",
    "SessionKitError",
]

"""
sessionkit Runtime Layer.

Turns raw configuration inputs into a frozen SessionFactory.

Design Principle:
    "Inputs flow forward, nothing flows back."

    1. SourceResolver picks the base configuration
    2. RegistrationPipeline applies aliases, plugins, handlers, drivers
    3. The descriptor is parsed, then caller defaults are re-applied
    4. MapperLoader parses mapper resources, fail-fast
    5. FactoryBuilder freezes the result

Components:
    - ConfigurationAssembler: orchestrates the build and finalize()
    - SourceResolver / PendingParse: base configuration selection
    - RegistrationPipeline: explicit and scanned registrations
    - MapperLoader: mapper resources
    - FactoryBuilder / SessionFactory: the frozen product

Usage:
    assembler = ConfigurationAssembler(AssemblySources(data_source=data_source))
    factory = assembler.build()
    assembler.finalize()
"""

from .assembler import AssemblySources, ConfigurationAssembler
from .builder import FactoryBuilder, SessionFactory
from .finalize import KeywordCaseTransformer, StatementTransformer, chain_transformers
from .mappers import MapperLoader
from .registration import RegistrationPipeline
from .resolver import PendingParse, SourceKind, SourceResolver

__all__ = [
    "AssemblySources",
    "ConfigurationAssembler",
    "FactoryBuilder",
    "KeywordCaseTransformer",
    "MapperLoader",
    "PendingParse",
    "RegistrationPipeline",
    "SessionFactory",
    "SourceKind",
    "SourceResolver",
    "StatementTransformer",
    "chain_transformers",
]

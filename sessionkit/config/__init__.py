"""
sessionkit Configuration

The configuration accumulator, its registries, and pydantic schemas.
"""

from .configuration import (
    DefaultObjectFactory,
    DefaultObjectWrapperFactory,
    SessionConfiguration,
    apply_column_style,
)
from .registry import (
    InterceptorChain,
    LanguageDriverRegistry,
    TypeAliasRegistry,
    TypeHandler,
    TypeHandlerRegistry,
    alias,
    import_string,
    mapped_types,
)
from .schemas import AssemblerSettings, DescriptorDocument, MapperDocument
from .statements import MappedStatement

__all__ = [
    "AssemblerSettings",
    "DefaultObjectFactory",
    "DefaultObjectWrapperFactory",
    "DescriptorDocument",
    "InterceptorChain",
    "LanguageDriverRegistry",
    "MappedStatement",
    "MapperDocument",
    "SessionConfiguration",
    "TypeAliasRegistry",
    "TypeHandler",
    "TypeHandlerRegistry",
    "alias",
    "apply_column_style",
    "import_string",
    "mapped_types",
]

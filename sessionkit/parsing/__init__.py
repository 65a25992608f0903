"""
sessionkit Parsing

Parser collaborator protocols and the default JSON grammar.
"""

from .base import DescriptorParser, MapperParser
from .json_parser import JsonDescriptorParser, JsonMapperParser, substitute_placeholders

__all__ = [
    "DescriptorParser",
    "JsonDescriptorParser",
    "JsonMapperParser",
    "MapperParser",
    "substitute_placeholders",
]

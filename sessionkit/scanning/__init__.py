"""
sessionkit Scanning

Package-pattern type discovery with metadata-first filtering.
"""

from .index import ClassMetadata, ModuleIndex, ModuleResource, reset_scan_caches
from .scanner import (
    CandidateFilter,
    ResourceScanner,
    ScanResult,
    alias_filter,
    handler_filter,
    tokenize_patterns,
)

__all__ = [
    "CandidateFilter",
    "ClassMetadata",
    "ModuleIndex",
    "ModuleResource",
    "ResourceScanner",
    "ScanResult",
    "alias_filter",
    "handler_filter",
    "reset_scan_caches",
    "tokenize_patterns",
]

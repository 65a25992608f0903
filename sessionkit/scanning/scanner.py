"""
Resource Scanner.

Discovers types in packages that satisfy a capability predicate.

Algorithm:
    1. Split the pattern string on commas, semicolons and whitespace
    2. Resolve each token to module files (ModuleIndex)
    3. Read class metadata from source and apply the cheap filter
    4. Import only the survivors; failures are recorded, never raised
    5. Collect types in a set, so overlapping patterns deduplicate

Callers compose structural predicates into a CandidateFilter:

    scanner = ResourceScanner()
    result = scanner.scan("myapp.models.*", alias_filter())
    for cls in result:
        configuration.type_alias_registry.register_alias(cls)
"""

from __future__ import annotations

import importlib
import inspect
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from sessionkit.errors import ScanLoadFailure

from .index import ClassMetadata, ModuleIndex

logger = logging.getLogger(__name__)

PATTERN_DELIMITERS = re.compile(r"[,;\s]+")


def tokenize_patterns(patterns: str | None) -> list[str]:
    """Split a delimiter-separated pattern string into tokens."""
    if not patterns:
        return []
    return [token for token in PATTERN_DELIMITERS.split(patterns.strip()) if token]


# =============================================================================
# Candidate filters
# =============================================================================


@dataclass(frozen=True)
class CandidateFilter:
    """
    Capability predicate applied in two stages.

    accepts_metadata() runs on source metadata and may only reject what
    the source alone proves. accepts_type() runs on the loaded class and
    makes the final decision.

    Attributes:
        assignable_to: Required supertype (checked after load)
        exclude_nested: Reject classes defined inside classes
        exclude_local: Reject classes defined inside functions
        exclude_interfaces: Reject typing.Protocol classes
        exclude_abstract: Reject abstract classes
    """

    assignable_to: type | None = None
    exclude_nested: bool = False
    exclude_local: bool = False
    exclude_interfaces: bool = False
    exclude_abstract: bool = False

    def accepts_metadata(self, metadata: ClassMetadata) -> bool:
        if self.exclude_nested and metadata.is_nested:
            return False
        if self.exclude_local and metadata.is_local:
            return False
        if self.exclude_interfaces and metadata.is_interface:
            return False
        if self.exclude_abstract and metadata.is_abstract:
            return False
        return True

    def accepts_type(self, cls: Any) -> bool:
        if not isinstance(cls, type):
            return False
        if self.assignable_to is not None and not issubclass(cls, self.assignable_to):
            return False
        if self.exclude_local and "<locals>" in cls.__qualname__:
            return False
        if self.exclude_nested and "." in cls.__qualname__:
            return False
        if self.exclude_interfaces and getattr(cls, "_is_protocol", False):
            return False
        if self.exclude_abstract and inspect.isabstract(cls):
            return False
        return True


def alias_filter(super_type: type | None = None) -> CandidateFilter:
    """Type alias candidates: no local, protocol or nested classes."""
    return CandidateFilter(
        assignable_to=super_type,
        exclude_nested=True,
        exclude_local=True,
        exclude_interfaces=True,
    )


def handler_filter() -> CandidateFilter:
    """Type handler candidates: concrete, non-local TypeHandler subclasses."""
    from sessionkit.config.registry import TypeHandler

    return CandidateFilter(
        assignable_to=TypeHandler,
        exclude_local=True,
        exclude_interfaces=True,
        exclude_abstract=True,
    )


# =============================================================================
# Scan result
# =============================================================================


@dataclass(frozen=True)
class ScanResult:
    """Discovered types plus the candidates that could not be loaded."""

    types: frozenset[type] = field(default_factory=frozenset)
    failures: tuple[ScanLoadFailure, ...] = ()

    def __iter__(self) -> Iterator[type]:
        return iter(self.types)

    def __len__(self) -> int:
        return len(self.types)

    def __contains__(self, cls: object) -> bool:
        return cls in self.types

    @property
    def failed_candidates(self) -> list[str]:
        return [failure.candidate for failure in self.failures]


# =============================================================================
# Scanner
# =============================================================================


class ResourceScanner:
    """
    Scans packages for types matching a CandidateFilter.

    One bad module or class never aborts a scan: it is logged, recorded
    in ScanResult.failures, and excluded.
    """

    def __init__(self, index: ModuleIndex | None = None):
        self._index = index or ModuleIndex()

    def scan(self, patterns: str | None, candidate_filter: CandidateFilter | None = None) -> ScanResult:
        """
        Scan packages for matching types.

        Args:
            patterns: Delimiter-separated package patterns
            candidate_filter: Capability predicate (accept everything if None)

        Returns:
            ScanResult with deduplicated types and recorded failures
        """
        tokens = tokenize_patterns(patterns)
        if not tokens:
            return ScanResult()

        candidate_filter = candidate_filter or CandidateFilter()
        found: set[type] = set()
        failures: list[ScanLoadFailure] = []

        for token in tokens:
            for resource in self._index.resolve(token):
                try:
                    metadata = self._index.read_metadata(resource)
                except (OSError, SyntaxError, ValueError) as e:
                    self._record(failures, resource.module, e)
                    continue

                candidates = [m for m in metadata if candidate_filter.accepts_metadata(m)]
                if not candidates:
                    continue

                try:
                    module = importlib.import_module(resource.module)
                except Exception as e:
                    for meta in candidates:
                        self._record(failures, meta.full_name, e)
                    continue

                for meta in candidates:
                    try:
                        cls = self._resolve_attribute(module, meta.qualname)
                    except Exception as e:
                        self._record(failures, meta.full_name, e)
                        continue
                    if candidate_filter.accepts_type(cls):
                        found.add(cls)

        logger.debug(
            f"[scanner] Scanned '{patterns}' | found={len(found)} | failures={len(failures)}"
        )
        return ScanResult(types=frozenset(found), failures=tuple(failures))

    @staticmethod
    def _resolve_attribute(module: Any, qualname: str) -> Any:
        obj = module
        for part in qualname.split("."):
            obj = getattr(obj, part)
        return obj

    @staticmethod
    def _record(failures: list[ScanLoadFailure], candidate: str, error: BaseException) -> None:
        failure = ScanLoadFailure(candidate, repr(error), cause=error)
        failures.append(failure)
        logger.warning(f"[scanner] Cannot load '{candidate}'. Caused by {error!r}")

"""
Module Index.

Resolves dotted package patterns into module files and reads class
metadata from those files without importing them.

Pattern syntax:
    a.b        -> a.b and every module below it
    a.b.*      -> every module below a.b (one segment, then recursive)
    a.*.model  -> a.<any>.model and everything below it
    a.**.model -> model packages at any depth under a

Metadata is read with `ast`, so a module whose import would fail (or
has side effects) can still be inspected and filtered cheaply.

Caching:
    Resolved patterns and parsed metadata are cached process-wide,
    keyed by pattern string and file path. Modules on sys.path do not
    change while the process runs, so there is no eviction.
"""

from __future__ import annotations

import ast
import importlib.util
import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ModuleResource:
    """A module file discovered for a pattern."""

    module: str
    path: Path


@dataclass(frozen=True, slots=True)
class ClassMetadata:
    """
    Class information read from source, before import.

    Attributes:
        module: Dotted module name
        qualname: Qualified name inside the module
        name: Simple class name
        bases: Base class expressions as written
        is_nested: Defined inside another class
        is_local: Defined inside a function
        is_interface: Derives from typing.Protocol
        is_abstract: Declares its own @abstractmethod members
    """

    module: str
    qualname: str
    name: str
    bases: tuple[str, ...] = ()
    is_nested: bool = False
    is_local: bool = False
    is_interface: bool = False
    is_abstract: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.module}.{self.qualname}"


# Process-wide caches
_cache_lock = threading.Lock()
_resolved_patterns: dict[str, tuple[ModuleResource, ...]] = {}
_module_metadata: dict[Path, tuple[ClassMetadata, ...]] = {}


def reset_scan_caches() -> None:
    """Clear the process-wide scan caches (for testing)."""
    with _cache_lock:
        _resolved_patterns.clear()
        _module_metadata.clear()


def pattern_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a dotted package pattern into a module-name regex."""
    segments = pattern.split(".")
    prefix = _wildcard_free_prefix(segments)
    parts = [re.escape(".".join(prefix))]

    for segment in segments[len(prefix) :]:
        if segment == "**":
            parts.append(r"(?:\.[^.]+)*")
        elif segment == "*":
            parts.append(r"\.[^.]+")
        else:
            parts.append(r"\." + re.escape(segment).replace(r"\*", "[^.]*"))

    return re.compile("^" + "".join(parts) + r"(?:\..+)?$")


def _wildcard_free_prefix(segments: list[str]) -> list[str]:
    prefix: list[str] = []
    for segment in segments:
        if "*" in segment:
            break
        prefix.append(segment)
    return prefix


def _base_name(node: ast.expr) -> str:
    if isinstance(node, ast.Subscript):
        node = node.value
    return ast.unparse(node).rsplit(".", 1)[-1]


def _has_abstract_members(node: ast.ClassDef) -> bool:
    for child in node.body:
        if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef)):
            for decorator in child.decorator_list:
                if _base_name(decorator) == "abstractmethod":
                    return True
    return False


class _ClassCollector(ast.NodeVisitor):
    """Collects ClassMetadata while tracking class/function nesting."""

    def __init__(self, module: str):
        self.module = module
        self.classes: list[ClassMetadata] = []
        self._scope: list[tuple[str, str]] = []  # (kind, name)

    def _qualname(self, name: str) -> str:
        parts: list[str] = []
        for kind, scope_name in self._scope:
            parts.append(scope_name)
            if kind == "function":
                parts.append("<locals>")
        parts.append(name)
        return ".".join(parts)

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        bases = tuple(ast.unparse(base) for base in node.bases)
        base_names = {_base_name(base) for base in node.bases}
        self.classes.append(
            ClassMetadata(
                module=self.module,
                qualname=self._qualname(node.name),
                name=node.name,
                bases=bases,
                is_nested=any(kind == "class" for kind, _ in self._scope),
                is_local=any(kind == "function" for kind, _ in self._scope),
                is_interface="Protocol" in base_names,
                is_abstract=_has_abstract_members(node),
            )
        )
        self._scope.append(("class", node.name))
        self.generic_visit(node)
        self._scope.pop()

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._scope.append(("function", node.name))
        self.generic_visit(node)
        self._scope.pop()

    visit_AsyncFunctionDef = visit_FunctionDef  # type: ignore[assignment]


class ModuleIndex:
    """
    Index of importable modules, queried by package pattern.

    Example:
        index = ModuleIndex()
        for resource in index.resolve("myapp.models.*"):
            for meta in index.read_metadata(resource):
                print(meta.full_name)
    """

    def resolve(self, pattern: str) -> tuple[ModuleResource, ...]:
        """
        Resolve a package pattern into module resources, sorted by name.

        Unknown or unimportable root packages resolve to nothing.
        """
        with _cache_lock:
            cached = _resolved_patterns.get(pattern)
        if cached is not None:
            return cached

        resources = self._walk(pattern)
        with _cache_lock:
            _resolved_patterns.setdefault(pattern, resources)
        logger.debug(f"[module_index] Pattern '{pattern}' resolved {len(resources)} modules")
        return resources

    def read_metadata(self, resource: ModuleResource) -> tuple[ClassMetadata, ...]:
        """
        Read class metadata from a module file without importing it.

        Raises:
            OSError: If the file cannot be read
            SyntaxError: If the source does not parse
            ValueError: If the source contains null bytes
        """
        with _cache_lock:
            cached = _module_metadata.get(resource.path)
        if cached is not None:
            return cached

        source = resource.path.read_bytes()
        tree = ast.parse(source, filename=str(resource.path))
        collector = _ClassCollector(resource.module)
        collector.visit(tree)
        metadata = tuple(collector.classes)

        with _cache_lock:
            _module_metadata.setdefault(resource.path, metadata)
        return metadata

    def _walk(self, pattern: str) -> tuple[ModuleResource, ...]:
        segments = pattern.split(".")
        prefix = _wildcard_free_prefix(segments)
        if not prefix or not all(part.isidentifier() for part in prefix):
            logger.warning(f"[module_index] Pattern needs a concrete root package: '{pattern}'")
            return ()

        root = ".".join(prefix)
        try:
            spec = importlib.util.find_spec(root)
        except Exception as e:
            logger.warning(f"[module_index] Cannot locate package '{root}': {e!r}")
            return ()
        if spec is None:
            logger.debug(f"[module_index] Package not found: '{root}'")
            return ()

        regex = pattern_to_regex(pattern)
        found: dict[str, ModuleResource] = {}

        if spec.submodule_search_locations is None:
            if spec.origin and spec.origin.endswith(".py") and regex.match(root):
                found[root] = ModuleResource(module=root, path=Path(spec.origin))
            return tuple(found.values())

        for location in spec.submodule_search_locations:
            base = Path(location)
            for path in base.rglob("*.py"):
                relative = path.relative_to(base).with_suffix("")
                parts = relative.parts
                if "__pycache__" in parts:
                    continue
                if parts[-1] == "__init__":
                    parts = parts[:-1]
                if not all(part.isidentifier() for part in parts):
                    continue
                module = ".".join((root, *parts))
                if regex.match(module):
                    found.setdefault(module, ModuleResource(module=module, path=path))

        return tuple(found[name] for name in sorted(found))

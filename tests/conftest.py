"""
Pytest configuration and fixtures for sessionkit tests.
"""

import itertools
import json
import logging
import re
import sqlite3
import sys
import textwrap
from pathlib import Path

import pytest

# Add the repository root to path for imports
# This allows `from sessionkit.runtime import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from sessionkit.environment import CallableDataSource  # noqa: E402
from sessionkit.logs import CATEGORY_LOGGERS  # noqa: E402
from sessionkit.scanning import reset_scan_caches  # noqa: E402

_package_counter = itertools.count()


@pytest.fixture(autouse=True)
def clean_scan_caches():
    """Reset process-wide scan caches around each test."""
    reset_scan_caches()
    yield
    reset_scan_caches()


@pytest.fixture(autouse=True)
def restore_category_levels():
    """Undo logging category toggles applied during a test."""
    loggers = [logging.getLogger(name) for name in CATEGORY_LOGGERS.values()]
    levels = [log.level for log in loggers]
    yield
    for log, level in zip(loggers, levels):
        log.setLevel(level)


@pytest.fixture
def make_package(tmp_path, monkeypatch):
    """
    Create an importable temporary package.

    Returns a factory taking {relative module path: source} and returning
    the generated (unique) root package name. Every directory gets an
    __init__.py.
    """

    def factory(modules: dict[str, str]) -> str:
        suffix = re.sub(r"\W", "_", tmp_path.name)
        name = f"skpkg_{next(_package_counter)}_{suffix}"
        root = tmp_path / name
        root.mkdir()
        (root / "__init__.py").write_text("")

        for relative, source in modules.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            parent = path.parent
            while parent != root:
                init = parent / "__init__.py"
                if not init.exists():
                    init.write_text("")
                parent = parent.parent
            path.write_text(textwrap.dedent(source))

        monkeypatch.syspath_prepend(str(tmp_path))
        return name

    return factory


@pytest.fixture
def write_json(tmp_path):
    """Write a JSON document under tmp_path and return its path."""

    def factory(relative: str, document) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(document))
        return path

    return factory


@pytest.fixture
def memory_data_source():
    """Data source handing out in-memory sqlite connections."""
    return CallableDataSource(lambda: sqlite3.connect(":memory:"), name="sqlite-memory")


@pytest.fixture
def user_mapper():
    """A mapper document with generic and vendor-specific statements."""
    return {
        "namespace": "app.UserMapper",
        "statements": [
            {"id": "findAll", "kind": "select", "sql": "select * from users"},
            {
                "id": "findAll",
                "kind": "select",
                "sql": "select * from `users`",
                "database_id": "mysql",
            },
            {
                "id": "findAll",
                "kind": "select",
                "sql": "select * from main.users",
                "database_id": "sqlite",
            },
            {"id": "count", "kind": "select", "sql": "select count(*) from users"},
        ],
    }

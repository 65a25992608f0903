"""
Environment collaborators.

The environment ties a configuration to a live data source and a
transaction strategy. None of this executes SQL; it only describes the
runtime the factory will hand to sessions.

Components:
    - DataSource: anything with connect() returning a DB-API connection
    - TransactionAwareDataSource: proxy that the assembler unwraps
    - TransactionFactory / ManagedTransactionFactory: transaction strategy
    - DatabaseIdProvider / VendorDatabaseIdProvider: vendor identification
    - Environment: frozen (name, transaction factory, data source) triple

Usage:
    provider = VendorDatabaseIdProvider({"sqlite": "sqlite", "MySQL": "mysql"})
    database_id = provider.get_database_id(data_source)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


# =============================================================================
# Data Sources
# =============================================================================


@runtime_checkable
class DataSource(Protocol):
    """Protocol for a connection source."""

    def connect(self) -> Any:
        """Open a new DB-API connection."""
        ...


class CallableDataSource:
    """
    Adapts a zero-argument connection factory into a DataSource.

    Example:
        data_source = CallableDataSource(lambda: sqlite3.connect(":memory:"))
    """

    def __init__(self, factory: Callable[[], Any], *, name: str = "callable"):
        self._factory = factory
        self._name = name

    def connect(self) -> Any:
        return self._factory()

    def __repr__(self) -> str:
        return f"CallableDataSource({self._name!r})"


class TransactionAwareDataSource:
    """
    Proxy around a target data source.

    Transactions must be managed for the underlying target, so the
    assembler always unwraps this proxy before using the data source.
    """

    def __init__(self, target: DataSource):
        self._target = target

    @property
    def target(self) -> DataSource:
        return self._target

    def connect(self) -> Any:
        return self._target.connect()


def unwrap_data_source(data_source: Any) -> Any:
    """Return the target of a TransactionAwareDataSource, else the input."""
    if isinstance(data_source, TransactionAwareDataSource):
        return data_source.target
    return data_source


# =============================================================================
# Transactions
# =============================================================================


@runtime_checkable
class TransactionFactory(Protocol):
    """Protocol for creating transactions bound to a data source."""

    def new_transaction(self, data_source: Any) -> Any:
        ...


class ManagedTransaction:
    """
    Transaction whose commit and rollback are owned by the host.

    Only the connection is handled here: opened lazily, closed on close().
    """

    def __init__(self, data_source: Any):
        self._data_source = data_source
        self._connection: Any = None

    @property
    def connection(self) -> Any:
        if self._connection is None:
            self._connection = self._data_source.connect()
        return self._connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None


class ManagedTransactionFactory:
    """Default transaction strategy: the host manages commit and rollback."""

    def new_transaction(self, data_source: Any) -> ManagedTransaction:
        return ManagedTransaction(data_source)

    def __repr__(self) -> str:
        return "ManagedTransactionFactory()"


# =============================================================================
# Database Id
# =============================================================================


@runtime_checkable
class DatabaseIdProvider(Protocol):
    """Protocol for resolving a vendor id from a live data source."""

    def get_database_id(self, data_source: Any) -> str | None:
        ...


def get_database_product_name(data_source: Any) -> str:
    """
    Identify the database product behind a data source.

    Opens a connection, prefers a `product_name` attribute on the
    connection, and falls back to the top-level module of the
    connection's class (sqlite3, psycopg, pymysql, ...).
    """
    connection = data_source.connect()
    try:
        product_name = getattr(connection, "product_name", None)
        if product_name:
            return str(product_name)
        return type(connection).__module__.split(".")[0]
    finally:
        close = getattr(connection, "close", None)
        if callable(close):
            close()


class VendorDatabaseIdProvider:
    """
    Maps the data source's product name to a short database id.

    With no mappings the raw product name is returned. With mappings, the
    first key contained in the product name wins; no match returns None.

    Example:
        provider = VendorDatabaseIdProvider({"MySQL": "mysql", "sqlite": "sqlite"})
    """

    def __init__(self, mappings: Mapping[str, str] | None = None):
        self._mappings = dict(mappings or {})

    def get_database_id(self, data_source: Any) -> str | None:
        if data_source is None:
            raise ValueError("data_source cannot be None")

        product_name = get_database_product_name(data_source)
        if not self._mappings:
            return product_name

        for key, value in self._mappings.items():
            if key in product_name:
                return value

        logger.debug(f"[database_id] No mapping for product '{product_name}'")
        return None


# =============================================================================
# Environment
# =============================================================================


@dataclass(frozen=True, slots=True)
class Environment:
    """Runtime environment attached to a configuration."""

    name: str
    transaction_factory: Any = None
    data_source: Any = None

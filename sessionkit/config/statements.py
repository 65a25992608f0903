"""
Mapped statement model.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from sessionkit.scripting import SqlSource


@dataclass(frozen=True, slots=True)
class MappedStatement:
    """
    One statement definition merged into a configuration.

    Attributes:
        id: Statement id within its namespace
        namespace: Mapper namespace
        kind: select, insert, update or delete
        sql_source: Compiled statement text
        database_id: Vendor id this variant targets (None = generic)
        resource: Identity of the mapper resource it came from
        result_type: Resolved result type, if declared
        lang: Driver class name used to compile the statement
    """

    id: str
    namespace: str
    kind: str
    sql_source: SqlSource
    database_id: str | None = None
    resource: str = ""
    result_type: type | None = None
    lang: str = ""

    @property
    def full_id(self) -> str:
        return f"{self.namespace}.{self.id}" if self.namespace else self.id

    @property
    def sql(self) -> str:
        return self.sql_source.sql

    def with_sql(self, sql: str) -> MappedStatement:
        """Return a copy with rewritten SQL text."""
        return replace(self, sql_source=SqlSource(sql=sql, driver=self.sql_source.driver))

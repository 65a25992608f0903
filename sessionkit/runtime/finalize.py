"""
Statement Transformers.

Deferred statement rewrites run by ConfigurationAssembler.finalize()
once the host is ready.

All transformers run inside a single rewrite pass over the frozen
configuration: for each statement the transformers are applied in
order, and the new statement map replaces the old one in one step.

Usage:
    class TrimTrailingSemicolon:
        def transform(self, statement, configuration):
            return statement.with_sql(statement.sql.rstrip(";"))

    assembler = ConfigurationAssembler(
        AssemblySources(..., statement_transformers=(TrimTrailingSemicolon(),))
    )
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sessionkit.errors import ParseFailure

if TYPE_CHECKING:
    from sessionkit.config.configuration import SessionConfiguration
    from sessionkit.config.statements import MappedStatement

logger = logging.getLogger(__name__)


@runtime_checkable
class StatementTransformer(Protocol):
    """Rewrites one mapped statement."""

    def transform(
        self,
        statement: MappedStatement,
        configuration: SessionConfiguration,
    ) -> MappedStatement:
        ...


# =============================================================================
# Keyword case
# =============================================================================

SQL_KEYWORDS = frozenset(
    {
        "select", "from", "where", "insert", "into", "values", "update", "set",
        "delete", "join", "left", "right", "inner", "outer", "cross", "on",
        "and", "or", "not", "null", "is", "in", "as", "order", "by", "group",
        "having", "limit", "offset", "distinct", "union", "all", "case", "when",
        "then", "else", "end", "like", "between", "exists", "asc", "desc",
    }
)  # fmt: skip

# Quoted literals and identifiers are matched first so they pass through untouched.
_TOKEN = re.compile(r"'(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"|\b[A-Za-z_]+\b")


class KeywordCaseTransformer:
    """Uppercases SQL keywords outside quoted text."""

    def __init__(self, keywords: frozenset[str] = SQL_KEYWORDS):
        self._keywords = keywords

    def _replace(self, match: re.Match[str]) -> str:
        token = match.group(0)
        if token.lower() in self._keywords:
            return token.upper()
        return token

    def transform(
        self,
        statement: MappedStatement,
        configuration: SessionConfiguration,
    ) -> MappedStatement:
        sql = _TOKEN.sub(self._replace, statement.sql)
        if sql == statement.sql:
            return statement
        return statement.with_sql(sql)

    def __repr__(self) -> str:
        return "KeywordCaseTransformer()"


# =============================================================================
# Rewrite pass
# =============================================================================


def chain_transformers(
    transformers: Sequence[StatementTransformer],
    configuration: SessionConfiguration,
) -> Callable[[MappedStatement], MappedStatement]:
    """
    Compose transformers into one rewrite function.

    A failing transformer is reported as ParseFailure against the
    resource the statement came from.
    """

    def rewrite(statement: MappedStatement) -> MappedStatement:
        for transformer in transformers:
            try:
                statement = transformer.transform(statement, configuration)
            except Exception as e:
                raise ParseFailure(
                    f"Statement '{statement.full_id}' failed in {transformer!r}: {e}",
                    resource=statement.resource or None,
                    cause=e,
                ) from e
        return statement

    return rewrite

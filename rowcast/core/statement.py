"""Statement classification.

A statement is routed to the exec path when its first keyword is
``INSERT``, ``UPDATE`` or ``DELETE`` and to the query path otherwise.
"""

from enum import Enum
from typing import Any, Final

from rowcast.core.parameters import flatten_parameters
from rowcast.exceptions import StatementPreconditionError

__all__ = ("KEYWORD_WIDTH", "MUTATION_KEYWORDS", "OperationType", "Statement", "classify_statement")

KEYWORD_WIDTH: Final[int] = 6
MUTATION_KEYWORDS: Final[frozenset[str]] = frozenset({"INSERT", "UPDATE", "DELETE"})


class OperationType(str, Enum):
    """Execution path a statement takes."""

    MUTATION = "mutation"
    QUERY = "query"


def _leading_text(sql: str) -> str:
    text = sql.strip()
    while text.startswith("("):
        text = text[1:].lstrip()
    return text


def classify_statement(sql: str) -> OperationType:
    """Classify ``sql`` by the first six characters of its trimmed, paren-stripped text.

    Raises:
        StatementPreconditionError: If fewer than six characters remain.

    Examples:
        >>> classify_statement("  (INSERT INTO t VALUES (1))  ")
        <OperationType.MUTATION: 'mutation'>
        >>> classify_statement("select 1")
        <OperationType.QUERY: 'query'>
    """
    text = _leading_text(sql)
    if len(text) < KEYWORD_WIDTH:
        raise StatementPreconditionError(sql=sql)
    if text[:KEYWORD_WIDTH].upper() in MUTATION_KEYWORDS:
        return OperationType.MUTATION
    return OperationType.QUERY


class Statement:
    """SQL text plus its flattened positional arguments."""

    __slots__ = ("_operation", "args", "sql")

    def __init__(self, sql: str, *args: Any) -> None:
        self.sql = sql.strip()
        self.args = tuple(flatten_parameters(*args))
        self._operation = classify_statement(self.sql)

    @property
    def operation(self) -> OperationType:
        return self._operation

    @property
    def is_mutation(self) -> bool:
        return self._operation is OperationType.MUTATION

    def __repr__(self) -> str:
        return f"Statement(sql={self.sql!r}, args={self.args!r}, operation={self._operation.value!r})"

"""Tests for statement classification."""

import pytest

from rowcast.core.statement import OperationType, Statement, classify_statement
from rowcast.exceptions import PreconditionError, StatementPreconditionError


@pytest.mark.parametrize(
    ("sql", "expected"),
    [
        ("  (INSERT INTO t VALUES (1))  ", OperationType.MUTATION),
        ("select 1", OperationType.QUERY),
        ("SELECT * FROM users", OperationType.QUERY),
        ("insert into users (id) values (?)", OperationType.MUTATION),
        ("Update users SET name = ?", OperationType.MUTATION),
        ("DELETE FROM users", OperationType.MUTATION),
        ("((delete from t))", OperationType.MUTATION),
        ("\n\tUPDATE t SET a = 1", OperationType.MUTATION),
        ("WITH x AS (SELECT 1) SELECT * FROM x", OperationType.QUERY),
        ("REPLACE INTO t VALUES (1)", OperationType.QUERY),
        ("SHOW TABLES", OperationType.QUERY),
    ],
)
def test_classify_statement(sql: str, expected: OperationType) -> None:
    """Test the first keyword decides the execution path, case-insensitively."""
    assert classify_statement(sql) is expected


@pytest.mark.parametrize("sql", ["", "   ", "SHOW", "(((  x", "  (abc)  "])
def test_short_statement_is_rejected(sql: str) -> None:
    """Test statements with fewer than six leading characters raise a precondition error."""
    with pytest.raises(StatementPreconditionError) as exc_info:
        classify_statement(sql)

    assert isinstance(exc_info.value, PreconditionError)
    assert exc_info.value.sql == sql


def test_statement_trims_and_flattens_arguments() -> None:
    """Test Statement keeps trimmed SQL and a flat argument tuple."""
    stmt = Statement("  SELECT * FROM t WHERE id IN (?, ?, ?) AND name = ?  ", [1, (2, 3)], "bob")

    assert stmt.sql == "SELECT * FROM t WHERE id IN (?, ?, ?) AND name = ?"
    assert stmt.args == (1, 2, 3, "bob")
    assert stmt.operation is OperationType.QUERY
    assert not stmt.is_mutation
    assert "query" in repr(stmt)


def test_statement_mutation_flag() -> None:
    """Test Statement exposes the mutation flag."""
    assert Statement("DELETE FROM t WHERE id = ?", 1).is_mutation

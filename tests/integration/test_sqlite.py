"""End-to-end tests against an in-memory SQLite database."""

import sqlite3
from collections.abc import Generator
from dataclasses import dataclass, field

import msgspec
import pytest

from rowcast import ExecutionConfig, ParameterStyle, execute, insert_statement, record_to_parameters
from rowcast.adapters.dbapi import DBAPIClient
from rowcast.exceptions import ConnectionClosedError, ParameterCountMismatchError, SchemaDecodeError

pytestmark = pytest.mark.integration


@dataclass
class Product:
    id: int
    name: str = field(metadata={"db": "product_name"})
    price: float = 0.0
    in_stock: int = 0


class ProductStruct(msgspec.Struct):
    id: int
    name: str = msgspec.field(name="product_name")
    price: float = 0.0


@pytest.fixture
def connection() -> Generator[sqlite3.Connection, None, None]:
    conn = sqlite3.connect(":memory:")
    conn.execute(
        "CREATE TABLE products (id INTEGER PRIMARY KEY, product_name TEXT NOT NULL, price REAL, in_stock INTEGER)"
    )
    yield conn
    conn.close()


@pytest.fixture
def client(connection: sqlite3.Connection) -> DBAPIClient:
    return DBAPIClient(connection)


def _seed(client: DBAPIClient) -> None:
    products = [Product(1, "apple", 0.5, 1), Product(2, "pear", 0.75, 0), Product(3, "plum", 1.25, 1)]
    sql = insert_statement("products", ["id", "product_name", "price", "in_stock"], rows=len(products))
    execute(None, client, sql, *(record_to_parameters(product) for product in products))


def test_bulk_insert(client: DBAPIClient) -> None:
    """Test a templated multi-row insert reports the affected rows."""
    sql = insert_statement("products", ["id", "product_name"], rows=2, style=ParameterStyle.QMARK)

    result = execute(None, client, sql, [10, "fig"], [11, "kiwi"])

    assert result.rows_affected == 2
    assert result.last_insert_id == 11


def test_query_into_dataclass(client: DBAPIClient) -> None:
    _seed(client)

    config = ExecutionConfig(schema_type=Product)

    products = execute(None, client, "SELECT * FROM products WHERE id IN (?, ?) ORDER BY id", [1, 3], config=config)

    assert products == [Product(1, "apple", 0.5, 1), Product(3, "plum", 1.25, 1)]


def test_query_into_struct_single(client: DBAPIClient) -> None:
    _seed(client)

    product = execute(
        None,
        client,
        "SELECT id, product_name, price FROM products WHERE id = ?",
        2,
        config=ExecutionConfig(schema_type=ProductStruct, single=True),
    )

    assert product == ProductStruct(2, "pear", 0.75)


def test_single_without_rows(client: DBAPIClient) -> None:
    config = ExecutionConfig(schema_type=Product, single=True)
    assert execute(None, client, "SELECT * FROM products WHERE id = ?", 404, config=config) is None


def test_untyped_columns_decode_as_text(client: DBAPIClient) -> None:
    """Test SQLite reports no declared types, so canonical maps hold text."""
    _seed(client)

    rows = execute(None, client, "SELECT id, price FROM products ORDER BY id LIMIT 1")

    assert rows == [{"id": "1", "price": "0.5"}]


def test_update_and_delete(client: DBAPIClient) -> None:
    _seed(client)

    assert execute(None, client, "UPDATE products SET price = ? WHERE in_stock = ?", 2.0, True).rows_affected == 2
    assert execute(None, client, "DELETE FROM products WHERE id = ?", 1).rows_affected == 1


def test_schema_failure(client: DBAPIClient) -> None:
    _seed(client)

    with pytest.raises(SchemaDecodeError):
        execute(None, client, "SELECT product_name AS id FROM products", config=ExecutionConfig(schema_type=Product))


def test_parameter_count_mismatch(client: DBAPIClient) -> None:
    with pytest.raises(ParameterCountMismatchError):
        execute(None, client, "INSERT INTO products (id, product_name) VALUES (?, ?)", 1)


def test_closed_connection(connection: sqlite3.Connection, client: DBAPIClient) -> None:
    connection.close()

    with pytest.raises(ConnectionClosedError):
        execute(None, client, "SELECT * FROM products")

from __future__ import annotations

import pytest
import sqlalchemy as sa
from sqlalchemy import text

from catalog_crawler.crawl.inclusion import ExcludeAll, InclusionRule
from catalog_crawler.crawl.models import Column, SchemaReference, Table, TableKey
from catalog_crawler.crawl.query import (
    Query,
    columns_list,
    expand_template,
    extract_template_variables,
)


def _orders_table() -> Table:
    return Table(
        key=TableKey.of(SchemaReference(None, "public"), "orders"),
        columns=[
            Column("total", 2, "NUMERIC(10, 2)"),
            Column("id", 1, "INTEGER", is_pk=True),
            Column("notes", 3, "CLOB"),
        ],
    )


def test_expand_template_leaves_unknown_placeholders() -> None:
    sql = expand_template("SELECT ${columns} FROM ${table}", {"table": "public.orders"})
    assert sql == "SELECT ${columns} FROM public.orders"


def test_expand_template_blanks_unresolved_when_requested() -> None:
    sql = expand_template("SELECT * FROM t WHERE s = '${missing}'", {}, blank_unresolved=True)
    assert sql == "SELECT * FROM t WHERE s = ''"


def test_expand_template_never_raises_on_odd_input() -> None:
    assert expand_template("", {"a": "b"}) == ""
    assert expand_template("${", {"a": "b"}) == "${"
    assert expand_template("${a}${a}", {"a": "x"}) == "xx"


def test_extract_template_variables() -> None:
    assert extract_template_variables("SELECT ${columns} FROM ${table} -- ${table}") == {
        "columns",
        "table",
    }
    assert extract_template_variables("SELECT 1") == set()


@pytest.mark.parametrize(
    "sql,expected",
    [
        ("SELECT COUNT(*) FROM ${table}", True),
        ("SELECT * FROM information_schema.routines WHERE s ~ '${schemas}'", False),
        ("SELECT '${tablename}'", False),
    ],
)
def test_is_query_over(sql: str, expected: bool) -> None:
    assert Query("q", sql).is_query_over() is expected


def test_query_uses_name_when_sql_is_blank() -> None:
    query = Query("SELECT 1", "  ")
    assert query.query == "SELECT 1"
    with pytest.raises(ValueError, match="No SQL"):
        Query("", None)


def test_get_query_substitutes_schema_pattern_then_context() -> None:
    query = Query("routines", "WHERE schema ~ '${schemas}' AND owner = '${owner}' ${other}")
    rule = InclusionRule.from_patterns("public|sales")

    sql = query.get_query(rule, {"owner": "admin"})

    assert sql == "WHERE schema ~ 'public|sales' AND owner = 'admin' "


def test_get_query_without_schema_pattern_blanks_placeholder() -> None:
    query = Query("routines", "WHERE schema ~ '${schemas}'")
    assert query.get_query(ExcludeAll()) == "WHERE schema ~ ''"


def test_get_query_for_table_orders_columns() -> None:
    query = Query("rows", "SELECT ${columns} FROM ${table} ORDER BY ${orderbycolumns}")
    table = _orders_table()

    assert (
        query.get_query_for_table(table)
        == "SELECT id, total, notes FROM public.orders ORDER BY id, total"
    )
    assert (
        query.get_query_for_table(table, alphabetical_columns=True)
        == "SELECT id, notes, total FROM public.orders ORDER BY id, total"
    )


def test_get_query_for_table_exposes_names_and_type() -> None:
    query = Query("meta", "${schema}|${tablename}|${tabletype}|${unknown}")
    assert query.get_query_for_table(_orders_table()) == "public|orders|TABLE|"


def test_get_query_for_table_fills_schema_pattern() -> None:
    query = Query(
        "triggers",
        "SELECT * FROM t WHERE tbl = '${tablename}' AND s ~ '^(${schemas})$' ${owner}",
    )
    rule = InclusionRule.from_patterns("public|sales")

    sql = query.get_query_for_table(
        _orders_table(), schema_inclusion_rule=rule, context={"owner": "-- admin"}
    )

    assert sql == "SELECT * FROM t WHERE tbl = 'orders' AND s ~ '^(public|sales)$' -- admin"
    assert query.get_query_for_table(_orders_table()).endswith("s ~ '^()$' ")


def test_columns_list_omits_large_objects() -> None:
    columns = [Column("id", 1, "INTEGER"), Column("photo", 2, "BLOB"), Column("doc", 3, "bytea")]
    assert columns_list(columns) == "id, photo, doc"
    assert columns_list(columns, omit_large_objects=True) == "id"


def test_execute_returns_rows_and_scalar() -> None:
    engine = sa.create_engine("sqlite+pysqlite:///:memory:")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE orders(id INTEGER PRIMARY KEY, total NUMERIC)"))
        conn.execute(text("INSERT INTO orders(total) VALUES (1), (2), (3)"))

    table = Table(
        key=TableKey.of(SchemaReference(None, "main"), "orders"),
        columns=[Column("id", 1, "INTEGER"), Column("total", 2, "NUMERIC")],
    )
    with engine.connect() as conn:
        rows = Query("rows", "SELECT ${columns} FROM ${table} ORDER BY id").execute_for_table(
            conn, table
        )
        count = Query("count", "SELECT COUNT(*) FROM ${table}").execute_for_scalar(conn, table)

    assert [row["id"] for row in rows] == [1, 2, 3]
    assert count == 3

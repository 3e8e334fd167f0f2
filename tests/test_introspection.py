from __future__ import annotations

import pytest
import sqlalchemy as sa
from sqlalchemy import text

from catalog_crawler.crawl.constants import InformationSchemaKey
from catalog_crawler.crawl.information_schema import InformationSchemaViews
from catalog_crawler.crawl.introspection import FetchStatus, InspectorMetadataSource
from catalog_crawler.crawl.models import SchemaReference

MAIN = SchemaReference(None, "main")


def _mk_engine() -> sa.Engine:
    engine = sa.create_engine("sqlite+pysqlite:///:memory:")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE parent(id INTEGER PRIMARY KEY, label TEXT)"))
        conn.execute(
            text(
                "CREATE TABLE child(id INTEGER PRIMARY KEY, "
                "parent_id INTEGER NOT NULL REFERENCES parent(id))"
            )
        )
        conn.execute(text("CREATE VIEW labels AS SELECT label FROM parent"))
    return engine


def test_inspector_source_reads_sqlite_metadata() -> None:
    source = InspectorMetadataSource(_mk_engine())

    assert source.dialect_name == "sqlite"
    assert source.list_schemas() == [MAIN]
    assert sorted(source.list_tables(MAIN)) == [
        ("child", "TABLE"),
        ("labels", "VIEW"),
        ("parent", "TABLE"),
    ]
    assert ("labels", "VIEW") not in source.list_tables(MAIN, include_views=False)

    columns = source.get_columns(MAIN, "child")
    assert [column["name"] for column in columns] == ["id", "parent_id"]
    assert columns[1]["nullable"] is False
    assert source.get_primary_key(MAIN, "child") == ["id"]

    (foreign_key,) = source.get_foreign_keys(MAIN, "child")
    assert foreign_key["referred_table"] == "parent"
    assert foreign_key["constrained_columns"] == ["parent_id"]
    assert foreign_key["referred_columns"] == ["id"]


@pytest.mark.parametrize(
    "category",
    [
        InformationSchemaKey.FUNCTIONS,
        InformationSchemaKey.PROCEDURES,
        InformationSchemaKey.TRIGGERS,
    ],
)
def test_inspector_source_reports_unsupported_categories(
    category: InformationSchemaKey,
) -> None:
    result = InspectorMetadataSource(_mk_engine()).fetch(category, MAIN)
    assert result.status is FetchStatus.UNSUPPORTED
    assert result.rows == []


def test_excluded_schemas_are_not_listed() -> None:
    source = InspectorMetadataSource(_mk_engine(), exclude_schemas=["MAIN"])
    assert source.list_schemas() == []


def test_views_for_dialect() -> None:
    postgresql = InformationSchemaViews.for_dialect("postgresql")
    assert all(postgresql.has_query(key) for key in InformationSchemaKey)

    sqlite = InformationSchemaViews.for_dialect("sqlite")
    assert sqlite.has_query("triggers")
    assert sqlite.has_query(InformationSchemaKey.ROW_COUNTS)
    assert not sqlite.has_query(InformationSchemaKey.FUNCTIONS)

    assert InformationSchemaViews.for_dialect("oracle").queries == {}


def test_views_overrides_replace_and_remove() -> None:
    views = InformationSchemaViews.for_dialect(
        "sqlite", {"functions": "SELECT 1 AS FUNCTION_NAME", "triggers": ""}
    )

    query = views.get_query(InformationSchemaKey.FUNCTIONS)
    assert query is not None
    assert query.name == "FUNCTIONS"
    assert query.query == "SELECT 1 AS FUNCTION_NAME"
    assert views.get_query("TRIGGERS") is None

    row_counts = views.get_query(InformationSchemaKey.ROW_COUNTS)
    assert row_counts is not None and row_counts.is_query_over()

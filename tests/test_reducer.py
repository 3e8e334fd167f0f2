from __future__ import annotations

import pytest

from catalog_crawler.crawl.constants import TableRelationshipType
from catalog_crawler.crawl.exceptions import ConfigurationError
from catalog_crawler.crawl.inclusion import InclusionRule, InclusionRuleFilter
from catalog_crawler.crawl.models import (
    Catalog,
    Column,
    ColumnReference,
    CrawlerConfig,
    FilterOptions,
    ForeignKey,
    GrepOptions,
    SchemaReference,
    Table,
    TableKey,
)
from catalog_crawler.crawl.reducer import TablesReducer

PUBLIC = SchemaReference(None, "public")


def _key(name: str) -> TableKey:
    return TableKey.of(PUBLIC, name)


def _catalog(tables: dict[str, list[str]], partial: tuple[str, ...] = ()) -> Catalog:
    """Build a catalog from ``{child: [parents...]}``, one foreign key per parent."""
    catalog = Catalog()
    catalog.add_schema(PUBLIC)
    for name, parents in tables.items():
        table = Table(key=_key(name), columns=[Column("id", 1, "INTEGER", is_pk=True)])
        for parent in parents:
            reference = ColumnReference(_key(name), f"{parent}_id", _key(parent), "id")
            table.foreign_keys.append(ForeignKey(f"fk_{name}_{parent}", [reference]))
        catalog.add_table(table)
    for name in partial:
        catalog.add_table(Table.partial(_key(name)))
    catalog.reindex()
    return catalog


def _reducer(
    include: str, *, child_depth: int = 0, parent_depth: int = 0, only_matching: bool = False
) -> TablesReducer:
    return TablesReducer(
        FilterOptions(child_table_filter_depth=child_depth, parent_table_filter_depth=parent_depth),
        GrepOptions(only_matching=only_matching),
        InclusionRuleFilter(InclusionRule.from_patterns(include)),
    )


def _retained(catalog: Catalog) -> set[str]:
    return {table.name for table in catalog.tables}


# A chain a <- b <- c <- d (d references c, c references b, b references a)
CHAIN = {"a": [], "b": ["a"], "c": ["b"], "d": ["c"]}


def test_depth_zero_keeps_exactly_the_seeds() -> None:
    catalog = _catalog(CHAIN)
    _reducer(r"public\.(b|c)").reduce(catalog)
    assert _retained(catalog) == {"b", "c"}


def test_parent_expansion_follows_referenced_tables() -> None:
    catalog = _catalog({"orders": [], "order_items": ["orders"]})
    _reducer(r"public\.order_items", parent_depth=1).reduce(catalog)
    assert _retained(catalog) == {"order_items", "orders"}


@pytest.mark.parametrize(
    "child_depth,expected",
    [
        (0, {"a"}),
        (1, {"a", "b"}),
        (2, {"a", "b", "c"}),
        (3, {"a", "b", "c", "d"}),
        (9, {"a", "b", "c", "d"}),
    ],
)
def test_child_expansion_adds_one_hop_per_depth(child_depth: int, expected: set[str]) -> None:
    catalog = _catalog(CHAIN)
    _reducer(r"public\.a", child_depth=child_depth).reduce(catalog)
    assert _retained(catalog) == expected


def test_child_and_parent_depths_are_independent() -> None:
    catalog = _catalog(CHAIN)
    _reducer(r"public\.c", child_depth=1, parent_depth=2).reduce(catalog)
    assert _retained(catalog) == {"a", "b", "c", "d"}

    catalog = _catalog(CHAIN)
    _reducer(r"public\.c", child_depth=0, parent_depth=1).reduce(catalog)
    assert _retained(catalog) == {"b", "c"}


def test_filtered_tables_are_marked_not_deleted() -> None:
    catalog = _catalog(CHAIN)
    _reducer(r"public\.b").reduce(catalog)

    a = catalog.lookup_table(_key("a"), include_filtered=True)
    b = catalog.lookup_table(_key("b"))
    assert a is not None and a.filtered_out is True
    assert b is not None and b.filtered_out is False
    assert catalog.lookup_table(_key("a")) is None
    assert len(catalog.tables.keys(include_filtered=True)) == 4


def test_only_matching_marks_no_grep_match() -> None:
    catalog = _catalog(CHAIN)
    _reducer(r"public\.b", only_matching=True).reduce(catalog)

    for name in ("a", "c", "d"):
        table = catalog.lookup_table(_key(name), include_filtered=True)
        assert table is not None
        assert table.filtered_out is True
        assert table.no_grep_match is True
    b = catalog.lookup_table(_key("b"))
    assert b is not None and b.no_grep_match is False


def test_partial_tables_are_never_retained_or_traversed() -> None:
    # orders references the partial table "currency", which references nothing
    catalog = _catalog({"orders": ["currency"], "items": ["orders"]}, partial=("currency",))
    _reducer(".*", parent_depth=3).reduce(catalog)

    assert _retained(catalog) == {"orders", "items"}
    currency = catalog.lookup_table(_key("currency"), include_filtered=True)
    assert currency is not None
    assert currency.is_partial and currency.filtered_out is True


def test_every_filtered_table_is_partial_or_outside_keep_set() -> None:
    tables = {"a": [], "b": ["a"], "c": ["b", "x"], "d": ["c"], "e": []}
    catalog = _catalog(tables, partial=("x",))
    reducer = _reducer(r"public\.c", parent_depth=1)

    graph = reducer.build_graph(catalog.tables.values(include_filtered=True))
    keep = reducer.keep_set(graph, catalog.tables.values(include_filtered=True))
    reducer.reduce(catalog)

    for table in catalog.tables.values(include_filtered=True):
        if table.filtered_out:
            assert table.is_partial or table.key not in keep
        else:
            assert not table.is_partial
    assert _retained(catalog) == {"b", "c"}


def test_reduction_is_idempotent() -> None:
    tables = {"a": [], "b": ["a"], "c": ["b"], "d": ["c", "a"], "e": ["e"]}
    catalog = _catalog(tables)
    reducer = _reducer(r"public\.(b|e)", child_depth=1, parent_depth=1)

    reducer.reduce(catalog)
    first = _retained(catalog)
    flags = {
        table.name: table.filtered_out for table in catalog.tables.values(include_filtered=True)
    }
    reducer.reduce(catalog)

    assert _retained(catalog) == first == {"a", "b", "c", "e"}
    assert {
        table.name: table.filtered_out for table in catalog.tables.values(include_filtered=True)
    } == flags


def test_foreign_key_consistency() -> None:
    catalog = _catalog(CHAIN)
    _reducer(r"public\.(b|c)").reduce(catalog)

    for table in catalog.tables:
        for foreign_key in catalog.exported_foreign_keys(table.key):
            child = catalog.lookup_table(foreign_key.child_table, include_filtered=True)
            assert child is not None
            if child.key not in catalog.tables:
                assert child.filtered_out is True
        for foreign_key in catalog.imported_foreign_keys(table.key):
            parent = catalog.lookup_table(foreign_key.parent_table, include_filtered=True)
            assert parent is not None
            if parent.key not in catalog.tables:
                assert parent.filtered_out is True


def test_schema_index_is_rebuilt_after_reduction() -> None:
    catalog = _catalog(CHAIN)
    assert len(catalog.tables_in_schema(PUBLIC)) == 4
    _reducer(r"public\.a").reduce(catalog)
    assert [table.name for table in catalog.tables_in_schema(PUBLIC)] == ["a"]


def test_related_tables_include_filtered_tables() -> None:
    catalog = _catalog(CHAIN)
    _reducer(r"public\.b").reduce(catalog)

    children = catalog.related_tables(_key("b"), TableRelationshipType.CHILD)
    parents = catalog.related_tables(_key("b"), TableRelationshipType.PARENT)
    assert [table.name for table in children] == ["c"]
    assert [table.name for table in parents] == ["a"]


def test_missing_or_empty_catalog_is_a_no_op() -> None:
    reducer = _reducer(".*", child_depth=2, parent_depth=2)
    reducer.reduce(None)
    empty = Catalog()
    reducer.reduce(empty)
    assert len(empty.tables) == 0


def test_reducer_from_config_uses_grep() -> None:
    catalog = _catalog({"orders": [], "items": ["orders"]})
    items = catalog.lookup_table(_key("items"))
    assert items is not None
    items.columns.append(Column("order_id", 2, "INTEGER"))

    config = CrawlerConfig(grep_options=GrepOptions(grep_column_pattern=r".*\.order_id"))
    TablesReducer.from_config(config).reduce(catalog)

    assert _retained(catalog) == {"items"}


def test_negative_depth_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        FilterOptions(child_table_filter_depth=-1)


def test_foreign_key_without_column_references_is_ignored() -> None:
    catalog = _catalog({"orders": [], "order_items": ["orders"]})
    order_items = catalog.lookup_table(_key("order_items"))
    assert order_items is not None
    order_items.foreign_keys.append(ForeignKey("fk_empty", []))
    catalog.reindex()

    _reducer(r"public\.order_items", parent_depth=1).reduce(catalog)

    assert _retained(catalog) == {"order_items", "orders"}
    parents = catalog.related_tables(_key("order_items"), TableRelationshipType.PARENT)
    assert [table.name for table in parents] == ["orders"]
    assert ForeignKey("fk_empty", []).parent_table is None

from __future__ import annotations

import pytest

from catalog_crawler.crawl.inclusion import (
    ExcludeAll,
    IncludeAll,
    InclusionRule,
    InclusionRuleFilter,
    RegularExpressionRule,
    TableGrepFilter,
    table_inclusion_predicate,
)
from catalog_crawler.crawl.models import Column, GrepOptions, SchemaReference, Table, TableKey


def _table(name: str, *columns: str) -> Table:
    return Table(
        key=TableKey.of(SchemaReference(None, "public"), name),
        columns=[Column(column, position) for position, column in enumerate(columns, start=1)],
    )


@pytest.mark.parametrize("include", [None, "", "   "])
def test_blank_include_pattern_excludes_all(include: str | None) -> None:
    rule = InclusionRule.from_patterns(include, "anything")
    assert isinstance(rule, ExcludeAll)
    assert InclusionRuleFilter(rule).is_exclude_all() is True
    assert rule.test("public.orders") is False


def test_include_all_shortcut() -> None:
    rule = InclusionRule.from_patterns(".*")
    assert isinstance(rule, IncludeAll)
    assert rule.inclusion_pattern == ".*"
    assert InclusionRuleFilter(rule).is_exclude_all() is False


def test_include_all_with_exclude_is_a_regex_rule() -> None:
    rule = InclusionRule.from_patterns(".*", r".*\.audit_.*")
    assert isinstance(rule, RegularExpressionRule)
    assert rule.test("public.orders") is True
    assert rule.test("public.audit_log") is False


@pytest.mark.parametrize(
    "name,expected",
    [
        ("public.orders", True),
        ("public.order_items", True),
        ("public.orders_archive", False),  # include must match the whole name
        ("sales.orders", False),
        ("public.order_items_tmp", False),
    ],
)
def test_regular_expression_rule_matches_fully_qualified_names(name: str, expected: bool) -> None:
    rule = RegularExpressionRule(r"public\.(orders|order_items.*)", r".*_tmp")
    assert rule.test(name) is expected


def test_exclude_wins_over_include() -> None:
    rule = RegularExpressionRule(r"public\..*", r"public\.orders")
    assert rule.test("public.orders") is False
    assert rule.test("public.customers") is True


def test_missing_rule_excludes_unless_told_otherwise() -> None:
    table = _table("orders")
    assert InclusionRuleFilter(None).is_exclude_all() is True
    assert InclusionRuleFilter(None).test(table) is False
    permissive = InclusionRuleFilter(None, include_all_when_missing=True)
    assert permissive.is_exclude_all() is False
    assert permissive(table) is True


def test_grep_filter_matches_qualified_column_names() -> None:
    grep = TableGrepFilter(GrepOptions(grep_column_pattern=r".*\.customer_id"))
    assert grep(_table("orders", "id", "customer_id")) is True
    assert grep(_table("products", "id", "name")) is False


def test_grep_filter_invert_match() -> None:
    grep = TableGrepFilter(GrepOptions(grep_column_pattern=r".*\.customer_id", invert_match=True))
    assert grep(_table("orders", "id", "customer_id")) is False
    assert grep(_table("products", "id", "name")) is True


def test_table_predicate_combines_rule_and_grep() -> None:
    predicate = table_inclusion_predicate(
        InclusionRule.from_patterns(r"public\.o.*"),
        GrepOptions(grep_column_pattern=r".*\.total"),
    )
    assert predicate(_table("orders", "id", "total")) is True
    assert predicate(_table("orders_history", "id")) is False
    assert predicate(_table("invoices", "id", "total")) is False

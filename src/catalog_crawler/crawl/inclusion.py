"""Inclusion rules and filters for named database objects.

An inclusion rule is an include/exclude pair of regular expressions that is
matched against fully qualified object names. Exclusion always wins. Rules
that can be proven to reject everything are represented by ``ExcludeAll``,
which lets retrievers skip a category without touching the database.

Classes:
- InclusionRule: Base class and factory for rules
- IncludeAll, ExcludeAll, RegularExpressionRule: Concrete rules
- InclusionRuleFilter: Predicate over named objects built from a rule
- TableGrepFilter: Predicate over tables based on their column names
"""

from __future__ import annotations

import re
from typing import Protocol

from fastmcp.utilities.logging import get_logger

from .constants import Constants
from .models import GrepOptions, Table
from .utils import is_blank

# Logger
_logger = get_logger("catalog_crawler.inclusion")


class NamedObject(Protocol):
    """Anything with a fully qualified name."""

    @property
    def full_name(self) -> str: ...


class InclusionRule:
    """Decides whether a fully qualified name is included."""

    def test(self, text: str) -> bool:
        raise NotImplementedError

    @property
    def is_exclude_all(self) -> bool:
        return False

    @property
    def inclusion_pattern(self) -> str:
        """Include pattern, used to parameterize data dictionary queries."""
        return ""

    @staticmethod
    def from_patterns(include: str | None, exclude: str | None = None) -> InclusionRule:
        """Build the simplest rule for a pair of patterns.

        Args:
            include: Regular expression for names to include; blank includes nothing
            exclude: Regular expression for names to exclude; blank excludes nothing

        Returns:
            An ``ExcludeAll``, ``IncludeAll`` or ``RegularExpressionRule``
        """
        if is_blank(include):
            return ExcludeAll()
        if include == Constants.INCLUDE_ALL_PATTERN and is_blank(exclude):
            return IncludeAll()
        return RegularExpressionRule(include or "", exclude)


class IncludeAll(InclusionRule):
    def test(self, text: str) -> bool:
        return True

    @property
    def inclusion_pattern(self) -> str:
        return Constants.INCLUDE_ALL_PATTERN

    def __repr__(self) -> str:
        return "IncludeAll()"


class ExcludeAll(InclusionRule):
    def test(self, text: str) -> bool:
        return False

    @property
    def is_exclude_all(self) -> bool:
        return True

    def __repr__(self) -> str:
        return "ExcludeAll()"


class RegularExpressionRule(InclusionRule):
    """Include/exclude regular expression pair; exclusion takes precedence.

    Both patterns must match the whole name, so ``public\\.orders`` does not
    match ``public.orders_archive``.
    """

    def __init__(self, include: str, exclude: str | None = None) -> None:
        self._include_text = include
        self._exclude_text = exclude or ""
        self._include = re.compile(include)
        self._exclude = re.compile(exclude) if not is_blank(exclude) else None

    def test(self, text: str) -> bool:
        if text is None:
            return False
        if self._include.fullmatch(text) is None:
            return False
        return self._exclude is None or self._exclude.fullmatch(text) is None

    @property
    def inclusion_pattern(self) -> str:
        return self._include_text

    def __repr__(self) -> str:
        return f"RegularExpressionRule(include={self._include_text!r}, exclude={self._exclude_text!r})"


class InclusionRuleFilter:
    """Predicate over named objects, built from an inclusion rule.

    Attributes:
        rule: The underlying rule, or None when none was configured
        include_all_when_missing: Whether a missing rule includes everything
    """

    def __init__(
        self, rule: InclusionRule | None, *, include_all_when_missing: bool = False
    ) -> None:
        self.rule = rule
        self.include_all_when_missing = include_all_when_missing

    def is_exclude_all(self) -> bool:
        """True when the filter can statically prove no object will pass."""
        if self.rule is None:
            return not self.include_all_when_missing
        return self.rule.is_exclude_all

    def test(self, named_object: NamedObject) -> bool:
        if self.rule is None:
            return self.include_all_when_missing
        return self.rule.test(named_object.full_name)

    def __call__(self, named_object: NamedObject) -> bool:
        return self.test(named_object)


class TableGrepFilter:
    """Keeps tables that have at least one column matching a pattern.

    Column names are matched fully qualified, e.g. ``public.orders.customer_id``.
    Without a pattern every table passes.
    """

    def __init__(self, grep_options: GrepOptions) -> None:
        self.grep_options = grep_options
        self._rule = (
            RegularExpressionRule(grep_options.grep_column_pattern or "")
            if grep_options.is_grep_columns
            else None
        )

    def test(self, table: Table) -> bool:
        if self._rule is None:
            return True
        found = any(
            self._rule.test(f"{table.full_name}.{column.name}") for column in table.columns
        )
        if self.grep_options.invert_match:
            found = not found
        if not found:
            _logger.debug("Excluding table %s, no column matched the grep pattern", table.full_name)
        return found

    def __call__(self, table: Table) -> bool:
        return self.test(table)


def table_inclusion_predicate(
    table_rule: InclusionRule, grep_options: GrepOptions
) -> InclusionRuleFilter | _CombinedTableFilter:
    """Combine a table inclusion rule with the column grep, if any."""
    rule_filter = InclusionRuleFilter(table_rule)
    if not grep_options.is_grep_columns:
        return rule_filter
    return _CombinedTableFilter(rule_filter, TableGrepFilter(grep_options))


class _CombinedTableFilter:
    def __init__(self, rule_filter: InclusionRuleFilter, grep_filter: TableGrepFilter) -> None:
        self._rule_filter = rule_filter
        self._grep_filter = grep_filter

    def test(self, table: Table) -> bool:
        return self._rule_filter.test(table) and self._grep_filter.test(table)

    def __call__(self, table: Table) -> bool:
        return self.test(table)

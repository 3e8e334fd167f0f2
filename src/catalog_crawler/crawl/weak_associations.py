"""Match keys for inferring weak associations between tables.

Tables that are related without a declared foreign key often share a name
stem once module-style prefixes and plurals are removed, as in ``app_user``
and ``app_role_user``. This module finds the prefixes common to many table
names, strips them, singularizes what is left and records the result as the
table's match keys. Pairing tables by their keys is left to the caller.

Classes:
- TableMatchKeys: Match keys for a set of tables
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from itertools import combinations
from typing import TYPE_CHECKING

from fastmcp.utilities.logging import get_logger
import inflection

from .constants import Constants
from .utils import common_prefix, is_blank

if TYPE_CHECKING:
    from .models import Table, TableKey

# Logger
_logger = get_logger("catalog_crawler.weak_associations")


def _split_prefix(prefix: str, separator: str) -> list[str]:
    """Split on the separator, dropping trailing empty segments."""
    segments = prefix.split(separator)
    while segments and not segments[-1]:
        segments.pop()
    return segments


class TableMatchKeys:
    """Lower-case match keys for each table, derived from table names.

    Attributes:
        prefixes: Selected table name prefixes, always ending with the empty prefix
    """

    def __init__(
        self,
        tables: Iterable[Table],
        *,
        top_prefixes: int = Constants.MATCH_KEY_TOP_PREFIXES,
        prefix_share: float = Constants.MATCH_KEY_PREFIX_SHARE,
    ) -> None:
        self._tables = sorted(tables, key=lambda table: table.full_name)
        self._top_prefixes = top_prefixes
        self._prefix_share = prefix_share
        self.prefixes = self._find_table_prefixes()
        self._keys = self._map_tables_to_keys()
        _logger.debug("Table name prefixes: %s", self.prefixes)

    def get(self, table: Table | TableKey) -> list[str]:
        """Match keys for a table, empty for unknown tables."""
        key = getattr(table, "key", table)
        return list(self._keys.get(key, []))

    def as_dict(self) -> dict[TableKey, list[str]]:
        return {key: list(keys) for key, keys in self._keys.items()}

    def candidate_groups(self) -> dict[str, list[TableKey]]:
        """Match keys shared by two or more tables, with the tables sharing them."""
        groups: dict[str, list[TableKey]] = {}
        for table_key, keys in self._keys.items():
            for match_key in keys:
                groups.setdefault(match_key, []).append(table_key)
        return {
            match_key: sorted(table_keys, key=lambda key: key.full_name)
            for match_key, table_keys in sorted(groups.items())
            if len(table_keys) > 1
        }

    def __contains__(self, table: object) -> bool:
        return getattr(table, "key", table) in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    # ---- prefix discovery --------------------------------------------------
    def _find_table_prefixes(self) -> list[str]:
        separator = Constants.MATCH_KEY_PREFIX_SEPARATOR
        counts: Counter[str] = Counter()
        for first, second in combinations(self._tables, 2):
            prefix = common_prefix(first.name, second.name)
            if is_blank(prefix) or not prefix.endswith(separator):
                continue
            segments = _split_prefix(prefix, separator)
            candidates = [
                "".join(segment + separator for segment in segments[:count])
                for count in range(1, len(segments))
            ]
            candidates.append(prefix)
            counts.update(candidates)

        # Only the shortest member of each family of prefixes survives
        ordered = sorted(counts, key=lambda prefix: (len(prefix), prefix), reverse=True)
        minimal = [
            prefix
            for prefix in ordered
            if not any(other != prefix and prefix.startswith(other) for other in ordered)
        ]
        reduced = {prefix: counts[prefix] for prefix in minimal}

        by_count = sorted(sorted(reduced), key=lambda prefix: reduced[prefix])
        threshold = len(reduced) * self._prefix_share
        prefixes = [
            prefix
            for index, prefix in enumerate(by_count)
            if index < self._top_prefixes or reduced[prefix] > threshold
        ]
        prefixes.append("")
        return prefixes

    # ---- key generation ----------------------------------------------------
    def _map_tables_to_keys(self) -> dict[TableKey, list[str]]:
        keys_by_table: dict[TableKey, list[str]] = {}
        for table in self._tables:
            table_name = table.name.lower()
            keys: list[str] = []
            for prefix in self.prefixes:
                prefix_lower = prefix.lower()
                if not table_name.startswith(prefix_lower):
                    continue
                match_key = inflection.singularize(table_name[len(prefix_lower) :]).lower()
                if not is_blank(match_key) and match_key not in keys:
                    keys.append(match_key)
            keys_by_table[table.key] = keys
        return keys_by_table

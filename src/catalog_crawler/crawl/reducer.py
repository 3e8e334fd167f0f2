"""Tables reducer: decides which tables of a crawl are kept.

The reducer seeds a keep-set with the tables that satisfy the table
inclusion predicate, grows it along foreign key relationships for a
configured number of hops in each direction, and then marks every other
table as filtered out. Tables are hidden rather than deleted so that
relationships pointing at them stay resolvable.

The relationship graph is a NetworkX directed graph with one node per
table and one edge per foreign key, pointing from the child (dependent)
table to the parent (referenced) table. Children of a table are therefore
its predecessors and parents its successors.

Classes:
- TablesReducer: Marks and filters tables in a catalog
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from fastmcp.utilities.logging import get_logger
import networkx as nx

from .constants import TableRelationshipType
from .inclusion import InclusionRule, table_inclusion_predicate

if TYPE_CHECKING:
    from .models import Catalog, CrawlerConfig, FilterOptions, GrepOptions, Table, TableKey

# Logger
_logger = get_logger("catalog_crawler.reducer")


class TablesReducer:
    """Reduces a catalog's tables to those selected by inclusion rules.

    Attributes:
        filter_options: Child and parent expansion depths
        grep_options: Column grep settings; ``only_matching`` adds the no-grep-match flag
        table_filter: Predicate selecting the seed tables
    """

    def __init__(
        self,
        filter_options: FilterOptions,
        grep_options: GrepOptions,
        table_filter: Callable[[Table], bool],
    ) -> None:
        self.filter_options = filter_options
        self.grep_options = grep_options
        self.table_filter = table_filter

    @classmethod
    def from_config(cls, config: CrawlerConfig) -> TablesReducer:
        """Build a reducer from the table inclusion rule and grep options of a crawl."""
        table_rule = InclusionRule.from_patterns(config.table_include, config.table_exclude)
        return cls(
            config.filter_options,
            config.grep_options,
            table_inclusion_predicate(table_rule, config.grep_options),
        )

    def reduce(self, catalog: Catalog | None) -> None:
        """Mark and hide the tables that are not kept.

        Reducing an already reduced catalog with the same options keeps the
        same tables. A missing catalog or one without tables is left alone.

        Args:
            catalog: Catalog to reduce in place
        """
        if catalog is None:
            return
        all_tables = catalog.tables.values(include_filtered=True)
        if not all_tables:
            return

        graph = self.build_graph(all_tables)
        keep = self.keep_set(graph, all_tables)

        for table in all_tables:
            if table.is_partial or table.key not in keep:
                table.filtered_out = True
                table.no_grep_match = self.grep_options.only_matching
            else:
                table.filtered_out = False
                table.no_grep_match = False

        catalog.tables.filter(lambda table: table.key in keep and not table.is_partial)
        catalog.reindex()
        self._mark_related_filtered_tables(catalog)

        _logger.info(
            "Reduced tables: kept %d of %d (child depth %d, parent depth %d)",
            len(catalog.tables),
            len(all_tables),
            self.filter_options.child_table_filter_depth,
            self.filter_options.parent_table_filter_depth,
        )

    # ---- keep-set ----------------------------------------------------------
    @staticmethod
    def build_graph(tables: Iterable[Table]) -> nx.DiGraph[TableKey]:
        """Build the child-to-parent foreign key graph.

        Nodes carry a ``partial`` attribute. Foreign keys pointing at tables
        outside the given set add a partial node for the far end.
        """
        graph: nx.DiGraph[TableKey] = nx.DiGraph()
        tables = list(tables)

        for table in tables:
            graph.add_node(table.key, partial=table.is_partial)

        for table in tables:
            for foreign_key in table.foreign_keys:
                parent_key = foreign_key.parent_table
                if parent_key is None:
                    continue
                if parent_key not in graph:
                    graph.add_node(parent_key, partial=True)
                graph.add_edge(table.key, parent_key, fk=foreign_key.name)

        return graph

    def keep_set(self, graph: nx.DiGraph[TableKey], tables: Iterable[Table]) -> set[TableKey]:
        """Seed tables plus their child and parent expansions."""
        seeds = {
            table.key for table in tables if not table.is_partial and self.table_filter(table)
        }
        children = self._expand(
            graph,
            seeds,
            self.filter_options.child_table_filter_depth,
            TableRelationshipType.CHILD,
        )
        parents = self._expand(
            graph,
            seeds,
            self.filter_options.parent_table_filter_depth,
            TableRelationshipType.PARENT,
        )
        _logger.debug(
            "Keep-set: %d seeds, %d children, %d parents", len(seeds), len(children), len(parents)
        )
        return seeds | children | parents

    @staticmethod
    def _expand(
        graph: nx.DiGraph[TableKey],
        seeds: set[TableKey],
        depth: int,
        relationship: TableRelationshipType,
    ) -> set[TableKey]:
        """Breadth-first expansion for exactly ``depth`` hops, skipping partial tables."""
        expanded: set[TableKey] = set()
        frontier = set(seeds)
        for _ in range(depth):
            next_frontier: set[TableKey] = set()
            for key in frontier:
                if relationship is TableRelationshipType.CHILD:
                    neighbors = graph.predecessors(key)
                else:
                    neighbors = graph.successors(key)
                for neighbor in neighbors:
                    if graph.nodes[neighbor].get("partial", False):
                        continue
                    if neighbor in seeds or neighbor in expanded:
                        continue
                    next_frontier.add(neighbor)
            if not next_frontier:
                break
            expanded |= next_frontier
            frontier = next_frontier
        return expanded

    # ---- consistency -------------------------------------------------------
    @staticmethod
    def _mark_related_filtered_tables(catalog: Catalog) -> None:
        """Flag the far end of every retained table's foreign keys when it is not kept."""
        for table in catalog.tables:
            foreign_keys = [
                *catalog.exported_foreign_keys(table.key),
                *catalog.imported_foreign_keys(table.key),
            ]
            for foreign_key in foreign_keys:
                for reference in foreign_key:
                    for key in (reference.foreign_key_table, reference.primary_key_table):
                        related = catalog.lookup_table(key, include_filtered=True)
                        if related is None:
                            continue
                        if related.is_partial or catalog.tables.is_filtered(key):
                            related.filtered_out = True

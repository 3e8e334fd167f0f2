"""Row count loading for retained tables.

Classes:
- RowCountLoader: Runs the per-table row count query
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastmcp.utilities.logging import get_logger

from .constants import InformationSchemaKey

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from .information_schema import InformationSchemaViews
    from .models import Catalog, CrawlerConfig

# Logger
_logger = get_logger("catalog_crawler.row_counts")


class RowCountLoader:
    """Counts the rows of every retained full table with the ``ROW_COUNTS`` query.

    A table whose count cannot be read keeps ``row_count`` unset.
    """

    def __init__(
        self, engine: Engine, views: InformationSchemaViews, config: CrawlerConfig
    ) -> None:
        self.engine = engine
        self.views = views
        self.config = config

    def load(self, catalog: Catalog) -> int:
        """Load row counts.

        Returns:
            Number of tables with a row count
        """
        query = self.views.get_query(InformationSchemaKey.ROW_COUNTS)
        if query is None:
            _logger.info("Not loading row counts, since no row count query is available")
            return 0

        loaded = 0
        with self.engine.connect() as conn:
            for table in catalog.tables:
                if table.is_partial:
                    continue
                try:
                    count = query.execute_for_scalar(
                        conn, table, context=self.config.template_variables
                    )
                except Exception as e:  # noqa: BLE001 - best-effort per table
                    _logger.warning("Could not count rows for %s: %s", table.full_name, e)
                    conn.rollback()
                    continue
                if count is None:
                    continue
                table.row_count = int(count)
                loaded += 1

        _logger.info("Loaded row counts for %d tables", loaded)
        return loaded

"""Main CatalogCrawler orchestrator class.

This module contains the CatalogCrawler class that runs a complete crawl:
schema and table retrieval, retrieval of the other object categories with
their configured strategies, optional row counts, table reduction and
match key inference.

Classes:
- CrawlResult: Catalog, match keys and stage timings of one crawl
- CatalogCrawler: Main orchestrator class for catalog crawling
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from fastmcp.utilities.logging import get_logger
from sqlalchemy.engine import Engine

from .exceptions import ConfigurationError, RetrievalError
from .information_schema import InformationSchemaViews
from .introspection import InspectorMetadataSource, MetadataSource
from .models import Catalog, CrawlerConfig
from .reducer import TablesReducer
from .routines import RoutineRetriever
from .row_counts import RowCountLoader
from .sequences import SequenceRetriever
from .tables import SchemaRetriever, TableRetriever
from .triggers import TriggerRetriever
from .utils import now
from .weak_associations import TableMatchKeys

# Logger
_logger = get_logger("catalog_crawler")


@dataclass
class CrawlResult:
    """Outcome of one crawl.

    Attributes:
        catalog: Reduced catalog
        match_keys: Table match keys, None when inference is disabled
        timings: Seconds spent per stage
    """

    catalog: Catalog
    match_keys: TableMatchKeys | None = None
    timings: dict[str, float] = field(default_factory=dict)


class CatalogCrawler:
    """Orchestrates one crawl of a database's metadata.

    A crawler needs an introspection source; when only an engine is given, a
    SQLAlchemy ``Inspector`` based source is created for it. Bulk retrieval
    and row counts need the engine.

    Attributes:
        engine: SQLAlchemy engine, if available
        config: Crawl configuration
        source: Introspection collaborator
        views: Data dictionary queries for bulk retrieval and row counts
    """

    def __init__(
        self,
        engine: Engine | None = None,
        config: CrawlerConfig | None = None,
        *,
        source: MetadataSource | None = None,
        views: InformationSchemaViews | None = None,
        reflect_timeout_sec: int | None = None,
    ) -> None:
        """Initialize the crawler.

        Args:
            engine: SQLAlchemy engine for database connections
            config: Crawl configuration; defaults include everything
            source: Introspection collaborator; defaults to one built on the engine
            views: Data dictionary queries; defaults to the engine dialect's built-ins
            reflect_timeout_sec: Per-connection timeout for the default source

        Raises:
            ConfigurationError: If neither an engine nor a source is given
        """
        if engine is None and source is None:
            msg = "A database engine or a metadata source is required"
            raise ConfigurationError(msg)

        self.engine = engine
        self.config = config or CrawlerConfig()
        self.source: MetadataSource = source or InspectorMetadataSource(
            engine,  # type: ignore[arg-type]
            reflect_timeout_sec=reflect_timeout_sec,
        )
        if views is None:
            views = InformationSchemaViews.for_dialect(self.source.dialect_name)
        self.views = views

    def crawl(self, timings: dict[str, float] | None = None) -> CrawlResult:
        """Crawl the database into a reduced catalog.

        Args:
            timings: Optional dictionary to store timing measurements

        Returns:
            Catalog, match keys and timings

        Raises:
            ConfigurationError: If a category is configured for bulk retrieval without a query
            RetrievalError: If the database cannot list its schemas
        """
        if timings is None:
            timings = {}
        total_start = now()
        catalog = Catalog(self._catalog_name())

        # Step 1: Schemas and tables
        _logger.info("Starting table retrieval...")
        stage_start = now()
        SchemaRetriever(self.source, catalog, self.config).retrieve()
        TableRetriever(self.source, catalog, self.config).retrieve()
        timings["tables"] = now() - stage_start
        _logger.info(
            "Retrieved %d schemas with %d tables total",
            len(catalog.schemas),
            sum(1 for table in catalog.tables if not table.is_partial),
        )

        # Step 2: Routines, sequences and triggers
        routines = RoutineRetriever(
            self.source, catalog, self.config, views=self.views, engine=self.engine
        )
        self._run_stage("functions", routines.retrieve_functions, timings)
        self._run_stage("procedures", routines.retrieve_procedures, timings)
        sequences = SequenceRetriever(
            self.source, catalog, self.config, views=self.views, engine=self.engine
        )
        self._run_stage("sequences", sequences.retrieve, timings)
        triggers = TriggerRetriever(
            self.source, catalog, self.config, views=self.views, engine=self.engine
        )
        self._run_stage("triggers", triggers.retrieve, timings)

        # Step 3: Row counts
        if self.config.load_row_counts:
            if self.engine is None:
                _logger.info("Not loading row counts, since no database engine is available")
            else:
                loader = RowCountLoader(self.engine, self.views, self.config)
                self._run_stage("row_counts", lambda: loader.load(catalog), timings)

        # Step 4: Reduction
        _logger.info("Reducing tables...")
        stage_start = now()
        TablesReducer.from_config(self.config).reduce(catalog)
        timings["reduce"] = now() - stage_start

        # Step 5: Match keys
        match_keys = None
        if self.config.infer_weak_associations:
            stage_start = now()
            match_keys = TableMatchKeys(catalog.tables)
            timings["match_keys"] = now() - stage_start
            _logger.info(
                "Built match keys for %d tables with prefixes %s",
                len(match_keys),
                match_keys.prefixes,
            )

        timings["crawl_total"] = now() - total_start
        _logger.info("Catalog crawled successfully in %.2fs", timings["crawl_total"])
        return CrawlResult(catalog=catalog, match_keys=match_keys, timings=timings)

    # ---- internals ---------------------------------------------------------
    def _run_stage(
        self, name: str, stage: Callable[[], int], timings: dict[str, float]
    ) -> None:
        stage_start = now()
        try:
            stage()
        except RetrievalError as e:
            _logger.warning("Skipping %s: %s", name, e)
        finally:
            timings[name] = now() - stage_start

    def _catalog_name(self) -> str | None:
        if self.engine is None:
            return None
        try:
            name = self.engine.url.database
        except AttributeError:
            return None
        return str(name) if name else None

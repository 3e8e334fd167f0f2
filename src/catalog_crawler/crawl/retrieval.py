"""Retrieval strategy selection shared by all object retrievers.

Each object category (functions, procedures, sequences, triggers) is fetched
in one of three ways, fixed by the crawl configuration:

- ``BULK_QUERY``: a data dictionary query registered for the category is
  expanded and executed once, or once per table for per-table templates
- ``PER_OBJECT_METADATA``: the introspection collaborator is asked once per
  schema known to the catalog; schemas that do not support the category are
  skipped
- ``DISABLED``: nothing is retrieved

Rows from either path go through the same construction policy: a row with
a blank name is dropped, a row whose schema is not in the catalog is
dropped, and the built object is added only if the category filter accepts
it.

Classes:
- RowLayout: Column names that identify an object in a metadata row
- MetadataRetriever: Base class implementing the strategy dispatch
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from fastmcp.utilities.logging import get_logger
from sqlalchemy.exc import SQLAlchemyError

from .constants import InformationSchemaKey, RetrievalStrategy
from .exceptions import ConfigurationError, RetrievalError
from .inclusion import InclusionRule, InclusionRuleFilter
from .information_schema import InformationSchemaViews
from .introspection import FetchStatus, MetadataRow
from .utils import is_blank

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from .introspection import MetadataSource
    from .models import Catalog, CrawlerConfig, SchemaReference

# Logger
_logger = get_logger("catalog_crawler.retrieval")

T = TypeVar("T")


@dataclass(frozen=True)
class RowLayout:
    """Names of the columns holding an object's catalog, schema and name."""

    catalog_column: str
    schema_column: str
    name_column: str


class MetadataRetriever:
    """Base class for retrievers that honour per-category strategies.

    Attributes:
        source: Introspection collaborator for per-schema calls
        catalog: Catalog being populated
        config: Crawl configuration
        views: Data dictionary queries for bulk retrieval
        engine: Engine that bulk queries run on, if any
        schema_rule: Schema inclusion rule, used to parameterize bulk queries
    """

    def __init__(
        self,
        source: MetadataSource,
        catalog: Catalog,
        config: CrawlerConfig,
        *,
        views: InformationSchemaViews | None = None,
        engine: Engine | None = None,
    ) -> None:
        self.source = source
        self.catalog = catalog
        self.config = config
        self.views = views if views is not None else InformationSchemaViews()
        self.engine = engine
        self.schema_rule = InclusionRule.from_patterns(
            config.schema_include, config.schema_exclude
        )

    def retrieve_category(
        self,
        category: InformationSchemaKey,
        object_filter: InclusionRuleFilter,
        layout: RowLayout,
        build: Callable[[MetadataRow, SchemaReference, str], T | None],
        add: Callable[[T], None],
    ) -> int:
        """Retrieve one category of objects using its configured strategy.

        Args:
            category: Object category
            object_filter: Inclusion filter for built objects
            layout: Columns identifying the object in each row
            build: Converts a row into an object; may return None to drop the row
            add: Adds an accepted object to the catalog

        Returns:
            Number of objects added

        Raises:
            ConfigurationError: If bulk retrieval is configured without a query
            RetrievalError: If the bulk query fails
        """
        label = category.value.lower()
        if object_filter.is_exclude_all():
            _logger.info("Not retrieving %s, since this was not requested", label)
            return 0

        strategy = self.config.retrieval_strategies.get(category)
        if strategy is RetrievalStrategy.DISABLED:
            _logger.info("Not retrieving %s, since retrieval is disabled", label)
            return 0

        if strategy is RetrievalStrategy.BULK_QUERY:
            _logger.info("Retrieving %s, using fast data dictionary retrieval", label)
            rows: Iterator[MetadataRow] = iter(self._bulk_rows(category))
        else:
            _logger.info("Retrieving %s", label)
            rows = self._per_schema_rows(category)

        added = 0
        for row in rows:
            item = self._construct(row, layout, build, object_filter)
            if item is None:
                continue
            add(item)
            added += 1

        _logger.info("Retrieved %d %s", added, label)
        return added

    # ---- strategies --------------------------------------------------------
    def _bulk_rows(self, category: InformationSchemaKey) -> list[MetadataRow]:
        query = self.views.get_query(category)
        if query is None:
            msg = f"No {category.value} SQL provided for bulk retrieval"
            raise ConfigurationError(msg)
        if self.engine is None:
            msg = f"No database engine available to run the {category.value} query"
            raise ConfigurationError(msg)

        context = self.config.template_variables
        results: list[dict[str, Any]] = []
        try:
            with self.engine.connect() as conn:
                if query.is_query_over():
                    for table in self.catalog.tables:
                        if table.is_partial:
                            continue
                        results.extend(
                            query.execute_for_table(
                                conn,
                                table,
                                schema_inclusion_rule=self.schema_rule,
                                alphabetical_columns=self.config.alphabetical_columns,
                                context=context,
                            )
                        )
                else:
                    results = query.execute(conn, self.schema_rule, context)
        except SQLAlchemyError as e:
            error_msg = f"Could not retrieve {category.value.lower()} using {query.name}: {e}"
            raise RetrievalError(error_msg) from e

        _logger.debug("Query %s returned %d rows", query.name, len(results))
        return [MetadataRow(result) for result in results]

    def _per_schema_rows(self, category: InformationSchemaKey) -> Iterator[MetadataRow]:
        label = category.value.lower()
        for schema in self.catalog.schemas:
            result = self.source.fetch(category, schema)
            if result.status is FetchStatus.UNSUPPORTED:
                _logger.info(
                    "Could not retrieve %s for schema %s: %s", label, schema, result.message
                )
                continue
            if result.status is FetchStatus.ERROR:
                _logger.warning(
                    "Could not retrieve %s for schema %s, possibly unsupported: %s",
                    label,
                    schema,
                    result.message,
                )
                continue
            for values in result.rows:
                yield MetadataRow(values)

    # ---- construction policy -----------------------------------------------
    def _construct(
        self,
        row: MetadataRow,
        layout: RowLayout,
        build: Callable[[MetadataRow, SchemaReference, str], T | None],
        object_filter: InclusionRuleFilter,
    ) -> T | None:
        name = row.get_string(layout.name_column)
        if is_blank(name):
            _logger.debug("Skipping row with no %s", layout.name_column)
            return None

        catalog_name = row.get_string(layout.catalog_column)
        schema_name = row.get_string(layout.schema_column)
        schema = self.catalog.lookup_schema(catalog_name, schema_name)
        if schema is None:
            _logger.debug("Cannot find schema %s.%s for %s", catalog_name, schema_name, name)
            return None

        item = build(row, schema, name or "")
        if item is None:
            return None
        if not object_filter.test(item):
            _logger.debug("Excluding %s", getattr(item, "full_name", name))
            return None
        return item

"""Schema and table retrieval.

Schemas are listed once and filtered by the schema inclusion rule. Tables
are then retrieved for every known schema with their columns and primary
keys, and foreign keys are read in a second pass so that references can be
resolved against the complete set of retrieved tables. A foreign key that
points at a table outside the crawl adds a partial table for its far end.

Table inclusion is not applied here; every table in a crawled schema is
retrieved and the tables reducer decides which ones are kept.

Classes:
- SchemaRetriever: Populates the catalog's schemas
- TableRetriever: Populates tables, columns, primary and foreign keys
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastmcp.utilities.logging import get_logger

from .inclusion import InclusionRule, InclusionRuleFilter
from .models import Column, ColumnReference, ForeignKey, Table, TableKey
from .utils import is_blank

if TYPE_CHECKING:
    from .introspection import MetadataSource
    from .models import Catalog, CrawlerConfig, SchemaReference

# Logger
_logger = get_logger("catalog_crawler.tables")


class SchemaRetriever:
    """Adds the schemas that pass the schema inclusion rule to the catalog."""

    def __init__(self, source: MetadataSource, catalog: Catalog, config: CrawlerConfig) -> None:
        self.source = source
        self.catalog = catalog
        self.schema_filter = InclusionRuleFilter(
            InclusionRule.from_patterns(config.schema_include, config.schema_exclude)
        )

    def retrieve(self) -> int:
        """Retrieve schemas.

        Returns:
            Number of schemas added

        Raises:
            RetrievalError: If the database cannot list its schemas
        """
        if self.schema_filter.is_exclude_all():
            _logger.info("Not retrieving schemas, since this was not requested")
            return 0

        added = 0
        for schema in self.source.list_schemas():
            if not self.schema_filter.test(schema):
                _logger.debug("Excluding schema %s", schema)
                continue
            self.catalog.add_schema(schema)
            added += 1

        _logger.info("Retrieved %d schemas", added)
        return added


class TableRetriever:
    """Retrieves tables and their structure for every schema in the catalog.

    Attributes:
        source: Introspection collaborator
        catalog: Catalog being populated
        include_views: Whether views are retrieved alongside tables
    """

    def __init__(self, source: MetadataSource, catalog: Catalog, config: CrawlerConfig) -> None:
        self.source = source
        self.catalog = catalog
        self.include_views = config.include_views

    def retrieve(self) -> int:
        """Retrieve tables, columns, primary keys and foreign keys.

        Returns:
            Number of full tables added
        """
        retrieved: list[Table] = []
        for schema in self.catalog.schemas:
            _logger.info("Fetching tables for schema: %s", schema)
            try:
                names = self.source.list_tables(schema, include_views=self.include_views)
            except Exception as e:  # noqa: BLE001 - Skip schema on any database error
                _logger.warning("Cannot list tables for schema %s: %s", schema, e)
                continue

            _logger.info("%s: %d tables", schema, len(names))
            for table_name, table_type in names:
                if is_blank(table_name):
                    continue
                table = self._retrieve_table(schema, table_name, table_type)
                if table is None:
                    continue
                self.catalog.add_table(table)
                retrieved.append(table)

        foreign_key_count = sum(self._retrieve_foreign_keys(table) for table in retrieved)
        self.catalog.reindex()

        _logger.info(
            "Retrieved %d tables with %d foreign keys", len(retrieved), foreign_key_count
        )
        return len(retrieved)

    # ---- internals ---------------------------------------------------------
    def _retrieve_table(
        self, schema: SchemaReference, table_name: str, table_type: str
    ) -> Table | None:
        _logger.debug("Reflecting table: %s.%s", schema, table_name)
        try:
            columns_metadata = self.source.get_columns(schema, table_name)
        except Exception as e:  # noqa: BLE001 - Skip table on any database error
            _logger.warning("Cannot get columns for %s.%s: %s", schema, table_name, e)
            return None

        try:
            primary_key_columns = self.source.get_primary_key(schema, table_name)
        except Exception as e:  # noqa: BLE001 - Continue without PK info
            _logger.debug("Cannot get PK for %s.%s: %s", schema, table_name, e)
            primary_key_columns = []

        primary_key_set = set(primary_key_columns)
        columns = [
            Column(
                name=column["name"],
                ordinal_position=position,
                data_type=column.get("type") or "",
                nullable=column.get("nullable", True),
                is_pk=column["name"] in primary_key_set,
                remarks=column.get("comment"),
            )
            for position, column in enumerate(columns_metadata, start=1)
        ]
        return Table(
            key=TableKey.of(schema, table_name),
            table_type=(table_type or "TABLE").upper(),
            columns=columns,
            primary_key_columns=list(primary_key_columns),
        )

    def _retrieve_foreign_keys(self, table: Table) -> int:
        try:
            constraints = self.source.get_foreign_keys(table.schema, table.name)
        except Exception as e:  # noqa: BLE001 - Continue without FK info
            _logger.debug("Cannot get FKs for %s: %s", table.full_name, e)
            return 0

        for index, constraint in enumerate(constraints, start=1):
            foreign_key = self._build_foreign_key(table, constraint, index)
            if foreign_key is None:
                continue
            table.foreign_keys.append(foreign_key)
            parent_key = foreign_key.parent_table
            if parent_key is None:
                continue
            if self.catalog.lookup_table(parent_key, include_filtered=True) is None:
                _logger.debug("Adding partial table %s", parent_key)
                self.catalog.add_table(Table.partial(parent_key))
        return len(table.foreign_keys)

    @staticmethod
    def _build_foreign_key(
        table: Table, constraint: dict[str, Any], index: int
    ) -> ForeignKey | None:
        referred_table = constraint.get("referred_table")
        if is_blank(referred_table):
            return None
        referred_schema = constraint.get("referred_schema") or table.key.schema_name
        parent_key = TableKey(table.key.catalog_name, referred_schema, referred_table)

        constrained_columns = constraint.get("constrained_columns") or []
        referred_columns = constraint.get("referred_columns") or []
        references = [
            ColumnReference(
                foreign_key_table=table.key,
                foreign_key_column=local_column,
                primary_key_table=parent_key,
                primary_key_column=referred_column,
                key_sequence=sequence,
            )
            for sequence, (local_column, referred_column) in enumerate(
                zip(constrained_columns, referred_columns, strict=False), start=1
            )
        ]
        if not references:
            return None

        name = constraint.get("name") or f"{table.name}_fk_{index}"
        return ForeignKey(name=name, column_references=references)

"""Summary builder for catalog-crawler.

Transforms a reduced catalog and its match keys into the pydantic models
in ``catalog_crawler.models``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from catalog_crawler.models import (
    CatalogSummary,
    ColumnSummary,
    FilteredTableSummary,
    ForeignKeySummary,
    RoutineSummary,
    TableSummary,
    TriggerSummary,
)

if TYPE_CHECKING:
    from catalog_crawler.crawl.models import Catalog, ForeignKey, Routine, Table
    from catalog_crawler.crawl.weak_associations import TableMatchKeys


class CatalogSummaryBuilder:
    """Builder for CatalogSummary objects."""

    @staticmethod
    def build(catalog: Catalog, match_keys: TableMatchKeys | None = None) -> CatalogSummary:
        """Build a summary of a reduced catalog.

        Args:
            catalog: Catalog after reduction
            match_keys: Match keys of the retained tables, if inferred

        Returns:
            CatalogSummary with retained tables in name order
        """
        tables = sorted(catalog.tables, key=lambda table: table.full_name)
        filtered = sorted(
            (
                table
                for table in catalog.tables.values(include_filtered=True)
                if catalog.tables.is_filtered(table.key)
            ),
            key=lambda table: table.full_name,
        )
        groups: dict[str, list[str]] = {}
        if match_keys is not None:
            groups = {
                match_key: [key.full_name for key in table_keys]
                for match_key, table_keys in match_keys.candidate_groups().items()
            }

        return CatalogSummary(
            catalog_name=catalog.name,
            schemas=sorted(schema.full_name for schema in catalog.schemas),
            tables=[
                CatalogSummaryBuilder._build_table(catalog, table, match_keys)
                for table in tables
            ],
            filtered_tables=[
                FilteredTableSummary(
                    name=table.full_name,
                    partial=table.is_partial,
                    filtered_out=table.filtered_out,
                    no_grep_match=table.no_grep_match,
                )
                for table in filtered
            ],
            routines=[
                CatalogSummaryBuilder._build_routine(routine)
                for routine in sorted(catalog.routines, key=lambda routine: routine.full_name)
            ],
            sequences=sorted(sequence.full_name for sequence in catalog.sequences),
            match_key_groups=groups,
        )

    @staticmethod
    def _build_table(
        catalog: Catalog, table: Table, match_keys: TableMatchKeys | None
    ) -> TableSummary:
        return TableSummary(
            name=table.full_name,
            schema_name=table.schema.full_name,
            table_type=table.table_type,
            columns=[
                ColumnSummary(
                    name=column.name,
                    data_type=column.data_type,
                    nullable=column.nullable,
                    is_primary_key=column.is_pk,
                    remarks=column.remarks,
                )
                for column in table.columns
            ],
            primary_key=list(table.primary_key_columns),
            foreign_keys=[
                CatalogSummaryBuilder._build_foreign_key(catalog, foreign_key)
                for foreign_key in table.foreign_keys
                if foreign_key.parent_table is not None
            ],
            triggers=[
                TriggerSummary(
                    name=trigger.name,
                    event=trigger.event_manipulation_type.value,
                    timing=trigger.condition_timing.value,
                    orientation=trigger.action_orientation.value,
                    statement=trigger.action_statement,
                )
                for trigger in table.triggers
            ],
            row_count=table.row_count,
            match_keys=match_keys.get(table) if match_keys is not None else [],
        )

    @staticmethod
    def _build_foreign_key(catalog: Catalog, foreign_key: ForeignKey) -> ForeignKeySummary:
        references = list(foreign_key)
        parent_key = foreign_key.parent_table
        return ForeignKeySummary(
            name=foreign_key.name,
            columns=[reference.foreign_key_column for reference in references],
            referenced_table=parent_key.full_name if parent_key is not None else "",
            referenced_columns=[reference.primary_key_column for reference in references],
            referenced_table_filtered_out=parent_key not in catalog.tables,
        )

    @staticmethod
    def _build_routine(routine: Routine) -> RoutineSummary:
        return RoutineSummary(
            name=routine.full_name,
            specific_name=routine.specific_name,
            routine_type=routine.routine_type,  # type: ignore[attr-defined]
            return_type=routine.return_type.name.lower(),  # type: ignore[attr-defined]
            remarks=routine.remarks,
        )


def build_catalog_summary(
    catalog: Catalog, match_keys: TableMatchKeys | None = None
) -> CatalogSummary:
    """Build a CatalogSummary; shorthand for ``CatalogSummaryBuilder.build``."""
    return CatalogSummaryBuilder.build(catalog, match_keys)

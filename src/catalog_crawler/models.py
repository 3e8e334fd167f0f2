"""Pydantic models for crawl summaries.

Serializable views of a reduced catalog, handed to rendering collaborators.
Keeping surface area small avoids coupling renderers to the crawl's
internal data classes.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ColumnSummary(BaseModel):
    """Column of a retained table."""

    name: str = Field(description="Column name")
    data_type: str = Field(description="SQL data type as reported by the database")
    nullable: bool = Field(description="Whether NULL values are allowed")
    is_primary_key: bool = Field(description="Whether this column is part of the primary key")
    remarks: str | None = Field(default=None, description="Database comment, if any")


class ForeignKeySummary(BaseModel):
    """Foreign key from a retained table to its referenced table."""

    name: str = Field(description="Constraint name")
    columns: list[str] = Field(description="Columns of the dependent table, in key order")
    referenced_table: str = Field(description="Fully qualified referenced table name")
    referenced_columns: list[str] = Field(description="Referenced columns, in key order")
    referenced_table_filtered_out: bool = Field(
        default=False, description="Whether the referenced table was not retained"
    )


class TriggerSummary(BaseModel):
    name: str = Field(description="Trigger name")
    event: str = Field(description="Statement that fires the trigger")
    timing: str = Field(description="Timing relative to the event")
    orientation: str = Field(description="Row or statement level")
    statement: str | None = Field(default=None, description="Trigger body, if available")


class TableSummary(BaseModel):
    """Retained table with its structure and match keys."""

    name: str = Field(description="Fully qualified table name")
    schema_name: str = Field(description="Fully qualified schema name")
    table_type: str = Field(description="Table type, e.g. TABLE or VIEW")
    columns: list[ColumnSummary] = Field(default_factory=list)
    primary_key: list[str] = Field(default_factory=list)
    foreign_keys: list[ForeignKeySummary] = Field(default_factory=list)
    triggers: list[TriggerSummary] = Field(default_factory=list)
    row_count: int | None = Field(default=None, description="Row count, when loaded")
    match_keys: list[str] = Field(
        default_factory=list, description="Lower-case keys for weak association matching"
    )


class FilteredTableSummary(BaseModel):
    """Table that was seen during the crawl but not retained."""

    name: str = Field(description="Fully qualified table name")
    partial: bool = Field(description="Whether the table is only known through a foreign key")
    filtered_out: bool = Field(description="Whether the reducer marked the table filtered out")
    no_grep_match: bool = Field(
        description="Whether the table was filtered out under grep-only-matching"
    )


class RoutineSummary(BaseModel):
    name: str = Field(description="Fully qualified routine name")
    specific_name: str = Field(description="Name that disambiguates overloads")
    routine_type: Literal["function", "procedure"] = Field(description="Routine kind")
    return_type: str = Field(description="Return type kind")
    remarks: str | None = Field(default=None, description="Database comment, if any")


class CatalogSummary(BaseModel):
    """Summary of one reduced catalog."""

    catalog_name: str | None = Field(default=None, description="Database name, if known")
    schemas: list[str] = Field(default_factory=list, description="Crawled schemas")
    tables: list[TableSummary] = Field(default_factory=list, description="Retained tables")
    filtered_tables: list[FilteredTableSummary] = Field(
        default_factory=list, description="Tables that were not retained"
    )
    routines: list[RoutineSummary] = Field(default_factory=list)
    sequences: list[str] = Field(
        default_factory=list, description="Fully qualified sequence names"
    )
    match_key_groups: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Match keys shared by two or more tables, with the tables sharing them",
    )

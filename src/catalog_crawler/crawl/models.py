"""Data models for the crawled catalog.

This module contains the data classes that represent database metadata
after retrieval. Entities refer to each other through stable keys
(``SchemaReference``, ``TableKey``) rather than object pointers; the
``Catalog`` owns every entity and resolves keys back to objects.

Models:
- SchemaReference: Identifier of a schema within a catalog
- TableKey: Identifier of a table within a schema
- Column, ColumnReference, ForeignKey: Table structure and relationships
- Table: Fully retrieved table, or a partial stub known only through a foreign key
- Function, Procedure, Sequence, Trigger: Other schema objects
- ReducibleCollection: Keyed collection that hides, rather than drops, filtered objects
- Catalog: Root container for one crawl
- FilterOptions, GrepOptions, RetrievalStrategies, CrawlerConfig: Crawl configuration
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from .constants import (
    ActionOrientationType,
    ConditionTimingType,
    Constants,
    EventManipulationType,
    FunctionReturnType,
    InformationSchemaKey,
    ProcedureReturnType,
    RetrievalStrategy,
    TableKind,
    TableRelationshipType,
)
from .exceptions import ConfigurationError
from .utils import is_blank, qualified_name

K = TypeVar("K")
V = TypeVar("V")


@dataclass(frozen=True)
class SchemaReference:
    """Identifier of a schema, immutable once created.

    Attributes:
        catalog_name: Catalog (database) name, None when the database has no catalogs
        schema_name: Schema name, None when the database has no schemas
    """

    catalog_name: str | None
    schema_name: str | None

    @property
    def full_name(self) -> str:
        return qualified_name(self.catalog_name, self.schema_name)

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class TableKey:
    """Stable identifier of a table, used for every table-to-table reference."""

    catalog_name: str | None
    schema_name: str | None
    table_name: str

    @classmethod
    def of(cls, schema: SchemaReference, table_name: str) -> TableKey:
        return cls(schema.catalog_name, schema.schema_name, table_name)

    @property
    def schema(self) -> SchemaReference:
        return SchemaReference(self.catalog_name, self.schema_name)

    @property
    def full_name(self) -> str:
        return qualified_name(self.catalog_name, self.schema_name, self.table_name)

    def __str__(self) -> str:
        return self.full_name


@dataclass
class Column:
    """A table column.

    Attributes:
        name: Column name as defined in the database
        ordinal_position: 1-based position within the table
        data_type: SQL data type string as reported by the database
        nullable: Whether the column accepts NULL values
        is_pk: True if this column is part of the primary key
        remarks: Database comment, if available
    """

    name: str
    ordinal_position: int
    data_type: str = ""
    nullable: bool = True
    is_pk: bool = False
    remarks: str | None = None


@dataclass(frozen=True)
class ColumnReference:
    """One column pair of a foreign key, pointing from child to parent."""

    foreign_key_table: TableKey
    foreign_key_column: str
    primary_key_table: TableKey
    primary_key_column: str
    key_sequence: int = 1


@dataclass
class ForeignKey:
    """A foreign key: an ordered sequence of column references.

    All references share the same dependent (child) table and the same
    referenced (parent) table. A foreign key with no column references has
    neither.
    """

    name: str
    column_references: list[ColumnReference] = field(default_factory=list)

    @property
    def child_table(self) -> TableKey | None:
        if not self.column_references:
            return None
        return self.column_references[0].foreign_key_table

    @property
    def parent_table(self) -> TableKey | None:
        if not self.column_references:
            return None
        return self.column_references[0].primary_key_table

    def __iter__(self) -> Iterator[ColumnReference]:
        return iter(sorted(self.column_references, key=lambda ref: ref.key_sequence))


@dataclass
class Trigger:
    """A trigger attached to a table."""

    name: str
    table: TableKey
    event_manipulation_type: EventManipulationType = EventManipulationType.UNKNOWN
    action_order: int = 0
    action_condition: str | None = None
    action_statement: str | None = None
    action_orientation: ActionOrientationType = ActionOrientationType.UNKNOWN
    condition_timing: ConditionTimingType = ConditionTimingType.UNKNOWN
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        return qualified_name(self.table.full_name, self.name)


@dataclass
class Table:
    """A table node in the schema graph.

    A table is tagged ``TableKind.FULL`` when its own metadata was retrieved,
    or ``TableKind.PARTIAL`` when it is only known as the far end of a
    foreign key. Partial tables carry nothing but their key and are never
    retained by the reducer.

    Attributes:
        key: Stable table identifier
        kind: Full or partial
        table_type: Table type as reported by the database (TABLE, VIEW, ...)
        columns: Columns in ordinal order
        primary_key_columns: Names of the primary key columns
        foreign_keys: Imported foreign keys, where this table is the child
        triggers: Triggers defined on the table
        remarks: Database comment, if available
        row_count: Number of rows, when row counts were loaded
        filtered_out: Set by the reducer when the table is not retained
        no_grep_match: Set with filtered_out when grep-only-matching is requested
        attributes: Additional introspection details
    """

    key: TableKey
    kind: TableKind = TableKind.FULL
    table_type: str = "TABLE"
    columns: list[Column] = field(default_factory=list)
    primary_key_columns: list[str] = field(default_factory=list)
    foreign_keys: list[ForeignKey] = field(default_factory=list)
    triggers: list[Trigger] = field(default_factory=list)
    remarks: str | None = None
    row_count: int | None = None
    filtered_out: bool = False
    no_grep_match: bool = False
    attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def partial(cls, key: TableKey) -> Table:
        return cls(key=key, kind=TableKind.PARTIAL, table_type="UNKNOWN")

    @property
    def name(self) -> str:
        return self.key.table_name

    @property
    def schema(self) -> SchemaReference:
        return self.key.schema

    @property
    def full_name(self) -> str:
        return self.key.full_name

    @property
    def is_partial(self) -> bool:
        return self.kind is TableKind.PARTIAL

    def lookup_column(self, name: str) -> Column | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None


@dataclass
class Routine:
    """Common part of functions and procedures.

    ``specific_name`` disambiguates overloaded routines; when the database
    does not report one, the routine name is used.
    """

    schema: SchemaReference
    name: str
    specific_name: str = ""
    remarks: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if is_blank(self.specific_name):
            self.specific_name = self.name

    @property
    def full_name(self) -> str:
        return qualified_name(self.schema.catalog_name, self.schema.schema_name, self.name)

    @property
    def lookup_key(self) -> tuple[SchemaReference, str, str]:
        return (self.schema, self.name, self.specific_name)


@dataclass
class Function(Routine):
    return_type: FunctionReturnType = FunctionReturnType.UNKNOWN

    @property
    def routine_type(self) -> str:
        return "function"


@dataclass
class Procedure(Routine):
    return_type: ProcedureReturnType = ProcedureReturnType.UNKNOWN

    @property
    def routine_type(self) -> str:
        return "procedure"


@dataclass
class Sequence:
    """A database sequence."""

    schema: SchemaReference
    name: str
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        return qualified_name(self.schema.catalog_name, self.schema.schema_name, self.name)


class ReducibleCollection(Generic[K, V]):
    """Keyed collection whose filtered objects are hidden, not deleted.

    Iteration, ``len`` and ``in`` see only retained objects. Filtered objects
    stay reachable through ``lookup(..., include_filtered=True)`` so that
    relationships pointing at them can still be resolved.
    """

    def __init__(self) -> None:
        self._items: dict[K, V] = {}
        self._filtered: set[K] = set()

    def add(self, key: K, item: V) -> None:
        self._items[key] = item

    def lookup(self, key: K, *, include_filtered: bool = False) -> V | None:
        if not include_filtered and key in self._filtered:
            return None
        return self._items.get(key)

    def keys(self, *, include_filtered: bool = False) -> list[K]:
        return [key for key in self._items if include_filtered or key not in self._filtered]

    def values(self, *, include_filtered: bool = False) -> list[V]:
        return [self._items[key] for key in self.keys(include_filtered=include_filtered)]

    def filter(self, predicate: Callable[[V], bool]) -> None:
        """Hide every object the predicate rejects; previously hidden objects are re-tested."""
        self._filtered = {key for key, item in self._items.items() if not predicate(item)}

    def is_filtered(self, key: K) -> bool:
        return key in self._filtered

    def __iter__(self) -> Iterator[V]:
        return iter(self.values())

    def __len__(self) -> int:
        return len(self._items) - len(self._filtered)

    def __contains__(self, key: object) -> bool:
        return key in self._items and key not in self._filtered


class Catalog:
    """Root container owning every object crawled from one database.

    The catalog is the arena for the schema graph. Tables are stored by
    ``TableKey``; foreign keys refer to tables by key. A schema-to-tables
    index and an exported foreign key index are derived from the tables and
    rebuilt by ``reindex()`` whenever the retained set changes.
    """

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        self._schemas: dict[SchemaReference, SchemaReference] = {}
        self.tables: ReducibleCollection[TableKey, Table] = ReducibleCollection()
        self.routines: ReducibleCollection[tuple[SchemaReference, str, str], Routine] = (
            ReducibleCollection()
        )
        self.sequences: ReducibleCollection[tuple[SchemaReference, str], Sequence] = (
            ReducibleCollection()
        )
        self._schema_index: dict[SchemaReference, list[TableKey]] = {}
        self._exported_index: dict[TableKey, list[ForeignKey]] = {}
        self._index_stale = True

    # ---- schemas -----------------------------------------------------------
    def add_schema(self, schema: SchemaReference) -> None:
        self._schemas[schema] = schema

    @property
    def schemas(self) -> list[SchemaReference]:
        return list(self._schemas)

    @property
    def supports_catalogs(self) -> bool:
        return any(not is_blank(schema.catalog_name) for schema in self._schemas)

    def lookup_schema(
        self, catalog_name: str | None, schema_name: str | None
    ) -> SchemaReference | None:
        """Resolve a schema reference from names reported in a metadata row.

        Catalog names are ignored when none of the known schemas carry one,
        since drivers for such databases may still report a database name.
        """
        if not self.supports_catalogs:
            catalog_name = None
        catalog_name = None if is_blank(catalog_name) else catalog_name
        schema_name = None if is_blank(schema_name) else schema_name
        return self._schemas.get(SchemaReference(catalog_name, schema_name))

    # ---- tables ------------------------------------------------------------
    def add_table(self, table: Table) -> None:
        """Add a table, never letting a partial stub replace a full table."""
        existing = self.tables.lookup(table.key, include_filtered=True)
        if existing is not None and not existing.is_partial and table.is_partial:
            return
        self.tables.add(table.key, table)
        self._index_stale = True

    def lookup_table(self, key: TableKey, *, include_filtered: bool = False) -> Table | None:
        return self.tables.lookup(key, include_filtered=include_filtered)

    def tables_in_schema(self, schema: SchemaReference) -> list[Table]:
        self._ensure_index()
        tables = []
        for key in self._schema_index.get(schema, []):
            table = self.tables.lookup(key)
            if table is not None:
                tables.append(table)
        return tables

    def imported_foreign_keys(self, key: TableKey) -> list[ForeignKey]:
        """Foreign keys in which the given table is the dependent (child) table."""
        table = self.tables.lookup(key, include_filtered=True)
        return list(table.foreign_keys) if table is not None else []

    def exported_foreign_keys(self, key: TableKey) -> list[ForeignKey]:
        """Foreign keys in which the given table is the referenced (parent) table."""
        self._ensure_index()
        return list(self._exported_index.get(key, []))

    def related_tables(
        self, key: TableKey, relationship: TableRelationshipType
    ) -> list[Table]:
        """Directly related tables, filtered ones included.

        Children reference the given table; parents are referenced by it.
        """
        if relationship is TableRelationshipType.CHILD:
            related = [fk.child_table for fk in self.exported_foreign_keys(key)]
        else:
            related = [fk.parent_table for fk in self.imported_foreign_keys(key)]
        tables: list[Table] = []
        for related_key in dict.fromkeys(related):
            if related_key is None or related_key == key:
                continue
            table = self.tables.lookup(related_key, include_filtered=True)
            if table is not None:
                tables.append(table)
        return tables

    def reindex(self) -> None:
        """Rebuild the schema and exported foreign key indexes from retained tables."""
        self._schema_index = {}
        self._exported_index = {}
        for table in self.tables:
            self._schema_index.setdefault(table.schema, []).append(table.key)
        for table in self.tables.values(include_filtered=True):
            for foreign_key in table.foreign_keys:
                parent_key = foreign_key.parent_table
                if parent_key is not None:
                    self._exported_index.setdefault(parent_key, []).append(foreign_key)
        self._index_stale = False

    def _ensure_index(self) -> None:
        if self._index_stale:
            self.reindex()

    # ---- other objects -----------------------------------------------------
    def add_routine(self, routine: Routine) -> None:
        self.routines.add(routine.lookup_key, routine)

    def add_sequence(self, sequence: Sequence) -> None:
        self.sequences.add((sequence.schema, sequence.name), sequence)

    @property
    def functions(self) -> list[Function]:
        return [routine for routine in self.routines if isinstance(routine, Function)]

    @property
    def procedures(self) -> list[Procedure]:
        return [routine for routine in self.routines if isinstance(routine, Procedure)]


@dataclass(frozen=True)
class FilterOptions:
    """Related-table expansion depths used by the tables reducer.

    Attributes:
        child_table_filter_depth: Hops along tables that reference a kept table
        parent_table_filter_depth: Hops along tables a kept table references
    """

    child_table_filter_depth: int = Constants.DEFAULT_DEPTH
    parent_table_filter_depth: int = Constants.DEFAULT_DEPTH

    def __post_init__(self) -> None:
        if self.child_table_filter_depth < 0 or self.parent_table_filter_depth < 0:
            msg = (
                "Table filter depths must not be negative: "
                f"child={self.child_table_filter_depth} parent={self.parent_table_filter_depth}"
            )
            raise ConfigurationError(msg)


@dataclass(frozen=True)
class GrepOptions:
    """Column grep applied on top of the table inclusion rule.

    Attributes:
        grep_column_pattern: Regular expression for fully qualified column names
        invert_match: Keep tables with no matching column instead
        only_matching: Also flag filtered tables as having no grep match
    """

    grep_column_pattern: str | None = None
    invert_match: bool = False
    only_matching: bool = False

    @property
    def is_grep_columns(self) -> bool:
        return not is_blank(self.grep_column_pattern)


@dataclass(frozen=True)
class RetrievalStrategies:
    """Retrieval strategy per object category, fixed for one crawl."""

    functions: RetrievalStrategy = RetrievalStrategy.PER_OBJECT_METADATA
    procedures: RetrievalStrategy = RetrievalStrategy.PER_OBJECT_METADATA
    sequences: RetrievalStrategy = RetrievalStrategy.PER_OBJECT_METADATA
    triggers: RetrievalStrategy = RetrievalStrategy.PER_OBJECT_METADATA

    def get(self, key: InformationSchemaKey) -> RetrievalStrategy:
        strategy = getattr(self, key.value.lower(), None)
        if strategy is None:
            msg = f"No retrieval strategy for {key.value}"
            raise ConfigurationError(msg)
        return strategy


@dataclass
class CrawlerConfig:
    """Configuration object for one crawl.

    Attributes:
        schema_include: Regular expression for fully qualified schema names to crawl
        schema_exclude: Regular expression for schema names to skip
        table_include: Regular expression for fully qualified table names to keep
        table_exclude: Regular expression for table names to filter out
        routine_include: Regular expression for routines to retrieve; blank skips routines
        routine_exclude: Regular expression for routines to skip
        sequence_include: Regular expression for sequences to retrieve; blank skips sequences
        sequence_exclude: Regular expression for sequences to skip
        include_views: Whether views are crawled alongside tables
        filter_options: Related-table expansion depths
        grep_options: Column grep settings
        retrieval_strategies: Retrieval strategy per category
        alphabetical_columns: Sort columns by name when expanding query templates
        load_row_counts: Count rows of every retained table
        infer_weak_associations: Build table match keys after reduction
        template_variables: Context-wide variables for query templates
    """

    schema_include: str = Constants.INCLUDE_ALL_PATTERN
    schema_exclude: str | None = None
    table_include: str = Constants.INCLUDE_ALL_PATTERN
    table_exclude: str | None = None
    routine_include: str = Constants.INCLUDE_ALL_PATTERN
    routine_exclude: str | None = None
    sequence_include: str = Constants.INCLUDE_ALL_PATTERN
    sequence_exclude: str | None = None
    include_views: bool = True
    filter_options: FilterOptions = field(default_factory=FilterOptions)
    grep_options: GrepOptions = field(default_factory=GrepOptions)
    retrieval_strategies: RetrievalStrategies = field(default_factory=RetrievalStrategies)
    alphabetical_columns: bool = False
    load_row_counts: bool = False
    infer_weak_associations: bool = True
    template_variables: dict[str, str] = field(default_factory=dict)

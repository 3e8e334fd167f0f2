"""Constants and enums for the catalog crawler.

This module contains configuration constants, regex patterns, and
enumeration definitions used throughout the crawl pipeline.
"""

from __future__ import annotations

from enum import Enum
import re
from typing import Final, TypeVar

E = TypeVar("E", bound=Enum)


class Constants:
    """Configuration constants for the catalog crawler."""

    # Template placeholders, e.g. ${table}
    TEMPLATE_VARIABLE_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([^${}]+)\}")
    TABLE_VARIABLE: Final[str] = "table"
    SCHEMAS_VARIABLE: Final[str] = "schemas"

    # Inclusion defaults
    INCLUDE_ALL_PATTERN: Final[str] = ".*"

    # Weak association prefix selection
    MATCH_KEY_PREFIX_SEPARATOR: Final[str] = "_"
    MATCH_KEY_TOP_PREFIXES: Final[int] = 5
    MATCH_KEY_PREFIX_SHARE: Final[float] = 0.5

    # Column type hints for large objects, omitted from ORDER BY column lists
    LARGE_OBJECT_TYPE_HINTS: Final[frozenset[str]] = frozenset(
        {
            "blob",
            "clob",
            "nclob",
            "bytea",
            "binary",
            "varbinary",
            "image",
            "ntext",
            "longtext",
            "mediumtext",
            "longblob",
            "mediumblob",
            "xml",
            "json",
            "jsonb",
            "geometry",
            "geography",
        }
    )

    # Related-table expansion depth when none is configured
    DEFAULT_DEPTH: Final[int] = 0


class RetrievalStrategy(Enum):
    """How one category of database objects is fetched."""

    BULK_QUERY = "bulk_query"  # One data dictionary query for all schemas
    PER_OBJECT_METADATA = "per_object_metadata"  # One introspection call per schema
    DISABLED = "none"  # Not retrieved at all


class InformationSchemaKey(Enum):
    """Categories with a named data dictionary query."""

    FUNCTIONS = "FUNCTIONS"
    PROCEDURES = "PROCEDURES"
    SEQUENCES = "SEQUENCES"
    TRIGGERS = "TRIGGERS"
    ROW_COUNTS = "ROW_COUNTS"


class TableKind(Enum):
    """Tag distinguishing fully retrieved tables from foreign key stubs."""

    FULL = "full"
    PARTIAL = "partial"


class TableRelationshipType(Enum):
    """Direction of a foreign key relationship, seen from one table."""

    CHILD = "child"  # Tables that reference this table
    PARENT = "parent"  # Tables this table references


class FunctionReturnType(Enum):
    """Function result kinds, keyed by the JDBC short id."""

    UNKNOWN = 0
    NO_TABLE = 1
    RETURNS_TABLE = 2

    @classmethod
    def from_id(cls, value: int | None) -> FunctionReturnType:
        return _enum_from_id(cls, value, cls.UNKNOWN)


class ProcedureReturnType(Enum):
    """Procedure result kinds, keyed by the JDBC short id."""

    UNKNOWN = 0
    NO_RESULT = 1
    RETURNS_RESULT = 2

    @classmethod
    def from_id(cls, value: int | None) -> ProcedureReturnType:
        return _enum_from_id(cls, value, cls.UNKNOWN)


class EventManipulationType(Enum):
    """Statement that fires a trigger."""

    UNKNOWN = "unknown"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ActionOrientationType(Enum):
    """Whether a trigger fires per row or per statement."""

    UNKNOWN = "unknown"
    ROW = "row"
    STATEMENT = "statement"


class ConditionTimingType(Enum):
    """When a trigger fires relative to its event."""

    UNKNOWN = "unknown"
    BEFORE = "before"
    AFTER = "after"
    INSTEAD_OF = "instead of"


def _enum_from_id(enum_cls: type[E], value: int | str | None, default: E) -> E:
    if value is None:
        return default
    try:
        return enum_cls(int(value))
    except (TypeError, ValueError):
        return default


__all__ = [
    "ActionOrientationType",
    "ConditionTimingType",
    "Constants",
    "EventManipulationType",
    "FunctionReturnType",
    "InformationSchemaKey",
    "ProcedureReturnType",
    "RetrievalStrategy",
    "TableKind",
    "TableRelationshipType",
]

"""Registry of data dictionary queries used for bulk retrieval.

Each query is registered under an ``InformationSchemaKey`` and aliases its
result columns to the names the retrievers read (``FUNCTION_NAME``,
``TRIGGER_SCHEMA``, ...). Built-in queries exist for a few dialects; callers
can add or override queries per key.

Classes:
- InformationSchemaViews: Category key to named ``Query`` registry
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Final

from fastmcp.utilities.logging import get_logger

from .constants import InformationSchemaKey
from .query import Query
from .utils import is_blank

# Logger
_logger = get_logger("catalog_crawler.information_schema")

_ROW_COUNT_SQL: Final[str] = "SELECT COUNT(*) FROM ${table}"

_POSTGRESQL_QUERIES: Final[dict[InformationSchemaKey, str]] = {
    InformationSchemaKey.FUNCTIONS: """
        SELECT
          routine_catalog AS FUNCTION_CAT,
          routine_schema AS FUNCTION_SCHEM,
          routine_name AS FUNCTION_NAME,
          CASE WHEN data_type = 'record' THEN 2 ELSE 1 END AS FUNCTION_TYPE,
          NULL AS REMARKS,
          specific_name AS SPECIFIC_NAME,
          external_language AS ROUTINE_LANGUAGE
        FROM information_schema.routines
        WHERE routine_type = 'FUNCTION'
          AND routine_schema ~ '^(${schemas})$'
        ORDER BY routine_schema, routine_name
    """,
    InformationSchemaKey.PROCEDURES: """
        SELECT
          routine_catalog AS PROCEDURE_CAT,
          routine_schema AS PROCEDURE_SCHEM,
          routine_name AS PROCEDURE_NAME,
          1 AS PROCEDURE_TYPE,
          NULL AS REMARKS,
          specific_name AS SPECIFIC_NAME,
          external_language AS ROUTINE_LANGUAGE
        FROM information_schema.routines
        WHERE routine_type = 'PROCEDURE'
          AND routine_schema ~ '^(${schemas})$'
        ORDER BY routine_schema, routine_name
    """,
    InformationSchemaKey.SEQUENCES: """
        SELECT
          sequence_catalog AS SEQUENCE_CATALOG,
          sequence_schema AS SEQUENCE_SCHEMA,
          sequence_name AS SEQUENCE_NAME,
          increment AS INCREMENT,
          minimum_value AS MINIMUM_VALUE,
          maximum_value AS MAXIMUM_VALUE,
          cycle_option AS CYCLE_OPTION
        FROM information_schema.sequences
        WHERE sequence_schema ~ '^(${schemas})$'
        ORDER BY sequence_schema, sequence_name
    """,
    InformationSchemaKey.TRIGGERS: """
        SELECT
          trigger_catalog AS TRIGGER_CATALOG,
          trigger_schema AS TRIGGER_SCHEMA,
          trigger_name AS TRIGGER_NAME,
          event_manipulation AS EVENT_MANIPULATION,
          event_object_catalog AS EVENT_OBJECT_CATALOG,
          event_object_schema AS EVENT_OBJECT_SCHEMA,
          event_object_table AS EVENT_OBJECT_TABLE,
          action_order AS ACTION_ORDER,
          action_condition AS ACTION_CONDITION,
          action_statement AS ACTION_STATEMENT,
          action_orientation AS ACTION_ORIENTATION,
          action_timing AS CONDITION_TIMING
        FROM information_schema.triggers
        WHERE trigger_schema ~ '^(${schemas})$'
        ORDER BY trigger_schema, event_object_table, trigger_name
    """,
    InformationSchemaKey.ROW_COUNTS: _ROW_COUNT_SQL,
}

_MYSQL_QUERIES: Final[dict[InformationSchemaKey, str]] = {
    InformationSchemaKey.FUNCTIONS: """
        SELECT
          NULL AS FUNCTION_CAT,
          ROUTINE_SCHEMA AS FUNCTION_SCHEM,
          ROUTINE_NAME AS FUNCTION_NAME,
          1 AS FUNCTION_TYPE,
          ROUTINE_COMMENT AS REMARKS,
          SPECIFIC_NAME AS SPECIFIC_NAME
        FROM INFORMATION_SCHEMA.ROUTINES
        WHERE ROUTINE_TYPE = 'FUNCTION'
          AND ROUTINE_SCHEMA REGEXP '^(${schemas})$'
    """,
    InformationSchemaKey.PROCEDURES: """
        SELECT
          NULL AS PROCEDURE_CAT,
          ROUTINE_SCHEMA AS PROCEDURE_SCHEM,
          ROUTINE_NAME AS PROCEDURE_NAME,
          1 AS PROCEDURE_TYPE,
          ROUTINE_COMMENT AS REMARKS,
          SPECIFIC_NAME AS SPECIFIC_NAME
        FROM INFORMATION_SCHEMA.ROUTINES
        WHERE ROUTINE_TYPE = 'PROCEDURE'
          AND ROUTINE_SCHEMA REGEXP '^(${schemas})$'
    """,
    InformationSchemaKey.TRIGGERS: """
        SELECT
          NULL AS TRIGGER_CATALOG,
          TRIGGER_SCHEMA,
          TRIGGER_NAME,
          EVENT_MANIPULATION,
          EVENT_OBJECT_SCHEMA,
          EVENT_OBJECT_TABLE,
          ACTION_ORDER,
          ACTION_CONDITION,
          ACTION_STATEMENT,
          ACTION_ORIENTATION,
          ACTION_TIMING AS CONDITION_TIMING
        FROM INFORMATION_SCHEMA.TRIGGERS
        WHERE TRIGGER_SCHEMA REGEXP '^(${schemas})$'
    """,
    InformationSchemaKey.ROW_COUNTS: _ROW_COUNT_SQL,
}

_SQLITE_QUERIES: Final[dict[InformationSchemaKey, str]] = {
    InformationSchemaKey.TRIGGERS: """
        SELECT
          NULL AS TRIGGER_CATALOG,
          'main' AS TRIGGER_SCHEMA,
          name AS TRIGGER_NAME,
          'main' AS EVENT_OBJECT_SCHEMA,
          tbl_name AS EVENT_OBJECT_TABLE,
          sql AS ACTION_STATEMENT
        FROM sqlite_master
        WHERE type = 'trigger'
        ORDER BY tbl_name, name
    """,
    InformationSchemaKey.ROW_COUNTS: _ROW_COUNT_SQL,
}

_DIALECT_QUERIES: Final[dict[str, dict[InformationSchemaKey, str]]] = {
    "postgresql": _POSTGRESQL_QUERIES,
    "mysql": _MYSQL_QUERIES,
    "mariadb": _MYSQL_QUERIES,
    "sqlite": _SQLITE_QUERIES,
}


def _to_key(key: InformationSchemaKey | str) -> InformationSchemaKey:
    if isinstance(key, InformationSchemaKey):
        return key
    return InformationSchemaKey(key.strip().upper())


class InformationSchemaViews:
    """Named data dictionary queries, keyed by object category.

    Attributes:
        queries: Registered queries by category
    """

    def __init__(self, queries: Mapping[InformationSchemaKey | str, str] | None = None) -> None:
        self.queries: dict[InformationSchemaKey, Query] = {}
        for key, sql in (queries or {}).items():
            self.add_query(key, sql)

    @classmethod
    def for_dialect(
        cls,
        dialect_name: str,
        overrides: Mapping[InformationSchemaKey | str, str] | None = None,
    ) -> InformationSchemaViews:
        """Built-in queries for a SQLAlchemy dialect, with optional overrides.

        Args:
            dialect_name: SQLAlchemy dialect name, e.g. ``postgresql``
            overrides: Queries that replace or extend the built-ins

        Returns:
            A registry; empty for dialects without built-in queries
        """
        builtin = _DIALECT_QUERIES.get(dialect_name.lower(), {})
        views = cls(builtin)
        for key, sql in (overrides or {}).items():
            views.add_query(key, sql)
        _logger.debug(
            "Data dictionary queries for %s: %s",
            dialect_name,
            sorted(key.value for key in views.queries),
        )
        return views

    def add_query(self, key: InformationSchemaKey | str, sql: str | None) -> None:
        """Register a query; a blank query removes any existing one."""
        category = _to_key(key)
        if is_blank(sql):
            self.queries.pop(category, None)
            return
        self.queries[category] = Query(category.value, sql)

    def has_query(self, key: InformationSchemaKey | str) -> bool:
        return _to_key(key) in self.queries

    def get_query(self, key: InformationSchemaKey | str) -> Query | None:
        return self.queries.get(_to_key(key))

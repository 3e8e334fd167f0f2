"""Named SQL queries parameterized with ``${variable}`` placeholders.

Templates are expanded in two passes. The first pass substitutes
object-specific variables: the schema inclusion pattern for schema-wide
queries, or a table's names, columns and type for per-table queries. The
second pass substitutes context-wide variables and blanks anything still
unresolved. Expansion is plain text substitution and never raises.

Classes:
- Query: A named, possibly parameterized SQL statement

Functions:
- expand_template(): Substitute placeholders in a template
- extract_template_variables(): Names of placeholders in a template
- columns_list(): Comma-separated column names for a table
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from fastmcp.utilities.logging import get_logger

from .constants import Constants
from .utils import is_blank, is_large_object_type

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

    from .inclusion import InclusionRule
    from .models import Column, Table

# Logger
_logger = get_logger("catalog_crawler.query")


def expand_template(
    template: str, variables: Mapping[str, str] | None = None, *, blank_unresolved: bool = False
) -> str:
    """Substitute ``${name}`` placeholders in a template.

    Args:
        template: Text containing placeholders
        variables: Values keyed by placeholder name
        blank_unresolved: Replace unknown placeholders with an empty string
            instead of leaving them for a later pass

    Returns:
        The expanded text

    Example:
        >>> expand_template("SELECT * FROM ${table}", {"table": "public.orders"})
        'SELECT * FROM public.orders'
    """
    if not template:
        return ""
    values = variables or {}

    def _substitute(match: Any) -> str:
        name = match.group(1)
        if name in values and values[name] is not None:
            return str(values[name])
        return "" if blank_unresolved else match.group(0)

    return Constants.TEMPLATE_VARIABLE_PATTERN.sub(_substitute, template)


def _schema_variables(schema_inclusion_rule: InclusionRule | None) -> dict[str, str]:
    if schema_inclusion_rule is None:
        return {}
    pattern = schema_inclusion_rule.inclusion_pattern
    if is_blank(pattern):
        return {}
    return {Constants.SCHEMAS_VARIABLE: pattern}


def extract_template_variables(template: str) -> set[str]:
    """Return the names of all placeholders in a template."""
    if not template:
        return set()
    return set(Constants.TEMPLATE_VARIABLE_PATTERN.findall(template))


def columns_list(columns: Sequence[Column], *, omit_large_objects: bool = False) -> str:
    """Comma-separated column names, optionally skipping large object columns."""
    return ", ".join(
        column.name
        for column in columns
        if not (omit_large_objects and is_large_object_type(column.data_type))
    )


class Query:
    """A named SQL query that may be parameterized with template variables.

    Attributes:
        name: Query name, used in logs
        query: SQL template
    """

    def __init__(self, name: str, query: str | None = None) -> None:
        """Define a query.

        Args:
            name: Query name; doubles as the SQL when no SQL is given
            query: SQL template

        Raises:
            ValueError: If neither a name nor SQL is provided
        """
        name_provided = not is_blank(name)
        query_provided = not is_blank(query)
        if name_provided and query_provided:
            self.name = name
            self.query = query or ""
        elif name_provided:
            self.name = self.query = name
        else:
            msg = "No SQL found for query"
            raise ValueError(msg)

    def is_query_over(self) -> bool:
        """Whether the query is run once for each table."""
        return Constants.TABLE_VARIABLE in extract_template_variables(self.query)

    def get_query(
        self,
        schema_inclusion_rule: InclusionRule | None = None,
        context: Mapping[str, str] | None = None,
    ) -> str:
        """Get the query with schema-wide parameters substituted.

        Args:
            schema_inclusion_rule: Rule whose include pattern fills ``${schemas}``
            context: Context-wide variables for the second pass

        Returns:
            Ready-to-execute SQL
        """
        sql = expand_template(self.query, _schema_variables(schema_inclusion_rule))
        return expand_template(sql, context, blank_unresolved=True)

    def get_query_for_table(
        self,
        table: Table,
        *,
        schema_inclusion_rule: InclusionRule | None = None,
        alphabetical_columns: bool = False,
        context: Mapping[str, str] | None = None,
    ) -> str:
        """Get the query with table parameters substituted.

        Args:
            table: Table supplying names, columns and type
            schema_inclusion_rule: Rule whose include pattern fills ``${schemas}``
                in the second pass
            alphabetical_columns: Sort column lists by name instead of ordinal position
            context: Context-wide variables for the second pass

        Returns:
            Ready-to-execute SQL
        """
        if alphabetical_columns:
            columns = sorted(table.columns, key=lambda column: column.name.lower())
        else:
            columns = sorted(table.columns, key=lambda column: column.ordinal_position)

        properties = {
            "schema": table.schema.full_name,
            Constants.TABLE_VARIABLE: table.full_name,
            "tablename": table.name,
            "columns": columns_list(columns),
            "orderbycolumns": columns_list(columns, omit_large_objects=True),
            "tabletype": table.table_type,
        }

        sql = expand_template(self.query, properties)
        variables = {**(context or {}), **_schema_variables(schema_inclusion_rule)}
        return expand_template(sql, variables, blank_unresolved=True)

    # ---- execution ---------------------------------------------------------
    def execute(
        self,
        connection: Connection,
        schema_inclusion_rule: InclusionRule | None = None,
        context: Mapping[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        """Execute the schema-wide form of the query and return all rows."""
        sql = self.get_query(schema_inclusion_rule, context)
        return self._fetch_rows(connection, sql)

    def execute_for_table(
        self,
        connection: Connection,
        table: Table,
        *,
        schema_inclusion_rule: InclusionRule | None = None,
        alphabetical_columns: bool = False,
        context: Mapping[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        """Execute the per-table form of the query and return all rows."""
        sql = self.get_query_for_table(
            table,
            schema_inclusion_rule=schema_inclusion_rule,
            alphabetical_columns=alphabetical_columns,
            context=context,
        )
        return self._fetch_rows(connection, sql)

    def execute_for_scalar(
        self,
        connection: Connection,
        table: Table | None = None,
        context: Mapping[str, str] | None = None,
    ) -> Any:
        """Execute the query and return the first column of the first row, or None."""
        if table is not None:
            sql = self.get_query_for_table(table, alphabetical_columns=True, context=context)
        else:
            sql = self.get_query(context=context)
        _logger.debug("Executing %s:\n%s", self.name, sql)
        return connection.exec_driver_sql(sql).scalar()

    def _fetch_rows(self, connection: Connection, sql: str) -> list[dict[str, Any]]:
        _logger.debug("Executing %s:\n%s", self.name, sql)
        result = connection.exec_driver_sql(sql)
        try:
            return [dict(row) for row in result.mappings()]
        finally:
            result.close()

    def __repr__(self) -> str:
        return f"Query(name={self.name!r})"

    def __str__(self) -> str:
        return f"{self.name}:{self.query}"

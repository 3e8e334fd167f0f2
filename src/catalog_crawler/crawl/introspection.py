"""Introspection collaborator: per-schema metadata calls.

This module defines the interface the retrievers use to read database
metadata one schema at a time, the typed result returned by per-category
calls, and a SQLAlchemy-backed implementation built on ``Inspector``.

Classes:
- MetadataRow: Case-insensitive view of one metadata row that tracks read columns
- FetchStatus, FetchResult: Typed outcome of a per-schema category call
- MetadataSource: Protocol for introspection collaborators
- InspectorMetadataSource: Implementation using SQLAlchemy reflection
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Protocol, TypeVar

from fastmcp.utilities.logging import get_logger
import sqlalchemy as sa
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.engine.reflection import Inspector
from sqlalchemy.exc import NotSupportedError, SQLAlchemyError

from .constants import InformationSchemaKey
from .exceptions import RetrievalError
from .models import SchemaReference
from .utils import default_excluded_schemas, is_blank

# Logger
_logger = get_logger("catalog_crawler.introspection")

E = TypeVar("E", bound=Enum)


class MetadataRow:
    """One row of metadata, read by column name regardless of case.

    Columns that are never read become the object's extra attributes, so
    vendor-specific columns in a data dictionary query are kept.
    """

    def __init__(self, row: Mapping[str, Any]) -> None:
        self._values = {str(key).upper(): value for key, value in row.items()}
        self._read: set[str] = set()

    def get(self, name: str) -> Any:
        key = name.upper()
        self._read.add(key)
        return self._values.get(key)

    def get_string(self, name: str) -> str | None:
        value = self.get(name)
        if value is None:
            return None
        return str(value).strip()

    def get_int(self, name: str, default: int = 0) -> int:
        value = self.get(name)
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def get_enum(self, name: str, default: E) -> E:
        """Decode a text column into an enum by value, falling back to the default."""
        value = self.get_string(name)
        if is_blank(value):
            return default
        normalized = (value or "").strip().lower()
        for member in type(default):
            if str(member.value).lower() == normalized:
                return member
        return default

    def attributes(self) -> dict[str, Any]:
        """Columns that were not read, keyed by lower-case name."""
        return {
            key.lower(): value
            for key, value in self._values.items()
            if key not in self._read and value is not None
        }


class FetchStatus(Enum):
    """Outcome of one per-schema introspection call."""

    OK = auto()
    UNSUPPORTED = auto()
    ERROR = auto()


@dataclass(frozen=True)
class FetchResult:
    """Rows returned by a per-schema call, or why there are none."""

    status: FetchStatus
    rows: list[dict[str, Any]] = field(default_factory=list)
    message: str | None = None

    @classmethod
    def ok(cls, rows: list[dict[str, Any]]) -> FetchResult:
        return cls(FetchStatus.OK, rows)

    @classmethod
    def unsupported(cls, message: str) -> FetchResult:
        return cls(FetchStatus.UNSUPPORTED, message=message)

    @classmethod
    def error(cls, message: str) -> FetchResult:
        return cls(FetchStatus.ERROR, message=message)


class MetadataSource(Protocol):
    """Introspection collaborator used by the retrievers."""

    @property
    def dialect_name(self) -> str: ...

    def list_schemas(self) -> list[SchemaReference]: ...

    def list_tables(
        self, schema: SchemaReference, *, include_views: bool = True
    ) -> list[tuple[str, str]]: ...

    def get_columns(self, schema: SchemaReference, table_name: str) -> list[dict[str, Any]]: ...

    def get_primary_key(self, schema: SchemaReference, table_name: str) -> list[str]: ...

    def get_foreign_keys(
        self, schema: SchemaReference, table_name: str
    ) -> list[dict[str, Any]]: ...

    def fetch(self, category: InformationSchemaKey, schema: SchemaReference) -> FetchResult: ...


class InspectorMetadataSource:
    """Metadata source backed by SQLAlchemy's ``Inspector``.

    Every call opens its own connection and releases it before returning.
    SQLAlchemy does not reflect functions, procedures or triggers; those
    categories report ``FetchStatus.UNSUPPORTED`` and need a data dictionary
    query instead.

    Attributes:
        engine: SQLAlchemy engine for database connections
        exclude_schemas: Schema names never listed
        reflect_timeout_sec: Optional per-connection timeout for metadata queries
    """

    def __init__(
        self,
        engine: Engine,
        exclude_schemas: list[str] | None = None,
        *,
        reflect_timeout_sec: int | None = None,
    ) -> None:
        self.engine = engine
        self.exclude_schemas = exclude_schemas
        self.reflect_timeout_sec = reflect_timeout_sec
        self._accessors: dict[
            InformationSchemaKey, Callable[[Inspector, SchemaReference], list[dict[str, Any]]]
        ] = {
            InformationSchemaKey.SEQUENCES: self._sequences,
        }

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def list_schemas(self) -> list[SchemaReference]:
        """List schemas, excluding system schemas of the dialect.

        Raises:
            RetrievalError: If the database refuses to list its schemas
        """
        try:
            with self.engine.connect() as conn:
                inspector = self._inspect(conn)
                names = inspector.get_schema_names()
        except SQLAlchemyError as e:
            error_msg = f"Failed to list database schemas: {e}"
            raise RetrievalError(error_msg) from e

        excluded = {
            name.lower()
            for name in (self.exclude_schemas or default_excluded_schemas(self.dialect_name))
        }
        return [
            SchemaReference(None, name)
            for name in names
            if name is not None and name.lower() not in excluded
        ]

    def list_tables(
        self, schema: SchemaReference, *, include_views: bool = True
    ) -> list[tuple[str, str]]:
        with self.engine.connect() as conn:
            inspector = self._inspect(conn)
            tables = [(name, "TABLE") for name in inspector.get_table_names(schema=schema.schema_name)]
            if include_views:
                tables.extend(
                    (name, "VIEW") for name in inspector.get_view_names(schema=schema.schema_name)
                )
        return tables

    def get_columns(self, schema: SchemaReference, table_name: str) -> list[dict[str, Any]]:
        with self.engine.connect() as conn:
            columns = self._inspect(conn).get_columns(table_name, schema=schema.schema_name)
        return [
            {
                "name": column["name"],
                "type": self._type_name(column.get("type")),
                "nullable": column.get("nullable", True),
                "comment": column.get("comment"),
            }
            for column in columns
        ]

    def get_primary_key(self, schema: SchemaReference, table_name: str) -> list[str]:
        with self.engine.connect() as conn:
            constraint = self._inspect(conn).get_pk_constraint(table_name, schema=schema.schema_name)
        return list(constraint.get("constrained_columns") or [])

    def get_foreign_keys(self, schema: SchemaReference, table_name: str) -> list[dict[str, Any]]:
        with self.engine.connect() as conn:
            foreign_keys = self._inspect(conn).get_foreign_keys(
                table_name, schema=schema.schema_name
            )
        return [dict(foreign_key) for foreign_key in foreign_keys]

    def fetch(self, category: InformationSchemaKey, schema: SchemaReference) -> FetchResult:
        """Run the per-schema accessor for a category and classify the outcome."""
        accessor = self._accessors.get(category)
        if accessor is None:
            return FetchResult.unsupported(
                f"{category.value.lower()} are not available through SQLAlchemy inspection"
            )
        try:
            with self.engine.connect() as conn:
                rows = accessor(self._inspect(conn), schema)
        except (NotImplementedError, NotSupportedError) as e:
            return FetchResult.unsupported(str(e) or f"{category.value.lower()} not supported")
        except SQLAlchemyError as e:
            return FetchResult.error(str(e))
        return FetchResult.ok(rows)

    # ---- internals ---------------------------------------------------------
    def _inspect(self, conn: Connection) -> Inspector:
        self._apply_reflection_timeout(conn)
        return sa.inspect(conn)

    @staticmethod
    def _type_name(column_type: Any) -> str:
        if column_type is None:
            return ""
        try:
            return str(column_type)
        except Exception:  # noqa: BLE001 - some reflected types cannot compile standalone
            return type(column_type).__name__

    @staticmethod
    def _sequences(inspector: Inspector, schema: SchemaReference) -> list[dict[str, Any]]:
        return [
            {
                "SEQUENCE_CATALOG": schema.catalog_name,
                "SEQUENCE_SCHEMA": schema.schema_name,
                "SEQUENCE_NAME": name,
            }
            for name in inspector.get_sequence_names(schema=schema.schema_name)
        ]

    def _apply_reflection_timeout(self, conn: Connection) -> None:
        """Apply a per-connection timeout suitable for metadata reflection.

        Best-effort, dialect-specific:
        - PostgreSQL: SET statement_timeout = <ms>
        - MySQL:      SET SESSION MAX_EXECUTION_TIME = <ms>
        """
        timeout_sec = self.reflect_timeout_sec
        if not timeout_sec or timeout_sec <= 0:
            return
        try:
            ms = max(1, int(timeout_sec * 1000))
            if self.dialect_name == "postgresql":
                conn.execute(sa.text(f"SET statement_timeout = {ms}"))
            elif self.dialect_name in {"mysql", "mariadb"}:
                conn.execute(sa.text(f"SET SESSION MAX_EXECUTION_TIME = {ms}"))
        except Exception as e:  # noqa: BLE001 - best-effort guard
            _logger.debug("Could not apply reflection timeout: %s", e)

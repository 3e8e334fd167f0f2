"""Utility functions for the catalog crawler.

Functions:
- now(): High-resolution timestamp for stage timings
- is_blank(): Check for missing or whitespace-only strings
- qualified_name(): Join name parts into a dotted, fully qualified name
- common_prefix(): Longest common leading substring of two strings
- is_large_object_type(): Detect LOB-like column types
- default_excluded_schemas(): Get system schemas to exclude by dialect
"""

from __future__ import annotations

import time

from .constants import Constants


def now() -> float:
    """Return high-resolution timestamp for performance measurements.

    Returns:
        Current time in seconds with high precision
    """
    return time.perf_counter()


def is_blank(text: str | None) -> bool:
    """Return True when text is None, empty or whitespace only."""
    return text is None or not str(text).strip()


def qualified_name(*parts: str | None) -> str:
    """Join non-blank name parts with dots.

    Example:
        >>> qualified_name(None, "public", "orders")
        'public.orders'
    """
    return ".".join(str(part) for part in parts if not is_blank(part))


def common_prefix(first: str, second: str) -> str:
    """Return the longest common leading substring of two strings.

    Example:
        >>> common_prefix("app_user", "app_role")
        'app_'
    """
    length = min(len(first), len(second))
    index = 0
    while index < length and first[index] == second[index]:
        index += 1
    return first[:index]


def is_large_object_type(type_name: str | None) -> bool:
    """Check whether a column type string denotes a large object.

    Args:
        type_name: Column type as reported by the database, e.g. ``BLOB``

    Returns:
        True for LOB-like types that should stay out of ORDER BY lists
    """
    base_type = (type_name or "").lower().split("(")[0].strip()
    if not base_type:
        return False
    if base_type in Constants.LARGE_OBJECT_TYPE_HINTS:
        return True
    return any(hint in base_type for hint in ("blob", "clob", "bytea", "binary"))


def default_excluded_schemas(dialect_name: str) -> list[str]:
    """Get default system schemas to exclude for a database dialect.

    Args:
        dialect_name: SQLAlchemy dialect name (e.g., 'postgresql', 'mysql')

    Returns:
        List of system schema names that should be excluded from crawling
    """
    dialect_lower = dialect_name.lower()

    if "postgresql" in dialect_lower or "postgres" in dialect_lower:
        return ["information_schema", "pg_catalog", "pg_toast"]
    if "mssql" in dialect_lower or "sqlserver" in dialect_lower:
        return ["information_schema", "sys"]
    if "mysql" in dialect_lower or "mariadb" in dialect_lower:
        return ["information_schema", "mysql", "performance_schema", "sys"]
    if "oracle" in dialect_lower:
        return ["sys", "system", "xdb", "mdsys", "ctxsys"]
    if "sqlite" in dialect_lower:
        return []
    return ["information_schema", "pg_catalog", "sys"]

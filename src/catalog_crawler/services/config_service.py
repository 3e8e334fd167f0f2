"""Configuration service for catalog-crawler.

This module provides configuration management and database connection utilities
for the catalog crawler. It centralizes environment variable handling
and database engine creation.
"""

from __future__ import annotations

import os

import dotenv
import sqlalchemy as sa

from catalog_crawler.crawl.constants import Constants, InformationSchemaKey, RetrievalStrategy
from catalog_crawler.crawl.exceptions import ConfigurationError
from catalog_crawler.crawl.models import (
    CrawlerConfig,
    FilterOptions,
    GrepOptions,
    RetrievalStrategies,
)

ENV_PREFIX = "CATALOG_CRAWLER_"
_TRUE_VALUES = {"1", "true", "yes", "on"}
_STRATEGY_CATEGORIES = (
    InformationSchemaKey.FUNCTIONS,
    InformationSchemaKey.PROCEDURES,
    InformationSchemaKey.SEQUENCES,
    InformationSchemaKey.TRIGGERS,
)


def _env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(f"{ENV_PREFIX}{name}")
    if value is None or not value.strip():
        return default
    return value.strip()


class ConfigService:
    """Service for managing configuration and database connections."""

    @staticmethod
    def load_environment() -> None:
        """Load variables from a ``.env`` file without overriding the environment."""
        dotenv.load_dotenv()

    @staticmethod
    def get_database_url() -> str:
        """Get database URL from environment variable.

        Returns:
            Database URL string

        Raises:
            ValueError: If CATALOG_CRAWLER_DATABASE_URL environment variable is not set
        """
        database_url = _env("DATABASE_URL")
        if not database_url:
            error_msg = f"{ENV_PREFIX}DATABASE_URL environment variable not set"
            raise ValueError(error_msg)
        return database_url

    @staticmethod
    def create_database_engine(url: str) -> sa.Engine:
        """Create SQLAlchemy database engine.

        Args:
            url: Database connection URL

        Returns:
            SQLAlchemy Engine instance
        """
        return sa.create_engine(url)

    # ---- crawl configuration -----------------------------------------------
    @staticmethod
    def get_crawler_config() -> CrawlerConfig:
        """Build the crawl configuration from ``CATALOG_CRAWLER_*`` variables.

        Raises:
            ConfigurationError: If a retrieval strategy name is not recognised
        """
        return CrawlerConfig(
            schema_include=_env("SCHEMA_INCLUDE", Constants.INCLUDE_ALL_PATTERN) or "",
            schema_exclude=_env("SCHEMA_EXCLUDE"),
            table_include=_env("TABLE_INCLUDE", Constants.INCLUDE_ALL_PATTERN) or "",
            table_exclude=_env("TABLE_EXCLUDE"),
            routine_include=_env("ROUTINE_INCLUDE", Constants.INCLUDE_ALL_PATTERN) or "",
            routine_exclude=_env("ROUTINE_EXCLUDE"),
            sequence_include=_env("SEQUENCE_INCLUDE", Constants.INCLUDE_ALL_PATTERN) or "",
            sequence_exclude=_env("SEQUENCE_EXCLUDE"),
            include_views=ConfigService._get_bool("INCLUDE_VIEWS", default=True),
            filter_options=ConfigService.get_filter_options(),
            grep_options=ConfigService.get_grep_options(),
            retrieval_strategies=ConfigService.get_retrieval_strategies(),
            alphabetical_columns=ConfigService._get_bool("ALPHABETICAL_COLUMNS", default=False),
            load_row_counts=ConfigService._get_bool("LOAD_ROW_COUNTS", default=False),
            infer_weak_associations=ConfigService._get_bool(
                "INFER_WEAK_ASSOCIATIONS", default=True
            ),
        )

    @staticmethod
    def get_filter_options() -> FilterOptions:
        """Related-table expansion depths; invalid or negative values fall back to 0."""
        return FilterOptions(
            child_table_filter_depth=ConfigService._get_int(
                "CHILD_DEPTH", Constants.DEFAULT_DEPTH, minimum=0
            ),
            parent_table_filter_depth=ConfigService._get_int(
                "PARENT_DEPTH", Constants.DEFAULT_DEPTH, minimum=0
            ),
        )

    @staticmethod
    def get_grep_options() -> GrepOptions:
        return GrepOptions(
            grep_column_pattern=_env("GREP_COLUMNS"),
            invert_match=ConfigService._get_bool("GREP_INVERT_MATCH", default=False),
            only_matching=ConfigService._get_bool("GREP_ONLY_MATCHING", default=False),
        )

    @staticmethod
    def get_retrieval_strategies() -> RetrievalStrategies:
        """Read ``<CATEGORY>_STRATEGY`` variables, e.g. ``CATALOG_CRAWLER_TRIGGERS_STRATEGY``.

        Accepted values are ``bulk_query``, ``per_object_metadata`` and ``none``.

        Raises:
            ConfigurationError: If a value is not a known strategy
        """
        strategies: dict[str, RetrievalStrategy] = {}
        for category in _STRATEGY_CATEGORIES:
            name = f"{category.value}_STRATEGY"
            value = _env(name)
            if value is None:
                continue
            try:
                strategies[category.value.lower()] = RetrievalStrategy(value.lower())
            except ValueError as e:
                error_msg = f"Unknown retrieval strategy for {ENV_PREFIX}{name}: {value}"
                raise ConfigurationError(error_msg) from e
        return RetrievalStrategies(**strategies)

    @staticmethod
    def reflect_timeout_sec() -> int | None:
        """Per-connection timeout for metadata queries, None when unset or not positive."""
        timeout = ConfigService._get_int("REFLECT_TIMEOUT_SEC", 0, minimum=0)
        return timeout or None

    # ---- parsing helpers ---------------------------------------------------
    @staticmethod
    def _get_int(name: str, default: int, *, minimum: int) -> int:
        val = _env(name, str(default)) or str(default)
        try:
            n = int(val)
        except ValueError:
            n = default
        return max(minimum, n)

    @staticmethod
    def _get_bool(name: str, *, default: bool) -> bool:
        val = _env(name)
        if val is None:
            return default
        return val.lower() in _TRUE_VALUES

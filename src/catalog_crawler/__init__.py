"""catalog-crawler package for database metadata crawling.

Crawls catalogs, schemas, tables, routines, sequences and triggers through
SQLAlchemy, reduces the result to the tables selected by inclusion rules
and infers match keys for weak associations between tables.
"""

from catalog_crawler.builders import CatalogSummaryBuilder, build_catalog_summary
from catalog_crawler.crawl import CatalogCrawler, CrawlerConfig, CrawlResult
from catalog_crawler.models import CatalogSummary, FilteredTableSummary, TableSummary
from catalog_crawler.services import ConfigService

__all__ = [  # noqa: RUF022
    # Crawl
    "CatalogCrawler",
    "CrawlerConfig",
    "CrawlResult",
    # Summary models
    "CatalogSummary",
    "FilteredTableSummary",
    "TableSummary",
    # Builders and services
    "CatalogSummaryBuilder",
    "ConfigService",
    "build_catalog_summary",
]

"""Builders package for catalog-crawler.

This package contains builder classes responsible for constructing summary
models from a crawled catalog. Builders transform the crawl's data classes
into structured models suitable for rendering collaborators.

Main Components:
- CatalogSummaryBuilder: Builds CatalogSummary objects
"""

from .summary_builder import CatalogSummaryBuilder, build_catalog_summary

__all__ = [
    "CatalogSummaryBuilder",
    "build_catalog_summary",
]

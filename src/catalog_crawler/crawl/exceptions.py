"""Custom exception hierarchy for the catalog crawler.

The hierarchy separates failures the caller must see from the ones the
pipeline absorbs on its own:

- Configuration errors are fatal for the affected category and propagate
- Retrieval errors wrap failures that leave nothing to crawl
- Capability gaps and incomplete rows never raise; they are logged and skipped
"""

from __future__ import annotations


class CatalogCrawlerError(Exception):
    """Base exception for catalog crawler operations.

    All other custom exceptions in this module inherit from this class.
    """


class ConfigurationError(CatalogCrawlerError):
    """Raised when the crawl configuration cannot be honoured.

    This exception is raised when, for example:
    - A category is configured for bulk retrieval but no query is registered
    - A related-table expansion depth is negative
    - A retrieval strategy name is not recognised
    """


class RetrievalError(CatalogCrawlerError):
    """Raised when database metadata cannot be retrieved at all.

    Per-schema capability gaps are not reported this way; this is reserved
    for failures such as the database refusing to list its schemas.
    """

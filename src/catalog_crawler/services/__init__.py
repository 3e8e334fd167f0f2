"""Services package for catalog-crawler.

Main Components:
- ConfigService: Configuration and database connection management
"""

from .config_service import ConfigService

__all__ = [
    "ConfigService",
]

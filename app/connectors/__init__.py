"""
app/connectors package marker.
"""

from app.connectors.base import BaseSearchAnalyticsClient, RetryExecutor, SearchAnalyticsRequestError
from app.connectors.search_console_connector import SearchConsoleConnector

__all__ = [
    "BaseSearchAnalyticsClient",
    "RetryExecutor",
    "SearchAnalyticsRequestError",
    "SearchConsoleConnector",
]

"""
Mention Connectors - Unified interface for external data sources
"""

from typing import List, Optional

from .base import (
    BaseConnector,
    ConnectorCapabilities,
    ConnectorContext,
    Engagement,
    RawMention,
    build_search_query,
    parse_published_at,
    ConnectorError,
    ConnectorConfigurationError,
    ConnectorFetchError,
    ConnectorTimeoutError,
)
from .local_news import LocalNewsConnector
from .reddit import RedditConnector
from .youtube import YouTubeConnector
from .x import XConnector
from .meta import MetaConnector


def get_connectors() -> List[BaseConnector]:
    """
    All registered connectors in a fixed order.

    Returns:
        Fresh connector instances
    """
    return [
        LocalNewsConnector(),
        RedditConnector(),
        YouTubeConnector(),
        XConnector(),
        MetaConnector(),
    ]


def get_connector(connector_id: str) -> Optional[BaseConnector]:
    """Look up a connector by id"""
    return next((c for c in get_connectors() if c.id == connector_id), None)


__all__ = [
    # Registry
    "get_connectors",
    "get_connector",
    # Base classes
    "BaseConnector",
    "ConnectorCapabilities",
    "ConnectorContext",
    "Engagement",
    "RawMention",
    "build_search_query",
    "parse_published_at",
    # Exceptions
    "ConnectorError",
    "ConnectorConfigurationError",
    "ConnectorFetchError",
    "ConnectorTimeoutError",
    # Connectors
    "LocalNewsConnector",
    "RedditConnector",
    "YouTubeConnector",
    "XConnector",
    "MetaConnector",
]

"""
Base Connector Interface
All mention sources must implement this interface
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, field_validator

from npip.config import get_settings
from npip.utils.timeutils import to_naive_utc


@dataclass(frozen=True)
class ConnectorCapabilities:
    """What a source can do"""
    realtime: bool = False
    search: bool = True
    limits: str = ""


@dataclass
class ConnectorContext:
    """Input for one connector invocation"""
    project: Any
    from_time: Optional[datetime]  # last successful run, None if never run
    to_time: datetime


class Engagement(BaseModel):
    likes: int = 0
    comments: int = 0
    shares: int = 0

    @field_validator("likes", "comments", "shares", mode="before")
    @classmethod
    def coerce_count(cls, v: Any) -> int:
        try:
            return max(0, int(v or 0))
        except (TypeError, ValueError):
            return 0


def parse_published_at(value: Any) -> Optional[datetime]:
    """
    Parse a source-native timestamp to naive UTC.

    Accepts datetimes, epoch seconds, ISO-8601 and RFC-822 strings;
    anything else yields None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        try:
            return to_naive_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            pass
        try:
            return to_naive_utc(parsedate_to_datetime(text))
        except (TypeError, ValueError, IndexError):
            return None
    return None


class RawMention(BaseModel):
    """
    Normalized item returned by a connector.
    Validated once here so the enrichment pipeline can rely on types.
    """
    source: str
    source_label: Optional[str] = None
    title: str = ""
    text: str = ""
    author: str = ""
    url: Optional[str] = None
    published_at: Optional[datetime] = None
    engagement: Engagement = Field(default_factory=Engagement)
    follower_count: int = 0

    @field_validator("title", "text", "author", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v)

    @field_validator("url", mode="before")
    @classmethod
    def blank_url_to_none(cls, v: Any) -> Optional[str]:
        if not v:
            return None
        return str(v)

    @field_validator("published_at", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> Optional[datetime]:
        return parse_published_at(v)

    @field_validator("follower_count", mode="before")
    @classmethod
    def coerce_followers(cls, v: Any) -> int:
        try:
            return max(0, int(v or 0))
        except (TypeError, ValueError):
            return 0

    @property
    def combined_text(self) -> str:
        return f"{self.title} {self.text}".strip()


def build_search_query(project) -> str:
    """Keywords joined by spaces, else the boolean query, else the project name"""
    keywords = " ".join(k for k in (project.keywords or []) if k)
    return keywords or (project.boolean_query or "") or (project.name or "")


class BaseConnector(ABC):
    """
    Abstract base class for mention connectors.
    Each source (RSS, Reddit, YouTube, X, Meta) implements this interface.

    ``run`` returns an empty list when nothing was found and raises only on
    unrecoverable fetch failures.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: Optional[float] = None):
        self._transport = transport
        self.timeout = timeout or get_settings().CONNECTOR_HTTP_TIMEOUT_SECONDS

    @property
    @abstractmethod
    def id(self) -> str:
        """Stable connector identifier"""
        pass

    @property
    @abstractmethod
    def display_name(self) -> str:
        pass

    @property
    @abstractmethod
    def enabled_by_default(self) -> bool:
        pass

    @property
    @abstractmethod
    def capabilities(self) -> ConnectorCapabilities:
        pass

    @abstractmethod
    async def run(self, context: ConnectorContext) -> List[RawMention]:
        """
        Fetch raw items for one project.

        Args:
            context: Project plus the time window of this run

        Returns:
            Validated raw mentions
        """
        pass

    def is_enabled_for(self, project) -> bool:
        """Project override first, then the connector default"""
        override = (project.sources or {}).get(self.id)
        return self.enabled_by_default if override is None else bool(override)

    def describe(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "enabled_by_default": self.enabled_by_default,
            "capabilities": {
                "realtime": self.capabilities.realtime,
                "search": self.capabilities.search,
                "limits": self.capabilities.limits,
            },
        }

    def _client(self, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport, **kwargs)

    async def _get_json(self, client: httpx.AsyncClient, url: str, **kwargs) -> Any:
        """GET a JSON document, raising ConnectorFetchError on transport or non-2xx failures"""
        try:
            response = await client.get(url, **kwargs)
        except httpx.TimeoutException:
            raise ConnectorFetchError(f"{self.display_name} request timed out", self.id)
        except httpx.RequestError as e:
            raise ConnectorFetchError(f"{self.display_name} request failed: {e}", self.id)

        if not response.is_success:
            raise ConnectorFetchError(
                f"{self.display_name} API failed: {response.status_code} {response.text[:200]}",
                self.id,
                {"status_code": response.status_code},
            )
        return response.json()


class ConnectorError(Exception):
    """Base exception for connector errors"""
    def __init__(self, message: str, connector_id: str, details: Optional[Dict] = None):
        super().__init__(message)
        self.connector_id = connector_id
        self.details = details or {}

    # Whether retrying within the same tick can help
    retryable = True


class ConnectorConfigurationError(ConnectorError):
    """Missing credentials or configuration"""
    retryable = False


class ConnectorFetchError(ConnectorError):
    """Transport failure or non-2xx response"""
    pass


class ConnectorTimeoutError(ConnectorError):
    """Connector exceeded its time budget"""
    pass

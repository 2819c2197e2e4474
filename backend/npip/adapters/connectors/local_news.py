"""
Local News Connector
Polls a fixed set of Nepali news RSS feeds
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import feedparser
import httpx

from .base import (
    BaseConnector,
    ConnectorCapabilities,
    ConnectorContext,
    ConnectorFetchError,
    RawMention,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Feed:
    name: str
    url: str


class LocalNewsConnector(BaseConnector):
    """
    RSS aggregator. A feed that errors is skipped as long as another feed
    produced items; only a total failure raises.
    """

    FEEDS = [
        Feed("OnlineKhabar", "https://www.onlinekhabar.com/rss"),
        Feed("Kantipur", "https://kathmandupost.com/rss"),
        Feed("Setopati", "https://en.setopati.com/rss"),
    ]

    def __init__(self, feeds: Optional[List[Feed]] = None, **kwargs):
        super().__init__(**kwargs)
        self.feeds = feeds if feeds is not None else self.FEEDS

    @property
    def id(self) -> str:
        return "localNews"

    @property
    def display_name(self) -> str:
        return "Nepal Local News"

    @property
    def enabled_by_default(self) -> bool:
        return True

    @property
    def capabilities(self) -> ConnectorCapabilities:
        return ConnectorCapabilities(
            realtime=False,
            search=True,
            limits="RSS feeds only; respects robots.txt; no full-site scraping.",
        )

    async def _fetch_feed(self, client: httpx.AsyncClient, feed: Feed) -> list:
        try:
            response = await client.get(feed.url)
        except httpx.RequestError as e:
            raise ConnectorFetchError(f"RSS fetch failed: {feed.name} ({e})", self.id)
        if not response.is_success:
            raise ConnectorFetchError(
                f"RSS fetch failed: {feed.name}",
                self.id,
                {"status_code": response.status_code},
            )
        parsed = feedparser.parse(response.text)
        return list(parsed.entries)

    @staticmethod
    def _published(entry) -> Optional[datetime]:
        for key in ("published_parsed", "updated_parsed"):
            parsed = entry.get(key)
            if parsed:
                return datetime(*parsed[:6])
        return None

    def _normalize(self, entry, feed: Feed) -> RawMention:
        author = entry.get("author") or ""
        if not author and entry.get("author_detail"):
            author = entry["author_detail"].get("name", "")
        return RawMention(
            source="local_news",
            source_label=feed.name,
            title=entry.get("title", ""),
            text=entry.get("summary") or entry.get("description") or "",
            author=author,
            url=entry.get("link") or None,
            published_at=self._published(entry) or entry.get("published") or entry.get("updated"),
        )

    async def run(self, context: ConnectorContext) -> List[RawMention]:
        mentions: List[RawMention] = []
        errors: List[Exception] = []

        async with self._client(follow_redirects=True) as client:
            for feed in self.feeds:
                try:
                    entries = await self._fetch_feed(client, feed)
                except ConnectorFetchError as e:
                    logger.info(f"Feed {feed.name} failed: {e}")
                    errors.append(e)
                    continue
                for entry in entries:
                    mentions.append(self._normalize(entry, feed))

        if not mentions and errors:
            raise errors[0]
        return mentions

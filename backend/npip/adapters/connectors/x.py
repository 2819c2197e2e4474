"""
X (Twitter) Connector
API v2 recent search
"""

from typing import List, Optional

from npip.config import get_settings
from .base import (
    BaseConnector,
    ConnectorCapabilities,
    ConnectorConfigurationError,
    ConnectorContext,
    RawMention,
    build_search_query,
)


class XConnector(BaseConnector):
    """Recent search with a bearer token; paid API access required"""

    API_BASE = "https://api.twitter.com/2"
    MAX_RESULTS = 10

    def __init__(self, bearer_token: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._bearer_token = bearer_token

    @property
    def id(self) -> str:
        return "x"

    @property
    def display_name(self) -> str:
        return "X (Twitter)"

    @property
    def enabled_by_default(self) -> bool:
        return False

    @property
    def capabilities(self) -> ConnectorCapabilities:
        return ConnectorCapabilities(
            realtime=False,
            search=True,
            limits="Requires paid API access; v2 recent search only.",
        )

    @property
    def bearer_token(self) -> Optional[str]:
        return self._bearer_token or get_settings().TWITTER_BEARER_TOKEN

    async def run(self, context: ConnectorContext) -> List[RawMention]:
        token = self.bearer_token
        if not token:
            raise ConnectorConfigurationError("Missing TWITTER_BEARER_TOKEN", self.id)

        query = build_search_query(context.project)

        async with self._client(headers={"Authorization": f"Bearer {token}"}) as client:
            data = await self._get_json(
                client,
                f"{self.API_BASE}/tweets/search/recent",
                params={
                    "query": query,
                    "max_results": self.MAX_RESULTS,
                    "tweet.fields": "created_at,author_id,public_metrics",
                },
            )

        mentions = []
        for tweet in (data or {}).get("data") or []:
            metrics = tweet.get("public_metrics") or {}
            mentions.append(RawMention(
                source="x",
                title="",
                text=tweet.get("text", ""),
                author=tweet.get("author_id", ""),
                url=f"https://twitter.com/i/web/status/{tweet.get('id')}",
                published_at=tweet.get("created_at"),
                engagement={
                    "likes": metrics.get("like_count", 0),
                    "comments": metrics.get("reply_count", 0),
                    "shares": metrics.get("retweet_count", 0),
                },
            ))
        return mentions

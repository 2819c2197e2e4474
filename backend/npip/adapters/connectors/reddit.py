"""
Reddit Connector
Public subreddit search over Nepal-focused communities
"""

from typing import List, Optional

from .base import (
    BaseConnector,
    ConnectorCapabilities,
    ConnectorContext,
    RawMention,
    build_search_query,
)


class RedditConnector(BaseConnector):
    """Searches each subreddit's public JSON endpoint, newest first"""

    API_BASE = "https://www.reddit.com"
    SUBREDDITS = ["Nepal", "NepalPolitics", "Nepali", "NepalSocial"]
    RESULTS_PER_SUBREDDIT = 10
    USER_AGENT = "NPIP/1.0"

    def __init__(self, subreddits: Optional[List[str]] = None, **kwargs):
        super().__init__(**kwargs)
        self.subreddits = subreddits if subreddits is not None else self.SUBREDDITS

    @property
    def id(self) -> str:
        return "reddit"

    @property
    def display_name(self) -> str:
        return "Reddit (r/Nepal)"

    @property
    def enabled_by_default(self) -> bool:
        return True

    @property
    def capabilities(self) -> ConnectorCapabilities:
        return ConnectorCapabilities(
            realtime=False,
            search=True,
            limits="Public search JSON; no private communities.",
        )

    def _normalize(self, post: dict) -> RawMention:
        return RawMention(
            source="reddit",
            title=post.get("title", ""),
            text=post.get("selftext", ""),
            author=post.get("author", ""),
            url=f"{self.API_BASE}{post.get('permalink', '')}" if post.get("permalink") else None,
            published_at=post.get("created_utc"),
            engagement={
                "likes": post.get("ups", 0),
                "comments": post.get("num_comments", 0),
                "shares": 0,
            },
        )

    async def run(self, context: ConnectorContext) -> List[RawMention]:
        query = build_search_query(context.project)
        mentions: List[RawMention] = []

        async with self._client(headers={"User-Agent": self.USER_AGENT}) as client:
            for subreddit in self.subreddits:
                data = await self._get_json(
                    client,
                    f"{self.API_BASE}/r/{subreddit}/search.json",
                    params={
                        "q": query,
                        "restrict_sr": 1,
                        "sort": "new",
                        "limit": self.RESULTS_PER_SUBREDDIT,
                    },
                )
                children = ((data or {}).get("data") or {}).get("children") or []
                for child in children:
                    mentions.append(self._normalize(child.get("data") or {}))

        return mentions

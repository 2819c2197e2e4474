"""
Meta Connector
Owned Facebook page posts via the Graph API
"""

from typing import List, Optional

from npip.adapters.parsing.boolean_query import LPAREN, OPERATORS, RPAREN, tokenize
from npip.config import get_settings
from .base import (
    BaseConnector,
    ConnectorCapabilities,
    ConnectorConfigurationError,
    ConnectorContext,
    RawMention,
    build_search_query,
)


class MetaConnector(BaseConnector):
    """
    Meta offers no global keyword search, so this reads the owned page feed
    and keeps posts containing any search term.
    """

    API_BASE = "https://graph.facebook.com/v19.0"
    PAGE_LIMIT = 25

    def __init__(self, access_token: Optional[str] = None, page_id: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._access_token = access_token
        self._page_id = page_id

    @property
    def id(self) -> str:
        return "meta"

    @property
    def display_name(self) -> str:
        return "Meta (Owned Assets Only)"

    @property
    def enabled_by_default(self) -> bool:
        return False

    @property
    def capabilities(self) -> ConnectorCapabilities:
        return ConnectorCapabilities(
            realtime=False,
            search=False,
            limits="Owned pages/IG business accounts only; no global keyword search.",
        )

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token or get_settings().META_ACCESS_TOKEN

    @property
    def page_id(self) -> str:
        return self._page_id or get_settings().META_PAGE_ID

    async def run(self, context: ConnectorContext) -> List[RawMention]:
        token = self.access_token
        if not token:
            raise ConnectorConfigurationError("Missing META_ACCESS_TOKEN", self.id)

        # Boolean operators and parentheses are not search terms
        terms = [
            t.lower() for t in tokenize(build_search_query(context.project))
            if t not in OPERATORS and t not in (LPAREN, RPAREN)
        ]

        async with self._client() as client:
            data = await self._get_json(
                client,
                f"{self.API_BASE}/{self.page_id}/posts",
                params={
                    "fields": "message,created_time,permalink_url,from,shares",
                    "limit": self.PAGE_LIMIT,
                    "access_token": token,
                },
            )

        mentions = []
        for post in (data or {}).get("data") or []:
            message = post.get("message") or ""
            lowered = message.lower()
            if terms and not any(term in lowered for term in terms):
                continue
            mentions.append(RawMention(
                source="meta",
                text=message,
                author=(post.get("from") or {}).get("name", ""),
                url=post.get("permalink_url"),
                published_at=post.get("created_time"),
                engagement={"shares": (post.get("shares") or {}).get("count", 0)},
            ))
        return mentions

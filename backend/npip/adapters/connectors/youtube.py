"""
YouTube Connector
Keyword search followed by a batch statistics lookup
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


class YouTubeConnector(BaseConnector):
    """
    Two-stage fetch: ``search`` returns video ids, ``videos`` returns
    snippet and statistics for those ids.
    """

    API_BASE = "https://www.googleapis.com/youtube/v3"
    MAX_RESULTS = 5

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._api_key = api_key

    @property
    def id(self) -> str:
        return "youtube"

    @property
    def display_name(self) -> str:
        return "YouTube"

    @property
    def enabled_by_default(self) -> bool:
        return True

    @property
    def capabilities(self) -> ConnectorCapabilities:
        return ConnectorCapabilities(
            realtime=False,
            search=True,
            limits="Requires API key; comments limited to top threads.",
        )

    @property
    def api_key(self) -> Optional[str]:
        return self._api_key or get_settings().YOUTUBE_API_KEY

    def _normalize(self, video: dict) -> RawMention:
        snippet = video.get("snippet") or {}
        statistics = video.get("statistics") or {}
        return RawMention(
            source="youtube",
            title=snippet.get("title", ""),
            text=snippet.get("description", ""),
            author=snippet.get("channelTitle", ""),
            url=f"https://www.youtube.com/watch?v={video.get('id')}",
            published_at=snippet.get("publishedAt"),
            engagement={
                "likes": statistics.get("likeCount", 0),
                "comments": statistics.get("commentCount", 0),
                "shares": 0,
            },
        )

    async def run(self, context: ConnectorContext) -> List[RawMention]:
        api_key = self.api_key
        if not api_key:
            raise ConnectorConfigurationError("Missing YOUTUBE_API_KEY", self.id)

        query = build_search_query(context.project)

        async with self._client() as client:
            search_data = await self._get_json(
                client,
                f"{self.API_BASE}/search",
                params={
                    "part": "snippet",
                    "type": "video",
                    "maxResults": self.MAX_RESULTS,
                    "q": query,
                    "key": api_key,
                },
            )
            video_ids = [
                (item.get("id") or {}).get("videoId")
                for item in (search_data or {}).get("items") or []
            ]
            video_ids = [v for v in video_ids if v]
            if not video_ids:
                return []

            videos_data = await self._get_json(
                client,
                f"{self.API_BASE}/videos",
                params={
                    "part": "snippet,statistics",
                    "id": ",".join(video_ids),
                    "key": api_key,
                },
            )

        return [self._normalize(video) for video in (videos_data or {}).get("items") or []]

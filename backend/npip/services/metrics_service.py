"""
Mention Metrics
Read-side aggregates and listings over a project's stored mentions
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from npip.models import Mention


class MetricsService:
    """
    Dashboard aggregates for one project.

    Only mentions with a published time are counted, and the optional window
    is inclusive at both ends.
    """

    TOP_LIMIT = 5
    LIST_LIMIT = 200

    def __init__(self, db: AsyncSession):
        self.db = db

    def _window(
        self,
        project_id: UUID,
        from_time: Optional[datetime] = None,
        to_time: Optional[datetime] = None,
    ) -> list:
        filters = [Mention.project_id == project_id, Mention.published_at.isnot(None)]
        if from_time is not None:
            filters.append(Mention.published_at >= from_time)
        if to_time is not None:
            filters.append(Mention.published_at <= to_time)
        return filters

    async def _volume(self, filters: list) -> List[Dict]:
        day = func.date(Mention.published_at)
        result = await self.db.execute(
            select(day, func.count(Mention.id))
            .where(*filters)
            .group_by(day)
            .order_by(day)
        )
        return [{"date": str(d), "count": c} for d, c in result.all()]

    async def _sentiment_share(self, filters: list) -> List[Dict]:
        # Grouped through a subquery so the JSON path is rendered once
        labels = (
            select(Mention.sentiment["label"].as_string().label("label"))
            .where(*filters)
            .subquery()
        )
        result = await self.db.execute(
            select(labels.c.label, func.count())
            .group_by(labels.c.label)
            .order_by(func.count().desc(), labels.c.label)
        )
        return [{"label": label or "unknown", "count": c} for label, c in result.all()]

    async def _top(self, column, key: str, filters: list) -> List[Dict]:
        result = await self.db.execute(
            select(column, func.count(Mention.id))
            .where(*filters, column.isnot(None), column != "")
            .group_by(column)
            .order_by(func.count(Mention.id).desc(), column)
            .limit(self.TOP_LIMIT)
        )
        return [{key: value, "count": c} for value, c in result.all()]

    async def get_project_metrics(
        self,
        project_id: UUID,
        from_time: Optional[datetime] = None,
        to_time: Optional[datetime] = None,
    ) -> Dict:
        """
        Aggregate a project's mentions.

        Returns:
            Dict with daily volume (oldest first), sentiment share, and the
            five most frequent sources and authors
        """
        filters = self._window(project_id, from_time, to_time)
        return {
            "volume": await self._volume(filters),
            "sentiment_share": await self._sentiment_share(filters),
            "top_sources": await self._top(Mention.source, "source", filters),
            "top_authors": await self._top(Mention.author, "author", filters),
        }

    async def list_mentions(
        self,
        project_id: UUID,
        source: Optional[str] = None,
        sentiment: Optional[str] = None,
        from_time: Optional[datetime] = None,
        to_time: Optional[datetime] = None,
        limit: int = LIST_LIMIT,
    ) -> List[Mention]:
        """Newest published first, optionally filtered by source, sentiment label and window"""
        query = select(Mention).where(Mention.project_id == project_id)
        if source:
            query = query.where(Mention.source == source)
        if sentiment:
            query = query.where(Mention.sentiment["label"].as_string() == sentiment)
        if from_time is not None:
            query = query.where(Mention.published_at >= from_time)
        if to_time is not None:
            query = query.where(Mention.published_at <= to_time)

        result = await self.db.execute(
            query.order_by(Mention.published_at.desc().nulls_last(), Mention.created_at.desc())
            .limit(min(limit, self.LIST_LIMIT))
        )
        return list(result.scalars().all())

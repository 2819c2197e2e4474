"""
Connector Health Tracking
Last status per (project, connector)
"""

from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from npip.models import ConnectorHealth, ConnectorStatus
from npip.utils.timeutils import utcnow


class HealthService:
    """Upserts connector health after every invocation"""

    def __init__(self, db: AsyncSession, clock: Callable = utcnow):
        self.db = db
        self.clock = clock

    async def get(self, project_id: UUID, connector_id: str) -> Optional[ConnectorHealth]:
        result = await self.db.execute(
            select(ConnectorHealth).where(
                ConnectorHealth.project_id == project_id,
                ConnectorHealth.connector_id == connector_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_project(self, project_id: UUID) -> List[ConnectorHealth]:
        result = await self.db.execute(
            select(ConnectorHealth)
            .where(ConnectorHealth.project_id == project_id)
            .order_by(ConnectorHealth.connector_id)
        )
        return list(result.scalars().all())

    async def record(
        self,
        project_id: UUID,
        connector_id: str,
        status: ConnectorStatus,
        error: Optional[BaseException] = None,
    ) -> ConnectorHealth:
        """Upsert the health row; a success clears the last error"""
        health = await self.get(project_id, connector_id)
        if health is None:
            health = ConnectorHealth(project_id=project_id, connector_id=connector_id)
            self.db.add(health)

        health.status = status
        health.last_error = str(error) if error is not None else ""
        health.last_checked_at = self.clock()

        await self.db.flush()
        return health

    async def mark_ok(self, project_id: UUID, connector_id: str) -> ConnectorHealth:
        return await self.record(project_id, connector_id, ConnectorStatus.OK)

    async def mark_degraded(self, project_id: UUID, connector_id: str, error: BaseException) -> ConnectorHealth:
        return await self.record(project_id, connector_id, ConnectorStatus.DEGRADED, error)

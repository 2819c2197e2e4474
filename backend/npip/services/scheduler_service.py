"""
Ingestion Scheduler
Finds projects whose polling interval has elapsed and hands them to the
task queue
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from npip.models import Project, ProjectStatus
from npip.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


def is_project_due(project: Project, now: datetime) -> bool:
    """A never-run project is due immediately"""
    if project.last_run_at is None:
        return True
    return now - project.last_run_at >= timedelta(minutes=project.schedule_minutes or 0)


async def find_due_projects(db: AsyncSession, now: Optional[datetime] = None) -> List[Project]:
    """Active projects whose schedule has elapsed"""
    now = now or utcnow()
    result = await db.execute(
        select(Project).where(Project.status == ProjectStatus.ACTIVE)
    )
    return [p for p in result.scalars().all() if is_project_due(p, now)]


async def dispatch_due_projects(
    db: AsyncSession,
    enqueue: Callable[[str], object],
    now: Optional[datetime] = None,
) -> int:
    """
    Enqueue one ingestion per due project.

    A failing enqueue is logged and skipped so the rest of the tick still runs.

    Returns:
        Number of projects enqueued
    """
    due_projects = await find_due_projects(db, now)
    logger.info(f"Found {len(due_projects)} projects due for ingestion")

    queued = 0
    for project in due_projects:
        try:
            enqueue(str(project.id))
            queued += 1
        except Exception as e:
            logger.error(f"Failed to enqueue ingestion for project {project.id}: {e}")
    return queued

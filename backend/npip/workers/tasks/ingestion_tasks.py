"""
Ingestion Tasks
Periodic dispatch of due projects and per-project ingestion runs
"""

import asyncio
from typing import Dict

from celery.utils.log import get_task_logger

from npip.workers.celery_app import celery_app
from npip.services.alert_service import AlertService
from npip.services.ingestion_service import ingest_project_by_id
from npip.services.realtime_service import RealtimePublisher
from npip.services.scheduler_service import dispatch_due_projects
from npip.utils.cache import get_worker_redis_context
from npip.utils.database import get_worker_db_context
from npip.utils.locks import RedisProjectLock
from npip.utils.timeutils import utcnow

logger = get_task_logger(__name__)


def run_async(coro):
    """Run async function in sync context"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _enqueue_ingestion(project_id: str) -> None:
    ingest_project.delay(project_id)


async def _dispatch_tick() -> int:
    async with get_worker_db_context() as db:
        return await dispatch_due_projects(db, _enqueue_ingestion)


@celery_app.task(
    name="npip.workers.tasks.ingestion_tasks.dispatch_ingestion_tick",
)
def dispatch_ingestion_tick() -> Dict:
    """
    Enqueue an ingestion for every active project whose interval elapsed.
    Runs every INGESTION_TICK_SECONDS from beat.
    """
    now = utcnow()
    try:
        queued = run_async(_dispatch_tick())
        return {
            "success": True,
            "projects_queued": queued,
            "timestamp": now.isoformat(),
        }
    except Exception as e:
        logger.exception(f"Error dispatching ingestion tick: {e}")
        return {"error": str(e)}


async def _ingest(project_id: str):
    async with get_worker_redis_context() as redis_client, get_worker_db_context() as db:
        async def client_factory():
            return redis_client

        alerts = AlertService(db, publisher=RealtimePublisher(client_factory=client_factory))
        return await ingest_project_by_id(
            db,
            project_id,
            alerts=alerts,
            locks=RedisProjectLock(client_factory=client_factory),
        )


@celery_app.task(
    name="npip.workers.tasks.ingestion_tasks.ingest_project",
    acks_late=True,
)
def ingest_project(project_id: str) -> Dict:
    """
    Run one ingestion batch for a project.

    Failures are logged and reported in the result; the next tick retries
    naturally since last_run_at is left untouched.
    """
    try:
        result = run_async(_ingest(project_id))
    except Exception as e:
        logger.exception(f"Ingestion failed for project {project_id}: {e}")
        return {"error": str(e), "project_id": project_id}

    if result is None:
        logger.error(f"Project not found: {project_id}")
        return {"error": "Project not found", "project_id": project_id}

    return {"project_id": project_id, **result.to_dict()}

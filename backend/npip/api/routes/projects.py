"""
Project Management & Manual Ingestion Routes
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from npip.api.middleware.auth import get_current_account
from npip.models import Account, Alert, ConnectorHealth, Mention, Project
from npip.schemas import (
    AlertResponse, ConnectorHealthResponse, IngestionResultResponse, MentionResponse,
    MetricsResponse, ProjectCreate, ProjectResponse, ProjectUpdate,
)
from npip.services import (
    AlertService, HealthService, IngestionOrchestrator, MetricsService, ProjectService,
    ProjectValidationError,
)
from npip.utils.database import get_db
from npip.utils.locks import RedisProjectLock
from npip.utils.timeutils import to_naive_utc

router = APIRouter()


def get_orchestrator(db: AsyncSession = Depends(get_db)) -> IngestionOrchestrator:
    """Manual runs share the cross-process lock with the workers"""
    return IngestionOrchestrator(db, locks=RedisProjectLock())


async def _get_owned_project(db: AsyncSession, project_id: UUID, account: Account) -> Project:
    result = await db.execute(
        select(Project).where(Project.id == project_id, Project.owner_id == account.id)
    )
    project = result.scalar_one_or_none()

    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Create a new project within the account's plan limits"""
    try:
        project = await ProjectService(db).create_project(
            account,
            name=project_data.name,
            keywords=project_data.keywords,
            boolean_query=project_data.boolean_query,
            sources=project_data.sources,
            schedule_minutes=project_data.schedule_minutes,
            geo_focus=project_data.geo_focus,
        )
    except ProjectValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await db.commit()
    return _project_to_response(project)


@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """List the account's projects"""
    result = await db.execute(
        select(Project)
        .where(Project.owner_id == account.id)
        .order_by(Project.created_at.desc())
    )
    return [_project_to_response(p) for p in result.scalars().all()]


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    project_data: ProjectUpdate,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Update project"""
    project = await _get_owned_project(db, project_id, account)
    try:
        project = await ProjectService(db).update_project(
            account, project, **project_data.model_dump(exclude_none=True)
        )
    except ProjectValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await db.commit()
    return _project_to_response(project)


@router.post("/{project_id}/archive", response_model=ProjectResponse)
async def archive_project(
    project_id: UUID,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Archive project; it keeps its mentions but is no longer scheduled"""
    project = await _get_owned_project(db, project_id, account)
    project = await ProjectService(db).archive_project(project)
    await db.commit()
    return _project_to_response(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: UUID,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Delete project and everything recorded for it"""
    project = await _get_owned_project(db, project_id, account)
    await ProjectService(db).delete_project(project)
    await db.commit()


@router.post("/{project_id}/run", response_model=IngestionResultResponse)
async def run_project(
    project_id: UUID,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
    orchestrator: IngestionOrchestrator = Depends(get_orchestrator),
):
    """Run one ingestion batch now, outside the schedule"""
    project = await _get_owned_project(db, project_id, account)
    result = await orchestrator.ingest_project(project)
    return IngestionResultResponse(**result.to_dict())


@router.get("/{project_id}/health", response_model=List[ConnectorHealthResponse])
async def get_project_health(
    project_id: UUID,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Latest status of each connector that has run for the project"""
    await _get_owned_project(db, project_id, account)
    rows = await HealthService(db).list_for_project(project_id)
    return [_health_to_response(h) for h in rows]


@router.get("/{project_id}/alerts", response_model=List[AlertResponse])
async def get_project_alerts(
    project_id: UUID,
    limit: int = Query(50, ge=1, le=200),
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Most recent alerts first"""
    await _get_owned_project(db, project_id, account)
    alerts = await AlertService(db).list_for_project(project_id, limit=limit)
    return [_alert_to_response(a) for a in alerts]


@router.get("/{project_id}/mentions", response_model=List[MentionResponse])
async def get_project_mentions(
    project_id: UUID,
    source: Optional[str] = None,
    sentiment: Optional[str] = None,
    from_time: Optional[datetime] = Query(None, alias="from"),
    to_time: Optional[datetime] = Query(None, alias="to"),
    limit: int = Query(200, ge=1, le=200),
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Stored mentions, newest published first"""
    await _get_owned_project(db, project_id, account)
    mentions = await MetricsService(db).list_mentions(
        project_id,
        source=source,
        sentiment=sentiment,
        from_time=to_naive_utc(from_time) if from_time else None,
        to_time=to_naive_utc(to_time) if to_time else None,
        limit=limit,
    )
    return [_mention_to_response(m) for m in mentions]


@router.get("/{project_id}/metrics", response_model=MetricsResponse)
async def get_project_metrics(
    project_id: UUID,
    from_time: Optional[datetime] = Query(None, alias="from"),
    to_time: Optional[datetime] = Query(None, alias="to"),
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Daily volume, sentiment share and top sources and authors"""
    await _get_owned_project(db, project_id, account)
    metrics = await MetricsService(db).get_project_metrics(
        project_id,
        from_time=to_naive_utc(from_time) if from_time else None,
        to_time=to_naive_utc(to_time) if to_time else None,
    )
    return MetricsResponse(**metrics)


def _project_to_response(project: Project) -> ProjectResponse:
    """Convert Project model to response schema"""
    return ProjectResponse(
        id=project.id,
        name=project.name,
        keywords=project.keywords or [],
        boolean_query=project.boolean_query or "",
        sources=project.sources or {},
        schedule_minutes=project.schedule_minutes,
        geo_focus=project.geo_focus or "",
        status=project.status.value,
        last_run_at=project.last_run_at,
        created_at=project.created_at,
    )


def _health_to_response(health: ConnectorHealth) -> ConnectorHealthResponse:
    return ConnectorHealthResponse(
        connector_id=health.connector_id,
        status=health.status.value,
        last_error=health.last_error or None,
        last_checked_at=health.last_checked_at,
    )


def _alert_to_response(alert: Alert) -> AlertResponse:
    return AlertResponse(
        id=alert.id,
        project_id=alert.project_id,
        type=alert.type.value,
        message=alert.message,
        payload=alert.payload or {},
        created_at=alert.created_at,
    )


def _mention_to_response(mention: Mention) -> MentionResponse:
    return MentionResponse(
        id=mention.id,
        project_id=mention.project_id,
        source=mention.source,
        source_label=mention.source_label,
        keyword_matched=mention.keyword_matched or "",
        title=mention.title or "",
        text=mention.text or "",
        author=mention.author or "",
        url=mention.url,
        published_at=mention.published_at,
        engagement=mention.engagement or {},
        follower_count=mention.follower_count or 0,
        reach_estimate=mention.reach_estimate or 0,
        lang=mention.lang,
        geo=mention.geo,
        sentiment=mention.sentiment or {},
        created_at=mention.created_at,
    )

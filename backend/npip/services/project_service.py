"""
Project Management
Plan-aware create / update / archive / delete for monitored projects
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from npip.adapters.parsing import sanitize_query
from npip.config import PlanLimits, get_plan_limits
from npip.models import (
    Account, Alert, ConnectorHealth, Mention, Project, ProjectStatus
)

logger = logging.getLogger(__name__)

DEFAULT_GEO_FOCUS = "Nepal"


class ProjectValidationError(ValueError):
    """Project input rejected by plan limits or validation"""
    pass


def normalize_keywords(keywords: Optional[Iterable[str]]) -> List[str]:
    """Trim and drop blanks, keeping order"""
    return [k.strip() for k in (keywords or []) if k and k.strip()]


def clamp_interval(schedule_minutes: Optional[int], plan: PlanLimits) -> int:
    """Never poll more often than the plan allows"""
    try:
        requested = int(schedule_minutes or 0)
    except (TypeError, ValueError):
        requested = 0
    return max(requested or plan.min_interval_minutes, plan.min_interval_minutes)


class ProjectService:
    """Applies plan limits to project mutations"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _check_keywords(self, account: Account, keywords: List[str]) -> None:
        plan = get_plan_limits(account.plan)
        if len(keywords) > plan.max_keywords:
            raise ProjectValidationError(f"Keyword limit exceeded for {account.plan} plan")

    async def create_project(
        self,
        account: Account,
        name: str,
        keywords: Optional[List[str]] = None,
        boolean_query: str = "",
        sources: Optional[Dict[str, bool]] = None,
        schedule_minutes: Optional[int] = None,
        geo_focus: Optional[str] = None,
    ) -> Project:
        if not (name or "").strip():
            raise ProjectValidationError("Project name is required")

        keyword_list = normalize_keywords(keywords)
        self._check_keywords(account, keyword_list)

        project = Project(
            owner_id=account.id,
            name=name.strip(),
            keywords=keyword_list,
            boolean_query=sanitize_query(boolean_query),
            sources=dict(sources or {}),
            schedule_minutes=clamp_interval(schedule_minutes, get_plan_limits(account.plan)),
            geo_focus=geo_focus or DEFAULT_GEO_FOCUS,
            status=ProjectStatus.ACTIVE,
        )
        self.db.add(project)
        await self.db.flush()
        return project

    async def update_project(self, account: Account, project: Project, **changes) -> Project:
        """Apply partial changes; omitted or None fields are left untouched"""
        if changes.get("name"):
            project.name = changes["name"].strip()
        if changes.get("keywords") is not None:
            keyword_list = normalize_keywords(changes["keywords"])
            self._check_keywords(account, keyword_list)
            project.keywords = keyword_list
        if changes.get("boolean_query") is not None:
            project.boolean_query = sanitize_query(changes["boolean_query"])
        if changes.get("sources") is not None:
            project.sources = dict(changes["sources"])
        if changes.get("schedule_minutes"):
            project.schedule_minutes = clamp_interval(changes["schedule_minutes"], get_plan_limits(account.plan))
        if changes.get("geo_focus"):
            project.geo_focus = changes["geo_focus"]
        if changes.get("status"):
            project.status = ProjectStatus(changes["status"])

        await self.db.flush()
        return project

    async def archive_project(self, project: Project) -> Project:
        """Archived projects keep their data but are never scheduled"""
        project.status = ProjectStatus.ARCHIVED
        await self.db.flush()
        return project

    async def delete_project(self, project: Project) -> None:
        """Delete a project together with its mentions, health rows and alerts"""
        project_id = project.id
        for model in (Mention, ConnectorHealth, Alert):
            await self.db.execute(delete(model).where(model.project_id == project_id))
        await self.db.delete(project)
        await self.db.flush()
        logger.info(f"Deleted project {project_id}")

"""
Alert Emitter
Persists alerts, pushes them in real time, optionally emails, and detects
mention spikes
"""

import logging
from datetime import timedelta
from typing import Callable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from npip.config import get_settings
from npip.models import Account, Alert, AlertType, Mention, Project
from npip.utils.timeutils import utcnow
from .email_service import EmailService
from .realtime_service import RealtimePublisher, account_channel, project_channel

logger = logging.getLogger(__name__)

SPIKE_THRESHOLD_MIN = 5
SPIKE_MULTIPLIER = 2
HOUR = timedelta(hours=1)
DAY = timedelta(hours=24)


def is_spike(last_hour_count: int, last_day_count: int) -> bool:
    """Last hour exceeds max(5, 2x the trailing 24h hourly average)"""
    avg_hourly = last_day_count / 24
    threshold = max(SPIKE_THRESHOLD_MIN, avg_hourly * SPIKE_MULTIPLIER)
    return last_hour_count > threshold


class AlertService:
    """Creates alerts and fans them out to push and email channels"""

    def __init__(
        self,
        db: AsyncSession,
        publisher: Optional[RealtimePublisher] = None,
        email: Optional[EmailService] = None,
        clock: Callable = utcnow,
    ):
        self.db = db
        self.publisher = publisher or RealtimePublisher()
        self.email = email or EmailService()
        self.clock = clock

    async def _notify_realtime(self, alert: Alert) -> None:
        data = self.serialize(alert)
        await self.publisher.publish(account_channel(alert.account_id), "alert", data)
        await self.publisher.publish(project_channel(alert.project_id), "alert", data)

    async def _maybe_email(self, account: Account, alert: Alert) -> None:
        if not get_settings().ALERT_EMAIL_ENABLED or not account.email:
            return
        await self.email.send(
            to=account.email,
            subject=f"NPIP Alert: {alert.type.value}",
            text=alert.message,
        )

    @staticmethod
    def serialize(alert: Alert) -> dict:
        return {
            "id": str(alert.id),
            "account_id": str(alert.account_id),
            "project_id": str(alert.project_id),
            "type": alert.type.value,
            "message": alert.message,
            "payload": alert.payload or {},
            "created_at": alert.created_at.isoformat() if alert.created_at else None,
        }

    async def create_alert(
        self,
        account: Account,
        project: Project,
        type: AlertType,
        message: str,
        payload: Optional[dict] = None,
    ) -> Alert:
        """
        Persist an alert, then push and email it.

        Push and email are best-effort; their failures never reach the caller.
        """
        alert = Alert(
            account_id=account.id,
            project_id=project.id,
            type=type,
            message=message,
            payload=payload or {},
            created_at=self.clock(),
        )
        self.db.add(alert)
        await self.db.flush()

        await self._notify_realtime(alert)
        await self._maybe_email(account, alert)
        return alert

    async def count_mentions_since(self, project_id, since) -> int:
        result = await self.db.execute(
            select(func.count(Mention.id)).where(
                Mention.project_id == project_id,
                Mention.created_at >= since,
            )
        )
        return int(result.scalar() or 0)

    async def check_for_spike(self, project: Project, account: Account) -> Optional[Alert]:
        """Raise a spike alert when the last hour is abnormally busy"""
        now = self.clock()
        last_hour_count = await self.count_mentions_since(project.id, now - HOUR)
        last_day_count = await self.count_mentions_since(project.id, now - DAY)

        if not is_spike(last_hour_count, last_day_count):
            return None

        avg_hourly = last_day_count / 24
        logger.info(f"Spike for project {project.id}: {last_hour_count} mentions in the last hour")
        return await self.create_alert(
            account=account,
            project=project,
            type=AlertType.SPIKE,
            message=f"Spike detected: {last_hour_count} mentions in the last hour.",
            payload={"lastHourCount": last_hour_count, "avgHourly": avg_hourly},
        )

    async def list_for_project(self, project_id, limit: int = 50):
        result = await self.db.execute(
            select(Alert)
            .where(Alert.project_id == project_id)
            .order_by(Alert.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

"""
Usage & Quota Ledger
Monthly mention counters per account against plan limits
"""

import logging
from typing import Callable
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from npip.config import get_plan_limits
from npip.models import Account, UsageRecord
from npip.utils.database import upsert_insert
from npip.utils.timeutils import month_key, utcnow

logger = logging.getLogger(__name__)


class UsageService:
    """
    Lazily creates one UsageRecord per (account, month) and increments it
    atomically in SQL. Counters are never decremented.
    """

    def __init__(self, db: AsyncSession, clock: Callable = utcnow):
        self.db = db
        self.clock = clock

    def current_month(self) -> str:
        return month_key(self.clock())

    async def _find(self, account_id: UUID, month: str):
        result = await self.db.execute(
            select(UsageRecord)
            .where(UsageRecord.account_id == account_id, UsageRecord.month == month)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def ensure_usage(self, account_id: UUID) -> UsageRecord:
        """Return this month's record, creating it on first use"""
        month = self.current_month()
        usage = await self._find(account_id, month)
        if usage is not None:
            return usage

        # Concurrent first use in the same month is absorbed by the unique key
        await self.db.execute(
            upsert_insert(self.db, UsageRecord)
            .values(id=uuid4(), account_id=account_id, month=month, mentions_count=0, created_at=self.clock())
            .on_conflict_do_nothing(index_elements=["account_id", "month"])
        )
        return await self._find(account_id, month)

    def is_over_quota(self, account: Account, usage: UsageRecord) -> bool:
        plan = get_plan_limits(account.plan)
        return usage.mentions_count >= plan.monthly_mention_quota

    async def increment(self, account_id: UUID, count: int) -> None:
        """Atomic increment of this month's counter"""
        if count <= 0:
            return
        month = self.current_month()
        await self.ensure_usage(account_id)
        await self.db.execute(
            update(UsageRecord)
            .where(UsageRecord.account_id == account_id, UsageRecord.month == month)
            .values(mentions_count=UsageRecord.mentions_count + count)
            .execution_options(synchronize_session=False)
        )
        logger.debug(f"Usage for account {account_id} in {month} increased by {count}")

    async def get_count(self, account_id: UUID) -> int:
        usage = await self._find(account_id, self.current_month())
        return usage.mentions_count if usage else 0

"""
Ingestion Orchestrator
Runs one project's ingestion batch: connector fan-out, filtering,
enrichment, dedup, persistence, usage and alerts
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union
from uuid import UUID, uuid4

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from npip.adapters.connectors import (
    BaseConnector,
    ConnectorContext,
    ConnectorError,
    ConnectorTimeoutError,
    RawMention,
    get_connectors,
)
from npip.adapters.parsing import (
    KeywordMatcher,
    SentimentClassifier,
    detect_language,
    get_sentiment_classifier,
)
from npip.config import Settings, get_settings
from npip.models import Account, AlertType, AuditLog, Mention, Project, ProjectStatus
from npip.utils.database import upsert_insert
from npip.utils.fingerprint import create_similarity_hash
from npip.utils.locks import ProjectLockArena
from npip.utils.timeutils import utcnow
from .alert_service import AlertService
from .health_service import HealthService
from .usage_service import UsageService

logger = logging.getLogger(__name__)

REASON_LIMIT = "limit"
REASON_BUSY = "busy"

# Reach multipliers for sources without follower counts
REACH_MULTIPLIERS = {
    "youtube": ("likes", 10),
    "reddit": ("comments", 5),
}


@dataclass
class IngestionResult:
    """Outcome of one ingestion run"""
    inserted: int = 0
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        result = {"inserted": self.inserted}
        if self.reason:
            result["reason"] = self.reason
        return result


def estimate_reach(raw: RawMention) -> int:
    """Follower count when known, else a per-source engagement proxy"""
    if raw.follower_count:
        return raw.follower_count
    rule = REACH_MULTIPLIERS.get(raw.source)
    if rule is None:
        return 0
    field, multiplier = rule
    return getattr(raw.engagement, field) * multiplier


class IngestionOrchestrator:
    """
    Coordinates one ingestion run per project.

    The contract is the same for scheduled ticks and manual runs: partial
    failures are isolated per connector and recorded as health data, and
    ``ingest_project`` always returns a result instead of raising for them.
    """

    def __init__(
        self,
        db: AsyncSession,
        connectors: Optional[Sequence[BaseConnector]] = None,
        classifier: Optional[SentimentClassifier] = None,
        alerts: Optional[AlertService] = None,
        locks=None,
        settings: Optional[Settings] = None,
        clock: Callable = utcnow,
    ):
        self.db = db
        self.connectors = list(connectors) if connectors is not None else get_connectors()
        self.classifier = classifier or get_sentiment_classifier()
        self.settings = settings or get_settings()
        self.clock = clock
        self.alerts = alerts or AlertService(db, clock=clock)
        self.health = HealthService(db, clock=clock)
        self.usage = UsageService(db, clock=clock)
        self.locks = locks or ProjectLockArena()

    # =========================================================================
    # CONNECTOR EXECUTION
    # =========================================================================

    def enabled_connectors(self, project: Project) -> List[BaseConnector]:
        return [c for c in self.connectors if c.is_enabled_for(project)]

    async def _run_once(self, connector: BaseConnector, context: ConnectorContext) -> List[RawMention]:
        timeout = self.settings.CONNECTOR_TIMEOUT_SECONDS
        try:
            result = await asyncio.wait_for(connector.run(context), timeout=timeout)
        except asyncio.TimeoutError:
            # The fetch is abandoned; its eventual result is discarded
            raise ConnectorTimeoutError("timeout", connector.id, {"timeout_seconds": timeout})
        return list(result or [])

    async def run_connector(self, connector: BaseConnector, context: ConnectorContext) -> List[RawMention]:
        """Run with timeout and optional bounded retry for transient errors"""
        attempts = 1 + max(0, self.settings.CONNECTOR_MAX_RETRIES)
        for attempt in range(1, attempts + 1):
            try:
                return await self._run_once(connector, context)
            except Exception as e:
                retryable = getattr(e, "retryable", True)
                if attempt >= attempts or not retryable:
                    raise
                delay = self.settings.CONNECTOR_RETRY_DELAY_SECONDS * attempt
                logger.info(f"Connector {connector.id} attempt {attempt} failed ({e}); retrying in {delay}s")
                await asyncio.sleep(delay)
        return []

    async def _fetch_all(
        self, connectors: List[BaseConnector], context: ConnectorContext
    ) -> List[Union[List[RawMention], BaseException]]:
        """Fetch from every connector concurrently; failures come back as values"""
        return await asyncio.gather(
            *(self.run_connector(c, context) for c in connectors),
            return_exceptions=True,
        )

    # =========================================================================
    # PER-ITEM PIPELINE
    # =========================================================================

    async def prepare_mentions(self, project: Project, raw_mentions: List[RawMention]) -> List[dict]:
        """Filter by keywords / boolean query and enrich survivors"""
        matcher = KeywordMatcher.for_project(project)
        now = self.clock()
        prepared = []

        for raw in raw_mentions:
            text = raw.combined_text
            match = matcher.match(text)
            if not match.accepted:
                continue

            sentiment = await self.classifier.infer_sentiment(text)
            prepared.append({
                "id": uuid4(),
                "project_id": project.id,
                "source": raw.source,
                "source_label": raw.source_label,
                "keyword_matched": match.matched_keyword,
                "title": raw.title,
                "text": raw.text,
                "author": raw.author,
                "url": raw.url,
                "published_at": raw.published_at,
                "engagement": raw.engagement.model_dump(),
                "follower_count": raw.follower_count,
                "reach_estimate": estimate_reach(raw),
                "lang": detect_language(text),
                "geo": project.geo_focus or "",
                "sentiment": sentiment.to_dict(),
                "similarity_hash": create_similarity_hash(f"{raw.title} {raw.text}") or None,
                "created_at": now,
            })

        return prepared

    async def _drop_fingerprint_collisions(self, project: Project, rows: List[dict]) -> List[dict]:
        """Reject policy: skip rows whose fingerprint is already known for the project"""
        hashes = {r["similarity_hash"] for r in rows if r["similarity_hash"]}
        existing = set()
        if hashes:
            result = await self.db.execute(
                select(Mention.similarity_hash).where(
                    Mention.project_id == project.id,
                    Mention.similarity_hash.in_(hashes),
                )
            )
            existing = set(result.scalars().all())

        kept = []
        for row in rows:
            fingerprint = row["similarity_hash"]
            if fingerprint and fingerprint in existing:
                continue
            if fingerprint:
                existing.add(fingerprint)
            kept.append(row)
        return kept

    async def insert_mentions(self, project: Project, rows: List[dict]) -> int:
        """
        Insert enriched mentions, skipping uniqueness conflicts.

        Returns:
            Number of rows actually inserted
        """
        if self.settings.DEDUP_POLICY == "reject":
            rows = await self._drop_fingerprint_collisions(project, rows)
        if not rows:
            return 0

        result = await self.db.execute(
            upsert_insert(self.db, Mention)
            .values(rows)
            .on_conflict_do_nothing(index_elements=["project_id", "url"])
            .returning(Mention.id)
        )
        inserted = len(result.scalars().all())
        skipped = len(rows) - inserted
        if skipped:
            logger.debug(f"Skipped {skipped} conflicting mentions for project {project.id}")
        return inserted

    # =========================================================================
    # FAILURE BOOKKEEPING
    # =========================================================================

    async def _log_connector_error(self, project: Project, connector_id: str, error: BaseException) -> None:
        self.db.add(AuditLog(
            account_id=project.owner_id,
            project_id=project.id,
            connector_id=connector_id,
            level="error",
            message=str(error) or type(error).__name__,
            created_at=self.clock(),
        ))
        await self.db.flush()

    async def _record_failure(self, project: Project, connector: BaseConnector, error: BaseException) -> None:
        kind = "configuration" if isinstance(error, ConnectorError) and not error.retryable else "fetch"
        logger.warning(f"Connector {connector.id} degraded for project {project.id} ({kind}): {error}")
        await self.health.mark_degraded(project.id, connector.id, error)
        await self._log_connector_error(project, connector.id, error)

    async def _fresh(self, instance):
        """Reload an instance expired by a commit or rollback"""
        if inspect(instance).expired_attributes:
            await self.db.refresh(instance)
        return instance

    async def _process_connector_result(
        self,
        project: Project,
        connector: BaseConnector,
        outcome: Union[List[RawMention], BaseException],
    ) -> int:
        await self._fresh(project)
        if isinstance(outcome, BaseException):
            await self._record_failure(project, connector, outcome)
            await self.db.commit()
            return 0

        await self.health.mark_ok(project.id, connector.id)
        await self.db.commit()
        try:
            await self._fresh(project)
            prepared = await self.prepare_mentions(project, outcome)
            inserted = await self.insert_mentions(project, prepared)
            await self.db.commit()
            return inserted
        except Exception as e:
            await self.db.rollback()
            await self._fresh(project)
            await self._record_failure(project, connector, e)
            await self.db.commit()
            return 0

    # =========================================================================
    # ENTRY POINT
    # =========================================================================

    async def ingest_project(self, project: Project) -> IngestionResult:
        """
        Run one ingestion batch for a project.

        Args:
            project: The project to ingest

        Returns:
            IngestionResult with the inserted count, and a reason when the
            run was short-circuited
        """
        if project.status != ProjectStatus.ACTIVE:
            return IngestionResult(inserted=0)

        async with self.locks.hold(project.id) as acquired:
            if not acquired:
                logger.info(f"Ingestion already running for project {project.id}; skipping")
                return IngestionResult(inserted=0, reason=REASON_BUSY)
            return await self._ingest_locked(project)

    async def _ingest_locked(self, project: Project) -> IngestionResult:
        project_id = project.id
        account = await self.db.get(Account, project.owner_id)
        if account is None:
            return IngestionResult(inserted=0, reason=REASON_LIMIT)

        # Quota is checked once per batch; a batch may overshoot it
        usage = await self.usage.ensure_usage(account.id)
        if self.usage.is_over_quota(account, usage):
            logger.info(f"Account {account.id} is over its monthly quota; skipping project {project_id}")
            return IngestionResult(inserted=0, reason=REASON_LIMIT)

        context = ConnectorContext(project=project, from_time=project.last_run_at, to_time=self.clock())
        connectors = self.enabled_connectors(project)
        outcomes = await self._fetch_all(connectors, context)

        inserted = 0
        for connector, outcome in zip(connectors, outcomes):
            inserted += await self._process_connector_result(project, connector, outcome)

        await self._fresh(project)
        await self._fresh(account)
        if inserted > 0:
            await self.usage.increment(account.id, inserted)
            await self.alerts.create_alert(
                account=account,
                project=project,
                type=AlertType.NEW_MENTIONS,
                message=f"{inserted} new mentions for {project.name}.",
                payload={"count": inserted},
            )
            await self.alerts.check_for_spike(project=project, account=account)

        project.last_run_at = self.clock()
        await self.db.commit()

        logger.info(f"Ingested {inserted} mentions for project {project_id} from {len(connectors)} connectors")
        return IngestionResult(inserted=inserted)


async def ingest_project_by_id(db: AsyncSession, project_id, **kwargs) -> Optional[IngestionResult]:
    """Load a project and ingest it; None when the project does not exist"""
    if not isinstance(project_id, UUID):
        project_id = UUID(str(project_id))
    project = await db.get(Project, project_id)
    if project is None:
        return None
    return await IngestionOrchestrator(db, **kwargs).ingest_project(project)

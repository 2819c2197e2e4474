"""Ingestion orchestrator"""

import asyncio

import pytest
from sqlalchemy import func, select

from npip.adapters.connectors import ConnectorConfigurationError
from npip.adapters.connectors.base import RawMention
from npip.models import Alert, AlertType, AuditLog, ConnectorStatus, Mention, ProjectStatus
from npip.services import HealthService, IngestionOrchestrator, UsageService, ingest_project_by_id
from npip.services.ingestion_service import estimate_reach
from npip.utils.locks import ProjectLockArena

from conftest import FakeConnector, make_settings


def item(title, url, text="", **extra):
    return {"title": title, "url": url, "text": text, **extra}


@pytest.fixture
def orchestrator_factory(db, classifier, alerts, clock):
    def _make(connectors, settings=None, locks=None):
        return IngestionOrchestrator(
            db,
            connectors=connectors,
            classifier=classifier,
            alerts=alerts,
            locks=locks,
            settings=settings or make_settings(),
            clock=clock,
        )
    return _make


async def count(db, model, *where):
    result = await db.execute(select(func.count()).select_from(model).where(*where))
    return result.scalar()


async def test_matching_item_is_inserted_with_keyword(db, make_project, orchestrator_factory):
    project = await make_project(keywords=["election"])
    connector = FakeConnector("localNews", [item("Election results announced", "https://news.example.com/1")])

    result = await orchestrator_factory([connector]).ingest_project(project)

    assert result.to_dict() == {"inserted": 1}
    mentions = (await db.execute(select(Mention))).scalars().all()
    assert len(mentions) == 1
    assert mentions[0].keyword_matched == "election"
    assert mentions[0].lang == "en"
    assert mentions[0].geo == "Nepal"
    assert mentions[0].similarity_hash
    assert mentions[0].sentiment == {"label": "neutral", "confidence": 0.2}


async def test_project_at_quota_is_short_circuited(db, account, make_project, orchestrator_factory, clock):
    project = await make_project()
    usage = UsageService(db, clock=clock)
    record = await usage.ensure_usage(account.id)
    record.mentions_count = 5000
    await db.commit()
    connector = FakeConnector("reddit", [item("election", "https://r.example.com/1")])

    result = await orchestrator_factory([connector]).ingest_project(project)

    assert result.to_dict() == {"inserted": 0, "reason": "limit"}
    assert connector.calls == 0
    assert await count(db, Mention) == 0
    assert await count(db, Alert) == 0
    assert await HealthService(db).list_for_project(project.id) == []
    await db.refresh(project)
    assert project.last_run_at is None


async def test_failing_connector_is_isolated(db, make_project, orchestrator_factory):
    project = await make_project()
    connectors = [
        FakeConnector("localNews", [item("Election live", "https://a.example.com/1")]),
        FakeConnector("reddit", error=RuntimeError("Reddit API failed: 500")),
        FakeConnector("youtube", [item("Election recap", "https://b.example.com/1")]),
    ]

    result = await orchestrator_factory(connectors).ingest_project(project)

    assert result.inserted == 2
    health = {h.connector_id: h for h in await HealthService(db).list_for_project(project.id)}
    assert health["localNews"].status == ConnectorStatus.OK
    assert health["youtube"].status == ConnectorStatus.OK
    assert health["reddit"].status == ConnectorStatus.DEGRADED
    assert health["reddit"].last_error == "Reddit API failed: 500"
    audit = (await db.execute(select(AuditLog))).scalars().all()
    assert [(a.connector_id, a.message) for a in audit] == [("reddit", "Reddit API failed: 500")]


async def test_insert_failure_degrades_only_its_connector(db, make_project, orchestrator_factory):
    project = await make_project()
    connectors = [
        FakeConnector("reddit", [item("Election thread", "https://reddit.example.com/1")]),
        FakeConnector("localNews", [item("Election live", "https://a.example.com/1")]),
    ]
    orchestrator = orchestrator_factory(connectors)
    original_insert = orchestrator.insert_mentions

    async def insert_mentions(project, rows):
        if rows and rows[0]["source"] == "reddit":
            raise RuntimeError("disk I/O error")
        return await original_insert(project, rows)

    orchestrator.insert_mentions = insert_mentions

    result = await orchestrator.ingest_project(project)

    assert result.inserted == 1
    mentions = (await db.execute(select(Mention))).scalars().all()
    assert [m.url for m in mentions] == ["https://a.example.com/1"]
    health = {h.connector_id: h for h in await HealthService(db).list_for_project(project.id)}
    assert health["reddit"].status == ConnectorStatus.DEGRADED
    assert health["reddit"].last_error == "disk I/O error"
    assert health["localNews"].status == ConnectorStatus.OK
    audit = (await db.execute(select(AuditLog))).scalars().all()
    assert [(a.connector_id, a.message) for a in audit] == [("reddit", "disk I/O error")]


async def test_configuration_error_degrades_without_retry(db, make_project, orchestrator_factory):
    project = await make_project(sources={"youtube": True})
    connector = FakeConnector("youtube", error=ConnectorConfigurationError("Missing YOUTUBE_API_KEY", "youtube"))

    result = await orchestrator_factory([connector], settings=make_settings(CONNECTOR_MAX_RETRIES=2)).ingest_project(project)

    assert result.inserted == 0
    assert connector.calls == 1
    row = await HealthService(db).get(project.id, "youtube")
    assert row.last_error == "Missing YOUTUBE_API_KEY"


async def test_transient_error_retried_when_configured(db, make_project, orchestrator_factory):
    project = await make_project()
    connector = FakeConnector("reddit", [item("Election", "https://r.example.com/1")], fail_times=1)
    settings = make_settings(CONNECTOR_MAX_RETRIES=1, CONNECTOR_RETRY_DELAY_SECONDS=0)

    result = await orchestrator_factory([connector], settings=settings).ingest_project(project)

    assert result.inserted == 1
    assert connector.calls == 2
    assert (await HealthService(db).get(project.id, "reddit")).status == ConnectorStatus.OK


async def test_timeout_marks_connector_degraded(db, make_project, orchestrator_factory):
    project = await make_project()
    slow = FakeConnector("localNews", [item("Election", "https://slow.example.com/1")], delay=1)
    fast = FakeConnector("reddit", [item("Election", "https://fast.example.com/1")])
    settings = make_settings(CONNECTOR_TIMEOUT_SECONDS=0.05)

    result = await orchestrator_factory([slow, fast], settings=settings).ingest_project(project)

    assert result.inserted == 1
    row = await HealthService(db).get(project.id, "localNews")
    assert row.status == ConnectorStatus.DEGRADED
    assert row.last_error == "timeout"


async def test_disabled_connectors_are_not_run(db, make_project, orchestrator_factory):
    project = await make_project(sources={"reddit": False})
    default_off = FakeConnector("x", [item("Election", "https://x.example.com/1")], enabled=False)
    overridden = FakeConnector("reddit", [item("Election", "https://r.example.com/1")])

    result = await orchestrator_factory([default_off, overridden]).ingest_project(project)

    assert result.inserted == 0
    assert default_off.calls == 0
    assert overridden.calls == 0


async def test_items_are_filtered(db, make_project, orchestrator_factory):
    project = await make_project(keywords=["election"], boolean_query="NOT rumor")
    connector = FakeConnector("reddit", [
        item("Election results", "https://r.example.com/1"),
        item("Weather update", "https://r.example.com/2"),
        item("Election rumor", "https://r.example.com/3"),
    ])

    result = await orchestrator_factory([connector]).ingest_project(project)

    assert result.inserted == 1
    urls = (await db.execute(select(Mention.url))).scalars().all()
    assert urls == ["https://r.example.com/1"]


async def test_project_without_keywords_accepts_boolean_matches(db, make_project, orchestrator_factory):
    project = await make_project(keywords=[], boolean_query="flood OR landslide")
    connector = FakeConnector("localNews", [
        item("Landslide blocks highway", "https://n.example.com/1"),
        item("Cricket final", "https://n.example.com/2"),
    ])

    result = await orchestrator_factory([connector]).ingest_project(project)

    assert result.inserted == 1
    mention = (await db.execute(select(Mention))).scalar_one()
    assert mention.keyword_matched == ""


async def test_duplicate_urls_are_skipped_and_batch_continues(db, make_project, orchestrator_factory):
    project = await make_project()
    first = FakeConnector("localNews", [item("Election day", "https://dup.example.com/1")])
    await orchestrator_factory([first]).ingest_project(project)

    second = FakeConnector("localNews", [
        item("Election day", "https://dup.example.com/1"),
        item("Election night", "https://dup.example.com/2"),
        item("Election night", "https://dup.example.com/2"),
    ])
    result = await orchestrator_factory([second]).ingest_project(project)

    assert result.inserted == 1
    assert await count(db, Mention) == 2


async def test_reject_policy_skips_fingerprint_collisions(db, make_project, orchestrator_factory):
    project = await make_project()
    connector = FakeConnector("localNews", [
        item("Election, Results!", "https://a.example.com/1"),
        item("election results", "https://b.example.com/1"),
    ])

    result = await orchestrator_factory([connector], settings=make_settings(DEDUP_POLICY="reject")).ingest_project(project)

    assert result.inserted == 1


async def test_store_policy_keeps_fingerprint_collisions(db, make_project, orchestrator_factory):
    project = await make_project()
    connector = FakeConnector("localNews", [
        item("Election, Results!", "https://a.example.com/1"),
        item("election results", "https://b.example.com/1"),
    ])

    result = await orchestrator_factory([connector]).ingest_project(project)

    assert result.inserted == 2
    hashes = (await db.execute(select(Mention.similarity_hash))).scalars().all()
    assert len(set(hashes)) == 1


async def test_post_batch_usage_alerts_and_last_run(db, account, make_project, orchestrator_factory, publisher, clock):
    project = await make_project()
    connector = FakeConnector("localNews", [
        item("Election update", f"https://n.example.com/{i}") for i in range(3)
    ])

    await orchestrator_factory([connector]).ingest_project(project)

    assert await UsageService(db, clock=clock).get_count(account.id) == 3
    alerts = (await db.execute(select(Alert))).scalars().all()
    assert [(a.type, a.message, a.payload) for a in alerts] == [
        (AlertType.NEW_MENTIONS, "3 new mentions for Election Watch.", {"count": 3}),
    ]
    assert {channel for channel, _, _ in publisher.messages} == {f"user:{account.id}", f"project:{project.id}"}
    await db.refresh(project)
    assert project.last_run_at == clock.now


async def test_spike_alert_after_large_batch(db, make_project, orchestrator_factory):
    project = await make_project()
    connector = FakeConnector("localNews", [
        item("Election update", f"https://n.example.com/{i}") for i in range(8)
    ])

    await orchestrator_factory([connector]).ingest_project(project)

    types = (await db.execute(select(Alert.type).order_by(Alert.type))).scalars().all()
    assert sorted(t.value for t in types) == ["new_mentions", "spike"]


async def test_empty_run_still_stamps_last_run(db, make_project, orchestrator_factory, clock):
    project = await make_project()

    result = await orchestrator_factory([FakeConnector("localNews", [])]).ingest_project(project)

    assert result.to_dict() == {"inserted": 0}
    assert await count(db, Alert) == 0
    await db.refresh(project)
    assert project.last_run_at == clock.now


async def test_inactive_project_is_a_no_op(db, make_project, orchestrator_factory):
    project = await make_project(status=ProjectStatus.PAUSED)
    connector = FakeConnector("localNews", [item("Election", "https://n.example.com/1")])

    result = await orchestrator_factory([connector]).ingest_project(project)

    assert result.to_dict() == {"inserted": 0}
    assert connector.calls == 0
    await db.refresh(project)
    assert project.last_run_at is None


async def test_concurrent_run_for_same_project_is_busy(db, make_project, orchestrator_factory):
    project = await make_project()
    locks = ProjectLockArena()
    connector = FakeConnector("localNews", [])

    async with locks.hold(project.id):
        result = await orchestrator_factory([connector], locks=locks).ingest_project(project)

    assert result.to_dict() == {"inserted": 0, "reason": "busy"}
    assert connector.calls == 0


async def test_connectors_are_fetched_concurrently(db, make_project, orchestrator_factory):
    project = await make_project()
    connectors = [
        FakeConnector(f"c{i}", [item("Election", f"https://c{i}.example.com/1")], delay=0.2)
        for i in range(3)
    ]

    loop = asyncio.get_running_loop()
    started = loop.time()
    result = await orchestrator_factory(connectors).ingest_project(project)

    assert result.inserted == 3
    assert loop.time() - started < 0.55


async def test_ingest_by_id(db, make_project, classifier, alerts, clock):
    project = await make_project()
    connector = FakeConnector("localNews", [item("Election", "https://n.example.com/1")])

    result = await ingest_project_by_id(
        db, str(project.id), connectors=[connector], classifier=classifier,
        alerts=alerts, settings=make_settings(), clock=clock,
    )
    assert result.inserted == 1
    assert await ingest_project_by_id(db, "00000000-0000-0000-0000-000000000000", connectors=[]) is None


@pytest.mark.parametrize("source,engagement,followers,expected", [
    ("youtube", {"likes": 12}, 0, 120),
    ("reddit", {"comments": 3}, 0, 15),
    ("localNews", {"likes": 50}, 0, 0),
    ("x", {"likes": 1}, 900, 900),
])
def test_estimate_reach(source, engagement, followers, expected):
    raw = RawMention(source=source, engagement=engagement, follower_count=followers)
    assert estimate_reach(raw) == expected

"""Celery task wiring"""

import asyncio
from contextlib import asynccontextmanager

from npip.workers import celery_app
from npip.workers.tasks import ingestion_tasks


def test_beat_and_routing():
    schedule = celery_app.conf.beat_schedule["dispatch-ingestion-tick"]
    assert schedule["task"] == "npip.workers.tasks.ingestion_tasks.dispatch_ingestion_tick"
    assert schedule["schedule"] == 60.0
    routes = celery_app.conf.task_routes
    assert routes["npip.workers.tasks.ingestion_tasks.ingest_project"] == {"queue": "ingestion"}


def test_ingest_task_reports_failures(monkeypatch):
    async def explode(project_id):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(ingestion_tasks, "_ingest", explode)
    assert ingestion_tasks.ingest_project.run("p1") == {"error": "database unavailable", "project_id": "p1"}


def test_ingest_task_returns_result(monkeypatch):
    class Result:
        def to_dict(self):
            return {"inserted": 4}

    async def fake(project_id):
        return Result()

    monkeypatch.setattr(ingestion_tasks, "_ingest", fake)
    assert ingestion_tasks.ingest_project.run("p1") == {"project_id": "p1", "inserted": 4}


def test_ingest_task_missing_project(monkeypatch):
    async def missing(project_id):
        return None

    monkeypatch.setattr(ingestion_tasks, "_ingest", missing)
    assert ingestion_tasks.ingest_project.run("p1")["error"] == "Project not found"


def test_dispatch_tick_enqueues(monkeypatch):
    async def tick():
        return 3

    monkeypatch.setattr(ingestion_tasks, "_dispatch_tick", tick)
    result = ingestion_tasks.dispatch_ingestion_tick.run()
    assert result["success"] is True
    assert result["projects_queued"] == 3


class LoopBoundRedis:
    """Redis stand-in that fails when used from another event loop"""

    def __init__(self):
        self.loop = asyncio.get_running_loop()
        self.calls = []
        self.closed = False

    def _check(self, name):
        assert not self.closed
        assert asyncio.get_running_loop() is self.loop
        self.calls.append(name)

    async def set(self, key, value, ex=None, nx=False):
        self._check("set")
        return True

    async def eval(self, script, numkeys, *args):
        self._check("eval")
        return 1

    async def publish(self, channel, message):
        self._check("publish")
        return 1


def test_each_ingest_task_gets_its_own_redis_client(monkeypatch):
    clients = []

    @asynccontextmanager
    async def redis_context():
        client = LoopBoundRedis()
        clients.append(client)
        try:
            yield client
        finally:
            client.closed = True

    @asynccontextmanager
    async def db_context():
        yield object()

    class Result:
        def to_dict(self):
            return {"inserted": 1}

    async def fake_ingest(db, project_id, alerts, locks):
        async with locks.hold(project_id) as acquired:
            assert acquired is True
            assert await alerts.publisher.publish("project:p1", "new_alert", {}) is True
        return Result()

    monkeypatch.setattr(ingestion_tasks, "get_worker_redis_context", redis_context)
    monkeypatch.setattr(ingestion_tasks, "get_worker_db_context", db_context)
    monkeypatch.setattr(ingestion_tasks, "ingest_project_by_id", fake_ingest)

    assert ingestion_tasks.ingest_project.run("p1") == {"project_id": "p1", "inserted": 1}
    assert ingestion_tasks.ingest_project.run("p1") == {"project_id": "p1", "inserted": 1}

    assert len(clients) == 2
    assert clients[0] is not clients[1]
    assert all(c.closed for c in clients)
    assert all(c.calls == ["set", "publish", "eval"] for c in clients)

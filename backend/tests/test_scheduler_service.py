"""Due-project selection and dispatch"""

from datetime import timedelta
from types import SimpleNamespace

from npip.models import ProjectStatus
from npip.services.scheduler_service import dispatch_due_projects, find_due_projects, is_project_due

from conftest import NOW


def test_never_run_project_is_due():
    assert is_project_due(SimpleNamespace(last_run_at=None, schedule_minutes=60), NOW)


def test_due_once_interval_elapsed():
    project = SimpleNamespace(last_run_at=NOW - timedelta(minutes=60), schedule_minutes=60)
    assert is_project_due(project, NOW)
    project.last_run_at = NOW - timedelta(minutes=59)
    assert not is_project_due(project, NOW)


async def test_find_due_projects_skips_inactive_and_recent(db, make_project):
    due = await make_project(name="due", last_run_at=NOW - timedelta(hours=2))
    fresh = await make_project(name="never")
    await make_project(name="recent", last_run_at=NOW - timedelta(minutes=5))
    await make_project(name="paused", status=ProjectStatus.PAUSED)
    await make_project(name="archived", status=ProjectStatus.ARCHIVED)

    projects = await find_due_projects(db, NOW)

    assert {p.id for p in projects} == {due.id, fresh.id}


async def test_dispatch_survives_enqueue_failure(db, make_project):
    first = await make_project(name="first")
    second = await make_project(name="second")
    enqueued = []

    def enqueue(project_id):
        if project_id == str(first.id):
            raise ConnectionError("broker down")
        enqueued.append(project_id)

    queued = await dispatch_due_projects(db, enqueue, NOW)

    assert queued == 1
    assert enqueued == [str(second.id)]

"""
Shared fixtures: in-memory SQLite database, fake connectors and fake
side-effect channels
"""

import asyncio
import os
from datetime import datetime
from typing import List, Optional

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("APP_ENV", "test")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from npip.adapters.connectors import BaseConnector, ConnectorCapabilities, ConnectorContext, RawMention
from npip.adapters.parsing import SentimentClassifier
from npip.config import Settings
from npip.models import Account, Base, Project, ProjectStatus
from npip.services import AlertService, EmailService


NOW = datetime(2026, 3, 15, 12, 0, 0)


class FrozenClock:
    """Callable clock that tests can move forward"""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeConnector(BaseConnector):
    """Connector returning canned items or raising a canned error"""

    def __init__(
        self,
        connector_id: str,
        items: Optional[List[dict]] = None,
        error: Optional[BaseException] = None,
        delay: float = 0,
        enabled: bool = True,
        fail_times: int = 0,
    ):
        super().__init__(timeout=1)
        self._id = connector_id
        self.items = items or []
        self.error = error
        self.delay = delay
        self.enabled = enabled
        self.fail_times = fail_times
        self.calls = 0

    @property
    def id(self) -> str:
        return self._id

    @property
    def display_name(self) -> str:
        return self._id.title()

    @property
    def enabled_by_default(self) -> bool:
        return self.enabled

    @property
    def capabilities(self) -> ConnectorCapabilities:
        return ConnectorCapabilities()

    async def run(self, context: ConnectorContext) -> List[RawMention]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.calls <= self.fail_times:
            raise RuntimeError(f"transient failure {self.calls}")
        return [RawMention(source=self._id, **item) for item in self.items]


class FakePublisher:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.messages = []

    async def publish(self, channel: str, event: str, data: dict) -> bool:
        if self.fail:
            return False
        self.messages.append((channel, event, data))
        return True


class FakeEmail(EmailService):
    def __init__(self):
        self.sent = []

    async def send(self, to: str, subject: str, text: str) -> bool:
        self.sent.append((to, subject, text))
        return True


def failing_model_loader(model_name):
    raise RuntimeError("model unavailable")


def make_settings(**overrides) -> Settings:
    values = {"DATABASE_URL": "sqlite:///:memory:", "CONNECTOR_TIMEOUT_SECONDS": 2.0}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def account(db):
    account = Account(email="editor@example.com", plan="individual")
    db.add(account)
    await db.commit()
    return account


@pytest.fixture
def make_project(db, account):
    async def _make(**fields) -> Project:
        values = {
            "owner_id": account.id,
            "name": "Election Watch",
            "keywords": ["election"],
            "boolean_query": "",
            "sources": {},
            "schedule_minutes": 60,
            "status": ProjectStatus.ACTIVE,
        }
        values.update(fields)
        project = Project(**values)
        db.add(project)
        await db.commit()
        return project
    return _make


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def email():
    return FakeEmail()


@pytest.fixture
def classifier():
    return SentimentClassifier(model_loader=failing_model_loader)


@pytest.fixture
def alerts(db, publisher, email, clock):
    return AlertService(db, publisher=publisher, email=email, clock=clock)

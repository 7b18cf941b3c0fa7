"""
Pytest configuration and fixtures for GearShare tests.

Engine-level tests get their own SQLite file per test so threads can
hold separate connections; route tests use the app's in-memory database.
"""
import os

# Set TESTING before any gearshare imports
os.environ["TESTING"] = "true"

import datetime
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from gearshare.core.db import Base
from gearshare.core.models import Item, User, Role
from gearshare.core.notifications import NotificationDispatcher
from gearshare.core.workflow import WorkflowEngine, ItemLocks, Actor

NOW = datetime.datetime(2025, 12, 1, 12, 0)


def at(day, hour=0, month=1, year=2026):
    return datetime.datetime(year, month, day, hour)


class Clock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += datetime.timedelta(**kwargs)
        return self.now


class RecordingSender:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send(self, event):
        if self.fail:
            raise ConnectionError("webhook down")
        self.sent.append(event.id)


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'gearshare.db'}",
        connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()

@pytest.fixture
def clock():
    return Clock()

@pytest.fixture
def sender():
    return RecordingSender()

@pytest.fixture
def dispatcher(session_factory, sender):
    return NotificationDispatcher(session_factory, sender=sender)

@pytest.fixture
def workflow(session_factory, dispatcher, clock):
    return WorkflowEngine(
        session_factory, dispatcher=dispatcher, clock=clock, locks=ItemLocks(timeout=5))

@pytest.fixture
def actors(session_factory):
    people = [
        ("admin", "Grace", Role.ADMIN),
        ("admin2", "Linus", Role.ADMIN),
        ("alice", "Alice", Role.USER),
        ("bob", "Bob", Role.USER),
    ]
    with session_factory() as session:
        for user_id, name, role in people:
            session.add(User(user_id=user_id, name=name, email=f"{user_id}@gearshare.org", role=role))
        session.commit()
    return {user_id: Actor(user_id, role) for user_id, _, role in people}

@pytest.fixture
def make_item(session_factory):
    def _make(name="Camera"):
        with session_factory() as session:
            item = Item(name=name, location="Media lab")
            session.add(item)
            session.commit()
            return item.id
    return _make

@pytest.fixture
def item(make_item):
    return make_item()

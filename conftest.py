import itertools
from datetime import datetime, timedelta, timezone

import pytest

from app import create_app
from config import TestConfig
from identity import Identity
from storage import MemoryStore
from workflow import WorkflowEngine

PASSWORDS = {"admin": "admin123"}


def password_for(username):
    return PASSWORDS.get(username, "password123")


@pytest.fixture
def clock():
    """Strictly increasing ISO timestamps, one second apart."""
    start = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
    ticks = itertools.count()
    return lambda: (start + timedelta(seconds=next(ticks))).isoformat()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def identity(store):
    return Identity(store)


@pytest.fixture
def engine(identity, store, clock):
    return WorkflowEngine(identity, store, clock=clock)


@pytest.fixture
def login(identity):
    """Switch the acting user: login("user4")."""
    def _login(username):
        return identity.authenticate(username, password_for(username))
    return _login


@pytest.fixture
def app(store):
    return create_app(TestConfig, store=store)


@pytest.fixture
def client_for(app):
    """A logged-in test client per user; each client keeps its own cookie session."""
    def _client(username):
        c = app.test_client()
        resp = c.post("/login", json={"username": username, "password": password_for(username)})
        assert resp.status_code == 200
        return c
    return _client

"""Shared fixtures for task store tests."""

from datetime import UTC, datetime, timedelta
import itertools

import pytest
import pytest_asyncio

from taskstore.core import FileSchemaLoader
from taskstore.storage import InMemoryStorage

FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def now():
    """Clock value used by every store built in tests."""
    return FIXED_NOW


@pytest_asyncio.fixture
async def bundle():
    """Bundled user, task, project and tag schemas."""
    return await FileSchemaLoader().load_schemas()


@pytest_asyncio.fixture
async def store(now):
    """Empty in-memory store with the bundled schemas registered."""
    storage = InMemoryStorage(lock_timeout=1.0, clock=lambda: now)
    await storage.load_schemas()
    return storage


@pytest.fixture
def make_user(store):
    """Factory creating valid users with unique usernames and emails."""
    counter = itertools.count(1)

    async def _make(**overrides):
        n = next(counter)
        fields = {
            "username": f"user{n}",
            "email": f"user{n}@example.com",
            "password": "Secret#123",
            "first_name": "Alice",
            "last_name": "Smith",
        }
        fields.update(overrides)
        return await store.create("user", fields)

    return _make


@pytest.fixture
def make_project(store):
    async def _make(**overrides):
        fields = {"name": "Website relaunch"}
        fields.update(overrides)
        return await store.create("project", fields)

    return _make


@pytest.fixture
def make_task(store, now):
    """Factory creating tasks due one week after the test clock."""

    async def _make(user_id, project_id, **overrides):
        fields = {
            "title": "Write report",
            "due_date": now + timedelta(days=7),
            "user_id": user_id,
            "project_id": project_id,
        }
        fields.update(overrides)
        return await store.create("task", fields)

    return _make


@pytest.fixture
def make_tag(store):
    counter = itertools.count(1)

    async def _make(**overrides):
        fields = {"name": f"tag{next(counter)}"}
        fields.update(overrides)
        return await store.create("tag", fields)

    return _make

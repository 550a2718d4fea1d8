"""End-to-end workflow through a store built from settings.

Exercises users, projects, tasks and tags together: creation with
validation, tagging, derived getters, completion after the due date has
passed, and cascading deletes, all through the public API.
"""

from datetime import UTC, datetime, timedelta

import pytest

from taskstore.config import Settings
from taskstore.domain import (
    active_projects_count,
    add_tags,
    create_task_store,
    full_name,
    get_tags,
    get_tasks_for_tag,
    is_overdue,
    task_completion_rate,
    task_progress,
)
from taskstore.storage import ChangeOperation, DuplicateValueError, RecordNotFoundError


@pytest.mark.asyncio
async def test_task_management_workflow():
    store = await create_task_store(Settings(audit_log=False))
    now = datetime.now(UTC)
    events = []
    store.on_change(lambda *event: events.append(event))

    alice = await store.create(
        "user",
        {
            "username": "alice",
            "email": "Alice@Example.com",
            "password": "Secret#123",
            "first_name": "Alice",
            "last_name": "Smith",
        },
    )
    assert full_name(alice) == "Alice Smith"

    with pytest.raises(DuplicateValueError):
        await store.create(
            "user",
            {
                "username": "alice2",
                "email": "alice@example.com",
                "password": "Secret#123",
                "first_name": "Alice",
                "last_name": "Jones",
            },
        )

    project = await store.create(
        "project", {"name": "  Website relaunch  ", "owner_id": alice.id}
    )
    assert project["name"] == "Website relaunch"
    assert await active_projects_count(store, alice.id) == 1

    design = await store.create(
        "task",
        {
            "title": "Design mockups",
            "due_date": now + timedelta(days=3),
            "user_id": alice.id,
            "project_id": project.id,
        },
    )
    copy = await store.create(
        "task",
        {
            "title": "Write copy",
            "due_date": now + timedelta(days=5),
            "status": "in_progress",
            "priority": "high",
            "user_id": alice.id,
            "project_id": project.id,
        },
    )
    assert task_progress(copy) == "50%"
    assert await task_completion_rate(store, alice.id) == "0%"

    urgent = await store.create("tag", {"name": "urgent", "color": "#e74c3c"})
    await add_tags(store, design.id, [urgent.id])
    await add_tags(store, copy.id, urgent.id)
    assert [t["name"] for t in await get_tags(store, design.id)] == ["urgent"]
    assert [t.id for t in await get_tasks_for_tag(store, urgent.id)] == [
        design.id,
        copy.id,
    ]

    # A week later the design task is overdue but can still be completed
    later = now + timedelta(days=7)
    store.clock = lambda: later
    assert is_overdue(await store.get("task", design.id), now=later)

    done = await store.update("task", design.id, {"status": "completed"})
    assert not is_overdue(done, now=later)
    assert task_progress(done) == "100%"
    assert await task_completion_rate(store, alice.id) == "50%"

    events.clear()
    await store.delete("user", alice.id)

    with pytest.raises(RecordNotFoundError):
        await store.get("task", design.id)
    assert (await store.get("project", project.id))["owner_id"] is None
    assert await get_tasks_for_tag(store, urgent.id) == []
    assert await store.get("tag", urgent.id)

    assert events == [
        ("project", project.id, ChangeOperation.UPDATE),
        ("task", design.id, ChangeOperation.DELETE),
        ("task", copy.id, ChangeOperation.DELETE),
        ("user", alice.id, ChangeOperation.DELETE),
    ]

    metrics = await store.get_metrics()
    assert metrics.record_counts == {"user": 0, "project": 1, "task": 0, "tag": 1}
    assert metrics.association_count == 0

"""Derived values computed from stored records.

Getters take anything with a mapping-style ``get`` (a stored ``Record`` or a
plain dict of field values). The aggregate getters read through a store.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from ..storage import Record, StorageInterface
from .enums import EntityKind, ProjectStatus, TaskStatus

RecordLike = Record | Mapping[str, Any]

_PROGRESS = {
    TaskStatus.COMPLETED.value: "100%",
    TaskStatus.IN_PROGRESS.value: "50%",
}


def full_name(user: RecordLike) -> str:
    """First and last name joined by a single space."""
    return f"{user.get('first_name')} {user.get('last_name')}"


def task_progress(task: RecordLike) -> str:
    """Progress percentage derived from the task status."""
    return _PROGRESS.get(task.get("status"), "0%")


def is_overdue(task: RecordLike, now: datetime | None = None) -> bool:
    """True when the due date has passed and the task is not completed.

    Args:
        task: Task record
        now: Reference time, defaults to the current UTC time
    """
    due_date = task.get("due_date")
    if due_date is None or task.get("status") == TaskStatus.COMPLETED.value:
        return False

    now = now or datetime.now(UTC)
    if due_date.tzinfo is None:
        due_date = due_date.replace(tzinfo=UTC)
    return due_date < now


async def task_completion_rate(store: StorageInterface, user_id: int) -> str:
    """Share of the user's tasks that are completed, e.g. ``"75%"``.

    A user without tasks has a completion rate of ``"0%"``.
    """
    tasks = await store.find_by(EntityKind.TASK.value, "user_id", user_id)
    if not tasks:
        return "0%"

    completed = sum(
        1 for task in tasks if task.get("status") == TaskStatus.COMPLETED.value
    )
    return f"{completed / len(tasks) * 100:.0f}%"


async def active_projects_count(store: StorageInterface, user_id: int) -> int:
    """Number of projects owned by the user that are still active."""
    projects = await store.find_by(EntityKind.PROJECT.value, "owner_id", user_id)
    return sum(
        1
        for project in projects
        if project.get("status") == ProjectStatus.ACTIVE.value
    )

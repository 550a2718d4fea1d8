"""Task-management domain helpers on top of the entity store."""

from .enums import TASK_TAGS, EntityKind, ProjectStatus, TaskPriority, TaskStatus
from .getters import (
    active_projects_count,
    full_name,
    is_overdue,
    task_completion_rate,
    task_progress,
)
from .store import create_task_store
from .tags import add_tags, get_tags, get_tasks_for_tag, remove_tags

__all__ = [
    # Enums
    "EntityKind",
    "ProjectStatus",
    "TASK_TAGS",
    "TaskPriority",
    "TaskStatus",
    # Getters
    "active_projects_count",
    "full_name",
    "is_overdue",
    "task_completion_rate",
    "task_progress",
    # Tags
    "add_tags",
    "get_tags",
    "get_tasks_for_tag",
    "remove_tags",
    # Store
    "create_task_store",
]

"""Enumerations shared by the bundled task-management schemas."""

from enum import Enum


class EntityKind(str, Enum):
    """Entity kinds declared by the bundled schemas."""

    USER = "user"
    TASK = "task"
    PROJECT = "project"
    TAG = "tag"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    ARCHIVED = "archived"


TASK_TAGS = "task_tags"
"""Name of the many-to-many relationship linking tasks to tags."""

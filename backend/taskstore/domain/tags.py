"""Tag helpers for tasks, built on the ``task_tags`` association."""

from collections.abc import Iterable

from ..storage import Record, StorageInterface
from .enums import TASK_TAGS


def _as_ids(tag_ids: int | Iterable[int]) -> list[int]:
    if isinstance(tag_ids, int):
        return [tag_ids]
    return list(tag_ids)


async def add_tags(
    store: StorageInterface, task_id: int, tag_ids: int | Iterable[int]
) -> int:
    """Link tags to a task. Returns how many links were new."""
    added = 0
    for tag_id in _as_ids(tag_ids):
        if await store.add_association(TASK_TAGS, task_id, tag_id):
            added += 1
    return added


async def remove_tags(
    store: StorageInterface, task_id: int, tag_ids: int | Iterable[int]
) -> int:
    """Unlink tags from a task. Returns how many links were removed."""
    removed = 0
    for tag_id in _as_ids(tag_ids):
        if await store.remove_association(TASK_TAGS, task_id, tag_id):
            removed += 1
    return removed


async def get_tags(store: StorageInterface, task_id: int) -> list[Record]:
    return await store.get_associated(TASK_TAGS, task_id)


async def get_tasks_for_tag(store: StorageInterface, tag_id: int) -> list[Record]:
    return await store.get_associated(TASK_TAGS, tag_id, reverse=True)

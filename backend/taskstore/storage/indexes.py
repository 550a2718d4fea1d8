"""Secondary indexes over record fields."""

from collections import defaultdict
from collections.abc import Hashable, Iterable
from typing import Any


def index_key(value: Any) -> Hashable:
    """Key under which ``value`` is indexed.

    Unhashable values are never indexed by the schemas in this package; the
    ``repr`` fallback keeps the index usable if one slips through.
    """
    try:
        hash(value)
    except TypeError:
        return repr(value)
    return value


class SecondaryIndex:
    """Equality index from field value to record ids.

    Null values are not indexed, so any number of records may leave a unique
    field empty.
    """

    def __init__(self, field_name: str, unique: bool = False):
        self.field_name = field_name
        self.unique = unique
        self._entries: defaultdict[Hashable, set[int]] = defaultdict(set)

    def add(self, value: Any, record_id: int) -> None:
        if value is None:
            return
        self._entries[index_key(value)].add(record_id)

    def remove(self, value: Any, record_id: int) -> None:
        if value is None:
            return
        key = index_key(value)
        ids = self._entries.get(key)
        if ids is None:
            return
        ids.discard(record_id)
        if not ids:
            del self._entries[key]

    def lookup(self, value: Any) -> set[int]:
        if value is None:
            return set()
        return set(self._entries.get(index_key(value), ()))

    def conflicts(self, value: Any, exclude_id: int | None = None) -> set[int]:
        """Ids other than ``exclude_id`` already holding ``value``."""
        return {rid for rid in self.lookup(value) if rid != exclude_id}

    def rebuild(self, rows: Iterable[tuple[int, Any]]) -> None:
        self._entries.clear()
        for record_id, value in rows:
            self.add(value, record_id)

    def __len__(self) -> int:
        return len(self._entries)

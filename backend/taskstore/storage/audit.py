"""Audit trail observer for store change events."""

from datetime import UTC, datetime

import structlog

from ..core import get_logger
from .models import ChangeEvent, ChangeOperation

_MESSAGES = {
    ChangeOperation.CREATE: "Record created",
    ChangeOperation.UPDATE: "Record updated",
    ChangeOperation.DELETE: "Record deleted",
}


class AuditLogObserver:
    """Change observer that writes one structured log line per event.

    The most recent events are also kept in memory so callers (and tests) can
    inspect what happened without parsing log output.
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        history_size: int = 100,
    ):
        self.logger = logger or get_logger("taskstore.audit")
        self.history_size = history_size
        self.events: list[ChangeEvent] = []

    def __call__(
        self, entity_name: str, record_id: int, operation: ChangeOperation
    ) -> None:
        event = ChangeEvent(
            entity_name=entity_name,
            record_id=record_id,
            operation=operation,
            occurred_at=datetime.now(UTC),
        )
        self.events.append(event)
        del self.events[: -self.history_size]

        self.logger.info(
            _MESSAGES[operation],
            entity_name=entity_name,
            record_id=record_id,
            operation=operation.value,
        )

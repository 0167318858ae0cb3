"""Append-only in-memory audit store.

Keeps AuditRecord instances per (entity_type, entity_id) in insertion order.
All write operations are append-only: no updates or deletes are permitted.

Suitable for tests, local development and single-process hosts; production
deployments use SqlAlchemyAuditStore.
"""

from __future__ import annotations

import asyncio
import itertools
from datetime import UTC, datetime

from aumos_auditing.core.events import AuditDraft, AuditRecord
from aumos_auditing.observability import get_logger

logger = get_logger(__name__)


class InMemoryAuditStore:
    """Append-only store for AuditRecord instances.

    Ids are assigned from a process-local counter under a lock, so they are
    strictly increasing in append-completion order and "last" always means
    the most recent append.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        # { (entity_type, entity_id): list[AuditRecord] } in ascending id order
        self._records: dict[tuple[str, str], list[AuditRecord]] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def append(self, draft: AuditDraft) -> AuditRecord:
        """Assign an id and timestamps to a draft and store it.

        Args:
            draft: The audit to persist.

        Returns:
            The stored AuditRecord.
        """
        async with self._lock:
            now = datetime.now(UTC)
            record = AuditRecord(**draft.model_dump(), id=next(self._ids), created_at=now, updated_at=now)
            self._records.setdefault((record.entity_type, record.entity_id), []).append(record)

        logger.debug(
            "Audit record appended",
            audit_id=record.id,
            audit_event=record.event,
            entity_type=record.entity_type,
            entity_id=record.entity_id,
        )
        return record

    async def query_by_entity(self, entity_type: str, entity_id: str) -> list[AuditRecord]:
        return list(self._records.get((entity_type, entity_id), []))

    async def first_by_entity(self, entity_type: str, entity_id: str) -> AuditRecord | None:
        records = self._records.get((entity_type, entity_id))
        return records[0] if records else None

    async def last_by_entity(self, entity_type: str, entity_id: str) -> AuditRecord | None:
        records = self._records.get((entity_type, entity_id))
        return records[-1] if records else None

    def count(self, entity_type: str | None = None) -> int:
        """Return the number of stored records, optionally for one entity type.

        Args:
            entity_type: Restrict the count to this entity type.

        Returns:
            Number of records (0 when nothing matches).
        """
        return sum(
            len(records)
            for (stored_type, _), records in self._records.items()
            if entity_type is None or stored_type == entity_type
        )

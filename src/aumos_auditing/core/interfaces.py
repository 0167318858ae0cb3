"""Abstract interfaces (Protocol classes) for the auditing engine.

Defines the contracts between AuditingEngine and its collaborators using
Python's typing.Protocol. The engine depends on these protocols, never on
concrete adapters, so stores, notifiers and resolvers can be swapped or
mocked freely.

Protocols defined:
- IAuditStore
- IAuditNotifier
- IActorResolver
- ITenantResolver
- IMetadataResolver
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from aumos_auditing.core.events import AuditDraft, AuditRecord


@dataclass(frozen=True, slots=True)
class Actor:
    """Who triggered an audited change.

    Attributes:
        id: Actor identifier (user id, service account id).
        type: Actor kind, e.g. "User" or "ServiceAccount".
    """

    id: str
    type: str


@dataclass(frozen=True, slots=True)
class TenantRef:
    """Tenant owning an audited change."""

    id: int | str


class IAuditStore(Protocol):
    """Append-only persistence contract for audit records."""

    async def append(self, draft: AuditDraft) -> AuditRecord:
        """Persist a new audit record.

        Args:
            draft: The record to persist.

        Returns:
            The persisted AuditRecord with its assigned id.

        Raises:
            PersistenceError: If the backing store rejects the write.
        """
        ...

    async def query_by_entity(self, entity_type: str, entity_id: str) -> list[AuditRecord]:
        """Return every record of an entity instance ordered by ascending id.

        Raises:
            PersistenceError: If the backing store cannot be read.
        """
        ...

    async def first_by_entity(self, entity_type: str, entity_id: str) -> AuditRecord | None:
        """Return the oldest record of an entity instance, or None."""
        ...

    async def last_by_entity(self, entity_type: str, entity_id: str) -> AuditRecord | None:
        """Return the newest record of an entity instance, or None."""
        ...


class IAuditNotifier(Protocol):
    """Announces completed audits to downstream subscribers."""

    async def notify(self, event_name: str, audit_id: int) -> None:
        """Publish ``audit:<event>`` with the id of the new record.

        Args:
            event_name: Notification name, e.g. "audit:update".
            audit_id: Id of the persisted AuditRecord.
        """
        ...


class IActorResolver(Protocol):
    """Resolves the acting user from a request context."""

    async def resolve(self, context: Any) -> Actor | None:
        """Return the actor for this context, or None when anonymous."""
        ...


class ITenantResolver(Protocol):
    """Resolves the tenant from a request context."""

    async def resolve(self, context: Any) -> TenantRef | None:
        """Return the tenant for this context, or None."""
        ...


class IMetadataResolver(Protocol):
    """Resolves one named metadata value from a request context."""

    async def resolve(self, context: Any) -> Any:
        """Return the metadata value for this context."""
        ...

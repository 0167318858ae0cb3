"""Audit record schema.

Every captured create/update/delete of an audited entity becomes one immutable
AuditRecord. Before persistence the engine builds an AuditDraft; the store
assigns the monotonically increasing id and timestamps and returns the
AuditRecord.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

AuditEvent = Literal["create", "update", "delete"]
ValuesType = Literal["old", "new"]

AUDIT_EVENTS: tuple[AuditEvent, ...] = ("create", "update", "delete")


class AuditDraft(BaseModel):
    """An audit record that has not been persisted yet.

    Attributes:
        actor_type: Kind of actor that triggered the change (e.g. "User").
        actor_id: Identifier of the actor.
        tenant_id: Multi-tenancy partition key.
        event: The lifecycle event that was audited.
        entity_type: Concrete class name of the audited instance.
        entity_id: Identifier of the audited instance.
        old_values: Pre-change attribute image. None for create events.
        new_values: Post-change attribute image. None for delete events.
        metadata: Values produced by the configured metadata resolvers.
    """

    model_config = ConfigDict(frozen=True)

    actor_type: str | None = None
    actor_id: str | None = None
    tenant_id: str | None = None
    event: AuditEvent
    entity_type: str = Field(..., min_length=1)
    entity_id: str = Field(..., min_length=1)
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_values_shape(self) -> AuditDraft:
        """Enforce which value maps are present for each event."""
        if self.event == "create" and (self.old_values is not None or self.new_values is None):
            raise ValueError("create audits carry new_values only")
        if self.event == "delete" and (self.new_values is not None or self.old_values is None):
            raise ValueError("delete audits carry old_values only")
        if self.event == "update" and (self.old_values is None or self.new_values is None):
            raise ValueError("update audits carry both old_values and new_values")
        return self


class AuditRecord(AuditDraft):
    """A persisted, immutable audit record.

    Attributes:
        id: Store-assigned identifier. Ascending ids define chronological order.
        created_at: When the record was persisted (UTC).
        updated_at: Mirrors created_at; records are never updated.
    """

    id: int
    created_at: datetime
    updated_at: datetime

    def values(self, which: ValuesType) -> dict[str, Any] | None:
        """Return the old or new value map of this record.

        Args:
            which: "old" or "new".

        Returns:
            The selected value map, which may be None.

        Raises:
            ValueError: If which is neither "old" nor "new".
        """
        if which == "old":
            return self.old_values
        if which == "new":
            return self.new_values
        raise ValueError(f'values type must be "old" or "new", got {which!r}')

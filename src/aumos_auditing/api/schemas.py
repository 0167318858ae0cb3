"""Pydantic response schemas for the auditing API."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from aumos_auditing.core.events import AuditRecord


class AuditResponse(BaseModel):
    """A single audit record as returned by the API."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Store-assigned id; ascending ids are chronological")
    actor_type: str | None = Field(default=None, description="Kind of actor that made the change")
    actor_id: str | None = Field(default=None, description="Identifier of the actor")
    tenant_id: str | None = Field(default=None, description="Owning tenant")
    event: Literal["create", "update", "delete"]
    entity_type: str
    entity_id: str
    old_values: dict[str, Any] | None = Field(default=None, description="Masked pre-change values")
    new_values: dict[str, Any] | None = Field(default=None, description="Masked post-change values")
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: AuditRecord) -> "AuditResponse":
        return cls.model_validate(record.model_dump())


class AuditListResponse(BaseModel):
    """All audit records of one entity instance, oldest first."""

    model_config = ConfigDict(frozen=True)

    entity_type: str
    entity_id: str
    entries: list[AuditResponse]
    total: int

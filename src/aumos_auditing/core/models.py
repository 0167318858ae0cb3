"""SQLAlchemy ORM mapping of the audits table.

The table is append-only: rows are inserted by SqlAlchemyAuditStore and never
updated or deleted by this package. Identifiers are stored as strings so that
integer and string primary keys of host entities share one column type.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for auditing tables."""


class Audit(Base):
    """One audited create/update/delete of an entity instance.

    Attributes:
        id: Auto-increment primary key; defines chronological order.
        actor_type: Kind of actor (nullable).
        actor_id: Actor identifier (nullable).
        tenant_id: Multi-tenancy partition key (nullable).
        event: create | update | delete.
        entity_type: Concrete class name of the audited instance.
        entity_id: Identifier of the audited instance.
        old_values: Pre-change attribute image (null for create).
        new_values: Post-change attribute image (null for delete).
        audit_metadata: Resolver-supplied metadata, stored in the "metadata" column.
    """

    __tablename__ = "audits"
    __table_args__ = (Index("ix_audits_entity", "entity_type", "entity_id", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    actor_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tenant_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    event: Mapped[str] = mapped_column(String(16), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(255), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(255), nullable=False)
    old_values: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    new_values: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    # "metadata" is reserved on declarative classes
    audit_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

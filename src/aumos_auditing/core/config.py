"""Process-wide auditing policy.

Resolved once (usually from Settings) and shared read-only by every
AuditingEngine call; the model is frozen so concurrent reads need no locking.
"""

from pydantic import BaseModel, ConfigDict, Field


class AuditingConfig(BaseModel):
    """Policy governing change-set computation, masking and context resolution.

    Attributes:
        full_snapshot_on_update: Store complete before/after images for updates
            instead of the changed attributes only.
        ignored_fields_on_update: Attributes that never count as a change on
            update. Does not apply to create or delete.
        hidden_fields: Attributes masked in every stored payload.
        resolver_timeout_seconds: Bound for each context resolver call.
        warn_on_missing_context: Warn when auditing without a request context.
    """

    model_config = ConfigDict(frozen=True)

    full_snapshot_on_update: bool = False
    ignored_fields_on_update: frozenset[str] = Field(default_factory=frozenset)
    hidden_fields: frozenset[str] = Field(default_factory=frozenset)
    resolver_timeout_seconds: float | None = Field(default=5.0, gt=0)
    warn_on_missing_context: bool = True

"""AumOS Auditing Engine: attribute-level change history for mutable records.

Captures create/update/delete transitions of audited entities as an
append-only, per-instance audit trail, with configurable diff or full-snapshot
capture, masking of sensitive attributes, and validated revert of a live
instance to any recorded state.
"""

from __future__ import annotations

from aumos_auditing.core.changeset import ChangeSet, compute_change_set
from aumos_auditing.core.config import AuditingConfig
from aumos_auditing.core.context import ContextEnricher, ResolvedContext
from aumos_auditing.core.entity import AuditableEntity, AuditTracker, TrackedRecord
from aumos_auditing.core.events import AuditDraft, AuditEvent, AuditRecord
from aumos_auditing.core.interfaces import Actor, TenantRef
from aumos_auditing.core.masking import MASK, mask_values
from aumos_auditing.core.services import AuditHistory, AuditingEngine

__all__ = [
    "Actor",
    "AuditDraft",
    "AuditEvent",
    "AuditHistory",
    "AuditRecord",
    "AuditTracker",
    "AuditableEntity",
    "AuditingConfig",
    "AuditingEngine",
    "ChangeSet",
    "ContextEnricher",
    "MASK",
    "ResolvedContext",
    "TenantRef",
    "TrackedRecord",
    "compute_change_set",
    "mask_values",
]

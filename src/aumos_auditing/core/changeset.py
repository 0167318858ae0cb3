"""Change-set computation for audited lifecycle events.

Turns the attribute images around a mutation into the (old_values, new_values)
pair that is stored on the audit record:

- create: (None, after)
- delete: (before_snapshot, None)
- update: reconstructs the full "before" image from the current attributes and
  the dirty-original map, then keeps either the changed attributes only or the
  complete images, depending on AuditingConfig.full_snapshot_on_update.

Equality is deliberately shallow. Scalars compare by value; composite values
(dicts, lists, arbitrary objects) compare by identity, so replacing a list with
an equal but distinct list is reported as a change.
"""

from __future__ import annotations

import datetime as dt
import decimal
import enum
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from aumos_auditing.core.config import AuditingConfig
from aumos_auditing.core.events import AuditEvent

_MISSING: Any = object()

_SCALAR_TYPES: tuple[type, ...] = (
    type(None),
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    decimal.Decimal,
    dt.date,
    dt.time,
    dt.timedelta,
    uuid.UUID,
    enum.Enum,
)


@dataclass(frozen=True, slots=True)
class ChangeSet:
    """Old/new value maps to be stored on an audit record."""

    old_values: dict[str, Any] | None
    new_values: dict[str, Any] | None


def values_equal(before: Any, after: Any) -> bool:
    """Compare two attribute values the way the change-set computer does.

    Scalars (numbers, strings, dates, UUIDs, enums, None) use ``==``; anything
    else uses identity. A bool never equals a non-bool.

    Args:
        before: Value before the mutation, or the internal missing marker.
        after: Value after the mutation, or the internal missing marker.

    Returns:
        True when the attribute is considered unchanged.
    """
    if before is after:
        return True
    # bool is an int subclass; 1 -> True must still count as a change
    if isinstance(before, bool) != isinstance(after, bool):
        return False
    if isinstance(before, _SCALAR_TYPES) and isinstance(after, _SCALAR_TYPES):
        return bool(before == after)
    return False


def reconstruct_before(after: Mapping[str, Any], dirty_original: Mapping[str, Any]) -> dict[str, Any]:
    """Rebuild the full pre-mutation image of an updated entity.

    Unchanged attributes fall through from ``after``; dirty attributes are
    restored to their original value.

    Args:
        after: Current attribute map.
        dirty_original: Pre-change values of the dirty attributes.

    Returns:
        A new dict holding the complete "before" image.
    """
    before_full = dict(after)
    before_full.update(dirty_original)
    return before_full


def diff_attributes(
    before_full: Mapping[str, Any],
    after: Mapping[str, Any],
    dirty_original: Mapping[str, Any],
    ignored: frozenset[str] | set[str] = frozenset(),
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Collect the attributes whose value changed across a mutation.

    An attribute missing on one side is reported as None on that side.

    Args:
        before_full: Reconstructed pre-mutation image.
        after: Current attribute map.
        dirty_original: Pre-change values of the dirty attributes.
        ignored: Attributes excluded from the comparison.

    Returns:
        (changed_old, changed_new) dicts with identical key sets.
    """
    changed_old: dict[str, Any] = {}
    changed_new: dict[str, Any] = {}

    keys = dict.fromkeys([*before_full, *after, *dirty_original])
    for key in keys:
        if key in ignored:
            continue
        before_value = before_full.get(key, _MISSING)
        after_value = after.get(key, _MISSING)
        if values_equal(before_value, after_value):
            continue
        changed_old[key] = None if before_value is _MISSING else before_value
        changed_new[key] = None if after_value is _MISSING else after_value

    return changed_old, changed_new


def compute_change_set(
    event: AuditEvent,
    after: Mapping[str, Any],
    dirty_original: Mapping[str, Any],
    config: AuditingConfig,
    before_snapshot: Mapping[str, Any] | None = None,
) -> ChangeSet | None:
    """Compute the value maps to persist for a lifecycle event.

    Args:
        event: create, update or delete.
        after: Attribute map of the instance after the mutation.
        dirty_original: Pre-change values of dirty attributes (updates).
        config: Change-set policy.
        before_snapshot: Full attribute image captured before the mutation.
            Required for delete; falls back to ``after`` when omitted.

    Returns:
        The ChangeSet, or None when an update changed no non-ignored attribute
        and nothing must be recorded.

    Raises:
        ValueError: If event is not a known lifecycle event.
    """
    if event == "create":
        return ChangeSet(old_values=None, new_values=dict(after))

    if event == "delete":
        snapshot = before_snapshot if before_snapshot is not None else after
        return ChangeSet(old_values=dict(snapshot), new_values=None)

    if event != "update":
        raise ValueError(f"Unknown audit event {event!r}")

    before_full = reconstruct_before(after, dirty_original)
    changed_old, changed_new = diff_attributes(
        before_full,
        after,
        dirty_original,
        ignored=config.ignored_fields_on_update,
    )

    if not changed_new:
        return None

    if config.full_snapshot_on_update:
        return ChangeSet(old_values=before_full, new_values=dict(after))
    return ChangeSet(old_values=changed_old, new_values=changed_new)

"""Redaction of sensitive attributes in stored audit payloads."""

from collections.abc import Mapping, Set
from typing import Any

MASK = "******"


def mask_values(values: Mapping[str, Any] | None, hidden_fields: Set[str]) -> dict[str, Any] | None:
    """Replace the values of hidden attributes with the redaction marker.

    Masking runs after the change set is computed, so it never affects
    whether an update is recorded. Absent maps pass through unchanged.

    Args:
        values: Attribute map to redact, or None.
        hidden_fields: Attribute names to mask.

    Returns:
        A shallow copy with hidden values replaced by MASK, or None.
    """
    if values is None:
        return None
    masked = dict(values)
    for key in masked.keys() & hidden_fields:
        masked[key] = MASK
    return masked

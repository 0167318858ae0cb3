"""Applying historical audit values back onto live entity instances.

``transition_to`` validates, in order, that the record was captured for the
same entity type, for the same instance, carries the selected value map, and
only references attributes the instance still has. The first failing check
raises; nothing is written unless every check passes.
"""

from __future__ import annotations

from aumos_auditing.core.entity import AuditableEntity, entity_id_of, entity_type_of
from aumos_auditing.core.events import AuditRecord, ValuesType
from aumos_auditing.errors import (
    IncompatibleAttributesError,
    NullSnapshotError,
    WrongEntityInstanceError,
    WrongEntityTypeError,
)


def transition_to(instance: AuditableEntity, record: AuditRecord, which: ValuesType) -> None:
    """Overwrite the instance's attributes with the old or new values of a record.

    Attributes absent from the selected map are left untouched, so applying a
    partial diff never clears unrelated fields. The instance is mutated in
    memory only; persisting it is up to the caller.

    Args:
        instance: The live entity to mutate.
        record: A record previously captured for this instance.
        which: "old" to restore the pre-change image, "new" for the post-change one.

    Raises:
        WrongEntityTypeError: The record belongs to another entity type.
        WrongEntityInstanceError: The record belongs to another instance.
        NullSnapshotError: The selected value map is absent.
        IncompatibleAttributesError: The map names an attribute the instance lacks.
        ValueError: If which is neither "old" nor "new".
    """
    entity_type = entity_type_of(instance)
    if record.entity_type != entity_type:
        raise WrongEntityTypeError(expected=entity_type, actual=record.entity_type)

    entity_id = entity_id_of(instance)
    if record.entity_id != entity_id:
        raise WrongEntityInstanceError(expected=entity_id, actual=record.entity_id)

    values = record.values(which)
    if values is None:
        raise NullSnapshotError(which)

    attributes = instance.audit_attributes()
    for key in values:
        if key not in attributes:
            raise IncompatibleAttributesError(attribute=key, entity_type=record.entity_type)

    for key, value in values.items():
        attributes[key] = value

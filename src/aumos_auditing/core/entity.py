"""Capability contract between host entities and the auditing engine.

Host records are not subclassed by the engine. Any class can be audited by
satisfying AuditableEntity:

- ``audit_identity()`` returns the stable identifier of the instance
- ``audit_attributes()`` returns the live attribute storage
- ``audit_dirty_original()`` returns pre-change values of dirty attributes
- ``audit_tracker`` is a composed AuditTracker holding the backup taken
  immediately before a mutation

TrackedRecord is a ready-made implementation for hosts without an ORM that
already tracks original values.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class AuditableEntity(Protocol):
    """Protocol implemented by every audited entity."""

    audit_tracker: AuditTracker

    def audit_identity(self) -> Any:
        """Return the stable identifier of this instance."""
        ...

    def audit_attributes(self) -> MutableMapping[str, Any]:
        """Return the live attribute storage written by transitions."""
        ...

    def audit_dirty_original(self) -> Mapping[str, Any]:
        """Return the pre-change values of the attributes changed since load."""
        ...


@dataclass(frozen=True, slots=True)
class MutationBackup:
    """State captured immediately before a mutation.

    Attributes:
        dirty_original: Pre-change values of the dirty attributes.
        attributes: Complete attribute image before the mutation.
    """

    dirty_original: dict[str, Any] = field(default_factory=dict)
    attributes: dict[str, Any] = field(default_factory=dict)


class AuditTracker:
    """Per-instance holder of the backup between "before" and "after" hooks.

    A backup is used by exactly one audit: ``consume()`` returns it and clears
    the tracker, so a later mutation can never reuse stale originals.
    """

    __slots__ = ("_pending",)

    def __init__(self) -> None:
        self._pending: MutationBackup | None = None

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def backup(self, dirty_original: Mapping[str, Any], attributes: Mapping[str, Any]) -> MutationBackup:
        """Capture fresh copies of the pre-mutation state."""
        self._pending = MutationBackup(dirty_original=dict(dirty_original), attributes=dict(attributes))
        return self._pending

    def consume(self) -> MutationBackup:
        """Return the pending backup (or an empty one) and clear the tracker."""
        pending = self._pending if self._pending is not None else MutationBackup()
        self._pending = None
        return pending

    def discard(self) -> None:
        self._pending = None


def entity_type_of(instance: object) -> str:
    """Return the concrete runtime class name used as audit entity_type."""
    return type(instance).__name__


def entity_id_of(instance: AuditableEntity) -> str:
    """Return the instance identifier normalised to the stored string form."""
    return str(instance.audit_identity())


class TrackedRecord:
    """A plain attribute record that tracks its persisted originals.

    ``attributes`` holds the current values, one key per declared field;
    ``original`` holds the values as last persisted. Hosts call ``sync_original()`` once a write succeeded.
    Attribute access is forwarded to ``attributes`` for declared fields, so
    ``book.name = "x"`` marks ``name`` dirty.

    Subclasses list their persisted fields in ``fields``; ``primary_key``
    names the identity attribute.

    Example:
        class Book(TrackedRecord):
            fields = ("id", "name")

        book = Book(name="The Hobbit")
    """

    fields: tuple[str, ...] = ("id",)
    primary_key: str = "id"

    def __init__(self, **values: Any) -> None:
        object.__setattr__(self, "attributes", dict.fromkeys(type(self).fields))
        object.__setattr__(self, "original", {})
        object.__setattr__(self, "audit_tracker", AuditTracker())
        for key, value in values.items():
            setattr(self, key, value)

    def __getattr__(self, name: str) -> Any:
        if name in type(self).fields:
            return self.__dict__["attributes"].get(name)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in type(self).fields:
            self.attributes[name] = value
        else:
            object.__setattr__(self, name, value)

    @property
    def is_dirty(self) -> bool:
        return bool(self.dirty)

    @property
    def dirty(self) -> dict[str, Any]:
        """Attributes whose current value differs from the persisted one."""
        return {
            key: value
            for key, value in self.attributes.items()
            if key not in self.original or self.original[key] is not value
        }

    def sync_original(self) -> None:
        """Mark the current attributes as persisted."""
        object.__setattr__(self, "original", dict(self.attributes))

    def audit_identity(self) -> Any:
        return self.attributes.get(self.primary_key)

    def audit_attributes(self) -> MutableMapping[str, Any]:
        return self.attributes

    def audit_dirty_original(self) -> Mapping[str, Any]:
        # attributes never persisted before count as None, removed ones keep their original
        changed = {key: self.original.get(key) for key in self.dirty}
        changed.update((key, value) for key, value in self.original.items() if key not in self.attributes)
        return changed

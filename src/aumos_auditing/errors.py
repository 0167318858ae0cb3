"""Error taxonomy for the auditing engine.

Every error carries a stable ``code`` so callers (and the HTTP layer) can
branch on the kind of failure without string matching:

- AuditValidationError subclasses: a historical record cannot be applied to
  a live entity (programmer or data error, never retried)
- CannotRevertError: the entity has no audit history
- PersistenceError: the audit store rejected a read or write
"""

from typing import Any


class AuditingError(Exception):
    """Base class for all auditing engine errors.

    Args:
        message: Human-readable description of the failure.
        **context: Structured context kept on the instance for logging.
    """

    code: str = "E_AUDITING"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class AuditValidationError(AuditingError):
    """A historical record is not compatible with the target entity instance."""

    code = "E_AUDITING_VALIDATION"


class WrongEntityTypeError(AuditValidationError):
    """The record was captured for a different entity type."""

    code = "E_AUDITING_WRONG_TYPE"

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(
            f'Expected an audit of "{expected}", got an audit of "{actual}"',
            expected=expected,
            actual=actual,
        )


class WrongEntityInstanceError(AuditValidationError):
    """The record belongs to another instance of the same entity type."""

    code = "E_AUDITING_WRONG_INSTANCE"

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(
            f'Expected an audit of instance "{expected}", got an audit of instance "{actual}"',
            expected=expected,
            actual=actual,
        )


class NullSnapshotError(AuditValidationError):
    """The selected value map of the record is absent."""

    code = "E_AUDITING_NULL_SNAPSHOT"

    def __init__(self, which: str) -> None:
        super().__init__(f'Cannot load "{which}" values, they are null on this audit', which=which)


class IncompatibleAttributesError(AuditValidationError):
    """The record references an attribute the live entity does not have."""

    code = "E_AUDITING_INCOMPATIBLE_ATTRIBUTES"

    def __init__(self, attribute: str, entity_type: str) -> None:
        super().__init__(
            f'Attribute "{attribute}" of the audit does not exist on "{entity_type}"',
            attribute=attribute,
            entity_type=entity_type,
        )
        self.attribute = attribute


class CannotRevertError(AuditingError):
    """Revert was requested for an entity without any audit record."""

    code = "E_AUDITING_CANNOT_REVERT"

    def __init__(self, entity_type: str, entity_id: str) -> None:
        super().__init__(
            f'Cannot revert "{entity_type}" #{entity_id}: no audit history',
            entity_type=entity_type,
            entity_id=entity_id,
        )


class PersistenceError(AuditingError):
    """The audit store failed to read or write."""

    code = "E_AUDITING_PERSISTENCE"

"""Auditing engine orchestration.

AuditingEngine is the single entry point used by hosts. It is constructed once
with its configuration, store, notifier and context enricher and handed to
call sites; it holds no global state.

Write path (one mutation):
    on_before_mutate → host persists the mutation → on_after_mutate
    (compute change set → mask → append → notify)

Read path:
    list_audits / first_audit / last_audit / audits(instance) → store
    revert / transition_to → apply historical values onto a live instance
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from aumos_auditing.core.changeset import compute_change_set
from aumos_auditing.core.config import AuditingConfig
from aumos_auditing.core.context import ContextEnricher
from aumos_auditing.core.entity import AuditableEntity, MutationBackup, entity_id_of, entity_type_of
from aumos_auditing.core.events import AuditDraft, AuditEvent, AuditRecord, ValuesType
from aumos_auditing.core.interfaces import IAuditNotifier, IAuditStore
from aumos_auditing.core.masking import mask_values
from aumos_auditing.core.transition import transition_to
from aumos_auditing.errors import CannotRevertError
from aumos_auditing.observability import get_logger

logger = get_logger(__name__)


class AuditHistory:
    """Restartable view over the audit trail of one entity instance.

    Every call queries the store again, so ``first()`` and ``last()`` can be
    mixed with ``all()`` freely.

    Args:
        store: The audit store.
        entity_type: Concrete class name of the instance.
        entity_id: Identifier of the instance.
    """

    def __init__(self, store: IAuditStore, entity_type: str, entity_id: str) -> None:
        self._store = store
        self.entity_type = entity_type
        self.entity_id = entity_id

    async def all(self) -> list[AuditRecord]:
        """Return every record, oldest first."""
        return await self._store.query_by_entity(self.entity_type, self.entity_id)

    async def first(self) -> AuditRecord | None:
        """Return the oldest record, or None."""
        return await self._store.first_by_entity(self.entity_type, self.entity_id)

    async def last(self) -> AuditRecord | None:
        """Return the newest record, or None."""
        return await self._store.last_by_entity(self.entity_type, self.entity_id)

    async def count(self) -> int:
        return len(await self.all())


class AuditingEngine:
    """Captures, stores and replays attribute-level history of entities.

    Args:
        config: Process-wide auditing policy.
        store: Append-only audit store.
        notifier: Receives ``audit:<event>`` after every successful append.
        enricher: Resolves actor, tenant and metadata. Defaults to an enricher
            without resolvers.
    """

    def __init__(
        self,
        config: AuditingConfig,
        store: IAuditStore,
        notifier: IAuditNotifier,
        enricher: ContextEnricher | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._notifier = notifier
        self._enricher = enricher or ContextEnricher(config)

    @property
    def config(self) -> AuditingConfig:
        return self._config

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    def on_before_mutate(self, instance: AuditableEntity) -> MutationBackup:
        """Capture the dirty-original map and attribute image before a mutation.

        Must be called immediately before the host applies create, update or
        delete, so the backup reflects exactly this mutation.

        Args:
            instance: The entity about to be mutated.

        Returns:
            The captured backup (also held by ``instance.audit_tracker``).
        """
        return instance.audit_tracker.backup(
            dirty_original=instance.audit_dirty_original(),
            attributes=instance.audit_attributes(),
        )

    async def on_after_mutate(
        self,
        instance: AuditableEntity,
        event: AuditEvent,
        context: Any = None,
    ) -> AuditRecord | None:
        """Record a mutation that the host persisted successfully.

        Never call this for a failed mutation: failed operations are not audited.

        Args:
            instance: The mutated entity.
            event: create, update or delete.
            context: Request context passed to the resolvers. None is allowed.

        Returns:
            The persisted AuditRecord, or None for an update that changed no
            non-ignored attribute.

        Raises:
            PersistenceError: If the store rejects the write. No notification
                is sent in that case.
        """
        backup = instance.audit_tracker.consume()
        change_set = compute_change_set(
            event,
            after=instance.audit_attributes(),
            dirty_original=backup.dirty_original,
            config=self._config,
            before_snapshot=backup.attributes,
        )

        entity_type = entity_type_of(instance)
        entity_id = entity_id_of(instance)

        if change_set is None:
            logger.debug("No audited attribute changed, skipping audit", entity_type=entity_type, entity_id=entity_id)
            return None

        resolved = await self._enricher.resolve(context)

        tenant_id = resolved.tenant_id
        if tenant_id is None:
            instance_tenant = getattr(instance, "tenant_id", None)
            if instance_tenant is not None:
                tenant_id = str(instance_tenant)

        draft = AuditDraft(
            actor_type=resolved.actor.type if resolved.actor else None,
            actor_id=str(resolved.actor.id) if resolved.actor else None,
            tenant_id=tenant_id,
            event=event,
            entity_type=entity_type,
            entity_id=entity_id,
            old_values=mask_values(change_set.old_values, self._config.hidden_fields),
            new_values=mask_values(change_set.new_values, self._config.hidden_fields),
            metadata=resolved.metadata,
        )

        record = await self._store.append(draft)
        await self._notify(record)
        return record

    @asynccontextmanager
    async def track(
        self,
        instance: AuditableEntity,
        event: AuditEvent,
        context: Any = None,
    ) -> AsyncIterator[MutationBackup]:
        """Wrap a host mutation so that it is audited only if it succeeds.

        Example:
            async with engine.track(book, "update", request):
                await repository.save(book)

        Args:
            instance: The entity being mutated.
            event: create, update or delete.
            context: Request context passed to the resolvers.

        Yields:
            The backup captured before the mutation.
        """
        backup = self.on_before_mutate(instance)
        try:
            yield backup
        except BaseException:
            instance.audit_tracker.discard()
            raise
        await self.on_after_mutate(instance, event, context)

    async def _notify(self, record: AuditRecord) -> None:
        event_name = f"audit:{record.event}"
        try:
            await self._notifier.notify(event_name, record.id)
        except Exception as exc:
            logger.error(
                "Failed to notify audit subscribers",
                event_name=event_name,
                audit_id=record.id,
                error=repr(exc),
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def audits(self, instance: AuditableEntity) -> AuditHistory:
        """Return the audit history view of an entity instance."""
        return AuditHistory(self._store, entity_type_of(instance), entity_id_of(instance))

    async def list_audits(self, entity_type: str, entity_id: Any) -> list[AuditRecord]:
        """Return every record of an entity instance, oldest first."""
        return await self._store.query_by_entity(entity_type, str(entity_id))

    async def first_audit(self, entity_type: str, entity_id: Any) -> AuditRecord | None:
        """Return the oldest record of an entity instance, or None."""
        return await self._store.first_by_entity(entity_type, str(entity_id))

    async def last_audit(self, entity_type: str, entity_id: Any) -> AuditRecord | None:
        """Return the newest record of an entity instance, or None."""
        return await self._store.last_by_entity(entity_type, str(entity_id))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def transition_to(self, instance: AuditableEntity, record: AuditRecord, which: ValuesType) -> None:
        """Apply the old or new values of a record onto the instance.

        See ``aumos_auditing.core.transition.transition_to`` for the validation
        order and raised errors.
        """
        transition_to(instance, record, which)

    async def revert(self, instance: AuditableEntity) -> AuditRecord:
        """Undo the most recent recorded transition of an instance in memory.

        Applies the old values of the newest record. Reverting does not write
        an audit record itself; saving the instance afterwards does.

        Args:
            instance: The entity to revert.

        Returns:
            The record whose old values were applied.

        Raises:
            CannotRevertError: If the instance has no audit record.
            AuditValidationError: If the newest record cannot be applied.
        """
        entity_type = entity_type_of(instance)
        entity_id = entity_id_of(instance)
        last = await self._store.last_by_entity(entity_type, entity_id)
        if last is None:
            raise CannotRevertError(entity_type=entity_type, entity_id=entity_id)
        transition_to(instance, last, "old")
        logger.info("Entity reverted", entity_type=entity_type, entity_id=entity_id, audit_id=last.id)
        return last

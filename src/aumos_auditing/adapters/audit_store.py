"""SQLAlchemy audit store and its database lifecycle.

This module is the ONLY place that connects to AUMOS_AUDITING_DATABASE_URL.

Key exports:
- init_audit_db(...): Call at startup to initialize the audit engine
- close_audit_db(): Call at shutdown to dispose the engine
- get_audit_db_session(): FastAPI dependency for audit DB sessions
- SqlAlchemyAuditStore: Store with append-only write + read operations

Every SQLAlchemy failure surfaces as PersistenceError. Audit payload values
are never logged; echo stays disabled for the same reason.
"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from aumos_auditing.core.events import AuditDraft, AuditRecord
from aumos_auditing.core.models import Audit
from aumos_auditing.errors import PersistenceError
from aumos_auditing.observability import get_logger

logger = get_logger(__name__)

# Module-level engine and session factory: initialized by init_audit_db()
_audit_engine: AsyncEngine | None = None
_audit_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_audit_db(
    database_url: str,
    pool_size: int = 5,
    max_overflow: int = 2,
    pool_timeout: int = 30,
) -> async_sessionmaker[AsyncSession]:
    """Initialize the audit database engine and session factory.

    Must be called once at application startup (in the lifespan handler)
    before any audit writes can occur.

    Args:
        database_url: SQLAlchemy async URL of the audit database.
        pool_size: Connection pool size.
        max_overflow: Max overflow connections above pool_size.
        pool_timeout: Seconds to wait for a connection before raising.

    Returns:
        The session factory bound to the new engine.
    """
    global _audit_engine, _audit_session_factory  # noqa: PLW0603

    logger.info("Initializing audit database engine", pool_size=pool_size, max_overflow=max_overflow)

    # hide_parameters keeps audit payloads out of SQLAlchemy error messages
    engine_options: dict[str, int | bool] = {"echo": False, "pool_pre_ping": True, "hide_parameters": True}
    if not database_url.startswith("sqlite"):
        engine_options.update(pool_size=pool_size, max_overflow=max_overflow, pool_timeout=pool_timeout)

    _audit_engine = create_async_engine(database_url, **engine_options)
    _audit_session_factory = async_sessionmaker(
        bind=_audit_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    logger.info("Audit database engine initialized")
    return _audit_session_factory


async def close_audit_db() -> None:
    """Dispose the audit database engine.

    Must be called at application shutdown. After this call, no further
    audit writes can occur until init_audit_db() is called again.
    """
    global _audit_engine, _audit_session_factory  # noqa: PLW0603

    if _audit_engine is not None:
        logger.info("Disposing audit database engine")
        await _audit_engine.dispose()
        _audit_engine = None
        _audit_session_factory = None


async def get_audit_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an audit database session.

    Yields:
        AsyncSession: A session connected to the audit database.

    Raises:
        RuntimeError: If init_audit_db() has not been called yet.
    """
    if _audit_session_factory is None:
        raise RuntimeError(
            "Audit database has not been initialized. Call init_audit_db() in the application lifespan handler."
        )

    async with _audit_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def _describe(exc: SQLAlchemyError) -> str:
    # str(exc) may embed the bound parameters, i.e. the audit payload
    orig = getattr(exc, "orig", None)
    return f"{type(exc).__name__}: {orig!r}" if orig is not None else type(exc).__name__


def _to_record(row: Audit) -> AuditRecord:
    return AuditRecord(
        id=row.id,
        actor_type=row.actor_type,
        actor_id=row.actor_id,
        tenant_id=row.tenant_id,
        event=row.event,  # type: ignore[arg-type]
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        old_values=row.old_values,
        new_values=row.new_values,
        metadata=row.audit_metadata or {},
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlAlchemyAuditStore:
    """Append-only audit store on the audits table.

    IMPORTANT: This store has no update() or delete() methods because audit
    records are immutable. Chronological order is the auto-increment id
    assigned by the database.

    Args:
        session: An audit DB session from get_audit_db_session().
        commit: Commit after each append. Leave False when the session is
            managed by get_audit_db_session(), which commits on exit.
    """

    def __init__(self, session: AsyncSession, commit: bool = False) -> None:
        self._session = session
        self._commit = commit

    async def append(self, draft: AuditDraft) -> AuditRecord:
        """Insert an immutable audit row.

        This is the ONLY write operation on the audits table.

        Args:
            draft: The audit to persist.

        Returns:
            The persisted AuditRecord with its database id.

        Raises:
            PersistenceError: If the insert fails. The session is rolled back
                first, so the store stays usable for later appends.
        """
        now = datetime.now(UTC)
        # datetimes, Decimals and UUIDs in the value maps become JSON strings
        payload = draft.model_dump(mode="json", include={"old_values", "new_values", "metadata"})
        row = Audit(
            actor_type=draft.actor_type,
            actor_id=draft.actor_id,
            tenant_id=draft.tenant_id,
            event=draft.event,
            entity_type=draft.entity_type,
            entity_id=draft.entity_id,
            old_values=payload["old_values"],
            new_values=payload["new_values"],
            audit_metadata=payload["metadata"],
            created_at=now,
            updated_at=now,
        )
        try:
            self._session.add(row)
            await self._session.flush()
            await self._session.refresh(row)
            record = _to_record(row)
            if self._commit:
                await self._session.commit()
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to append audit record",
                audit_event=draft.event,
                entity_type=draft.entity_type,
                entity_id=draft.entity_id,
                error=_describe(exc),
            )
            await self._rollback()
            raise PersistenceError("Failed to append audit record", entity_type=draft.entity_type) from exc

        logger.info(
            "Audit record appended",
            audit_id=record.id,
            audit_event=record.event,
            entity_type=record.entity_type,
            entity_id=record.entity_id,
            tenant_id=record.tenant_id,
        )
        return record

    async def _rollback(self) -> None:
        try:
            await self._session.rollback()
        except SQLAlchemyError as exc:
            logger.warning("Failed to roll back audit session", error=_describe(exc))

    def _entity_query(self, entity_type: str, entity_id: str) -> Select[tuple[Audit]]:
        return select(Audit).where(Audit.entity_type == entity_type, Audit.entity_id == entity_id)

    async def _fetch_one(self, stmt: Select[tuple[Audit]]) -> AuditRecord | None:
        try:
            result = await self._session.execute(stmt.limit(1))
            row = result.scalars().first()
        except SQLAlchemyError as exc:
            await self._rollback()
            raise PersistenceError("Failed to query audit records") from exc
        return _to_record(row) if row is not None else None

    async def query_by_entity(self, entity_type: str, entity_id: str) -> list[AuditRecord]:
        """Return every record of an entity instance ordered by ascending id.

        Raises:
            PersistenceError: If the query fails.
        """
        stmt = self._entity_query(entity_type, entity_id).order_by(Audit.id.asc())
        try:
            result = await self._session.execute(stmt)
            rows = list(result.scalars().all())
        except SQLAlchemyError as exc:
            await self._rollback()
            raise PersistenceError("Failed to query audit records", entity_type=entity_type) from exc
        return [_to_record(row) for row in rows]

    async def first_by_entity(self, entity_type: str, entity_id: str) -> AuditRecord | None:
        """Return the oldest record of an entity instance, or None."""
        return await self._fetch_one(self._entity_query(entity_type, entity_id).order_by(Audit.id.asc()))

    async def last_by_entity(self, entity_type: str, entity_id: str) -> AuditRecord | None:
        """Return the newest record of an entity instance, or None."""
        return await self._fetch_one(self._entity_query(entity_type, entity_id).order_by(Audit.id.desc()))

"""Tests for the audit stores.

Tests verify:
- InMemoryAuditStore id assignment, ordering and per-instance scoping
- SqlAlchemyAuditStore against a mocked AsyncSession (row mapping, error wrapping)
- SqlAlchemyAuditStore against a real in-memory SQLite database
- Both stores are append-only (no update or delete methods)
"""

import asyncio
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from structlog.testing import capture_logs

from aumos_auditing.adapters.audit_store import SqlAlchemyAuditStore
from aumos_auditing.adapters.memory_store import InMemoryAuditStore
from aumos_auditing.core.events import AuditDraft
from aumos_auditing.core.models import Audit, Base
from aumos_auditing.errors import PersistenceError
from tests.conftest import make_engine
from tests.fakes import FakeDatabase, Post


def make_draft(entity_id: str = "1", event: str = "create", **overrides: object) -> AuditDraft:
    """Create an AuditDraft for a Book with values matching the event."""
    values: dict[str, object] = {"event": event, "entity_type": "Book", "entity_id": entity_id}
    if event in ("create", "update"):
        values["new_values"] = {"id": int(entity_id), "name": "The Hobbit"}
    if event in ("update", "delete"):
        values["old_values"] = {"id": int(entity_id), "name": "Draft"}
    values.update(overrides)
    return AuditDraft(**values)


def make_row(row_id: int, **overrides: object) -> Audit:
    """Create an Audit ORM row as the database would return it."""
    now = datetime.now(UTC)
    values: dict[str, object] = {
        "id": row_id,
        "actor_type": "User",
        "actor_id": "7",
        "tenant_id": None,
        "event": "create",
        "entity_type": "Book",
        "entity_id": "1",
        "old_values": None,
        "new_values": {"id": 1, "name": "The Hobbit"},
        "audit_metadata": {"foo": "bar"},
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    return Audit(**values)


@asynccontextmanager
async def sqlite_session() -> AsyncIterator[AsyncSession]:
    """Yield a session on a fresh in-memory SQLite database with the audits table."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        async with session_factory() as session:
            yield session
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# InMemoryAuditStore
# ---------------------------------------------------------------------------


class TestInMemoryAuditStore:
    """Tests for InMemoryAuditStore."""

    @pytest.mark.asyncio()
    async def test_append_assigns_increasing_ids(self) -> None:
        store = InMemoryAuditStore()

        first = await store.append(make_draft("1"))
        second = await store.append(make_draft("2"))

        assert (first.id, second.id) == (1, 2)
        assert first.created_at == first.updated_at

    @pytest.mark.asyncio()
    async def test_concurrent_appends_get_unique_ids(self) -> None:
        store = InMemoryAuditStore()

        records = await asyncio.gather(*(store.append(make_draft("1")) for _ in range(20)))

        assert sorted(record.id for record in records) == list(range(1, 21))
        stored = await store.query_by_entity("Book", "1")
        assert [record.id for record in stored] == sorted(record.id for record in stored)

    @pytest.mark.asyncio()
    async def test_queries_are_scoped_to_one_instance(self) -> None:
        store = InMemoryAuditStore()
        await store.append(make_draft("1"))
        await store.append(make_draft("2"))
        await store.append(make_draft("1", event="update"))

        records = await store.query_by_entity("Book", "1")

        assert [record.event for record in records] == ["create", "update"]
        assert (await store.first_by_entity("Book", "1")).id == 1  # type: ignore[union-attr]
        assert (await store.last_by_entity("Book", "1")).id == 3  # type: ignore[union-attr]

    @pytest.mark.asyncio()
    async def test_unknown_instance_has_no_records(self) -> None:
        store = InMemoryAuditStore()

        assert await store.query_by_entity("Book", "404") == []
        assert await store.first_by_entity("Book", "404") is None
        assert await store.last_by_entity("Book", "404") is None

    @pytest.mark.asyncio()
    async def test_count_by_entity_type(self) -> None:
        store = InMemoryAuditStore()
        await store.append(make_draft("1"))
        await store.append(make_draft("1", entity_type="Movie"))

        assert store.count() == 2
        assert store.count("Movie") == 1
        assert store.count("Author") == 0

    @pytest.mark.asyncio()
    async def test_append_logs_audit_event(self) -> None:
        store = InMemoryAuditStore()

        with capture_logs() as logs:
            await store.append(make_draft("1", event="update"))

        [entry] = [log for log in logs if log["event"] == "Audit record appended"]
        assert entry["audit_event"] == "update"
        assert entry["audit_id"] == 1

    def test_store_has_no_mutating_methods(self) -> None:
        assert not hasattr(InMemoryAuditStore, "update")
        assert not hasattr(InMemoryAuditStore, "delete")


# ---------------------------------------------------------------------------
# SqlAlchemyAuditStore with a mocked session
# ---------------------------------------------------------------------------


class TestSqlAlchemyAuditStoreMocked:
    """Tests for SqlAlchemyAuditStore with a mocked AsyncSession."""

    @pytest.mark.asyncio()
    async def test_append_adds_flushes_and_maps_row(self) -> None:
        """append() inserts one row and maps it back to an AuditRecord."""
        session = AsyncMock()
        session.add = MagicMock()

        async def _refresh(row: Audit) -> None:
            row.id = 42

        session.refresh.side_effect = _refresh
        store = SqlAlchemyAuditStore(session)

        record = await store.append(make_draft("1", metadata={"foo": "bar"}))

        session.add.assert_called_once()
        added: Audit = session.add.call_args.args[0]
        assert added.audit_metadata == {"foo": "bar"}
        session.flush.assert_awaited_once()
        session.commit.assert_not_awaited()
        assert record.id == 42
        assert record.metadata == {"foo": "bar"}
        assert record.new_values == {"id": 1, "name": "The Hobbit"}

    @pytest.mark.asyncio()
    async def test_append_commits_when_requested(self) -> None:
        session = AsyncMock()
        session.add = MagicMock()

        async def _refresh(row: Audit) -> None:
            row.id = 1

        session.refresh.side_effect = _refresh
        store = SqlAlchemyAuditStore(session, commit=True)

        await store.append(make_draft())

        session.commit.assert_awaited_once()

    @pytest.mark.asyncio()
    async def test_append_wraps_database_errors(self) -> None:
        session = AsyncMock()
        session.add = MagicMock()
        session.flush.side_effect = OperationalError(
            "INSERT INTO audits",
            {"new_values": '{"name": "The Hobbit"}'},
            Exception("database is locked"),
        )
        store = SqlAlchemyAuditStore(session)

        with capture_logs() as logs, pytest.raises(PersistenceError) as exc_info:
            await store.append(make_draft())

        assert exc_info.value.code == "E_AUDITING_PERSISTENCE"
        assert isinstance(exc_info.value.__cause__, OperationalError)
        session.rollback.assert_awaited_once()
        [entry] = [log for log in logs if log["event"] == "Failed to append audit record"]
        assert entry["audit_event"] == "create"
        assert "database is locked" in entry["error"]
        assert "The Hobbit" not in repr(logs)

    @pytest.mark.asyncio()
    async def test_query_maps_rows_in_order(self) -> None:
        session = AsyncMock()
        result = MagicMock()
        result.scalars.return_value.all.return_value = [
            make_row(1),
            make_row(2, event="update", old_values={"name": "a"}, new_values={"name": "b"}, audit_metadata=None),
        ]
        session.execute.return_value = result
        store = SqlAlchemyAuditStore(session)

        records = await store.query_by_entity("Book", "1")

        assert [record.id for record in records] == [1, 2]
        assert records[0].metadata == {"foo": "bar"}
        assert records[1].metadata == {}
        session.execute.assert_awaited_once()

    @pytest.mark.asyncio()
    async def test_last_returns_none_without_rows(self) -> None:
        session = AsyncMock()
        result = MagicMock()
        result.scalars.return_value.first.return_value = None
        session.execute.return_value = result
        store = SqlAlchemyAuditStore(session)

        assert await store.last_by_entity("Book", "1") is None

    @pytest.mark.asyncio()
    async def test_query_wraps_database_errors(self) -> None:
        session = AsyncMock()
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))
        store = SqlAlchemyAuditStore(session)

        with pytest.raises(PersistenceError):
            await store.query_by_entity("Book", "1")
        with pytest.raises(PersistenceError):
            await store.first_by_entity("Book", "1")

    def test_store_has_no_mutating_methods(self) -> None:
        assert not hasattr(SqlAlchemyAuditStore, "update")
        assert not hasattr(SqlAlchemyAuditStore, "delete")


# ---------------------------------------------------------------------------
# SqlAlchemyAuditStore on SQLite
# ---------------------------------------------------------------------------


class TestSqlAlchemyAuditStoreSqlite:
    """Round trips through a real database."""

    @pytest.mark.asyncio()
    async def test_append_and_query(self) -> None:
        async with sqlite_session() as session:
            store = SqlAlchemyAuditStore(session, commit=True)
            created = await store.append(make_draft("1", actor_type="User", actor_id="7", tenant_id="acme"))
            await store.append(make_draft("2"))
            updated = await store.append(make_draft("1", event="update", metadata={"ip": "10.0.0.1"}))

            records = await store.query_by_entity("Book", "1")

        assert [record.id for record in records] == [created.id, updated.id]
        assert created.id < updated.id
        assert records[0].actor_id == "7"
        assert records[0].tenant_id == "acme"
        assert records[0].old_values is None
        assert records[0].new_values == {"id": 1, "name": "The Hobbit"}
        assert records[1].metadata == {"ip": "10.0.0.1"}

    @pytest.mark.asyncio()
    async def test_first_and_last(self) -> None:
        async with sqlite_session() as session:
            store = SqlAlchemyAuditStore(session, commit=True)
            await store.append(make_draft("1"))
            await store.append(make_draft("1", event="update"))
            await store.append(make_draft("1", event="delete"))

            first = await store.first_by_entity("Book", "1")
            last = await store.last_by_entity("Book", "1")
            missing = await store.last_by_entity("Movie", "1")

        assert first is not None and first.event == "create"
        assert last is not None and last.event == "delete"
        assert last.new_values is None
        assert missing is None

    @pytest.mark.asyncio()
    async def test_non_json_scalars_are_stored_as_strings(self) -> None:
        reference = uuid.UUID("12345678-1234-5678-1234-567812345678")
        draft = make_draft(
            "1",
            new_values={"published_at": datetime(2026, 1, 1, tzinfo=UTC), "price": Decimal("9.99"), "ref": reference},
            metadata={"requested_at": datetime(2026, 1, 2, tzinfo=UTC)},
        )
        async with sqlite_session() as session:
            store = SqlAlchemyAuditStore(session, commit=True)
            await store.append(draft)

            [record] = await store.query_by_entity("Book", "1")

        assert record.new_values is not None
        assert record.new_values["published_at"].startswith("2026-01-01T00:00:00")
        assert record.new_values["price"] == "9.99"
        assert record.new_values["ref"] == str(reference)
        assert record.metadata["requested_at"].startswith("2026-01-02")

    @pytest.mark.asyncio()
    async def test_engine_audits_record_with_datetime_attribute(self) -> None:
        async with sqlite_session() as session:
            store = SqlAlchemyAuditStore(session, commit=True)
            db = FakeDatabase(make_engine(store))
            post = await db.save(
                Post(
                    name="Release notes",
                    published_at=datetime(2026, 3, 1, 12, 30, tzinfo=UTC),
                    price=Decimal("0.50"),
                    reference=uuid.UUID(int=1),
                )
            )
            post.published_at = datetime(2026, 3, 2, tzinfo=UTC)
            await db.save(post)

            records = await store.query_by_entity("Post", str(post.id))

        assert [record.event for record in records] == ["create", "update"]
        assert records[0].new_values is not None
        assert records[0].new_values["name"] == "Release notes"
        assert records[0].new_values["price"] == "0.50"
        assert records[0].new_values["reference"] == str(uuid.UUID(int=1))
        assert records[1].old_values is not None and records[1].new_values is not None
        assert records[1].old_values["published_at"].startswith("2026-03-01T12:30:00")
        assert records[1].new_values["published_at"].startswith("2026-03-02T00:00:00")

    @pytest.mark.asyncio()
    async def test_append_after_failed_append_succeeds(self) -> None:
        async with sqlite_session() as session:
            await session.execute(
                text(
                    "CREATE TRIGGER reject_book_13 BEFORE INSERT ON audits "
                    "WHEN NEW.entity_id = '13' BEGIN SELECT RAISE(ABORT, 'rejected'); END"
                )
            )
            await session.commit()
            store = SqlAlchemyAuditStore(session, commit=True)
            await store.append(make_draft("1"))

            with capture_logs() as logs, pytest.raises(PersistenceError):
                await store.append(make_draft("13"))
            recovered = await store.append(make_draft("1", event="update"))

            records = await store.query_by_entity("Book", "1")
            rejected = await store.query_by_entity("Book", "13")

        assert [record.id for record in records][-1] == recovered.id
        assert [record.event for record in records] == ["create", "update"]
        assert rejected == []
        assert "The Hobbit" not in repr(logs)

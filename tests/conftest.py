"""Test fixtures for aumos-auditing-engine.

Provides:
- config: A default AuditingConfig (diff mode, no masking)
- store: A fresh InMemoryAuditStore
- notifier: An InProcessNotifier
- engine: An AuditingEngine wired to store and notifier with request resolvers
- db: A FakeDatabase host persisting through engine.track()
- mock_store / mock_notifier: AsyncMock collaborators for isolated engine tests
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from aumos_auditing.adapters.memory_store import InMemoryAuditStore
from aumos_auditing.adapters.notifier import InProcessNotifier
from aumos_auditing.core.config import AuditingConfig
from aumos_auditing.core.context import ContextEnricher
from aumos_auditing.core.events import AuditRecord
from aumos_auditing.core.interfaces import IAuditStore
from aumos_auditing.core.services import AuditingEngine
from tests.fakes import FakeDatabase, RequestActorResolver, RequestTenantResolver


def make_engine(
    store: IAuditStore | AsyncMock | None = None,
    notifier: InProcessNotifier | AsyncMock | None = None,
    **config_overrides: object,
) -> AuditingEngine:
    """Build an engine with request-based actor and tenant resolvers.

    Args:
        store: Audit store. Defaults to a new InMemoryAuditStore.
        notifier: Notifier. Defaults to a new InProcessNotifier.
        **config_overrides: AuditingConfig fields to override.

    Returns:
        A ready AuditingEngine.
    """
    config = AuditingConfig(**config_overrides)
    enricher = ContextEnricher(
        config,
        actor_resolver=RequestActorResolver(),
        tenant_resolver=RequestTenantResolver(),
    )
    return AuditingEngine(
        config,
        store if store is not None else InMemoryAuditStore(),
        notifier if notifier is not None else InProcessNotifier(),
        enricher,
    )


def make_fake_record(**overrides: object) -> AuditRecord:
    """Create an AuditRecord of a Book update with optional field overrides."""
    now = datetime.now(UTC)
    values: dict[str, object] = {
        "id": 1,
        "event": "update",
        "entity_type": "Book",
        "entity_id": "1",
        "old_values": {"name": "The Hobbit"},
        "new_values": {"name": "Lord of the Rings"},
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    return AuditRecord(**values)


@pytest.fixture()
def config() -> AuditingConfig:
    """Return the default auditing policy."""
    return AuditingConfig()


@pytest.fixture()
def store() -> InMemoryAuditStore:
    """Return an empty in-memory audit store."""
    return InMemoryAuditStore()


@pytest.fixture()
def notifier() -> InProcessNotifier:
    """Return an in-process notifier without subscribers."""
    return InProcessNotifier()


@pytest.fixture()
def engine(store: InMemoryAuditStore, notifier: InProcessNotifier) -> AuditingEngine:
    """Return an engine using the store and notifier fixtures."""
    return make_engine(store, notifier)


@pytest.fixture()
def db(engine: AuditingEngine) -> FakeDatabase:
    """Return a fake host database auditing through the engine fixture."""
    return FakeDatabase(engine)


@pytest.fixture()
def mock_store() -> AsyncMock:
    """Create a mock IAuditStore whose append echoes a persisted record.

    Returns:
        AsyncMock with append returning an AuditRecord built from the draft.
    """
    store = AsyncMock()

    async def _append(draft):  # type: ignore[no-untyped-def]
        now = datetime.now(UTC)
        return AuditRecord(**draft.model_dump(), id=1, created_at=now, updated_at=now)

    store.append.side_effect = _append
    store.last_by_entity.return_value = None
    return store


@pytest.fixture()
def mock_notifier() -> AsyncMock:
    """Create a mock IAuditNotifier that captures notify() calls."""
    notifier = AsyncMock()
    notifier.notify.return_value = None
    return notifier

"""FastAPI routes for reading audit history.

Routes:
    GET /audits/{entity_type}/{entity_id}: all records, oldest first
    GET /audits/{entity_type}/{entity_id}/first: oldest record
    GET /audits/{entity_type}/{entity_id}/last: newest record

Reverting and transitioning need the live entity instance and therefore stay
in-process (AuditingEngine.revert / transition_to).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from aumos_auditing.adapters.audit_store import SqlAlchemyAuditStore, get_audit_db_session
from aumos_auditing.api.schemas import AuditListResponse, AuditResponse
from aumos_auditing.core.events import AuditRecord
from aumos_auditing.core.interfaces import IAuditStore
from aumos_auditing.core.services import AuditingEngine
from aumos_auditing.errors import PersistenceError
from aumos_auditing.observability import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/audits", tags=["Audits"])


def get_audit_store(
    session: Annotated[AsyncSession, Depends(get_audit_db_session)],
) -> IAuditStore:
    """Dependency returning the audit store bound to the request session.

    Args:
        session: The audit DB session for this request.

    Returns:
        A SqlAlchemyAuditStore using the session.
    """
    return SqlAlchemyAuditStore(session)


def get_auditing_engine(
    request: Request,
    store: Annotated[IAuditStore, Depends(get_audit_store)],
) -> AuditingEngine:
    """Dependency returning an engine for host routes that audit their writes.

    Uses the AuditingConfig, notifier and context enricher the service
    lifespan placed on ``app.state``, and the request-scoped audit store.

    Example:
        @app.put("/books/{book_id}")
        async def rename(engine: Annotated[AuditingEngine, Depends(get_auditing_engine)]) -> None:
            async with engine.track(book, "update", request):
                ...

    Args:
        request: The current request.
        store: The audit store bound to the request session.

    Returns:
        An AuditingEngine sharing the process-wide collaborators.
    """
    state = request.app.state
    return AuditingEngine(state.auditing_config, store, state.audit_notifier, state.audit_context_enricher)


def _store_unavailable(exc: PersistenceError) -> HTTPException:
    logger.error("Audit store unavailable", error=str(exc))
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message)


def _one_or_404(record: AuditRecord | None, entity_type: str, entity_id: str) -> AuditResponse:
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No audit found for {entity_type} {entity_id}",
        )
    return AuditResponse.from_record(record)


@router.get(
    "/{entity_type}/{entity_id}",
    response_model=AuditListResponse,
    status_code=status.HTTP_200_OK,
    summary="List the audit trail of an entity instance",
)
async def list_audits(
    entity_type: str,
    entity_id: str,
    store: Annotated[IAuditStore, Depends(get_audit_store)],
) -> AuditListResponse:
    """Return every audit record of an entity instance ordered by id.

    Args:
        entity_type: Concrete class name of the audited entity.
        entity_id: Identifier of the audited instance.
        store: The audit store.

    Returns:
        AuditListResponse with all records, oldest first.
    """
    try:
        records = await store.query_by_entity(entity_type, entity_id)
    except PersistenceError as exc:
        raise _store_unavailable(exc) from exc

    return AuditListResponse(
        entity_type=entity_type,
        entity_id=entity_id,
        entries=[AuditResponse.from_record(record) for record in records],
        total=len(records),
    )


@router.get(
    "/{entity_type}/{entity_id}/first",
    response_model=AuditResponse,
    status_code=status.HTTP_200_OK,
    summary="Get the oldest audit record of an entity instance",
)
async def first_audit(
    entity_type: str,
    entity_id: str,
    store: Annotated[IAuditStore, Depends(get_audit_store)],
) -> AuditResponse:
    """Return the oldest audit record.

    Raises:
        HTTPException 404: If the instance has no audit record.
    """
    try:
        record = await store.first_by_entity(entity_type, entity_id)
    except PersistenceError as exc:
        raise _store_unavailable(exc) from exc
    return _one_or_404(record, entity_type, entity_id)


@router.get(
    "/{entity_type}/{entity_id}/last",
    response_model=AuditResponse,
    status_code=status.HTTP_200_OK,
    summary="Get the newest audit record of an entity instance",
)
async def last_audit(
    entity_type: str,
    entity_id: str,
    store: Annotated[IAuditStore, Depends(get_audit_store)],
) -> AuditResponse:
    """Return the newest audit record, the one a revert would apply.

    Raises:
        HTTPException 404: If the instance has no audit record.
    """
    try:
        record = await store.last_by_entity(entity_type, entity_id)
    except PersistenceError as exc:
        raise _store_unavailable(exc) from exc
    return _one_or_404(record, entity_type, entity_id)

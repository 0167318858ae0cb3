"""Context enrichment for audit records.

Resolves the actor, tenant and free-form metadata attached to each audit from
an explicit context object (typically the current request) passed down the
call chain. Resolution never aborts an audit:

- no context (background jobs, migrations) → no actor, no tenant, empty
  metadata, plus a warning when AuditingConfig.warn_on_missing_context is set
- a failing or slow actor/tenant resolver → None and a warning
- a failing or slow metadata resolver → its key is omitted and a warning logged
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from aumos_auditing.core.config import AuditingConfig
from aumos_auditing.core.interfaces import (
    Actor,
    IActorResolver,
    IMetadataResolver,
    ITenantResolver,
)
from aumos_auditing.observability import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_MISSING_CONTEXT_MESSAGE = "Cannot get current context, audit will be recorded without actor, tenant or metadata"


@dataclass(frozen=True, slots=True)
class ResolvedContext:
    """Everything the context resolvers contributed to one audit."""

    actor: Actor | None = None
    tenant_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class ContextEnricher:
    """Runs the configured context resolvers for an audit.

    Args:
        config: Auditing policy (timeouts, missing-context warnings).
        actor_resolver: Resolver for the acting user. Optional.
        tenant_resolver: Resolver for the tenant. Optional.
        metadata_resolvers: Named resolvers; each result is stored under its name.
    """

    def __init__(
        self,
        config: AuditingConfig,
        actor_resolver: IActorResolver | None = None,
        tenant_resolver: ITenantResolver | None = None,
        metadata_resolvers: Mapping[str, IMetadataResolver] | None = None,
    ) -> None:
        self._config = config
        self._actor_resolver = actor_resolver
        self._tenant_resolver = tenant_resolver
        self._metadata_resolvers = dict(metadata_resolvers or {})

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        timeout = self._config.resolver_timeout_seconds
        if timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=timeout)

    async def _resolve_actor(self, context: Any) -> Actor | None:
        if self._actor_resolver is None:
            return None
        try:
            return await self._bounded(self._actor_resolver.resolve(context))
        except Exception as exc:
            logger.warning("Failed to resolve auditing actor", error=repr(exc))
            return None

    async def _resolve_tenant_id(self, context: Any) -> str | None:
        if self._tenant_resolver is None:
            return None
        try:
            tenant = await self._bounded(self._tenant_resolver.resolve(context))
        except Exception as exc:
            logger.warning("Failed to resolve auditing tenant", error=repr(exc))
            return None
        if tenant is None or tenant.id is None:
            return None
        return str(tenant.id)

    async def _resolve_metadata(self, context: Any) -> dict[str, Any]:
        names = list(self._metadata_resolvers)
        results = await asyncio.gather(
            *(self._bounded(self._metadata_resolvers[name].resolve(context)) for name in names),
            return_exceptions=True,
        )

        metadata: dict[str, Any] = {}
        for name, result in zip(names, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning("Failed to resolve auditing metadata", resolver=name, error=repr(result))
                continue
            metadata[name] = result
        return metadata

    async def resolve(self, context: Any) -> ResolvedContext:
        """Resolve actor, tenant and metadata for one audit.

        Args:
            context: The request (or any caller-defined context object).
                None is valid and yields an empty ResolvedContext.

        Returns:
            The ResolvedContext to attach to the audit record.
        """
        if context is None:
            if self._config.warn_on_missing_context:
                logger.warning(_MISSING_CONTEXT_MESSAGE)
            return ResolvedContext()

        actor = await self._resolve_actor(context)
        tenant_id = await self._resolve_tenant_id(context)
        metadata = await self._resolve_metadata(context)
        return ResolvedContext(actor=actor, tenant_id=tenant_id, metadata=metadata)

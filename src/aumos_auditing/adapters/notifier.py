"""In-process notification of completed audits.

Subscribers register for ``audit:create``, ``audit:update`` or
``audit:delete`` and receive the id of the new audit record. Handlers may be
plain functions or coroutines. A failing handler is logged and never affects
other handlers or the already-persisted record.
"""

import inspect
from collections import defaultdict
from collections.abc import Awaitable, Callable

from aumos_auditing.observability import get_logger

logger = get_logger(__name__)

AuditHandler = Callable[[int], Awaitable[None] | None]


class InProcessNotifier:
    """Dispatches audit notifications to in-process subscribers."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[AuditHandler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: AuditHandler) -> None:
        """Register a handler for a notification name such as "audit:update"."""
        self._handlers[event_name].append(handler)

    def unsubscribe(self, event_name: str, handler: AuditHandler) -> None:
        """Remove a previously registered handler. Unknown handlers are ignored."""
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    async def notify(self, event_name: str, audit_id: int) -> None:
        """Call every handler subscribed to event_name in registration order.

        Args:
            event_name: Notification name, e.g. "audit:create".
            audit_id: Id of the persisted audit record.
        """
        for handler in list(self._handlers.get(event_name, [])):
            try:
                result = handler(audit_id)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.error(
                    "Audit notification handler failed",
                    event_name=event_name,
                    audit_id=audit_id,
                    error=repr(exc),
                )

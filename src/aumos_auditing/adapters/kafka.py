"""KafkaAuditNotifier: Kafka publishing of completed audits.

Publishes one message per persisted audit record to the configured topic
(default ``auditing.events``), keyed by the audit id.

Message envelope:
    {
        "event_type": "audit:update",
        "audit_id": 42,
        "source_service": "aumos-auditing-engine",
        "occurred_at": "2026-01-01T00:00:00+00:00"
    }
"""

import json
from datetime import UTC, datetime
from typing import Any

from aiokafka import AIOKafkaProducer

from aumos_auditing.observability import get_logger

logger = get_logger(__name__)

DEFAULT_TOPIC = "auditing.events"

# Default bootstrap servers (overridden by settings)
_DEFAULT_BOOTSTRAP_SERVERS = "localhost:9092"


class KafkaAuditNotifier:
    """Kafka notifier for ``audit:<event>`` notifications.

    Args:
        bootstrap_servers: Comma-separated Kafka bootstrap server addresses.
        topic: Topic receiving audit notifications.
        source_service: Service name stamped on every envelope.
    """

    def __init__(
        self,
        bootstrap_servers: str = _DEFAULT_BOOTSTRAP_SERVERS,
        topic: str = DEFAULT_TOPIC,
        source_service: str = "aumos-auditing-engine",
    ) -> None:
        self._bootstrap_servers = bootstrap_servers
        self._topic = topic
        self._source_service = source_service
        self._producer: AIOKafkaProducer | None = None

    async def start(self) -> None:
        """Start the underlying Kafka producer.

        Must be called before notify(). Called in the lifespan startup
        handler in main.py.
        """
        self._producer = AIOKafkaProducer(
            bootstrap_servers=self._bootstrap_servers,
            value_serializer=lambda value: json.dumps(value, default=str).encode("utf-8"),
            key_serializer=lambda key: key.encode("utf-8"),
        )
        await self._producer.start()
        logger.info("KafkaAuditNotifier started", bootstrap_servers=self._bootstrap_servers, topic=self._topic)

    async def stop(self) -> None:
        """Flush and close the Kafka producer.

        Must be called at application shutdown so buffered notifications are
        sent before the process exits.
        """
        if self._producer is not None:
            await self._producer.stop()
            self._producer = None
            logger.info("KafkaAuditNotifier stopped")

    def _build_envelope(self, event_name: str, audit_id: int) -> dict[str, Any]:
        return {
            "event_type": event_name,
            "audit_id": audit_id,
            "source_service": self._source_service,
            "occurred_at": datetime.now(UTC).isoformat(),
        }

    async def notify(self, event_name: str, audit_id: int) -> None:
        """Publish a notification for a persisted audit record.

        If the producer is not started (e.g., in tests), logs a warning and
        skips the publish rather than raising. Broker failures are logged and
        swallowed: the audit record is already persisted.

        Args:
            event_name: Notification name, e.g. "audit:delete".
            audit_id: Id of the persisted audit record.
        """
        if self._producer is None:
            logger.warning(
                "KafkaAuditNotifier not started, skipping Kafka publish",
                topic=self._topic,
                event_type=event_name,
            )
            return

        try:
            await self._producer.send_and_wait(
                self._topic,
                value=self._build_envelope(event_name, audit_id),
                key=str(audit_id),
            )
            logger.debug("Audit notification published", topic=self._topic, event_type=event_name, audit_id=audit_id)
        except Exception as exc:
            # Never let Kafka failures surface into the audited operation
            logger.error(
                "Failed to publish audit notification",
                topic=self._topic,
                event_type=event_name,
                audit_id=audit_id,
                error=str(exc),
            )

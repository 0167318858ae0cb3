"""AumOS Auditing Engine service entry point.

Initializes the FastAPI application with:
- structlog logging
- Audit database connection for the audits table
- Kafka notifier for audit:<event> notifications (when configured)
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from aumos_auditing.adapters.audit_store import close_audit_db, init_audit_db
from aumos_auditing.adapters.kafka import KafkaAuditNotifier
from aumos_auditing.adapters.notifier import InProcessNotifier
from aumos_auditing.api.routes import router
from aumos_auditing.core.context import ContextEnricher
from aumos_auditing.observability import get_logger, setup_logging
from aumos_auditing.settings import Settings

logger = get_logger(__name__)

settings = Settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle.

    Initializes logging, the audit database and the notifier on startup.
    Closes all connections on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None
    """
    setup_logging(level=settings.log_level, log_format=settings.log_format)

    logger.info("Initializing audit database", service=settings.service_name)
    await init_audit_db(
        database_url=settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
    )

    notifier: KafkaAuditNotifier | InProcessNotifier
    if settings.kafka_bootstrap_servers:
        logger.info("Initializing Kafka notifier", bootstrap_servers=settings.kafka_bootstrap_servers)
        notifier = KafkaAuditNotifier(
            bootstrap_servers=settings.kafka_bootstrap_servers,
            topic=settings.kafka_topic,
            source_service=settings.service_name,
        )
        await notifier.start()
    else:
        notifier = InProcessNotifier()

    # Read by api.routes.get_auditing_engine; hosts may replace the enricher
    # with one carrying their actor, tenant and metadata resolvers
    auditing_config = settings.to_auditing_config()
    app.state.settings = settings
    app.state.auditing_config = auditing_config
    app.state.audit_notifier = notifier
    app.state.audit_context_enricher = ContextEnricher(auditing_config)

    logger.info("Auditing engine startup complete")

    yield

    logger.info("Shutting down auditing engine")
    if isinstance(notifier, KafkaAuditNotifier):
        await notifier.stop()
    await close_audit_db()
    logger.info("Auditing engine shutdown complete")


app = FastAPI(title="aumos-auditing-engine", version="0.1.0", lifespan=lifespan)

app.include_router(router, prefix="/api/v1")

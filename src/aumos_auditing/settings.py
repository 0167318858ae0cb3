"""Service settings for aumos-auditing-engine.

All settings use the AUMOS_AUDITING_ environment prefix and cover:
- Audit store database connection
- Change-set policy (diff vs full snapshot, ignored and hidden fields)
- Context resolution behaviour
- Notification transport (Kafka or in-process)
- Logging

List-valued settings are read from the environment as JSON, e.g.
AUMOS_AUDITING_HIDDEN_FIELDS='["password", "token"]'.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from aumos_auditing.core.config import AuditingConfig


class Settings(BaseSettings):
    """Settings for aumos-auditing-engine.

    Environment variable prefix: AUMOS_AUDITING_
    """

    service_name: str = "aumos-auditing-engine"

    # -------------------------------------------------------------------------
    # Audit store
    # -------------------------------------------------------------------------

    database_url: str = Field(
        default="sqlite+aiosqlite:///./audits.sqlite3",
        description="SQLAlchemy async URL of the database holding the audits table.",
    )
    db_pool_size: int = Field(
        default=5,
        description="Connection pool size for the audit store. Audit writes are append-only and short.",
    )
    db_max_overflow: int = Field(
        default=2,
        description="Max overflow connections above db_pool_size.",
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Seconds to wait for a connection before raising an error.",
    )

    # -------------------------------------------------------------------------
    # Change-set policy
    # -------------------------------------------------------------------------

    full_snapshot_on_update: bool = Field(
        default=False,
        description="Store complete before/after images on update instead of changed attributes only.",
    )
    ignored_fields_on_update: list[str] = Field(
        default_factory=list,
        description="Attributes ignored when deciding whether an update changed anything (e.g. updated_at).",
    )
    hidden_fields: list[str] = Field(
        default_factory=list,
        description="Attributes whose values are replaced by ****** in stored payloads.",
    )

    # -------------------------------------------------------------------------
    # Context resolution
    # -------------------------------------------------------------------------

    resolver_timeout_seconds: float | None = Field(
        default=5.0,
        description="Upper bound for each actor/tenant/metadata resolver call. None disables the bound.",
    )
    warn_on_missing_context: bool = Field(
        default=True,
        description="Log a warning when an audit is written without a request context. "
        "Disable for CLI and background workers to avoid noise.",
    )

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    kafka_bootstrap_servers: str = Field(
        default="",
        description="Kafka bootstrap servers for audit notifications. Empty uses the in-process notifier.",
    )
    kafka_topic: str = Field(
        default="auditing.events",
        description="Kafka topic receiving audit:<event> notifications.",
    )

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    log_level: str = Field(default="INFO", description="Minimum log level.")
    log_format: str = Field(default="json", description="json or console.")

    model_config = SettingsConfigDict(env_prefix="AUMOS_AUDITING_")

    def to_auditing_config(self) -> AuditingConfig:
        """Build the read-only policy configuration consumed by the engine.

        Returns:
            A frozen AuditingConfig resolved from these settings.
        """
        return AuditingConfig(
            full_snapshot_on_update=self.full_snapshot_on_update,
            ignored_fields_on_update=frozenset(self.ignored_fields_on_update),
            hidden_fields=frozenset(self.hidden_fields),
            resolver_timeout_seconds=self.resolver_timeout_seconds,
            warn_on_missing_context=self.warn_on_missing_context,
        )

"""Adapters: external integrations for the auditing engine.

Contains:
- audit_store.py: SQLAlchemy audit store and database lifecycle
- memory_store.py: Append-only in-memory audit store
- notifier.py: In-process audit:<event> subscribers
- kafka.py: KafkaAuditNotifier
"""

__all__: list[str] = []

# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Audit log data access.
Bounded in-memory append-only log.
"""

from membership.core.config import settings
from membership.models.domain import AuditLogEntry


class AuditRepository:
    """In-memory audit log storage, trimmed to MAX_AUDIT_LOG_SIZE."""

    def __init__(self, max_size: int | None = None) -> None:
        self._entries: list[AuditLogEntry] = []
        self._max_size = max_size or settings.MAX_AUDIT_LOG_SIZE

    # ── Read ──

    def get_recent(self, limit: int, entry_type: str | None = None, outcome: str | None = None) -> list[AuditLogEntry]:
        entries = self._entries
        if entry_type:
            entries = [e for e in entries if e.type == entry_type]
        if outcome:
            entries = [e for e in entries if e.outcome == outcome]
        return list(reversed(entries[-limit:]))

    def count(self) -> int:
        return len(self._entries)

    # ── Write ──

    def persist(self, entries: list[AuditLogEntry]) -> int:
        self._entries.extend(entries)
        if len(self._entries) > self._max_size:
            del self._entries[: len(self._entries) - self._max_size]
        return len(entries)

    # ── Bulk / internal ──

    def clear(self) -> None:
        self._entries.clear()

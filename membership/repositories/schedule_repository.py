# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Expiry schedule data access.
"""

from membership.models.domain import ScheduleEntry


class ScheduleRepository:
    """In-memory expiry schedule storage."""

    def __init__(self) -> None:
        self._entries: list[ScheduleEntry] = []

    # ── Read ──

    def get_all(self) -> list[ScheduleEntry]:
        return list(self._entries)

    def get_by_email(self, email: str) -> list[ScheduleEntry]:
        return [e for e in self._entries if e.email == email]

    def count(self) -> int:
        return len(self._entries)

    # ── Write ──

    def replace_all(self, entries: list[ScheduleEntry]) -> None:
        self._entries = list(entries)

    # ── Bulk / internal ──

    def clear(self) -> None:
        self._entries.clear()

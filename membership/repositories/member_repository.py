# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Member data access.
Manages the in-memory member table; row order is significant.
"""

from membership.models.domain import ACTIVE, Member


class MemberRepository:
    """In-memory member storage."""

    def __init__(self) -> None:
        self._rows: list[Member] = []

    # ── Read ──

    def get_all(self) -> list[Member]:
        return list(self._rows)

    def count(self) -> int:
        return len(self._rows)

    def count_active(self) -> int:
        return sum(1 for m in self._rows if m.status == ACTIVE)

    # ── Write ──

    def replace_all(self, members: list[Member]) -> None:
        self._rows = list(members)

    # ── Bulk / internal ──

    def clear(self) -> None:
        self._rows.clear()

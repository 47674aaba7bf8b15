# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: FIFO queue and dead-letter data access.
"""

from membership.models.domain import FIFOItem


class QueueRepository:
    """In-memory live queue plus the dead-letter store."""

    def __init__(self) -> None:
        self._queue: list[FIFOItem] = []
        self._dead: list[FIFOItem] = []

    # ── Read ──

    def get_all(self) -> list[FIFOItem]:
        return list(self._queue)

    def count(self) -> int:
        return len(self._queue)

    def get_dead_letters(self) -> list[FIFOItem]:
        return list(self._dead)

    def count_dead(self) -> int:
        return len(self._dead)

    # ── Write ──

    def extend(self, items: list[FIFOItem]) -> None:
        self._queue.extend(items)

    def replace_all(self, items: list[FIFOItem]) -> None:
        self._queue = list(items)

    def add_dead_letters(self, items: list[FIFOItem]) -> None:
        self._dead.extend(items)

    # ── Bulk / internal ──

    def clear(self) -> None:
        self._queue.clear()
        self._dead.clear()

# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Transaction data access.
"""

from membership.models.domain import Transaction


class TransactionRepository:
    """In-memory transaction storage."""

    def __init__(self) -> None:
        self._rows: list[Transaction] = []

    # ── Read ──

    def get_all(self) -> list[Transaction]:
        return list(self._rows)

    def count(self) -> int:
        return len(self._rows)

    # ── Write ──

    def append(self, txn: Transaction) -> int:
        """Store a transaction and return its sheet row number."""
        self._rows.append(txn)
        return len(self._rows) + 1

    def replace_all(self, transactions: list[Transaction]) -> None:
        self._rows = list(transactions)

    # ── Bulk / internal ──

    def clear(self) -> None:
        self._rows.clear()

# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Ambiguous-transaction sheet.
A tabular side store; rows are plain dicts with the sheet's column names.
"""

from typing import Any

COLUMNS: tuple[str, ...] = (
    "Row", "Email", "First Name", "Last Name", "Phone", "Candidates", "Transaction",
)


class AmbiguousTransactionRepository:
    """In-memory sheet of transactions awaiting a human merge decision."""

    def __init__(self) -> None:
        self._rows: list[dict[str, Any]] = []

    # ── Read ──

    def get_all(self) -> list[dict[str, Any]]:
        return [dict(r) for r in self._rows]

    def count(self) -> int:
        return len(self._rows)

    # ── Write ──

    def write(self, rows: list[dict[str, Any]]) -> None:
        """Replace the sheet contents, keeping only the sheet columns."""
        self._rows = [{col: row.get(col, "") for col in COLUMNS} for row in rows]

    # ── Bulk / internal ──

    def clear(self) -> None:
        self._rows.clear()

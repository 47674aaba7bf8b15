# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Migrating-members data access.
"""

from membership.models.domain import MigratingMember


class MigrationRepository:
    """In-memory legacy member table awaiting import."""

    def __init__(self) -> None:
        self._rows: list[MigratingMember] = []

    def get_all(self) -> list[MigratingMember]:
        return list(self._rows)

    def count(self) -> int:
        return len(self._rows)

    def extend(self, rows: list[MigratingMember]) -> None:
        self._rows.extend(rows)

    def replace_all(self, rows: list[MigratingMember]) -> None:
        self._rows = list(rows)

    def clear(self) -> None:
        self._rows.clear()

# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Audit entry construction.
Builds `AuditLogEntry` records; persisting them is the audit repository's job.
"""

import json
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError

from membership.models.domain import AuditLogEntry
from membership.services.dates import utcnow


class AuditLogger:
    """Stamps every entry it creates with one run timestamp."""

    def __init__(self, timestamp: Optional[datetime] = None) -> None:
        self._timestamp = timestamp or utcnow()

    @property
    def timestamp(self) -> datetime:
        return self._timestamp

    def create_log_entry(
        self,
        type: str,
        outcome: str,
        note: str = "",
        error: str = "",
        json_data: Any = None,
    ) -> AuditLogEntry:
        """Raises ValueError for a missing type or an outcome other than success/fail."""
        if not type:
            raise ValueError("type is required")
        if outcome not in ("success", "fail"):
            raise ValueError('outcome must be "success" or "fail"')
        try:
            return AuditLogEntry(
                timestamp=self._timestamp,
                type=type,
                outcome=outcome,
                note=note or "",
                error=error or "",
                json_data=json.dumps(json_data, indent=2, default=str) if json_data is not None else "",
            )
        except ValidationError as exc:
            raise ValueError(str(exc)) from exc

    def create_log_entries(self, params: list[dict[str, Any]]) -> list[AuditLogEntry]:
        if not isinstance(params, list):
            raise TypeError("params must be a list")
        return [self.create_log_entry(**p) for p in params]

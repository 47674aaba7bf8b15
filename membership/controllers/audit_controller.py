# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Audit log endpoint.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from membership.core.dependencies import get_expiry_service
from membership.services.expiry_service import ExpiryService

router = APIRouter(prefix="/api/v1", tags=["Audit"])


@router.get("/audit")
def list_audit(
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    type: Optional[str] = None,
    outcome: Optional[str] = Query(default=None, pattern="^(success|fail)$"),
    service: ExpiryService = Depends(get_expiry_service),
):
    """Most recent audit entries first."""
    return service.list_audit(limit=limit, entry_type=type, outcome=outcome)

# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Member, renewal-merge and migration endpoints.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from membership.core.dependencies import get_membership_service
from membership.schemas.membership import (
    MergeRequest,
    MergeResponse,
    MigrationResponse,
    MigrationUploadRequest,
)
from membership.services.membership_service import MembershipService

router = APIRouter(prefix="/api/v1", tags=["Members"])


@router.get("/members")
def list_members(
    status: Optional[str] = Query(default=None, pattern="^(Active|Expired)$"),
    service: MembershipService = Depends(get_membership_service),
):
    return service.list_members(status=status)


@router.get("/members/renewals")
def list_possible_renewals(
    service: MembershipService = Depends(get_membership_service),
):
    """Pairs of Active rows that look like one person re-joining early."""
    return service.find_possible_renewals()


@router.post("/members/merge", response_model=MergeResponse)
def merge_members(
    payload: MergeRequest,
    today: Optional[date] = None,
    service: MembershipService = Depends(get_membership_service),
):
    """Fold the earlier join into the later one. A rejected merge changes nothing."""
    return service.convert_join_to_renew(payload.row_a, payload.row_b, today=today)


@router.post("/migrations", status_code=201)
def upload_migrations(
    payload: MigrationUploadRequest,
    service: MembershipService = Depends(get_membership_service),
):
    try:
        return {"added": service.add_migrating_members(payload.rows)}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/migrations/process", response_model=MigrationResponse)
def process_migrations(
    today: Optional[date] = None,
    service: MembershipService = Depends(get_membership_service),
):
    return service.process_migrations(today=today)

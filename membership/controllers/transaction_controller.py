# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Transaction intake and reconciliation endpoints.
Thin HTTP layer, delegates to MembershipService.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from membership.core.dependencies import get_membership_service
from membership.schemas.membership import ProcessTransactionsResponse, TransactionCreateRequest
from membership.services.membership_service import MembershipService

router = APIRouter(prefix="/api/v1", tags=["Transactions"])


@router.post("/transactions", status_code=201)
def create_transaction(
    payload: TransactionCreateRequest,
    service: MembershipService = Depends(get_membership_service),
):
    """Record a payment event for the next reconciliation run."""
    try:
        return service.record_transaction(payload.model_dump(by_alias=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/transactions")
def list_transactions(
    unprocessed: bool = False,
    service: MembershipService = Depends(get_membership_service),
):
    return service.list_transactions(unprocessed_only=unprocessed)


@router.post("/transactions/process", response_model=ProcessTransactionsResponse)
def process_transactions(
    today: Optional[date] = None,
    service: MembershipService = Depends(get_membership_service),
):
    """Reconcile every paid, unprocessed transaction."""
    return service.process_transactions(today=today)


@router.get("/transactions/ambiguous")
def list_ambiguous_transactions(
    service: MembershipService = Depends(get_membership_service),
):
    """Transactions waiting for a human merge decision."""
    return service.list_ambiguous()

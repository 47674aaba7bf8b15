# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Expiry schedule, generator and FIFO queue endpoints.
"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends

from membership.core.dependencies import get_expiry_service
from membership.schemas.membership import (
    GenerateExpirationsResponse,
    QueueProcessRequest,
    QueueProcessResponse,
)
from membership.services.dates import parse_timestamp
from membership.services.expiry_service import ExpiryService

router = APIRouter(prefix="/api/v1", tags=["Expirations"])


@router.get("/schedule")
def list_schedule(
    email: Optional[str] = None,
    service: ExpiryService = Depends(get_expiry_service),
):
    return service.list_schedule(email=email)


@router.post("/expirations/generate", response_model=GenerateExpirationsResponse)
def generate_expirations(
    today: Optional[date] = None,
    service: ExpiryService = Depends(get_expiry_service),
):
    """Turn due schedule entries into queued notifications."""
    return service.generate_expirations(today=today)


@router.get("/queue")
def list_queue(service: ExpiryService = Depends(get_expiry_service)):
    return service.list_queue()


@router.post("/queue/process", response_model=QueueProcessResponse)
def process_queue(
    payload: Optional[QueueProcessRequest] = None,
    now: Optional[datetime] = None,
    service: ExpiryService = Depends(get_expiry_service),
):
    """Drain one batch of the FIFO queue."""
    batch_size = payload.batch_size if payload else None
    return service.process_queue(now=parse_timestamp(now) if now else None, batch_size=batch_size)


@router.get("/queue/dead")
def list_dead_letters(service: ExpiryService = Depends(get_expiry_service)):
    """Items that exhausted their retries."""
    return service.list_dead_letters()

# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas, API contract definitions.
Used only at the controller (HTTP) boundary.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ── Transaction Schemas ──

class TransactionCreateRequest(BaseModel):
    """One payment event, using the intake sheet's column names."""
    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(..., min_length=3, alias="Email Address")
    first: str = Field(default="", alias="First Name")
    last: str = Field(default="", alias="Last Name")
    phone: str = Field(default="", alias="Phone")
    payment: str = Field(default="", alias="Payment", description='e.g. "2 years"')
    directory: str = Field(default="", alias="Directory")
    payable_status: str = Field(default="", alias="Payable Status")


class RecordErrorResponse(BaseModel):
    row: int
    email: str
    message: str


class AmbiguousSummary(BaseModel):
    row: int
    email: str
    candidates: list[int]


class ProcessTransactionsResponse(BaseModel):
    records_changed: bool
    has_pending_payments: bool
    joined: int
    renewed: int
    errors: list[RecordErrorResponse]
    ambiguous: list[AmbiguousSummary]
    ambiguous_persisted: dict[str, Any]


# ── Member Schemas ──

class MergeRequest(BaseModel):
    row_a: int = Field(..., ge=0, description="Row index of one member")
    row_b: int = Field(..., ge=0, description="Row index of the other member")


class MergeResponse(BaseModel):
    success: bool
    message: str
    member: Optional[dict[str, Any]] = None
    email_change: Optional[dict[str, Any]] = None


# ── Migration Schemas ──

class MigrationUploadRequest(BaseModel):
    rows: list[dict[str, Any]] = Field(..., min_length=1)


class MigrationResponse(BaseModel):
    migrated: int
    errors: list[RecordErrorResponse]


# ── Expiry / Queue Schemas ──

class GenerateExpirationsResponse(BaseModel):
    processed: int
    queued: int
    items: list[dict[str, Any]]


class QueueProcessRequest(BaseModel):
    batch_size: Optional[int] = Field(default=None, ge=1, le=500)


class QueueProcessResponse(BaseModel):
    selected: int
    processed: int
    retry: int
    dead: int
    remaining: int
    failed: list[dict[str, Any]]

# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models, pure data structures, NO FastAPI dependency.
Aliases are the verbatim column names of the member, transaction,
schedule, FIFO and audit tables.
"""

import datetime as dt
import json
from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from membership.services.dates import parse_date

ACTIVE = "Active"
EXPIRED = "Expired"


class ActionType:
    """Kinds of member-facing notification."""
    JOIN = "Join"
    RENEW = "Renew"
    MIGRATE = "Migrate"
    EXPIRY1 = "Expiry1"
    EXPIRY2 = "Expiry2"
    EXPIRY3 = "Expiry3"
    EXPIRY4 = "Expiry4"

    EXPIRY_TYPES = (EXPIRY1, EXPIRY2, EXPIRY3, EXPIRY4)
    TERMINAL = EXPIRY4


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_row(self) -> dict[str, Any]:
        """Serialize with the table's column names."""
        return self.model_dump(by_alias=True)


def _blank_to_none(v: Any) -> Any:
    return None if v is None or (isinstance(v, str) and not v.strip()) else v


class Member(_Record):
    """One row per membership interval."""
    email: str = Field(default="", alias="Email")
    first: str = Field(default="", alias="First")
    last: str = Field(default="", alias="Last")
    phone: str = Field(default="", alias="Phone")
    joined: Optional[date] = Field(default=None, alias="Joined")
    expires: Optional[date] = Field(default=None, alias="Expires")
    period: int = Field(default=1, ge=0, alias="Period")
    renewed_on: Optional[date] = Field(default=None, alias="Renewed On")
    status: str = Field(default=ACTIVE, pattern="^(Active|Expired)$", alias="Status")
    share_name: bool = Field(default=False, alias="Directory Share Name")
    share_email: bool = Field(default=False, alias="Directory Share Email")
    share_phone: bool = Field(default=False, alias="Directory Share Phone")
    migrated: Optional[date] = Field(default=None, alias="Migrated")

    @field_validator("joined", "expires", "renewed_on", "migrated", mode="before")
    @classmethod
    def coerce_dates(cls, v: Any) -> Optional[date]:
        return parse_date(v)

    @field_validator("email", "first", "last", "phone", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("period", mode="before")
    @classmethod
    def default_period(cls, v: Any) -> Any:
        return 1 if _blank_to_none(v) is None else v

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE


class Transaction(_Record):
    """One row per payment event."""
    email: str = Field(default="", alias="Email Address")
    first: str = Field(default="", alias="First Name")
    last: str = Field(default="", alias="Last Name")
    phone: str = Field(default="", alias="Phone")
    payment: str = Field(default="", alias="Payment")
    directory: str = Field(default="", alias="Directory")
    payable_status: str = Field(default="", alias="Payable Status")
    processed: Optional[date] = Field(default=None, alias="Processed")
    timestamp: Optional[date] = Field(default=None, alias="Timestamp")

    @field_validator("processed", "timestamp", mode="before")
    @classmethod
    def coerce_dates(cls, v: Any) -> Optional[date]:
        return parse_date(v)

    @field_validator(
        "email", "first", "last", "phone", "payment", "directory", "payable_status",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @property
    def is_paid(self) -> bool:
        return self.payable_status.lower().startswith("paid")


class ScheduleEntry(_Record):
    """A pending expiry notification for one member."""
    email: str = Field(..., alias="Email")
    type: str = Field(..., pattern=r"^Expiry\d+$", alias="Type")
    date: dt.date = Field(..., alias="Date")  # field name shadows the type

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> Optional[date]:
        return parse_date(v)


class ActionSpec(_Record):
    """Template descriptor for one notification kind; expiry kinds carry a day offset."""
    type: str = Field(..., min_length=1, alias="Type")
    subject: str = Field(default="", alias="Subject")
    body: str = Field(default="", alias="Body")
    offset: Optional[int] = Field(default=None, alias="Offset")

    @field_validator("offset", mode="before")
    @classmethod
    def blank_offset(cls, v: Any) -> Any:
        return _blank_to_none(v)


class NotificationRequest(BaseModel):
    """Mail handed to the send collaborator."""
    model_config = ConfigDict(populate_by_name=True)

    to: str
    subject: str
    html_body: str = Field(..., alias="htmlBody")
    reply_to: Optional[str] = Field(default=None, alias="replyTo")

    def to_message(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ExpiringMember(BaseModel):
    """Generator output: one message plus the lists to leave, not yet queued."""
    model_config = ConfigDict(populate_by_name=True)

    email: str
    type: str
    subject: str
    html_body: str = Field(..., alias="htmlBody")
    groups: str = ""


class FIFOItem(_Record):
    """A unit of deferred send + list-removal work with its own retry state."""
    id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    subject: str = ""
    html_body: str = Field(default="", alias="htmlBody")
    groups: str = ""
    attempts: int = Field(default=0, ge=0)
    last_attempt_at: str = Field(default="", alias="lastAttemptAt")
    last_error: str = Field(default="", alias="lastError")
    next_attempt_at: str = Field(default="", alias="nextAttemptAt")
    max_attempts: Optional[int] = Field(default=None, ge=1, alias="maxAttempts")
    dead: bool = False

    @field_validator("subject", "html_body", "groups", "last_attempt_at", "last_error",
                     "next_attempt_at", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("max_attempts", mode="before")
    @classmethod
    def blank_max_attempts(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("dead", mode="before")
    @classmethod
    def blank_dead(cls, v: Any) -> Any:
        return False if _blank_to_none(v) is None else v

    @property
    def group_list(self) -> list[str]:
        return [g.strip() for g in self.groups.split(",") if g.strip()]


class AmbiguousTransaction(BaseModel):
    """A transaction matching several members with no safe tie-break."""
    model_config = ConfigDict(frozen=True)

    row: int
    transaction: Transaction
    candidates: tuple[int, ...]

    def to_row(self) -> dict[str, Any]:
        txn = self.transaction
        return {
            "Row": self.row,
            "Email": txn.email,
            "First Name": txn.first,
            "Last Name": txn.last,
            "Phone": txn.phone,
            "Candidates": ",".join(str(c) for c in self.candidates),
            "Transaction": json.dumps(txn.to_row(), default=str),
        }


class AuditLogEntry(_Record):
    """Append-only audit record."""
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="Timestamp"
    )
    type: str = Field(..., min_length=1, alias="Type")
    outcome: str = Field(..., pattern="^(success|fail)$", alias="Outcome")
    note: str = Field(default="", alias="Note")
    error: str = Field(default="", alias="Error")
    json_data: str = Field(default="", alias="JSON")


class MigratingMember(_Record):
    """
    A row of the migration import. Columns whose header is a list address
    (contains '@') hold truthy cells for the lists the member belongs to.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    email: str = Field(default="", alias="Email")
    first: str = Field(default="", alias="First")
    last: str = Field(default="", alias="Last")
    phone: str = Field(default="", alias="Phone")
    joined: Optional[date] = Field(default=None, alias="Joined")
    expires: Optional[date] = Field(default=None, alias="Expires")
    period: int = Field(default=1, ge=0, alias="Period")
    renewed_on: Optional[date] = Field(default=None, alias="Renewed On")
    status: str = Field(default=ACTIVE, alias="Status")
    directory: bool = Field(default=False, alias="Directory")
    migrate_me: bool = Field(default=False, alias="Migrate Me")
    migrated: Optional[date] = Field(default=None, alias="Migrated")

    @field_validator("joined", "expires", "renewed_on", "migrated", mode="before")
    @classmethod
    def coerce_dates(cls, v: Any) -> Optional[date]:
        return parse_date(v)

    @field_validator("email", "first", "last", "phone", "status", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("period", mode="before")
    @classmethod
    def default_period(cls, v: Any) -> Any:
        return 1 if _blank_to_none(v) is None else v

    @field_validator("directory", "migrate_me", mode="before")
    @classmethod
    def truthy(cls, v: Any) -> bool:
        if isinstance(v, str):
            return v.strip().lower() in ("true", "yes", "y", "1", "x")
        return bool(v)

    @property
    def group_columns(self) -> list[str]:
        """List addresses whose cell is set."""
        extra = self.model_extra or {}
        return [key for key, value in extra.items() if "@" in key and value]

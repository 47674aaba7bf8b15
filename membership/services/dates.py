# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Date arithmetic, pure computation.
Membership dates are calendar dates; queue timestamps are UTC datetimes.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

_DATE_FORMATS = ("%m/%d/%Y", "%m/%d/%y", "%Y/%m/%d")


def parse_date(value: Any) -> Optional[date]:
    """Coerce a sheet cell to a date. Empty cells become None; garbage raises ValueError."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date: {value!r}")


def add_days(d: date, days: int = 0) -> date:
    return d + timedelta(days=days)


def add_years(d: date, years: int = 0) -> date:
    """Shift by whole years; 29 February rolls over to 1 March in a non-leap year."""
    try:
        return d.replace(year=d.year + years)
    except ValueError:
        return date(d.year + years, 3, 1)


def calculate_expiration_date(
    reference: Optional[date], expires: Optional[date], period: int = 1
) -> date:
    """
    Add `period` years to the later of `reference` (normally today) and `expires`.
    Renewing early keeps the remaining time; renewing late starts from today.
    """
    if not reference:
        raise ValueError("No reference date provided")
    if not expires:
        raise ValueError("No expiration date provided")
    start = expires if reference < expires else reference
    return add_years(start, period)


def format_date(d: Optional[date]) -> str:
    """US short date (3/1/2025), the format members see in mail."""
    if d is None:
        return ""
    return f"{d.month}/{d.day}/{d.year}"


# ── Timestamps ──

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp; empty or unparseable values yield None. Naive values are UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value or "").strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def isoformat(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat()

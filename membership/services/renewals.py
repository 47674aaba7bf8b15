# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Renewal detection and join-to-renew merge, pure computation.

Two Active rows describe the same person re-joining early when they share
an identity key and the later row joined on or before the earlier row
expired. Merging folds the earlier row (INITIAL) into the later one
(LATEST) and removes INITIAL.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional, Sequence

from membership.core.logging import get_logger
from membership.models.domain import ACTIVE, ActionSpec, Member, ScheduleEntry
from membership.services.dates import add_years
from membership.services.identity import name_key, normalize_email, normalize_phone
from membership.services.scheduler import add_renewed_member_to_schedule, remove_schedule_for

logger = get_logger(__name__)

EMAIL_WEIGHT = 4
PHONE_WEIGHT = 2
NAME_WEIGHT = 1


def similarity_measure(a: Member, b: Member) -> int:
    """Email match 4, phone match 2, full name match 1. Empty keys never match."""
    score = 0
    email = normalize_email(a.email)
    if email and email == normalize_email(b.email):
        score += EMAIL_WEIGHT
    phone = normalize_phone(a.phone)
    if phone and phone == normalize_phone(b.phone):
        score += PHONE_WEIGHT
    first_a, last_a = name_key(a.first, ""), name_key(a.last, "")
    if first_a and last_a and first_a == name_key(b.first, "") and last_a == name_key(b.last, ""):
        score += NAME_WEIGHT
    return score


def _order(members: Sequence[Member], i: int, j: int) -> tuple[int, int]:
    """(INITIAL, LATEST) by Joined date; the earlier row is INITIAL."""
    a, b = members[i], members[j]
    if a.joined and b.joined and b.joined < a.joined:
        return j, i
    return i, j


def _eligible(initial: Member, latest: Member) -> bool:
    if latest.joined is None or initial.expires is None:
        return False
    return latest.joined <= initial.expires


def find_possible_renewals(members: Sequence[Member]) -> list[tuple[int, int]]:
    """Every pair of Active rows that look like one person re-joining early."""
    pairs = []
    for i in range(len(members)):
        if members[i].status != ACTIVE:
            continue
        for j in range(i + 1, len(members)):
            if members[j].status != ACTIVE:
                continue
            if similarity_measure(members[i], members[j]) <= 0:
                continue
            initial, latest = _order(members, i, j)
            if _eligible(members[initial], members[latest]):
                pairs.append((initial, latest))
    return pairs


@dataclass
class MergeResult:
    success: bool
    message: str
    members: list[Member] = field(default_factory=list)
    schedule: list[ScheduleEntry] = field(default_factory=list)
    merged: Optional[Member] = None
    old_email: str = ""
    new_email: str = ""

    @property
    def email_changed(self) -> bool:
        return self.success and normalize_email(self.old_email) != normalize_email(self.new_email)


def _reject(message: str, members: Sequence[Member], schedule: Sequence[ScheduleEntry]) -> MergeResult:
    logger.info("Merge rejected: %s", message)
    return MergeResult(success=False, message=message, members=list(members), schedule=list(schedule))


def convert_join_to_renew(
    row_a: int,
    row_b: int,
    members: Sequence[Member],
    schedule: Sequence[ScheduleEntry],
    action_specs: Mapping[str, ActionSpec],
    today: date,
) -> MergeResult:
    """
    Fold the earlier of two rows into the later one.

    The merged row keeps LATEST's contact details, Period and directory flags,
    INITIAL's Joined and Migrated dates, and expires `LATEST.Period` years
    after INITIAL expired. Fails closed, returning the inputs unchanged, on
    bad indices, rows sharing no identity key, or LATEST joining after
    INITIAL expired.
    """
    size = len(members)
    if row_a == row_b or not (0 <= row_a < size and 0 <= row_b < size):
        return _reject(f"Invalid rows {row_a} and {row_b}", members, schedule)

    initial_idx, latest_idx = _order(members, row_a, row_b)
    initial, latest = members[initial_idx], members[latest_idx]

    if similarity_measure(initial, latest) <= 0:
        return _reject("Rows share no identifying characteristics", members, schedule)
    if initial.expires is None or latest.joined is None:
        return _reject("Both rows need Joined and Expires dates", members, schedule)
    if not _eligible(initial, latest):
        return _reject(
            f"{latest.email} joined on {latest.joined} after {initial.email} expired on {initial.expires}",
            members,
            schedule,
        )

    merged = latest.model_copy(
        update={
            "joined": initial.joined,
            "expires": add_years(initial.expires, latest.period),
            "renewed_on": latest.joined,
            "migrated": initial.migrated,
            "status": ACTIVE,
        }
    )

    new_members = list(members)
    new_members[latest_idx] = merged
    del new_members[initial_idx]

    new_schedule = remove_schedule_for(initial.email, schedule)
    new_schedule = add_renewed_member_to_schedule(merged, new_schedule, action_specs, today)

    logger.info(
        "Merged join row %d (%s) into row %d (%s); expires %s",
        initial_idx, initial.email, latest_idx, latest.email, merged.expires,
    )
    return MergeResult(
        success=True,
        message=f"Merged {initial.email} into {merged.email}",
        members=new_members,
        schedule=new_schedule,
        merged=merged,
        old_email=initial.email,
        new_email=merged.email,
    )

# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Expiry scheduler and notification generator, pure computation.

The schedule for a member is always regenerated whole from its current
Expires date. The generator turns due entries into `ExpiringMember`
payloads; it never sends mail or touches lists itself.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Sequence

from membership.core.logging import get_logger
from membership.models.domain import (
    EXPIRED,
    ActionSpec,
    ActionType,
    AuditLogEntry,
    ExpiringMember,
    Member,
    ScheduleEntry,
)
from membership.services.dates import add_days
from membership.services.templates import expand_template

logger = get_logger(__name__)


def index_action_specs(specs: Iterable[ActionSpec]) -> dict[str, ActionSpec]:
    return {spec.type: spec for spec in specs}


def expiry_specs(action_specs: Mapping[str, ActionSpec]) -> list[ActionSpec]:
    """Expiry kinds that carry an offset, in type order."""
    return [
        action_specs[t] for t in sorted(action_specs)
        if t.startswith("Expiry") and action_specs[t].offset is not None
    ]


# ── Schedule maintenance ──

def schedule_entries_for(
    email: str,
    expires: Optional[date],
    action_specs: Mapping[str, ActionSpec],
    today: date,
) -> list[ScheduleEntry]:
    """One entry per expiry kind whose date is still ahead of `today`."""
    if not email or expires is None:
        return []
    entries = []
    for spec in expiry_specs(action_specs):
        when = add_days(expires, spec.offset)
        if when <= today:
            continue
        entries.append(ScheduleEntry(email=email, type=spec.type, date=when))
    return entries


def remove_schedule_for(email: str, schedule: Sequence[ScheduleEntry]) -> list[ScheduleEntry]:
    return [entry for entry in schedule if entry.email != email]


def add_renewed_member_to_schedule(
    member: Member,
    schedule: Sequence[ScheduleEntry],
    action_specs: Mapping[str, ActionSpec],
    today: date,
) -> list[ScheduleEntry]:
    """Drop every entry for the member's email, then add the forward-looking set."""
    kept = remove_schedule_for(member.email, schedule)
    return kept + schedule_entries_for(member.email, member.expires, action_specs, today)


# ── Generator ──

@dataclass
class ExpiryRun:
    members: list[Member]
    schedule: list[ScheduleEntry]
    expiring: list[ExpiringMember] = field(default_factory=list)
    processed: int = 0
    audit_entries: list[AuditLogEntry] = field(default_factory=list)


def _template_row(member: Member, entry: ScheduleEntry, prefill_template: Optional[str]) -> dict[str, Any]:
    row = member.to_row()
    row["Scheduled On"] = entry.date
    row["Type"] = entry.type
    if prefill_template:
        row["Form"] = expand_template(prefill_template, row)
    return row


def generate_expiring_members(
    members: Sequence[Member],
    schedule: Sequence[ScheduleEntry],
    action_specs: Mapping[str, ActionSpec],
    groups: Sequence[str],
    today: date,
    prefill_template: Optional[str] = None,
    audit_logger=None,
) -> ExpiryRun:
    """
    Consume every schedule entry due on or before `today`.

    Entries are sorted by date descending (ties by type ascending) and the
    due ones are walked from the end of that order, so the oldest entry for
    an email is the one honored; later ones for the same email are dropped
    with a log line. The terminal kind flips the member to Expired and
    lists every group for removal. Remaining entries for emails that
    reached the terminal state are deleted.
    """
    members = [m.model_copy() for m in members]
    ordered = sorted(schedule, key=lambda e: e.type)
    ordered.sort(key=lambda e: e.date, reverse=True)

    due = [i for i, entry in enumerate(ordered) if entry.date <= today]
    run = ExpiryRun(members=members, schedule=[], processed=len(due))

    seen: set[str] = set()
    terminated: set[str] = set()
    for idx in reversed(due):
        entry = ordered[idx]
        logger.info("%s - %s", entry.type, entry.email)
        if entry.email in seen:
            logger.info("Skipping %s for %s - already processed", entry.email, entry.type)
            continue
        seen.add(entry.email)

        member_idx = next(
            (i for i, m in enumerate(members) if m.email == entry.email and m.status != EXPIRED),
            None,
        )
        if member_idx is None:
            logger.info("Skipping member %s - they're not an active member", entry.email)
            continue

        member = members[member_idx]
        spec = action_specs.get(entry.type)
        remove_from = ""
        if entry.type == ActionType.TERMINAL:
            member = member.model_copy(update={"status": EXPIRED})
            members[member_idx] = member
            terminated.add(member.email)
            remove_from = ",".join(groups)

        row = _template_row(member, entry, prefill_template)
        run.expiring.append(
            ExpiringMember(
                email=member.email,
                type=entry.type,
                subject=expand_template(spec.subject if spec else "", row),
                html_body=expand_template(spec.body if spec else "", row),
                groups=remove_from,
            )
        )
        if audit_logger is not None:
            run.audit_entries.append(
                audit_logger.create_log_entry(
                    type=entry.type,
                    outcome="success",
                    note=f"{entry.type} notification queued for {member.email}",
                )
            )

    due_set = set(due)
    run.schedule = [
        entry for i, entry in enumerate(ordered)
        if i not in due_set and entry.email not in terminated
    ]
    return run

# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Member migration from the legacy membership table.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Mapping, Optional, Sequence

from membership.core.logging import get_logger
from membership.models.domain import (
    ACTIVE,
    EXPIRED,
    ActionSpec,
    ActionType,
    AuditLogEntry,
    Member,
    MigratingMember,
    NotificationRequest,
    ScheduleEntry,
)
from membership.services.reconciliation import FIRST_DATA_ROW, RecordError, render_notification
from membership.services.scheduler import schedule_entries_for

logger = get_logger(__name__)


@dataclass
class MigrationResult:
    migrated: int = 0
    errors: list[RecordError] = field(default_factory=list)
    migrators: list[MigratingMember] = field(default_factory=list)
    members: list[Member] = field(default_factory=list)
    schedule: list[ScheduleEntry] = field(default_factory=list)
    notifications: list[NotificationRequest] = field(default_factory=list)
    audit_entries: list[AuditLogEntry] = field(default_factory=list)


def to_member(mi: MigratingMember, today: date) -> Member:
    """Keep only the member columns; a single Directory flag sets all three sharing flags."""
    return Member(
        email=mi.email,
        first=mi.first,
        last=mi.last,
        phone=mi.phone,
        joined=mi.joined,
        expires=mi.expires,
        period=mi.period,
        renewed_on=mi.renewed_on,
        status=ACTIVE if mi.status == ACTIVE else EXPIRED,
        share_name=mi.directory,
        share_email=mi.directory,
        share_phone=mi.directory,
        migrated=today,
    )


class MemberMigrator:
    """Imports rows flagged `Migrate Me` that have not been migrated yet."""

    def __init__(
        self,
        action_specs: Mapping[str, ActionSpec],
        today: date,
        send_notification: Optional[Callable[[NotificationRequest], None]] = None,
        add_to_group: Optional[Callable[[str, str], None]] = None,
        audit_logger=None,
    ) -> None:
        self._specs = action_specs
        self._today = today
        self._send = send_notification
        self._add_to_group = add_to_group
        self._audit = audit_logger

    def migrate(
        self,
        migrators: Sequence[MigratingMember],
        members: Sequence[Member],
        schedule: Sequence[ScheduleEntry],
    ) -> MigrationResult:
        result = MigrationResult(
            migrators=list(migrators), members=list(members), schedule=list(schedule)
        )
        for i, mi in enumerate(result.migrators):
            row = i + FIRST_DATA_ROW
            if not mi.email:
                logger.info("Skipping row %d, no email address", row)
                continue
            if any(m.status == ACTIVE and m.email == mi.email for m in result.members):
                logger.info("Skipping %s on row %d, already an active member", mi.email, row)
                continue
            if not mi.migrate_me or mi.migrated:
                continue

            member = to_member(mi, self._today)
            new_schedule = result.schedule
            try:
                if member.status != ACTIVE:
                    logger.info(
                        "Migrating inactive member %s, row %d - no groups joined or emails sent",
                        member.email, row,
                    )
                else:
                    logger.info(
                        "Migrating active member %s, row %d - joining groups and sending email",
                        member.email, row,
                    )
                    if self._add_to_group is not None:
                        for group in mi.group_columns:
                            self._add_to_group(member.email, group)
                    new_schedule = new_schedule + schedule_entries_for(
                        member.email, member.expires, self._specs, self._today
                    )
                    spec = self._specs.get(ActionType.MIGRATE)
                    if spec is None:
                        raise KeyError(f"No action spec for {ActionType.MIGRATE}")
                    notification = render_notification(spec, member)
                    if self._send is not None:
                        self._send(notification)
                    result.notifications.append(notification)
            except Exception as exc:
                logger.error(
                    "Migration on row %d %s had an error: %s", row, mi.email, exc, exc_info=True,
                    extra={"row": row, "email": mi.email, "run_date": self._today},
                )
                result.errors.append(RecordError(row=row, email=mi.email, message=str(exc)))
                if self._audit is not None:
                    result.audit_entries.append(
                        self._audit.create_log_entry(
                            type=ActionType.MIGRATE, outcome="fail",
                            note=f"Migration on row {row} for {mi.email}", error=str(exc),
                        )
                    )
                continue

            result.migrators[i] = mi.model_copy(update={"migrated": self._today})
            result.members = result.members + [member]
            result.schedule = new_schedule
            result.migrated += 1
            logger.info("Migrated %s, row %d", member.email, row)
            if self._audit is not None:
                result.audit_entries.append(
                    self._audit.create_log_entry(
                        type=ActionType.MIGRATE, outcome="success", note=f"Migrated {member.email}"
                    )
                )
        return result

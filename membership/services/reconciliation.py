# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Transaction reconciliation engine.

Classifies each paid, unprocessed transaction as a Join, a Renew or an
ambiguous match, and applies it to working copies of the member list and
the expiry schedule. A transaction is applied atomically: the copies are
kept, and the transaction stamped Processed, only when the member update,
the schedule rebuild, the list additions and the notification send all
succeed. Failures are collected per row and never abort the batch.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Mapping, Optional, Sequence

from membership.core.logging import get_logger
from membership.models.domain import (
    ACTIVE,
    ActionSpec,
    ActionType,
    AmbiguousTransaction,
    AuditLogEntry,
    Member,
    NotificationRequest,
    ScheduleEntry,
    Transaction,
)
from membership.services.dates import calculate_expiration_date
from membership.services.identity import (
    Ambiguous,
    IdentityQuery,
    NoMatch,
    Unique,
    build_identity_index,
    resolve_member,
)
from membership.services.scheduler import add_renewed_member_to_schedule, schedule_entries_for
from membership.services.templates import expand_template

logger = get_logger(__name__)

_PERIOD = re.compile(r"(\d+)\s*year")

# Transactions start on sheet row 2, below the header.
FIRST_DATA_ROW = 2


def get_period(payment: Optional[str]) -> int:
    """Years bought, from text like "2 years"; 1 when absent or unparseable."""
    if not payment:
        return 1
    match = _PERIOD.search(payment)
    return int(match.group(1)) if match else 1


def extract_directory_sharing(directory: Optional[str]) -> dict[str, bool]:
    text = (directory or "").lower()
    return {
        "share_name": "share name" in text,
        "share_email": "share email" in text,
        "share_phone": "share phone" in text,
    }


@dataclass(frozen=True)
class RecordError:
    row: int
    email: str
    message: str

    def to_dict(self) -> dict:
        return {"row": self.row, "email": self.email, "message": self.message}


@dataclass
class ReconciliationResult:
    records_changed: bool = False
    has_pending_payments: bool = False
    errors: list[RecordError] = field(default_factory=list)
    ambiguous_transactions: list[AmbiguousTransaction] = field(default_factory=list)
    notifications: list[NotificationRequest] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    members: list[Member] = field(default_factory=list)
    schedule: list[ScheduleEntry] = field(default_factory=list)
    audit_entries: list[AuditLogEntry] = field(default_factory=list)
    joined: int = 0
    renewed: int = 0


def render_notification(spec: ActionSpec, member: Member) -> NotificationRequest:
    row = member.to_row()
    return NotificationRequest(
        to=member.email,
        subject=expand_template(spec.subject, row),
        html_body=expand_template(spec.body, row),
    )


class TransactionReconciler:
    """Applies paid transactions to the member list and expiry schedule."""

    def __init__(
        self,
        action_specs: Mapping[str, ActionSpec],
        groups: Sequence[str],
        today: date,
        send_notification: Optional[Callable[[NotificationRequest], None]] = None,
        add_to_group: Optional[Callable[[str, str], None]] = None,
        audit_logger=None,
    ) -> None:
        self._specs = action_specs
        self._groups = list(groups)
        self._today = today
        self._send = send_notification
        self._add_to_group = add_to_group
        self._audit = audit_logger

    # ── Apply ──

    def _spec(self, action_type: str) -> ActionSpec:
        spec = self._specs.get(action_type)
        if spec is None:
            raise KeyError(f"No action spec for {action_type}")
        return spec

    def _join(
        self, txn: Transaction, members: list[Member], schedule: list[ScheduleEntry]
    ) -> tuple[list[Member], list[ScheduleEntry], NotificationRequest]:
        period = get_period(txn.payment)
        member = Member(
            email=txn.email,
            first=txn.first,
            last=txn.last,
            phone=txn.phone,
            joined=self._today,
            period=period,
            expires=calculate_expiration_date(self._today, self._today, period),
            renewed_on=None,
            status=ACTIVE,
            **extract_directory_sharing(txn.directory),
        )
        notification = render_notification(self._spec(ActionType.JOIN), member)
        members = members + [member]
        schedule = schedule + schedule_entries_for(member.email, member.expires, self._specs, self._today)
        if self._add_to_group is not None:
            for group in self._groups:
                self._add_to_group(member.email, group)
        return members, schedule, notification

    def _renew(
        self, txn: Transaction, idx: int, members: list[Member], schedule: list[ScheduleEntry]
    ) -> tuple[list[Member], list[ScheduleEntry], NotificationRequest]:
        current = members[idx]
        period = get_period(txn.payment)
        update = {
            "period": period,
            "renewed_on": self._today,
            "expires": calculate_expiration_date(self._today, current.expires, period),
            **extract_directory_sharing(txn.directory),
        }
        if not current.phone and txn.phone:
            update["phone"] = txn.phone
        member = current.model_copy(update=update)
        notification = render_notification(self._spec(ActionType.RENEW), member)
        members = list(members)
        members[idx] = member
        schedule = add_renewed_member_to_schedule(member, schedule, self._specs, self._today)
        return members, schedule, notification

    def _audit_entry(self, result: ReconciliationResult, **params) -> None:
        if self._audit is not None:
            result.audit_entries.append(self._audit.create_log_entry(**params))

    # ── Entry point ──

    def reconcile(
        self,
        transactions: Sequence[Transaction],
        members: Sequence[Member],
        schedule: Sequence[ScheduleEntry],
    ) -> ReconciliationResult:
        """Process every transaction in order. Inputs are never mutated."""
        result = ReconciliationResult(
            transactions=list(transactions),
            members=list(members),
            schedule=list(schedule),
        )

        for i, txn in enumerate(result.transactions):
            row = i + FIRST_DATA_ROW
            if txn.processed:
                continue
            if not txn.is_paid:
                result.has_pending_payments = True
                continue

            index = build_identity_index(result.members)
            resolution = resolve_member(IdentityQuery.from_transaction(txn), index)

            if isinstance(resolution, Ambiguous):
                logger.info(
                    "Transaction on row %d %s matches members %s - deferred for review",
                    row, txn.email, list(resolution.indices),
                )
                result.ambiguous_transactions.append(
                    AmbiguousTransaction(row=row, transaction=txn, candidates=resolution.indices)
                )
                result.has_pending_payments = True
                continue

            action = ActionType.JOIN if isinstance(resolution, NoMatch) else ActionType.RENEW
            try:
                if isinstance(resolution, Unique):
                    logger.info("Transaction on row %d %s is a renewing member", row, txn.email)
                    new_members, new_schedule, notification = self._renew(
                        txn, resolution.index, result.members, result.schedule
                    )
                else:
                    logger.info("Transaction on row %d %s is a new member", row, txn.email)
                    new_members, new_schedule, notification = self._join(
                        txn, result.members, result.schedule
                    )
                if self._send is not None:
                    self._send(notification)
            except Exception as exc:
                logger.error(
                    "Transaction on row %d %s had an error: %s", row, txn.email, exc, exc_info=True,
                    extra={"row": row, "email": txn.email, "run_date": self._today},
                )
                result.errors.append(RecordError(row=row, email=txn.email, message=str(exc)))
                self._audit_entry(
                    result, type=action, outcome="fail",
                    note=f"Transaction on row {row} for {txn.email}", error=str(exc),
                    json_data=txn.to_row(),
                )
                continue

            result.members = new_members
            result.schedule = new_schedule
            result.transactions[i] = txn.model_copy(
                update={"processed": self._today, "timestamp": self._today}
            )
            result.notifications.append(notification)
            result.records_changed = True
            if action == ActionType.JOIN:
                result.joined += 1
            else:
                result.renewed += 1
            self._audit_entry(result, type=action, outcome="success", note=f"{action} for {txn.email}")

        return result

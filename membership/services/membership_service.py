# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Membership management, orchestrates intake, reconciliation,
migration and join-to-renew merges.
Loads state from the repositories, runs the pure engine, persists the
result and updates metrics.
"""

from datetime import date
from typing import Any, Callable, Optional

from membership.core.config import settings
from membership.core.logging import get_logger
from membership.metrics.prometheus import (
    ACTIVE_MEMBERS,
    AMBIGUOUS_TRANSACTIONS,
    MEMBERS_MIGRATED,
    MERGES_TOTAL,
    TRANSACTIONS_PROCESSED,
)
from membership.models.domain import AmbiguousTransaction, MigratingMember, Transaction
from membership.repositories.action_spec_repository import ActionSpecRepository
from membership.repositories.ambiguous_repository import AmbiguousTransactionRepository
from membership.repositories.audit_repository import AuditRepository
from membership.repositories.member_repository import MemberRepository
from membership.repositories.migration_repository import MigrationRepository
from membership.repositories.schedule_repository import ScheduleRepository
from membership.repositories.transaction_repository import TransactionRepository
from membership.services.audit import AuditLogger
from membership.services.group_client import GroupDirectoryClient
from membership.services.migration import MemberMigrator
from membership.services.notification_client import NotificationClient
from membership.services.reconciliation import TransactionReconciler
from membership.services.renewals import convert_join_to_renew, find_possible_renewals

logger = get_logger(__name__)


class MembershipService:
    """Business logic for the member table and its transaction intake."""

    def __init__(
        self,
        member_repo: MemberRepository,
        transaction_repo: TransactionRepository,
        schedule_repo: ScheduleRepository,
        ambiguous_repo: AmbiguousTransactionRepository,
        audit_repo: AuditRepository,
        action_spec_repo: ActionSpecRepository,
        migration_repo: MigrationRepository,
        notification_client: NotificationClient,
        group_client: GroupDirectoryClient,
        groups: Optional[list[str]] = None,
        clock: Optional[Callable[[], date]] = None,
    ) -> None:
        self._members = member_repo
        self._transactions = transaction_repo
        self._schedule = schedule_repo
        self._ambiguous = ambiguous_repo
        self._audit = audit_repo
        self._specs = action_spec_repo
        self._migrations = migration_repo
        self._notifier = notification_client
        self._groups_client = group_client
        self._groups = list(groups) if groups is not None else list(settings.MEMBER_GROUPS)
        self._clock = clock or date.today

    # ── Queries ──

    def list_members(self, status: Optional[str] = None) -> list[dict[str, Any]]:
        members = self._members.get_all()
        return [
            {"row": i, **m.to_row()}
            for i, m in enumerate(members)
            if status is None or m.status == status
        ]

    def list_transactions(self, unprocessed_only: bool = False) -> list[dict[str, Any]]:
        return [
            t.to_row() for t in self._transactions.get_all()
            if not (unprocessed_only and t.processed)
        ]

    def list_ambiguous(self) -> list[dict[str, Any]]:
        return self._ambiguous.get_all()

    def find_possible_renewals(self) -> list[dict[str, Any]]:
        members = self._members.get_all()
        return [
            {
                "initial": initial,
                "latest": latest,
                "initial_member": members[initial].to_row(),
                "latest_member": members[latest].to_row(),
            }
            for initial, latest in find_possible_renewals(members)
        ]

    # ── Commands ──

    def record_transaction(self, data: dict[str, Any]) -> dict[str, Any]:
        """Add a payment event to the intake. Raises ValueError on bad input."""
        txn = Transaction.model_validate(data)
        if not txn.email:
            raise ValueError("Email Address is required")
        row = self._transactions.append(txn)
        logger.info("Transaction recorded: row=%d, email=%s", row, txn.email)
        return {"row": row, "transaction": txn.to_row()}

    def persist_ambiguous_transactions(
        self, records: list[AmbiguousTransaction]
    ) -> dict[str, Any]:
        """Overwrite the review sheet with the transactions still awaiting a decision."""
        rows = [r.to_row() for r in records]
        if not rows:
            return {"persisted": False, "reason": "no_ambiguous_transactions"}
        self._ambiguous.write(rows)
        logger.info("Persisted %d ambiguous transactions", len(rows))
        return {"persisted": True, "count": len(rows)}

    def process_transactions(self, today: Optional[date] = None) -> dict[str, Any]:
        """Run reconciliation over the whole intake and persist the outcome."""
        today = today or self._clock()
        reconciler = TransactionReconciler(
            action_specs=self._specs.get_all(),
            groups=self._groups,
            today=today,
            send_notification=self._notifier.send,
            add_to_group=self._groups_client.add_member,
            audit_logger=AuditLogger(),
        )
        result = reconciler.reconcile(
            self._transactions.get_all(), self._members.get_all(), self._schedule.get_all()
        )

        if result.records_changed:
            self._transactions.replace_all(result.transactions)
            self._members.replace_all(result.members)
            self._schedule.replace_all(result.schedule)
        persisted = self.persist_ambiguous_transactions(result.ambiguous_transactions)
        self._audit.persist(result.audit_entries)

        TRANSACTIONS_PROCESSED.labels(outcome="join").inc(result.joined)
        TRANSACTIONS_PROCESSED.labels(outcome="renew").inc(result.renewed)
        TRANSACTIONS_PROCESSED.labels(outcome="error").inc(len(result.errors))
        AMBIGUOUS_TRANSACTIONS.inc(len(result.ambiguous_transactions))
        ACTIVE_MEMBERS.set(self._members.count_active())

        logger.info(
            "Transactions processed: joined=%d, renewed=%d, ambiguous=%d, errors=%d",
            result.joined, result.renewed, len(result.ambiguous_transactions), len(result.errors),
        )
        return {
            "records_changed": result.records_changed,
            "has_pending_payments": result.has_pending_payments,
            "joined": result.joined,
            "renewed": result.renewed,
            "errors": [e.to_dict() for e in result.errors],
            "ambiguous": [
                {"row": a.row, "email": a.transaction.email, "candidates": list(a.candidates)}
                for a in result.ambiguous_transactions
            ],
            "ambiguous_persisted": persisted,
        }

    def add_migrating_members(self, rows: list[dict[str, Any]]) -> int:
        migrators = [MigratingMember.model_validate(r) for r in rows]
        self._migrations.extend(migrators)
        return len(migrators)

    def process_migrations(self, today: Optional[date] = None) -> dict[str, Any]:
        today = today or self._clock()
        migrator = MemberMigrator(
            action_specs=self._specs.get_all(),
            today=today,
            send_notification=self._notifier.send,
            add_to_group=self._groups_client.add_member,
            audit_logger=AuditLogger(),
        )
        result = migrator.migrate(
            self._migrations.get_all(), self._members.get_all(), self._schedule.get_all()
        )
        self._migrations.replace_all(result.migrators)
        self._members.replace_all(result.members)
        self._schedule.replace_all(result.schedule)
        self._audit.persist(result.audit_entries)

        MEMBERS_MIGRATED.inc(result.migrated)
        ACTIVE_MEMBERS.set(self._members.count_active())
        logger.info("Migration run: migrated=%d, errors=%d", result.migrated, len(result.errors))
        return {"migrated": result.migrated, "errors": [e.to_dict() for e in result.errors]}

    def convert_join_to_renew(
        self, row_a: int, row_b: int, today: Optional[date] = None
    ) -> dict[str, Any]:
        """Merge two rows of one person. Returns {success, message}; state changes only on success."""
        today = today or self._clock()
        result = convert_join_to_renew(
            row_a, row_b,
            self._members.get_all(), self._schedule.get_all(),
            self._specs.get_all(), today,
        )
        if not result.success:
            MERGES_TOTAL.labels(outcome="rejected").inc()
            return {"success": False, "message": result.message}

        self._members.replace_all(result.members)
        self._schedule.replace_all(result.schedule)
        MERGES_TOTAL.labels(outcome="merged").inc()
        ACTIVE_MEMBERS.set(self._members.count_active())

        response: dict[str, Any] = {
            "success": True,
            "message": result.message,
            "member": result.merged.to_row(),
        }
        if result.email_changed:
            response["email_change"] = self._groups_client.replace_email_in_groups(
                result.old_email, result.new_email
            )
        return response

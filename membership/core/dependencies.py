# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection, wires repositories and services.
"""

from membership.repositories.action_spec_repository import ActionSpecRepository
from membership.repositories.ambiguous_repository import AmbiguousTransactionRepository
from membership.repositories.audit_repository import AuditRepository
from membership.repositories.member_repository import MemberRepository
from membership.repositories.migration_repository import MigrationRepository
from membership.repositories.queue_repository import QueueRepository
from membership.repositories.schedule_repository import ScheduleRepository
from membership.repositories.transaction_repository import TransactionRepository
from membership.services.expiry_service import ExpiryService
from membership.services.group_client import GroupDirectoryClient
from membership.services.membership_service import MembershipService
from membership.services.notification_client import NotificationClient

# ── Singleton repository instances (in-memory stores) ──
_member_repo = MemberRepository()
_transaction_repo = TransactionRepository()
_schedule_repo = ScheduleRepository()
_queue_repo = QueueRepository()
_ambiguous_repo = AmbiguousTransactionRepository()
_audit_repo = AuditRepository()
_action_spec_repo = ActionSpecRepository()
_migration_repo = MigrationRepository()
_notification_client = NotificationClient()
_group_client = GroupDirectoryClient()

# ── Service instances (with injected dependencies) ──
_membership_service = MembershipService(
    member_repo=_member_repo,
    transaction_repo=_transaction_repo,
    schedule_repo=_schedule_repo,
    ambiguous_repo=_ambiguous_repo,
    audit_repo=_audit_repo,
    action_spec_repo=_action_spec_repo,
    migration_repo=_migration_repo,
    notification_client=_notification_client,
    group_client=_group_client,
)
_expiry_service = ExpiryService(
    member_repo=_member_repo,
    schedule_repo=_schedule_repo,
    queue_repo=_queue_repo,
    audit_repo=_audit_repo,
    action_spec_repo=_action_spec_repo,
    notification_client=_notification_client,
    group_client=_group_client,
)


# ── FastAPI dependency functions ──
def get_membership_service() -> MembershipService:
    return _membership_service


def get_expiry_service() -> ExpiryService:
    return _expiry_service


def get_member_repo() -> MemberRepository:
    return _member_repo


def get_transaction_repo() -> TransactionRepository:
    return _transaction_repo


def get_schedule_repo() -> ScheduleRepository:
    return _schedule_repo


def get_queue_repo() -> QueueRepository:
    return _queue_repo


def get_ambiguous_repo() -> AmbiguousTransactionRepository:
    return _ambiguous_repo


def get_audit_repo() -> AuditRepository:
    return _audit_repo


def get_action_spec_repo() -> ActionSpecRepository:
    return _action_spec_repo


def get_migration_repo() -> MigrationRepository:
    return _migration_repo


def get_notification_client() -> NotificationClient:
    return _notification_client


def get_group_client() -> GroupDirectoryClient:
    return _group_client

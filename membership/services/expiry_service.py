# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Expiry processing, turns due schedule entries into FIFO items and
drains the FIFO queue with retry and dead-lettering.
"""

import uuid
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional

from membership.core.config import settings
from membership.core.logging import get_logger
from membership.metrics.prometheus import (
    ACTIVE_MEMBERS,
    DEAD_LETTERS,
    EXPIRY_NOTIFICATIONS,
    QUEUE_DEPTH,
    QUEUE_ITEMS,
)
from membership.models.domain import FIFOItem
from membership.repositories.action_spec_repository import ActionSpecRepository
from membership.repositories.audit_repository import AuditRepository
from membership.repositories.member_repository import MemberRepository
from membership.repositories.queue_repository import QueueRepository
from membership.repositories.schedule_repository import ScheduleRepository
from membership.services.audit import AuditLogger
from membership.services.dates import isoformat, utcnow
from membership.services.group_client import GroupDirectoryClient
from membership.services.notification_client import NotificationClient
from membership.services.queue import QueueProcessor, compute_next_retry_at, run_queue_batch
from membership.services.scheduler import generate_expiring_members

logger = get_logger(__name__)


class ExpiryService:
    """Business logic for expiry notifications and the FIFO queue."""

    def __init__(
        self,
        member_repo: MemberRepository,
        schedule_repo: ScheduleRepository,
        queue_repo: QueueRepository,
        audit_repo: AuditRepository,
        action_spec_repo: ActionSpecRepository,
        notification_client: NotificationClient,
        group_client: GroupDirectoryClient,
        groups: Optional[list[str]] = None,
        clock: Optional[Callable[[], date]] = None,
    ) -> None:
        self._members = member_repo
        self._schedule = schedule_repo
        self._queue = queue_repo
        self._audit = audit_repo
        self._specs = action_spec_repo
        self._notifier = notification_client
        self._groups_client = group_client
        self._groups = list(groups) if groups is not None else list(settings.MEMBER_GROUPS)
        self._clock = clock or date.today

    # ── Generator ──

    def generate_expirations(self, today: Optional[date] = None) -> dict[str, Any]:
        """Consume due schedule entries and enqueue one FIFO item per notification."""
        today = today or self._clock()
        run = generate_expiring_members(
            self._members.get_all(),
            self._schedule.get_all(),
            self._specs.get_all(),
            self._groups,
            today,
            prefill_template=settings.RENEWAL_FORM_TEMPLATE or None,
            audit_logger=AuditLogger(),
        )
        items = [
            FIFOItem(
                id=str(uuid.uuid4()),
                email=m.email,
                subject=m.subject,
                html_body=m.html_body,
                groups=m.groups,
                max_attempts=settings.FIFO_MAX_ATTEMPTS,
            )
            for m in run.expiring
        ]
        self._members.replace_all(run.members)
        self._schedule.replace_all(run.schedule)
        self._queue.extend(items)
        self._audit.persist(run.audit_entries)

        for m in run.expiring:
            EXPIRY_NOTIFICATIONS.labels(type=m.type).inc()
        QUEUE_DEPTH.set(self._queue.count())
        ACTIVE_MEMBERS.set(self._members.count_active())
        logger.info("Expirations generated: processed=%d, queued=%d", run.processed, len(items))
        return {
            "processed": run.processed,
            "queued": len(items),
            "items": [i.to_row() for i in items],
        }

    # ── Queue ──

    def process_queue(
        self, now: Optional[datetime] = None, batch_size: Optional[int] = None
    ) -> dict[str, Any]:
        """Drain one batch of the FIFO queue."""
        now = now or utcnow()
        batch_size = batch_size or settings.FIFO_BATCH_SIZE
        processor = QueueProcessor(
            send_notification=self._notifier.send,
            remove_from_group=self._groups_client.remove_member,
            max_attempts=settings.FIFO_MAX_ATTEMPTS,
            base_delay_seconds=settings.RETRY_BASE_SECONDS,
            compute_next_retry=lambda attempt, base: compute_next_retry_at(
                attempt, base, now=now, jitter=settings.RETRY_JITTER
            ),
            audit_logger=AuditLogger(now),
            fallback_seconds=settings.RETRY_FALLBACK_SECONDS,
        )
        next_trigger = isoformat(now + timedelta(minutes=settings.QUEUE_TRIGGER_MINUTES))
        batch = run_queue_batch(self._queue.get_all(), processor, batch_size, now, next_trigger)

        outcome = batch.outcome
        self._queue.replace_all(batch.queue)
        self._queue.add_dead_letters(outcome.dead_items)
        self._audit.persist(outcome.audit_entries)

        QUEUE_ITEMS.labels(outcome="sent").inc(len(outcome.processed))
        QUEUE_ITEMS.labels(outcome="retry").inc(len(outcome.retry_items))
        QUEUE_ITEMS.labels(outcome="dead").inc(len(outcome.dead_items))
        QUEUE_DEPTH.set(self._queue.count())
        DEAD_LETTERS.set(self._queue.count_dead())
        logger.info(
            "Queue batch: selected=%d, sent=%d, retry=%d, dead=%d, remaining=%d",
            len(batch.selection.items), len(outcome.processed),
            len(outcome.retry_items), len(outcome.dead_items), self._queue.count(),
        )
        return {
            "selected": len(batch.selection.items),
            "processed": len(outcome.processed),
            "retry": len(outcome.retry_items),
            "dead": len(outcome.dead_items),
            "remaining": self._queue.count(),
            "failed": outcome.failed_meta,
        }

    # ── Queries ──

    def list_queue(self) -> list[dict[str, Any]]:
        return [i.to_row() for i in self._queue.get_all()]

    def list_dead_letters(self) -> list[dict[str, Any]]:
        return [i.to_row() for i in self._queue.get_dead_letters()]

    def list_schedule(self, email: Optional[str] = None) -> list[dict[str, Any]]:
        entries = self._schedule.get_by_email(email) if email else self._schedule.get_all()
        return [e.to_row() for e in entries]

    def list_audit(
        self, limit: Optional[int] = None, entry_type: Optional[str] = None, outcome: Optional[str] = None
    ) -> list[dict[str, Any]]:
        limit = limit or settings.DEFAULT_AUDIT_LIMIT
        return [e.to_row() for e in self._audit.get_recent(limit, entry_type, outcome)]

# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Expiry/retry queue processor.

Each FIFO item moves pending -> processed | retry-pending | dead. Selection,
rebuild and pre-stamping are pure; `QueueProcessor.process` is the only
step that calls the send and list-removal collaborators, one at a time.
"""

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from membership.core.logging import get_logger
from membership.models.domain import AuditLogEntry, FIFOItem, NotificationRequest
from membership.services.dates import isoformat, parse_timestamp, utcnow

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY_SECONDS = 60
FALLBACK_RETRY_SECONDS = 60
DEAD_LETTER = "DeadLetter"


def compute_next_retry_at(
    attempt: int,
    base_seconds: float = DEFAULT_BASE_DELAY_SECONDS,
    now: Optional[datetime] = None,
    jitter: float = 0.0,
) -> str:
    """ISO time of the next attempt: base * 2^(attempt-1) seconds from now, optionally jittered."""
    delay = base_seconds * (2 ** max(attempt - 1, 0))
    if jitter:
        delay *= 1 + random.uniform(-jitter, jitter)
    return isoformat((now or utcnow()) + timedelta(seconds=delay))


def is_eligible(item: Optional[FIFOItem], now: datetime) -> bool:
    """Live and due: no next attempt time, an unparseable one, or one at or before now."""
    if item is None or item.dead:
        return False
    due = parse_timestamp(item.next_attempt_at)
    return due is None or due <= now


@dataclass
class BatchSelection:
    items: list[FIFOItem] = field(default_factory=list)
    indices: list[int] = field(default_factory=list)


def select_batch(queue: Sequence[Optional[FIFOItem]], batch_size: int, now: datetime) -> BatchSelection:
    """Eligible items in queue order, at most `batch_size`, with their queue indices."""
    if not isinstance(queue, (list, tuple)):
        raise TypeError("queue must be a list")
    selection = BatchSelection()
    for i, item in enumerate(queue):
        if len(selection.items) >= batch_size:
            break
        if is_eligible(item, now):
            selection.items.append(item)
            selection.indices.append(i)
    return selection


def rebuild_queue(
    original: Sequence[Optional[FIFOItem]],
    selected_indices: Sequence[int],
    retry_items: Sequence[FIFOItem],
) -> list[FIFOItem]:
    """
    Unselected items stay where they were; a selected item is replaced by its
    retry copy (matched on id) or dropped because it finished or died.
    """
    selected = set(selected_indices)
    retries = {item.id: item for item in retry_items}
    rebuilt = []
    for i, item in enumerate(original):
        if item is None:
            continue
        if i not in selected:
            rebuilt.append(item)
        elif item.id in retries:
            rebuilt.append(retries[item.id])
    return rebuilt


def assign_next_batch_timestamps(
    queue: Sequence[FIFOItem], batch_size: int, now: datetime, next_trigger_time: str
) -> list[FIFOItem]:
    """Copy of the queue with the first `batch_size` eligible items stamped for the next run."""
    stamped = []
    assigned = 0
    for item in queue:
        if assigned < batch_size and is_eligible(item, now):
            stamped.append(item.model_copy(update={"next_attempt_at": next_trigger_time}))
            assigned += 1
        else:
            stamped.append(item.model_copy())
    return stamped


@dataclass
class ProcessResult:
    processed: list[FIFOItem] = field(default_factory=list)
    failed: list[FIFOItem] = field(default_factory=list)
    failed_meta: list[dict] = field(default_factory=list)
    audit_entries: list[AuditLogEntry] = field(default_factory=list)

    @property
    def retry_items(self) -> list[FIFOItem]:
        return [item for item in self.failed if not item.dead]

    @property
    def dead_items(self) -> list[FIFOItem]:
        return [item for item in self.failed if item.dead]


class QueueProcessor:
    """Drains FIFO items against the send and list-removal collaborators."""

    def __init__(
        self,
        send_notification: Callable[[NotificationRequest], None],
        remove_from_group: Callable[[str, str], None],
        max_attempts: Optional[int] = None,
        base_delay_seconds: float = DEFAULT_BASE_DELAY_SECONDS,
        compute_next_retry: Optional[Callable[[int, float], str]] = None,
        audit_logger=None,
        fallback_seconds: float = FALLBACK_RETRY_SECONDS,
    ) -> None:
        if not callable(send_notification):
            raise TypeError("send_notification must be callable")
        if not callable(remove_from_group):
            raise TypeError("remove_from_group must be callable")
        if compute_next_retry is not None and not callable(compute_next_retry):
            raise TypeError("compute_next_retry must be callable")
        self._send = send_notification
        self._remove = remove_from_group
        self._max_attempts = max_attempts
        self._base_delay = base_delay_seconds
        self._next_retry = compute_next_retry or compute_next_retry_at
        self._audit = audit_logger
        self._fallback = fallback_seconds

    def _effective_max(self, item: FIFOItem) -> int:
        if item.max_attempts is not None:
            return item.max_attempts
        if self._max_attempts is not None:
            return self._max_attempts
        return DEFAULT_MAX_ATTEMPTS

    def _next_attempt(self, attempts: int, now: datetime) -> str:
        try:
            return self._next_retry(attempts, self._base_delay)
        except Exception as exc:
            logger.warning("Backoff computation failed (%s); retrying in %ss", exc, self._fallback)
            return isoformat(now + timedelta(seconds=self._fallback))

    def _fail(self, item: FIFOItem, exc: Exception, now: datetime, result: ProcessResult) -> None:
        attempts = item.attempts + 1
        dead = attempts >= self._effective_max(item)
        failed = item.model_copy(
            update={
                "attempts": attempts,
                "last_attempt_at": isoformat(now),
                "last_error": str(exc),
                "dead": dead,
                "next_attempt_at": "" if dead else self._next_attempt(attempts, now),
            }
        )
        result.failed.append(failed)
        result.failed_meta.append(
            {
                "id": failed.id,
                "email": failed.email,
                "attempts": failed.attempts,
                "lastAttemptAt": failed.last_attempt_at,
                "lastError": failed.last_error,
                "nextRetryAt": failed.next_attempt_at,
                "dead": failed.dead,
            }
        )
        if dead:
            logger.warning(
                "Dead-lettered %s for %s after %d attempts: %s",
                failed.id, failed.email, attempts, exc,
                extra={"item_id": failed.id, "email": failed.email, "attempts": attempts},
            )
            if self._audit is not None:
                result.audit_entries.append(
                    self._audit.create_log_entry(
                        type=DEAD_LETTER,
                        outcome="fail",
                        note=f"Queue item {failed.id} for {failed.email} exhausted {attempts} attempts",
                        error=str(exc),
                        json_data={"error": str(exc), "item": failed.to_row()},
                    )
                )
        else:
            logger.info(
                "Attempt %d failed for %s (%s); next attempt at %s",
                attempts, failed.email, exc, failed.next_attempt_at,
            )

    def process(self, items: Sequence[FIFOItem], now: Optional[datetime] = None) -> ProcessResult:
        """
        Send, then remove from each group in reverse order. Progress is kept on
        the item, so a retry neither resends a delivered message nor repeats a
        completed removal. Any error counts as one failed attempt for the item.
        """
        if not isinstance(items, (list, tuple)):
            raise TypeError("items must be a list")
        now = now or utcnow()
        result = ProcessResult()
        for item in items:
            subject, body = item.subject, item.html_body
            groups = item.group_list
            try:
                if subject and body:
                    self._send(NotificationRequest(to=item.email, subject=subject, html_body=body))
                    subject, body = "", ""
                for i in range(len(groups) - 1, -1, -1):
                    self._remove(item.email, groups[i])
                    del groups[i]
            except Exception as exc:
                progressed = item.model_copy(
                    update={"subject": subject, "html_body": body, "groups": ",".join(groups)}
                )
                self._fail(progressed, exc, now, result)
                continue
            result.processed.append(
                item.model_copy(update={"subject": "", "html_body": "", "groups": ""})
            )
        return result


@dataclass
class QueueBatchResult:
    queue: list[FIFOItem]
    selection: BatchSelection
    outcome: ProcessResult


def run_queue_batch(
    queue: Sequence[Optional[FIFOItem]],
    processor: QueueProcessor,
    batch_size: int,
    now: datetime,
    next_trigger_time: str,
) -> QueueBatchResult:
    """Select, drain, rebuild, then pre-stamp the next batch."""
    selection = select_batch(queue, batch_size, now)
    outcome = processor.process(selection.items, now=now)
    rebuilt = rebuild_queue(queue, selection.indices, outcome.retry_items)
    stamped = assign_next_batch_timestamps(rebuilt, batch_size, now, next_trigger_time)
    return QueueBatchResult(queue=stamped, selection=selection, outcome=outcome)

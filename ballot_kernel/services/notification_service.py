"""
NotificationService -- transactional outbox for change notifications.

Responsibility:
    Records each notification a service produces as an append-only
    ``NotificationRecord`` inside the current transaction, and remembers
    which ones this unit of work produced so the caller can publish them
    after commit.

Architecture position:
    Kernel > Services -- imperative shell.  Used by WorkflowService,
    VoterRegistry and ProposalRegistry; drained by ElectionService.

Invariants enforced:
    - seq is strictly increasing; notifications of one operation are
      contiguous and ordered as recorded.
    - A rolled-back operation leaves no NotificationRecord behind, and
      ElectionService never publishes its ``recorded`` list.
"""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ballot_kernel.domain.clock import Clock, SystemClock
from ballot_kernel.domain.notifications import (
    Notification,
    NotificationKind,
    PendingNotification,
)
from ballot_kernel.logging_config import get_logger
from ballot_kernel.models.notification import NotificationRecord
from ballot_kernel.services.base import BaseService

logger = get_logger("services.notifications")


def _to_dto(record: NotificationRecord) -> Notification:
    return Notification(
        seq=record.seq,
        kind=NotificationKind(record.kind),
        payload=record.payload,
        occurred_at=record.occurred_at,
    )


class NotificationService(BaseService[NotificationRecord]):
    """Session-bound outbox writer."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._last_seq: int | None = None
        self._recorded: list[Notification] = []

    @property
    def recorded(self) -> tuple[Notification, ...]:
        """Notifications recorded through this instance, in seq order."""
        return tuple(self._recorded)

    def _next_seq(self) -> int:
        if self._last_seq is None:
            current = self.session.execute(
                select(func.max(NotificationRecord.seq))
            ).scalar_one()
            self._last_seq = current or 0
        self._last_seq += 1
        return self._last_seq

    def record(self, pending: PendingNotification) -> Notification:
        """Append a notification to the outbox (flush only)."""
        record = NotificationRecord(
            seq=self._next_seq(),
            kind=pending.kind.value,
            payload=dict(pending.payload),
            occurred_at=self._clock.now(),
        )
        self.session.add(record)
        self.session.flush()

        notification = _to_dto(record)
        self._recorded.append(notification)
        logger.debug(
            "notification_recorded",
            extra={"seq": notification.seq, "kind": notification.kind.value},
        )
        return notification

    def history(self, after_seq: int = 0) -> list[Notification]:
        """Committed notifications with seq > after_seq, oldest first."""
        rows = self.session.execute(
            select(NotificationRecord)
            .where(NotificationRecord.seq > after_seq)
            .order_by(NotificationRecord.seq)
        ).scalars()
        return [_to_dto(r) for r in rows]


# ---------------------------------------------------------------------------
# Publishers (transport boundary implementations)
# ---------------------------------------------------------------------------


class InMemoryPublisher:
    """Collects published notifications in order.  Default for tests and CLI."""

    def __init__(self):
        self._published: list[Notification] = []

    @property
    def published(self) -> list[Notification]:
        return list(self._published)

    def kinds(self) -> list[NotificationKind]:
        return [n.kind for n in self._published]

    def clear(self) -> None:
        self._published.clear()

    def publish(self, notification: Notification) -> None:
        self._published.append(notification)


class CallbackPublisher:
    """Forwards each notification to a synchronous callback."""

    def __init__(self, callback: Callable[[Notification], None]):
        self._callback = callback

    def publish(self, notification: Notification) -> None:
        self._callback(notification)

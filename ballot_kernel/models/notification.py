"""
Module: ballot_kernel.models.notification
Responsibility: Append-only outbox of change notifications.  Rows are
    written inside the producing operation's transaction and published
    only after that transaction commits.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - seq is unique and strictly increasing in commit order.
    - Rows are never updated or deleted (db/immutability.py).
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ballot_kernel.db.base import Base


class NotificationRecord(Base):
    """One committed notification."""

    __tablename__ = "notifications"

    __table_args__ = (
        UniqueConstraint("seq", name="uq_notification_seq"),
        Index("idx_notification_kind", "kind"),
    )

    seq: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    kind: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
    )

    payload: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
    )

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<NotificationRecord #{self.seq} {self.kind}>"

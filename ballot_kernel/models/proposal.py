"""
Module: ballot_kernel.models.proposal
Responsibility: ORM persistence for the ordered proposal list and its
    running vote counts.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - index is unique and dense (0..n-1), assigned in registration order.
    - index and description never change; vote_count never decreases;
      rows are never deleted (db/immutability.py).
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ballot_kernel.db.base import TrackedBase


class Proposal(TrackedBase):
    """A registered proposal."""

    __tablename__ = "proposals"

    __table_args__ = (
        UniqueConstraint("proposal_index", name="uq_proposal_index"),
        CheckConstraint("vote_count >= 0", name="ck_proposal_vote_count"),
    )

    index: Mapped[int] = mapped_column(
        "proposal_index",
        Integer,
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    vote_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    submitted_by: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Proposal #{self.index}: {self.vote_count} vote(s)>"

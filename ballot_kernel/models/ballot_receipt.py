"""
Module: ballot_kernel.models.ballot_receipt
Responsibility: Per-voter snapshot of the proposal a voter chose, taken in
    the same unit of work as the vote itself.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One receipt per voter (uq_receipt_voter).
    - Receipts are append-only: no UPDATE, no DELETE (db/immutability.py).
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ballot_kernel.db.base import Base


class BallotReceipt(Base):
    """Copy of a proposal as it stood right after a voter's vote."""

    __tablename__ = "ballot_receipts"

    __table_args__ = (
        UniqueConstraint("voter_address", name="uq_receipt_voter"),
    )

    voter_address: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    proposal_index: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    vote_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    cast_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<BallotReceipt {self.voter_address} -> #{self.proposal_index}>"

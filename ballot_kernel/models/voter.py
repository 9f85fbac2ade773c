"""
Module: ballot_kernel.models.voter
Responsibility: ORM persistence for the voter whitelist and each voter's
    voting status.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - address is unique (uq_voter_address): registration exclusivity.
    - is_registered never changes; rows are never deleted.
    - has_voted never reverts to False; voted_proposal_id is sealed once
      has_voted is True (db/immutability.py).
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ballot_kernel.db.base import TrackedBase


class Voter(TrackedBase):
    """A whitelisted participant."""

    __tablename__ = "voters"

    __table_args__ = (
        UniqueConstraint("address", name="uq_voter_address"),
    )

    address: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    is_registered: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    has_voted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # 0 until has_voted; meaningful only when has_voted is True
    voted_proposal_id: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    voted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Voter {self.address} voted={self.has_voted}>"

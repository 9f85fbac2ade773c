"""
Module: ballot_kernel.models.election
Responsibility: ORM persistence for the single election aggregate -- the
    current phase, the administrator captured at initialize, and the
    computed winner.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/phase.py only.

Invariants enforced:
    - Exactly one election row (``slot`` is unique and pinned to 1), which
      makes initialize() run-once at the database level too.
    - Phase monotonicity: the phase only moves to its immediate successor
      (WorkflowService + db/immutability.py).
    - The winner is sealed once the phase reaches VotesTallied.

Failure modes:
    - IntegrityError on a second INSERT (slot uniqueness).
    - ImmutabilityViolationError on an illegal phase write.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ballot_kernel.db.base import TrackedBase
from ballot_kernel.domain.phase import INITIAL_PHASE, Phase

ELECTION_SLOT = 1


class Election(TrackedBase):
    """
    The election aggregate.

    Contract:
        Created by WorkflowService.initialize(); mutated only through the
        documented operations; never deleted.

    Guarantees:
        - ``phase`` holds one of the six Phase values.
        - ``winning_proposal_id`` is None until compute_winner() runs.
    """

    __tablename__ = "elections"

    __table_args__ = (
        UniqueConstraint("slot", name="uq_election_slot"),
        CheckConstraint(f"slot = {ELECTION_SLOT}", name="ck_election_single_slot"),
    )

    slot: Mapped[int] = mapped_column(
        Integer,
        default=ELECTION_SLOT,
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    phase: Mapped[str] = mapped_column(
        String(40),
        default=INITIAL_PHASE.value,
        nullable=False,
    )

    administrator_id: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    winning_proposal_id: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    initialized_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    tallied_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Election {self.name}: {self.phase}>"

    @property
    def current_phase(self) -> Phase:
        return Phase(self.phase)

    @property
    def is_tallied(self) -> bool:
        return self.current_phase is Phase.VOTES_TALLIED

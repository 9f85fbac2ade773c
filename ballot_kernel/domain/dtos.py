"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable snapshots returned by every public read and write of the
    ballot kernel.  Services never hand ORM entities to callers; they
    convert at the boundary with ``from_model()``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    ``from_model()`` class methods are boundary converters invoked only
    from the service layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from ballot_kernel.domain.phase import Phase

if TYPE_CHECKING:
    from ballot_kernel.models.ballot_receipt import BallotReceipt as BallotReceiptModel
    from ballot_kernel.models.election import Election as ElectionModel
    from ballot_kernel.models.proposal import Proposal as ProposalModel
    from ballot_kernel.models.voter import Voter as VoterModel


@dataclass(frozen=True)
class ElectionInfo:
    phase: Phase
    administrator_id: str
    winning_proposal_id: int | None
    initialized_at: datetime
    tallied_at: datetime | None = None

    @classmethod
    def from_model(cls, model: ElectionModel) -> ElectionInfo:
        return cls(
            phase=Phase(model.phase),
            administrator_id=model.administrator_id,
            winning_proposal_id=model.winning_proposal_id,
            initialized_at=model.initialized_at,
            tallied_at=model.tallied_at,
        )


@dataclass(frozen=True)
class VoterInfo:
    """
    A voter record.

    Guarantees:
        - ``has_voted`` implies ``voted_proposal_id`` indexes an existing
          proposal.
        - An address never registered reads as ``{False, False, 0}``.
    """

    address: str
    is_registered: bool
    has_voted: bool
    voted_proposal_id: int

    @classmethod
    def unregistered(cls, address: str) -> VoterInfo:
        return cls(address=address, is_registered=False, has_voted=False, voted_proposal_id=0)

    @classmethod
    def from_model(cls, model: VoterModel) -> VoterInfo:
        return cls(
            address=model.address,
            is_registered=model.is_registered,
            has_voted=model.has_voted,
            voted_proposal_id=model.voted_proposal_id,
        )


@dataclass(frozen=True)
class ProposalInfo:
    index: int
    description: str
    vote_count: int

    @classmethod
    def from_model(cls, model: ProposalModel) -> ProposalInfo:
        return cls(
            index=model.index,
            description=model.description,
            vote_count=model.vote_count,
        )


@dataclass(frozen=True)
class BallotReceiptInfo:
    """Per-voter copy of the proposal as it stood right after the vote."""

    address: str
    proposal_id: int
    description: str
    vote_count: int
    cast_at: datetime

    @classmethod
    def from_model(cls, model: BallotReceiptModel) -> BallotReceiptInfo:
        return cls(
            address=model.voter_address,
            proposal_id=model.proposal_index,
            description=model.description,
            vote_count=model.vote_count,
            cast_at=model.cast_at,
        )


@dataclass(frozen=True)
class WinnerInfo:
    proposal_id: int
    description: str
    vote_count: int

    @classmethod
    def from_proposal(cls, proposal: ProposalInfo) -> WinnerInfo:
        return cls(
            proposal_id=proposal.index,
            description=proposal.description,
            vote_count=proposal.vote_count,
        )

"""
TallyService -- winner computation and the move to VotesTallied.

Responsibility:
    Runs the pure ``select_winner`` scan over the frozen vote counts once
    the voting session has ended, stores the result on the election
    aggregate, and later seals it by advancing to ``VotesTallied``.

Architecture position:
    Kernel > Services -- imperative shell around domain/tally.py.

Invariants enforced:
    - Tally determinism: counts cannot change after VotingSessionStarted,
      so recomputing during VotingSessionEnded stores the same index.
    - VotesTallied always has a readable winner (mark_tallied requires a
      computed one).
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - PrematureTallyError: compute_winner outside VotingSessionEnded.
    - NoProposalsError: compute_winner with an empty ballot.
    - InvalidPhaseTransitionError: mark_tallied outside VotingSessionEnded.
    - WinnerNotComputedError: mark_tallied before compute_winner.
    - ResultsNotReadyError: get_winner / get_results before VotesTallied.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from ballot_kernel.domain.dtos import ElectionInfo, ProposalInfo, WinnerInfo
from ballot_kernel.domain.phase import TALLY_VOTES, Phase
from ballot_kernel.domain.tally import TallyScan, select_winner
from ballot_kernel.exceptions import (
    InvalidPhaseTransitionError,
    PrematureTallyError,
    ResultsNotReadyError,
    WinnerNotComputedError,
)
from ballot_kernel.logging_config import get_logger
from ballot_kernel.models.election import Election
from ballot_kernel.services.base import BaseService
from ballot_kernel.services.proposal_registry import ProposalRegistry
from ballot_kernel.services.workflow_service import WorkflowService

logger = get_logger("services.tally")


class TallyService(BaseService[Election]):
    """Session-bound tally engine."""

    def __init__(
        self,
        session: Session,
        workflow: WorkflowService,
        proposals: ProposalRegistry,
        scan: TallyScan = TallyScan.FULL,
    ):
        super().__init__(session)
        self._workflow = workflow
        self._proposals = proposals
        self._scan = scan

    def compute_winner(self) -> WinnerInfo:
        """
        Select and store the winning proposal index.

        Does not advance the phase.
        """
        election = self._workflow.require_phase(
            Phase.VOTING_SESSION_ENDED, PrematureTallyError, "compute winner"
        )
        counts = self._proposals.vote_counts()
        winning_index = select_winner(counts, self._scan)

        if election.winning_proposal_id != winning_index:
            election.winning_proposal_id = winning_index
            self.session.flush()

        winner = WinnerInfo.from_proposal(self._proposals.get_proposal(winning_index))
        logger.info(
            "winner_computed",
            extra={
                "winning_proposal_id": winning_index,
                "vote_count": winner.vote_count,
                "proposal_count": len(counts),
                "scan": self._scan.value,
            },
        )
        return winner

    def mark_tallied(self) -> ElectionInfo:
        """Advance VotingSessionEnded -> VotesTallied once a winner is stored."""
        election = self._workflow.require_phase(
            Phase.VOTING_SESSION_ENDED, InvalidPhaseTransitionError, TALLY_VOTES
        )
        if election.winning_proposal_id is None:
            logger.warning("tally_rejected_no_winner")
            raise WinnerNotComputedError()
        return self._workflow.advance(TALLY_VOTES)

    def _require_tallied(self, operation: str) -> Election:
        return self._workflow.require_phase(
            Phase.VOTES_TALLIED, ResultsNotReadyError, operation, for_update=False
        )

    def get_winner(self) -> WinnerInfo:
        election = self._require_tallied("get winner")
        return WinnerInfo.from_proposal(
            self._proposals.get_proposal(election.winning_proposal_id)
        )

    def get_results(self) -> tuple[ProposalInfo, ...]:
        """Final standings ordered by proposal index."""
        self._require_tallied("get results")
        return self._proposals.list_proposals()

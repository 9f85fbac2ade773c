"""
ProposalRegistry -- the ordered proposal list and the vote that targets it.

Responsibility:
    Appends proposals during ``ProposalsRegistrationStarted`` and records
    each voter's single vote during ``VotingSessionStarted``.  A vote
    touches three rows in one flush: the proposal's running count, the
    voter's vote fields, and a BallotReceipt snapshot.

Architecture position:
    Kernel > Services -- imperative shell.  Depends on WorkflowService for
    the phase gate, VoterRegistry for eligibility, NotificationService for
    announcements.

Invariants enforced:
    - Dense indices: a new proposal takes ``index = count(proposals)``,
      so indices run 0..n-1 in registration order.
    - One vote per participant: ``has_voted`` is checked before any write
      and never reverts (backed by db/immutability.py).
    - Count consistency: every vote increments exactly one proposal's
      ``vote_count`` by one, in the same flush as the voter update.
    - Flush-only: never commits or rolls back the session.

Failure modes (in check order):
    submit:    PhaseClosedError, NotRegisteredError, InvalidDescriptionError,
               EmptyDescriptionError, DescriptionTooLongError
    cast_vote: VotingClosedError, NotRegisteredError, AlreadyVotedError,
               InvalidProposalError
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ballot_kernel.domain import notifications
from ballot_kernel.domain.clock import Clock, SystemClock
from ballot_kernel.domain.dtos import BallotReceiptInfo, ProposalInfo
from ballot_kernel.domain.phase import Phase
from ballot_kernel.exceptions import (
    AlreadyVotedError,
    DescriptionTooLongError,
    EmptyDescriptionError,
    InvalidDescriptionError,
    InvalidProposalError,
    PhaseClosedError,
    VotingClosedError,
)
from ballot_kernel.logging_config import get_logger
from ballot_kernel.models.ballot_receipt import BallotReceipt
from ballot_kernel.models.proposal import Proposal
from ballot_kernel.services.base import BaseService
from ballot_kernel.services.notification_service import NotificationService
from ballot_kernel.services.voter_registry import VoterRegistry
from ballot_kernel.services.workflow_service import WorkflowService

logger = get_logger("services.proposals")


class ProposalRegistry(BaseService[Proposal]):
    """
    Session-bound proposal list.

    Contract:
        ``max_description_length`` of None means unbounded.
    """

    def __init__(
        self,
        session: Session,
        workflow: WorkflowService,
        voters: VoterRegistry,
        notifications_service: NotificationService,
        clock: Clock | None = None,
        max_description_length: int | None = None,
    ):
        super().__init__(session)
        self._workflow = workflow
        self._voters = voters
        self._notifications = notifications_service
        self._clock = clock or SystemClock()
        self._max_description_length = max_description_length

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def count(self) -> int:
        return self.session.execute(select(func.count(Proposal.id))).scalar_one()

    def _get_proposal_orm(self, index: int, *, for_update: bool = False) -> Proposal | None:
        stmt = select(Proposal).where(Proposal.index == index)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def get_proposal(self, index: int) -> ProposalInfo:
        """
        Raises:
            InvalidProposalError: If no proposal has this index.
        """
        proposal = self._get_proposal_orm(index)
        if proposal is None:
            raise InvalidProposalError(index, self.count())
        return ProposalInfo.from_model(proposal)

    def list_proposals(self) -> tuple[ProposalInfo, ...]:
        rows = self.session.execute(
            select(Proposal).order_by(Proposal.index)
        ).scalars()
        return tuple(ProposalInfo.from_model(p) for p in rows)

    def vote_counts(self) -> list[int]:
        """Vote counts ordered by proposal index."""
        return list(
            self.session.execute(
                select(Proposal.vote_count).order_by(Proposal.index)
            ).scalars()
        )

    def get_receipt(self, address: str) -> BallotReceiptInfo | None:
        """The snapshot stored when ``address`` voted, or None."""
        receipt = self.session.execute(
            select(BallotReceipt).where(
                BallotReceipt.voter_address == (address or "").strip()
            )
        ).scalar_one_or_none()
        if receipt is None:
            return None
        return BallotReceiptInfo.from_model(receipt)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def submit(self, caller: str, description: str) -> ProposalInfo:
        """
        Append a proposal at the next dense index.

        Duplicate descriptions are accepted; indices, not text, identify
        proposals.

        Postconditions:
            - A Proposal{description, vote_count=0} exists at index n.
            - A proposal_registered(n) notification is recorded.
        """
        self._workflow.require_phase(
            Phase.PROPOSALS_REGISTRATION_STARTED, PhaseClosedError, "submit proposal"
        )
        voter = self._voters.require_eligible(caller)

        if not isinstance(description, str):
            raise InvalidDescriptionError(voter.address, description)
        text = description
        if not text.strip():
            raise EmptyDescriptionError(voter.address)
        if (
            self._max_description_length is not None
            and len(text) > self._max_description_length
        ):
            raise DescriptionTooLongError(len(text), self._max_description_length)

        index = self.count()
        proposal = Proposal(
            index=index,
            description=text,
            vote_count=0,
            submitted_by=voter.address,
            submitted_at=self._clock.now(),
        )
        self.session.add(proposal)
        self.session.flush()

        self._notifications.record(notifications.proposal_registered(index))
        logger.info(
            "proposal_registered",
            extra={"proposal_index": index, "submitted_by": voter.address},
        )
        return ProposalInfo.from_model(proposal)

    def cast_vote(self, participant: str, proposal_id: int) -> BallotReceiptInfo:
        """
        Record a participant's single vote.

        Postconditions:
            - proposals[proposal_id].vote_count increased by exactly 1.
            - voter.has_voted is True and voter.voted_proposal_id == proposal_id.
            - A BallotReceipt snapshot (taken after the increment) exists.
            - A vote_cast(address, proposal_id) notification is recorded.
        """
        self._workflow.require_phase(
            Phase.VOTING_SESSION_STARTED, VotingClosedError, "cast vote"
        )
        voter = self._voters.require_eligible(participant, for_update=True)

        if voter.has_voted:
            logger.warning(
                "vote_rejected_already_voted",
                extra={"address": voter.address, "voted_proposal_id": voter.voted_proposal_id},
            )
            raise AlreadyVotedError(voter.address, voter.voted_proposal_id)

        proposal = None
        if isinstance(proposal_id, int) and not isinstance(proposal_id, bool) and proposal_id >= 0:
            proposal = self._get_proposal_orm(proposal_id, for_update=True)
        if proposal is None:
            count = self.count()
            logger.warning(
                "vote_rejected_invalid_proposal",
                extra={"address": voter.address, "proposal_id": proposal_id, "proposal_count": count},
            )
            raise InvalidProposalError(proposal_id, count)

        now = self._clock.now()
        proposal.vote_count = proposal.vote_count + 1
        voter.has_voted = True
        voter.voted_proposal_id = proposal.index
        voter.voted_at = now

        receipt = BallotReceipt(
            voter_address=voter.address,
            proposal_index=proposal.index,
            description=proposal.description,
            vote_count=proposal.vote_count,
            cast_at=now,
        )
        self.session.add(receipt)
        self.session.flush()

        self._notifications.record(notifications.vote_cast(voter.address, proposal.index))
        logger.info(
            "vote_cast",
            extra={
                "address": voter.address,
                "proposal_id": proposal.index,
                "vote_count": proposal.vote_count,
            },
        )
        return BallotReceiptInfo.from_model(receipt)

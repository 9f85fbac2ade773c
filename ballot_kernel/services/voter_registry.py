"""
VoterRegistry -- the whitelist of eligible participants.

Responsibility:
    Registers voters during ``RegisteringVoters`` and answers eligibility
    questions for ProposalRegistry and TallyService.

Architecture position:
    Kernel > Services -- imperative shell.  Depends on WorkflowService for
    the phase gate and NotificationService for announcements.

Invariants enforced:
    - Registration exclusivity: one Voter row per address
      (uq_voter_address), checked before insert.
    - Registration is permanent: nothing here removes a voter or touches
      ``is_registered`` after creation.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - PhaseClosedError: register outside RegisteringVoters.
    - AlreadyRegisteredError: duplicate address.
    - InvalidParticipantError: blank address.
    - NotRegisteredError: ``require_eligible`` on an unknown address.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ballot_kernel.domain import notifications
from ballot_kernel.domain.clock import Clock, SystemClock
from ballot_kernel.domain.dtos import VoterInfo
from ballot_kernel.domain.phase import Phase
from ballot_kernel.exceptions import (
    AlreadyRegisteredError,
    InvalidParticipantError,
    NotRegisteredError,
    PhaseClosedError,
)
from ballot_kernel.logging_config import get_logger
from ballot_kernel.models.voter import Voter
from ballot_kernel.services.base import BaseService
from ballot_kernel.services.notification_service import NotificationService
from ballot_kernel.services.workflow_service import WorkflowService

logger = get_logger("services.voters")


def normalize_participant(participant: str) -> str:
    """Strip surrounding whitespace; reject empty identifiers."""
    normalized = (participant or "").strip()
    if not normalized:
        raise InvalidParticipantError(participant)
    return normalized


class VoterRegistry(BaseService[Voter]):
    """Session-bound voter whitelist."""

    def __init__(
        self,
        session: Session,
        workflow: WorkflowService,
        notifications_service: NotificationService,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._workflow = workflow
        self._notifications = notifications_service
        self._clock = clock or SystemClock()

    def _get_voter_orm(self, address: str, *, for_update: bool = False) -> Voter | None:
        stmt = select(Voter).where(Voter.address == address)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def register(self, participant: str) -> VoterInfo:
        """
        Add a participant to the whitelist.

        Postconditions:
            - A Voter ``{is_registered=True, has_voted=False,
              voted_proposal_id=0}`` exists for the address.
            - A voter_registered(address) notification is recorded.

        Raises:
            PhaseClosedError: If the phase is not RegisteringVoters.
            AlreadyRegisteredError: If the address is already registered.
        """
        self._workflow.require_phase(
            Phase.REGISTERING_VOTERS, PhaseClosedError, "register voter"
        )
        address = normalize_participant(participant)

        if self._get_voter_orm(address) is not None:
            logger.warning("voter_already_registered", extra={"address": address})
            raise AlreadyRegisteredError(address)

        voter = Voter(
            address=address,
            is_registered=True,
            has_voted=False,
            voted_proposal_id=0,
            registered_at=self._clock.now(),
        )
        self.session.add(voter)
        self.session.flush()

        self._notifications.record(notifications.voter_registered(address))
        logger.info("voter_registered", extra={"address": address})
        return VoterInfo.from_model(voter)

    def is_eligible(self, participant: str) -> bool:
        """Pure read, valid in any phase."""
        address = (participant or "").strip()
        if not address:
            return False
        voter = self._get_voter_orm(address)
        return voter is not None and voter.is_registered

    def require_eligible(self, participant: str, *, for_update: bool = False) -> Voter:
        """
        Return the caller's Voter row or reject the caller.

        Raises:
            NotRegisteredError: If the participant is not whitelisted.
        """
        address = (participant or "").strip()
        voter = self._get_voter_orm(address, for_update=for_update) if address else None
        if voter is None or not voter.is_registered:
            logger.warning("voter_not_registered", extra={"address": participant})
            raise NotRegisteredError(participant)
        return voter

    def get_voter(self, address: str) -> VoterInfo:
        """Voter record for ``address``; unknown addresses read as unregistered."""
        address = (address or "").strip()
        voter = self._get_voter_orm(address) if address else None
        if voter is None:
            return VoterInfo.unregistered(address)
        return VoterInfo.from_model(voter)

    def count(self) -> int:
        return self.session.execute(select(func.count(Voter.id))).scalar_one()

"""
WorkflowService -- the election phase controller.

Responsibility:
    Owns the election aggregate's phase.  Creates the aggregate
    (initialize), advances it one legal step at a time, and provides the
    phase gate every other service calls before mutating anything.

Architecture position:
    Kernel > Services -- imperative shell.  Leaf dependency of
    VoterRegistry, ProposalRegistry and TallyService.

Invariants enforced:
    - Phase monotonicity: ``advance()`` only moves the phase from the exact
      predecessor to its successor (backed by db/immutability.py).
    - Run-once initialize: a second initialize raises
      AlreadyInitializedError (and the single-slot constraint backs it).
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - ElectionNotInitializedError: any phase read or gate before initialize.
    - AlreadyInitializedError: initialize on an existing election.
    - InvalidPhaseTransitionError: transition from the wrong phase.
    - Any PhaseError subclass passed to ``require_phase``.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ballot_kernel.domain import notifications
from ballot_kernel.domain.clock import Clock, SystemClock
from ballot_kernel.domain.dtos import ElectionInfo
from ballot_kernel.domain.phase import INITIAL_PHASE, Phase, transition_for
from ballot_kernel.exceptions import (
    AlreadyInitializedError,
    ElectionNotInitializedError,
    InvalidPhaseTransitionError,
    PhaseError,
)
from ballot_kernel.logging_config import get_logger
from ballot_kernel.models.election import Election
from ballot_kernel.services.base import BaseService
from ballot_kernel.services.notification_service import NotificationService

logger = get_logger("services.workflow")


class WorkflowService(BaseService[Election]):
    """
    Phase controller for the single election.

    Contract:
        Every mutating path in the kernel calls ``require_phase()`` (or
        ``advance()``) first, so no state changes outside the phase that
        permits it.

    Non-goals:
        - Does NOT check the administrator capability; ElectionService
          gates privileged calls before reaching this service.
    """

    def __init__(
        self,
        session: Session,
        notifications_service: NotificationService,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._notifications = notifications_service
        self._clock = clock or SystemClock()

    def _find_election(self, *, for_update: bool = False) -> Election | None:
        stmt = select(Election)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def get_election_orm(self, operation: str, *, for_update: bool = False) -> Election:
        """Load the election aggregate (internal use only)."""
        election = self._find_election(for_update=for_update)
        if election is None:
            raise ElectionNotInitializedError(operation)
        return election

    def is_initialized(self) -> bool:
        return self._find_election() is not None

    def initialize(self, name: str, administrator_id: str) -> ElectionInfo:
        """
        Create the election in ``RegisteringVoters``.

        Raises:
            AlreadyInitializedError: If an election already exists.
        """
        existing = self._find_election(for_update=True)
        if existing is not None:
            raise AlreadyInitializedError(existing.phase)

        election = Election(
            name=name,
            phase=INITIAL_PHASE.value,
            administrator_id=administrator_id,
            initialized_at=self._clock.now(),
        )
        self.session.add(election)
        self.session.flush()

        logger.info(
            "election_initialized",
            extra={"election_name": name, "phase": INITIAL_PHASE.value},
        )
        return ElectionInfo.from_model(election)

    def get_phase(self) -> Phase:
        return self.get_election_orm("get phase").current_phase

    def get_election(self) -> ElectionInfo:
        return ElectionInfo.from_model(self.get_election_orm("get election"))

    def require_phase(
        self,
        expected: Phase,
        error_cls: type[PhaseError],
        operation: str,
        *,
        for_update: bool = True,
    ) -> Election:
        """
        Gate an operation on the current phase.

        Returns:
            The (row-locked) election aggregate.

        Raises:
            ElectionNotInitializedError: If there is no election.
            error_cls: If the current phase is not ``expected``.
        """
        election = self.get_election_orm(operation, for_update=for_update)
        current = election.current_phase
        if current is not expected:
            logger.warning(
                "phase_gate_rejected",
                extra={
                    "gated_operation": operation,
                    "current_phase": current.value,
                    "required_phase": expected.value,
                },
            )
            raise error_cls(operation, current.value, expected.value)
        return election

    def advance(self, action: str) -> ElectionInfo:
        """
        Apply one forward transition and announce it.

        Preconditions:
            - ``action`` is one of the five workflow actions.

        Postconditions:
            - phase is the successor of the transition's ``from_phase``.
            - a phase_changed(previous, new) notification is recorded.

        Raises:
            InvalidPhaseTransitionError: If the current phase is not the
                transition's exact predecessor.
        """
        transition = transition_for(action)
        election = self.require_phase(
            transition.from_phase, InvalidPhaseTransitionError, action
        )

        previous = election.current_phase
        election.phase = transition.to_phase.value
        if transition.to_phase is Phase.VOTES_TALLIED:
            election.tallied_at = self._clock.now()
        self.session.flush()

        self._notifications.record(
            notifications.phase_changed(previous, transition.to_phase)
        )
        logger.info(
            "phase_advanced",
            extra={
                "action": action,
                "previous_phase": previous.value,
                "new_phase": transition.to_phase.value,
            },
        )
        return ElectionInfo.from_model(election)

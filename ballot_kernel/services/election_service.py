"""
ElectionService -- the public facade of the ballot kernel.

Responsibility:
    Exposes every ballot operation as one atomic unit of work: open a
    session, check the administrator capability where required, apply the
    operation through the session-bound services, commit (or roll back on
    any error), and only then publish the notifications the operation
    recorded.

Architecture position:
    Kernel > Services -- imperative shell, outermost kernel layer.
    Composes WorkflowService, VoterRegistry, ProposalRegistry,
    TallyService and NotificationService per unit of work.

Transaction model:

    caller --> ElectionService.cast_vote()
                  |
                  v
            [_unit_of_work]  LogContext(correlation_id, actor_id, operation)
                  |
                  +--> require_administrator()   (privileged operations)
                  +--> service call (flush only)
                  |
             ok?  +--> commit --> publish recorded notifications in seq order
             err? +--> rollback --> log operation_rejected / operation_failed
                                --> re-raise

Invariants enforced:
    - Atomicity: a rejected operation leaves every table as it was and
      publishes nothing.
    - Notification order matches commit order (seq is assigned inside the
      transaction; publish happens after commit).
    - Read operations never commit.

Failure modes:
    - UnauthorizedError: privileged operation by a non-administrator.
    - Every BallotKernelError raised by the underlying services, unchanged.
    - Publisher exceptions are logged and re-raised after commit; the
      committed state is kept.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from uuid import uuid4

from sqlalchemy.orm import Session

from ballot_kernel.domain.authority import AdministratorAuthority, require_administrator
from ballot_kernel.domain.clock import Clock, SystemClock
from ballot_kernel.domain.dtos import (
    BallotReceiptInfo,
    ElectionInfo,
    ProposalInfo,
    VoterInfo,
    WinnerInfo,
)
from ballot_kernel.domain.notifications import Notification, NotificationPublisher
from ballot_kernel.domain.phase import (
    END_PROPOSAL_REGISTRATION,
    END_VOTING_SESSION,
    START_PROPOSAL_REGISTRATION,
    START_VOTING_SESSION,
    Phase,
)
from ballot_kernel.domain.tally import TallyScan
from ballot_kernel.exceptions import BallotKernelError
from ballot_kernel.logging_config import LogContext, error_fields, get_logger
from ballot_kernel.services.notification_service import (
    InMemoryPublisher,
    NotificationService,
)
from ballot_kernel.services.proposal_registry import ProposalRegistry
from ballot_kernel.services.tally_service import TallyService
from ballot_kernel.services.voter_registry import VoterRegistry
from ballot_kernel.services.workflow_service import WorkflowService

logger = get_logger("services.election")


@dataclass
class _UnitOfWork:
    """Session-bound services for one operation."""

    session: Session
    notifications: NotificationService
    workflow: WorkflowService
    voters: VoterRegistry
    proposals: ProposalRegistry
    tally: TallyService


class ElectionService:
    """
    Atomic, permission-checked entry point for every ballot operation.

    Contract:
        Each public method runs in its own transaction.  Callers pass the
        acting identity explicitly; the kernel never authenticates it, it
        only asks the injected AdministratorAuthority.

    Non-goals:
        - Does NOT serialize concurrent callers beyond what the database
          row locks provide.
        - Does NOT retry failed operations or failed publishes.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        authority: AdministratorAuthority,
        publisher: NotificationPublisher | None = None,
        clock: Clock | None = None,
        tally_scan: TallyScan = TallyScan.FULL,
        max_description_length: int | None = None,
        election_name: str = "election",
    ):
        self._session_factory = session_factory
        self._authority = authority
        self._publisher = publisher if publisher is not None else InMemoryPublisher()
        self._clock = clock or SystemClock()
        self._tally_scan = TallyScan(tally_scan)
        self._max_description_length = max_description_length
        self._election_name = election_name

    @property
    def publisher(self) -> NotificationPublisher:
        return self._publisher

    @property
    def tally_scan(self) -> TallyScan:
        return self._tally_scan

    # -------------------------------------------------------------------------
    # Unit of work
    # -------------------------------------------------------------------------

    def _build(self, session: Session) -> _UnitOfWork:
        notifications = NotificationService(session, self._clock)
        workflow = WorkflowService(session, notifications, self._clock)
        voters = VoterRegistry(session, workflow, notifications, self._clock)
        proposals = ProposalRegistry(
            session,
            workflow,
            voters,
            notifications,
            self._clock,
            max_description_length=self._max_description_length,
        )
        tally = TallyService(session, workflow, proposals, scan=self._tally_scan)
        return _UnitOfWork(
            session=session,
            notifications=notifications,
            workflow=workflow,
            voters=voters,
            proposals=proposals,
            tally=tally,
        )

    @contextmanager
    def _unit_of_work(
        self,
        operation: str,
        actor_id: str | None = None,
        *,
        read_only: bool = False,
    ) -> Iterator[_UnitOfWork]:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=actor_id,
            operation=operation,
            election_id=self._election_name,
        ):
            session = self._session_factory()
            uow = self._build(session)
            try:
                yield uow
                if read_only:
                    session.rollback()
                else:
                    session.commit()
            except BallotKernelError as exc:
                session.rollback()
                logger.warning("operation_rejected", extra=error_fields(exc))
                raise
            except Exception:
                session.rollback()
                logger.exception("operation_failed")
                raise
            finally:
                session.close()

            if not read_only:
                recorded = uow.notifications.recorded
                logger.info(
                    "operation_committed",
                    extra={"notification_count": len(recorded)},
                )
                self._publish(recorded)

    def _publish(self, notifications: Sequence[Notification]) -> None:
        for notification in notifications:
            try:
                self._publisher.publish(notification)
            except Exception:
                logger.exception(
                    "notification_publish_failed",
                    extra={"seq": notification.seq, "kind": notification.kind.value},
                )
                raise

    def _require_administrator(self, actor_id: str, operation: str) -> None:
        require_administrator(self._authority, actor_id, operation)

    # -------------------------------------------------------------------------
    # Workflow
    # -------------------------------------------------------------------------

    def initialize(self, actor_id: str) -> ElectionInfo:
        """Create the election in RegisteringVoters.  Run-once."""
        with self._unit_of_work("initialize", actor_id) as uow:
            self._require_administrator(actor_id, "initialize")
            return uow.workflow.initialize(self._election_name, actor_id.strip())

    def _advance(self, actor_id: str, action: str) -> ElectionInfo:
        with self._unit_of_work(action, actor_id) as uow:
            self._require_administrator(actor_id, action)
            return uow.workflow.advance(action)

    def start_proposal_registration(self, actor_id: str) -> ElectionInfo:
        return self._advance(actor_id, START_PROPOSAL_REGISTRATION)

    def end_proposal_registration(self, actor_id: str) -> ElectionInfo:
        return self._advance(actor_id, END_PROPOSAL_REGISTRATION)

    def start_voting_session(self, actor_id: str) -> ElectionInfo:
        return self._advance(actor_id, START_VOTING_SESSION)

    def end_voting_session(self, actor_id: str) -> ElectionInfo:
        return self._advance(actor_id, END_VOTING_SESSION)

    def get_phase(self) -> Phase:
        with self._unit_of_work("get_phase", read_only=True) as uow:
            return uow.workflow.get_phase()

    def get_election(self) -> ElectionInfo:
        with self._unit_of_work("get_election", read_only=True) as uow:
            return uow.workflow.get_election()

    # -------------------------------------------------------------------------
    # Voters
    # -------------------------------------------------------------------------

    def register_voter(self, actor_id: str, participant: str) -> VoterInfo:
        with self._unit_of_work("register_voter", actor_id) as uow:
            self._require_administrator(actor_id, "register voter")
            return uow.voters.register(participant)

    def is_eligible(self, participant: str) -> bool:
        with self._unit_of_work("is_eligible", read_only=True) as uow:
            return uow.voters.is_eligible(participant)

    def get_voter(self, actor_id: str, address: str) -> VoterInfo:
        """Voter record lookup, open to registered voters only."""
        with self._unit_of_work("get_voter", actor_id, read_only=True) as uow:
            uow.voters.require_eligible(actor_id)
            return uow.voters.get_voter(address)

    # -------------------------------------------------------------------------
    # Proposals and votes
    # -------------------------------------------------------------------------

    def submit_proposal(self, actor_id: str, description: str) -> ProposalInfo:
        with self._unit_of_work("submit_proposal", actor_id) as uow:
            return uow.proposals.submit(actor_id, description)

    def cast_vote(self, actor_id: str, proposal_id: int) -> BallotReceiptInfo:
        with self._unit_of_work("cast_vote", actor_id) as uow:
            return uow.proposals.cast_vote(actor_id, proposal_id)

    def get_proposal(self, actor_id: str, index: int) -> ProposalInfo:
        with self._unit_of_work("get_proposal", actor_id, read_only=True) as uow:
            uow.voters.require_eligible(actor_id)
            return uow.proposals.get_proposal(index)

    def list_proposals(self, actor_id: str) -> tuple[ProposalInfo, ...]:
        with self._unit_of_work("list_proposals", actor_id, read_only=True) as uow:
            uow.voters.require_eligible(actor_id)
            return uow.proposals.list_proposals()

    def get_receipt(self, actor_id: str, address: str) -> BallotReceiptInfo | None:
        with self._unit_of_work("get_receipt", actor_id, read_only=True) as uow:
            uow.voters.require_eligible(actor_id)
            return uow.proposals.get_receipt(address)

    # -------------------------------------------------------------------------
    # Tally
    # -------------------------------------------------------------------------

    def compute_winner(self, actor_id: str) -> WinnerInfo:
        with self._unit_of_work("compute_winner", actor_id) as uow:
            self._require_administrator(actor_id, "compute winner")
            return uow.tally.compute_winner()

    def mark_tallied(self, actor_id: str) -> ElectionInfo:
        with self._unit_of_work("mark_tallied", actor_id) as uow:
            self._require_administrator(actor_id, "mark tallied")
            return uow.tally.mark_tallied()

    tally = mark_tallied

    def get_winner(self) -> WinnerInfo:
        with self._unit_of_work("get_winner", read_only=True) as uow:
            return uow.tally.get_winner()

    def get_results(self) -> tuple[ProposalInfo, ...]:
        with self._unit_of_work("get_results", read_only=True) as uow:
            return uow.tally.get_results()

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    def notification_history(self, after_seq: int = 0) -> list[Notification]:
        """Committed notifications after ``after_seq``, for replay."""
        with self._unit_of_work("notification_history", read_only=True) as uow:
            return uow.notifications.history(after_seq)

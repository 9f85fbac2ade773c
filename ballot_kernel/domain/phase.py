"""
Phase -- the election workflow as pure value objects.

Responsibility:
    Defines the six ordered election phases and the five legal forward
    transitions between them.  Every gate in the services layer is
    expressed in terms of these types.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  No imports from
    ``db/``, ``models/``, ``services/`` or outer layers.

Invariants enforced:
    - Phases are totally ordered; ``ordinal`` is strictly increasing along
      the lifecycle.
    - Each transition moves exactly one step forward.  There is no
      transition out of ``VOTES_TALLIED`` and none that skips or regresses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Phase(str, Enum):
    """Lifecycle phase of the election.

    Contract: Transitions are
    RegisteringVoters -> ProposalsRegistrationStarted ->
    ProposalsRegistrationEnded -> VotingSessionStarted ->
    VotingSessionEnded -> VotesTallied.
    Once a phase is left it is never re-entered.
    """

    REGISTERING_VOTERS = "RegisteringVoters"
    PROPOSALS_REGISTRATION_STARTED = "ProposalsRegistrationStarted"
    PROPOSALS_REGISTRATION_ENDED = "ProposalsRegistrationEnded"
    VOTING_SESSION_STARTED = "VotingSessionStarted"
    VOTING_SESSION_ENDED = "VotingSessionEnded"
    VOTES_TALLIED = "VotesTallied"

    @property
    def ordinal(self) -> int:
        """Zero-based position in the lifecycle."""
        return _ORDER.index(self)

    def successor(self) -> Phase | None:
        """The immediate next phase, or None for the terminal phase."""
        idx = self.ordinal
        if idx + 1 < len(_ORDER):
            return _ORDER[idx + 1]
        return None

    @property
    def is_terminal(self) -> bool:
        return self is Phase.VOTES_TALLIED


_ORDER: tuple[Phase, ...] = tuple(Phase)

INITIAL_PHASE = Phase.REGISTERING_VOTERS


@dataclass(frozen=True)
class PhaseTransition:
    """A legal forward step in the election workflow.

    Contract: frozen; ``to_phase`` is always ``from_phase.successor()``.
    """

    action: str
    from_phase: Phase
    to_phase: Phase

    def __post_init__(self) -> None:
        if self.from_phase.successor() is not self.to_phase:
            raise ValueError(
                f"Transition {self.action!r} must move {self.from_phase.value} "
                f"to its successor, not {self.to_phase.value}"
            )


START_PROPOSAL_REGISTRATION = "start_proposal_registration"
END_PROPOSAL_REGISTRATION = "end_proposal_registration"
START_VOTING_SESSION = "start_voting_session"
END_VOTING_SESSION = "end_voting_session"
TALLY_VOTES = "tally_votes"

PHASE_TRANSITIONS: tuple[PhaseTransition, ...] = (
    PhaseTransition(
        START_PROPOSAL_REGISTRATION,
        Phase.REGISTERING_VOTERS,
        Phase.PROPOSALS_REGISTRATION_STARTED,
    ),
    PhaseTransition(
        END_PROPOSAL_REGISTRATION,
        Phase.PROPOSALS_REGISTRATION_STARTED,
        Phase.PROPOSALS_REGISTRATION_ENDED,
    ),
    PhaseTransition(
        START_VOTING_SESSION,
        Phase.PROPOSALS_REGISTRATION_ENDED,
        Phase.VOTING_SESSION_STARTED,
    ),
    PhaseTransition(
        END_VOTING_SESSION,
        Phase.VOTING_SESSION_STARTED,
        Phase.VOTING_SESSION_ENDED,
    ),
    PhaseTransition(
        TALLY_VOTES,
        Phase.VOTING_SESSION_ENDED,
        Phase.VOTES_TALLIED,
    ),
)

_BY_ACTION: dict[str, PhaseTransition] = {t.action: t for t in PHASE_TRANSITIONS}


def transition_for(action: str) -> PhaseTransition:
    """Look up a transition by action name.

    Raises:
        KeyError: If ``action`` is not one of the five workflow actions.
    """
    return _BY_ACTION[action]


def is_forward_step(old: Phase, new: Phase) -> bool:
    """True iff ``new`` is the immediate successor of ``old``."""
    return old.successor() is new

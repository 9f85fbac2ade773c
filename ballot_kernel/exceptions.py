"""
Typed Exception Hierarchy for the Ballot Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejected ballot operation is a precondition failure: the caller asked
for something the current phase, registry, or authority does not allow.
Callers (CLIs, APIs, test harnesses) must be able to tell these apart
without parsing messages:

    try:
        election.cast_vote("0xB", 3)
    except AlreadyVotedError as e:
        show(f"{e.participant} already voted for #{e.voted_proposal_id}")
    except VotingClosedError as e:
        show(f"voting is not open (phase {e.current_phase})")

Every exception has:
  1. a TYPED class (catch by type, not message)
  2. a CODE class attribute (machine-readable, API-safe)
  3. structured DATA attributes (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BallotKernelError (base)
    |
    +-- AuthorizationError
    |   +-- UnauthorizedError
    |
    +-- ElectionError
    |   +-- ElectionNotInitializedError
    |   +-- AlreadyInitializedError
    |
    +-- PhaseError
    |   +-- InvalidPhaseTransitionError
    |   +-- PhaseClosedError
    |   |   +-- VotingClosedError
    |   +-- PrematureTallyError
    |   +-- ResultsNotReadyError
    |
    +-- RegistrationError
    |   +-- AlreadyRegisteredError
    |   +-- NotRegisteredError
    |   +-- InvalidParticipantError
    |
    +-- ProposalError
    |   +-- InvalidProposalError
    |   +-- EmptyDescriptionError
    |   +-- DescriptionTooLongError
    |
    +-- VoteError
    |   +-- AlreadyVotedError
    |
    +-- TallyError
    |   +-- NoProposalsError
    |   +-- WinnerNotComputedError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                        | When Raised
--------------|-----------------------------|-------------------------------------------
Authorization | UNAUTHORIZED                | Caller is not the administrator
--------------|-----------------------------|-------------------------------------------
Election      | ELECTION_NOT_INITIALIZED    | Operation before initialize()
              | ALREADY_INITIALIZED         | Second initialize() call
--------------|-----------------------------|-------------------------------------------
Phase         | INVALID_PHASE_TRANSITION    | Transition from the wrong phase
              | PHASE_CLOSED                | Registration/submission outside its phase
              | VOTING_CLOSED               | Vote outside VotingSessionStarted
              | PREMATURE_TALLY             | compute_winner before voting ended
              | RESULTS_NOT_READY           | get_winner before VotesTallied
--------------|-----------------------------|-------------------------------------------
Registration  | ALREADY_REGISTERED          | Duplicate voter registration
              | NOT_REGISTERED              | Caller is not an eligible voter
              | INVALID_PARTICIPANT         | Empty participant identifier
--------------|-----------------------------|-------------------------------------------
Proposal      | INVALID_PROPOSAL            | Vote references an out-of-range index
              | EMPTY_DESCRIPTION           | Blank proposal text
              | DESCRIPTION_TOO_LONG        | Proposal text over the configured limit
--------------|-----------------------------|-------------------------------------------
Vote          | ALREADY_VOTED               | Second vote by the same participant
--------------|-----------------------------|-------------------------------------------
Tally         | NO_PROPOSALS                | Tally over an empty proposal list
              | WINNER_NOT_COMPUTED         | mark_tallied before compute_winner
--------------|-----------------------------|-------------------------------------------
Immutability  | IMMUTABILITY_VIOLATION      | ORM-level write to a sealed record

===============================================================================
PROPAGATION
===============================================================================

Errors are raised synchronously to the caller of the failing operation.
The kernel never retries and never swallows; the unit of work in
ElectionService rolls the transaction back so a rejected operation leaves
every table exactly as it was.
"""


class BallotKernelError(Exception):
    """
    Base exception for all ballot kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BALLOT_KERNEL_ERROR"


# Authorization


class AuthorizationError(BallotKernelError):
    """Base exception for capability failures."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedError(AuthorizationError):
    """Caller lacks the administrator capability for a privileged operation."""

    code: str = "UNAUTHORIZED"

    def __init__(self, actor_id: str, operation: str):
        self.actor_id = actor_id
        self.operation = operation
        super().__init__(f"Actor {actor_id!r} is not authorized to {operation}")


# Election lifecycle


class ElectionError(BallotKernelError):
    """Base exception for election aggregate errors."""

    code: str = "ELECTION_ERROR"


class ElectionNotInitializedError(ElectionError):
    """An operation was attempted before the election was initialized."""

    code: str = "ELECTION_NOT_INITIALIZED"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Cannot {operation}: election has not been initialized")


class AlreadyInitializedError(ElectionError):
    """initialize() was called on an election that already exists."""

    code: str = "ALREADY_INITIALIZED"

    def __init__(self, current_phase: str):
        self.current_phase = current_phase
        super().__init__(
            f"Election is already initialized (current phase: {current_phase})"
        )


# Phase gating


class PhaseError(BallotKernelError):
    """Base exception for operations attempted outside their required phase."""

    code: str = "PHASE_ERROR"

    def __init__(self, operation: str, current_phase: str, required_phase: str):
        self.operation = operation
        self.current_phase = current_phase
        self.required_phase = required_phase
        super().__init__(
            f"Cannot {operation} during {current_phase} "
            f"(requires {required_phase})"
        )


class InvalidPhaseTransitionError(PhaseError):
    """A phase transition was requested from the wrong predecessor phase."""

    code: str = "INVALID_PHASE_TRANSITION"


class PhaseClosedError(PhaseError):
    """Voter registration or proposal submission outside its phase."""

    code: str = "PHASE_CLOSED"


class VotingClosedError(PhaseClosedError):
    """A vote was cast while the voting session is not open."""

    code: str = "VOTING_CLOSED"


class PrematureTallyError(PhaseError):
    """Winner computation was requested before the voting session ended."""

    code: str = "PREMATURE_TALLY"


class ResultsNotReadyError(PhaseError):
    """The winner was read before votes were tallied."""

    code: str = "RESULTS_NOT_READY"


# Voter registry


class RegistrationError(BallotKernelError):
    """Base exception for voter registry errors."""

    code: str = "REGISTRATION_ERROR"


class AlreadyRegisteredError(RegistrationError):
    """The participant is already on the voter whitelist."""

    code: str = "ALREADY_REGISTERED"

    def __init__(self, participant: str):
        self.participant = participant
        super().__init__(f"Voter already registered: {participant}")


class NotRegisteredError(RegistrationError):
    """The caller is not an eligible (registered) voter."""

    code: str = "NOT_REGISTERED"

    def __init__(self, participant: str):
        self.participant = participant
        super().__init__(f"Not a registered voter: {participant}")


class InvalidParticipantError(RegistrationError):
    """The participant identifier is empty."""

    code: str = "INVALID_PARTICIPANT"

    def __init__(self, participant: str):
        self.participant = participant
        super().__init__(f"Invalid participant identifier: {participant!r}")


# Proposal registry


class ProposalError(BallotKernelError):
    """Base exception for proposal registry errors."""

    code: str = "PROPOSAL_ERROR"


class InvalidProposalError(ProposalError):
    """A vote referenced a proposal index outside 0..n-1."""

    code: str = "INVALID_PROPOSAL"

    def __init__(self, proposal_id: int, proposal_count: int):
        self.proposal_id = proposal_id
        self.proposal_count = proposal_count
        super().__init__(
            f"Proposal {proposal_id} does not exist "
            f"({proposal_count} proposal(s) registered)"
        )


class EmptyDescriptionError(ProposalError):
    """A proposal was submitted with blank text."""

    code: str = "EMPTY_DESCRIPTION"

    def __init__(self, participant: str):
        self.participant = participant
        super().__init__(f"Proposal from {participant} has an empty description")


class InvalidDescriptionError(ProposalError):
    """A proposal description that is not text."""

    code: str = "INVALID_DESCRIPTION"

    def __init__(self, participant: str, description: object):
        self.participant = participant
        self.description_type = type(description).__name__
        super().__init__(
            f"Proposal from {participant} has a non-text description "
            f"({self.description_type})"
        )


class DescriptionTooLongError(ProposalError):
    """A proposal description exceeds the configured maximum length."""

    code: str = "DESCRIPTION_TOO_LONG"

    def __init__(self, length: int, max_length: int):
        self.length = length
        self.max_length = max_length
        super().__init__(
            f"Proposal description is {length} characters (maximum {max_length})"
        )


# Voting


class VoteError(BallotKernelError):
    """Base exception for vote casting errors."""

    code: str = "VOTE_ERROR"


class AlreadyVotedError(VoteError):
    """The participant has already cast their single vote."""

    code: str = "ALREADY_VOTED"

    def __init__(self, participant: str, voted_proposal_id: int):
        self.participant = participant
        self.voted_proposal_id = voted_proposal_id
        super().__init__(
            f"Voter {participant} has already voted (for proposal {voted_proposal_id})"
        )


# Tally


class TallyError(BallotKernelError):
    """Base exception for tally errors."""

    code: str = "TALLY_ERROR"


class NoProposalsError(TallyError):
    """A winner cannot be selected from an empty proposal list."""

    code: str = "NO_PROPOSALS"

    def __init__(self):
        super().__init__("Cannot select a winner: no proposals were registered")


class WinnerNotComputedError(TallyError):
    """mark_tallied was requested before compute_winner stored a result."""

    code: str = "WINNER_NOT_COMPUTED"

    def __init__(self):
        super().__init__("Cannot mark votes tallied before the winner is computed")


# Immutability


class ImmutabilityError(BallotKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete a sealed record.

    Raised by the ORM listeners in db/immutability.py, behind the
    service-level gates.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )

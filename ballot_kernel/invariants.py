"""
Kernel Invariants Contract.

These invariants are structural law for every election.  They are
hardcoded in the service gates and the ORM immutability listeners.  No
configuration value may override them.

This module exists solely to declare the invariants explicitly.  The
enforcement is distributed across WorkflowService, VoterRegistry,
ProposalRegistry, TallyService and db/immutability.py.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    PHASE_MONOTONICITY = "phase_monotonicity"
    """The phase only advances to its immediate successor.  Enforced by
    WorkflowService and the Election before_update listener."""

    REGISTRATION_EXCLUSIVITY = "registration_exclusivity"
    """A participant is registered at most once and never unregistered.
    Enforced by VoterRegistry and the unique voters.address constraint."""

    ONE_VOTE = "one_vote"
    """Each voter casts at most one vote; has_voted never reverts.
    Enforced by ProposalRegistry and the Voter before_update listener."""

    COUNT_CONSISTENCY = "count_consistency"
    """A proposal's vote_count equals the number of voters whose
    voted_proposal_id points at it.  Enforced by ProposalRegistry, which
    increments the count and records the vote in one unit of work."""

    TALLY_DETERMINISM = "tally_determinism"
    """The same vote counts always select the same winner; ties go to the
    lowest index.  Enforced by domain.tally.select_winner."""

    ATOMICITY = "atomicity"
    """A rejected operation changes nothing and announces nothing.
    Enforced by ElectionService's unit of work."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "ballot_config",
    "scripts",
)

"""
Tally -- pure winner selection.

Responsibility:
    Selects the winning proposal index from an ordered sequence of vote
    counts.  Used by TallyService once the voting session has ended.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Determinism: the same counts always select the same index.
    - First-registered-wins: the running best index is replaced only on a
      strictly greater count, so among proposals tied at the maximum the
      lowest index wins.

Scan modes:
    FULL              compares every index 0..n-1 (default).
    LEGACY_SKIP_LAST  compares 0..n-2 only, reproducing the reference
                      off-by-one in which the last-registered proposal is
                      never challenged.  Kept for compatibility testing.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from ballot_kernel.exceptions import NoProposalsError


class TallyScan(str, Enum):
    """Which indices the winner scan compares."""

    FULL = "full"
    LEGACY_SKIP_LAST = "legacy_skip_last"


def select_winner(
    vote_counts: Sequence[int],
    scan: TallyScan = TallyScan.FULL,
) -> int:
    """
    Return the index of the winning proposal.

    Preconditions:
        - ``vote_counts`` is ordered by proposal index; every count >= 0.

    Raises:
        NoProposalsError: If ``vote_counts`` is empty.
        ValueError: If any count is negative.
    """
    if not vote_counts:
        raise NoProposalsError()
    if any(count < 0 for count in vote_counts):
        raise ValueError("vote counts must be non-negative")

    if scan is TallyScan.LEGACY_SKIP_LAST:
        upper = len(vote_counts) - 1
    else:
        upper = len(vote_counts)

    winning_index = 0
    winning_count = 0
    for index in range(upper):
        if vote_counts[index] > winning_count:
            winning_count = vote_counts[index]
            winning_index = index
    return winning_index

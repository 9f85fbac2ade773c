"""Tests for the election phase model (ballot_kernel/domain/phase.py)."""

import pytest

from ballot_kernel.domain.phase import (
    END_VOTING_SESSION,
    INITIAL_PHASE,
    PHASE_TRANSITIONS,
    START_PROPOSAL_REGISTRATION,
    TALLY_VOTES,
    Phase,
    PhaseTransition,
    is_forward_step,
    transition_for,
)

ORDERED = [
    Phase.REGISTERING_VOTERS,
    Phase.PROPOSALS_REGISTRATION_STARTED,
    Phase.PROPOSALS_REGISTRATION_ENDED,
    Phase.VOTING_SESSION_STARTED,
    Phase.VOTING_SESSION_ENDED,
    Phase.VOTES_TALLIED,
]


class TestPhaseOrder:

    def test_six_phases_in_lifecycle_order(self):
        assert list(Phase) == ORDERED
        assert [p.ordinal for p in Phase] == list(range(6))

    def test_values_are_stable_names(self):
        assert Phase.REGISTERING_VOTERS.value == "RegisteringVoters"
        assert Phase("VotesTallied") is Phase.VOTES_TALLIED

    def test_successor_chain(self):
        for current, following in zip(ORDERED, ORDERED[1:]):
            assert current.successor() is following
        assert Phase.VOTES_TALLIED.successor() is None

    def test_only_votes_tallied_is_terminal(self):
        assert [p for p in Phase if p.is_terminal] == [Phase.VOTES_TALLIED]

    def test_initial_phase(self):
        assert INITIAL_PHASE is Phase.REGISTERING_VOTERS


class TestTransitions:

    def test_five_transitions_cover_every_step(self):
        assert len(PHASE_TRANSITIONS) == 5
        assert [t.from_phase for t in PHASE_TRANSITIONS] == ORDERED[:-1]
        assert [t.to_phase for t in PHASE_TRANSITIONS] == ORDERED[1:]

    def test_transition_lookup(self):
        t = transition_for(START_PROPOSAL_REGISTRATION)
        assert t.from_phase is Phase.REGISTERING_VOTERS
        assert t.to_phase is Phase.PROPOSALS_REGISTRATION_STARTED

        assert transition_for(TALLY_VOTES).to_phase is Phase.VOTES_TALLIED
        assert transition_for(END_VOTING_SESSION).from_phase is Phase.VOTING_SESSION_STARTED

    def test_unknown_action_raises_key_error(self):
        with pytest.raises(KeyError):
            transition_for("reopen_voting")

    def test_skipping_transition_cannot_be_declared(self):
        with pytest.raises(ValueError):
            PhaseTransition("skip", Phase.REGISTERING_VOTERS, Phase.VOTING_SESSION_STARTED)

    def test_backward_transition_cannot_be_declared(self):
        with pytest.raises(ValueError):
            PhaseTransition("back", Phase.VOTES_TALLIED, Phase.VOTING_SESSION_ENDED)

    def test_transitions_are_frozen(self):
        t = transition_for(TALLY_VOTES)
        with pytest.raises(AttributeError):
            t.to_phase = Phase.REGISTERING_VOTERS


class TestForwardStep:

    @pytest.mark.parametrize("old", ORDERED)
    @pytest.mark.parametrize("new", ORDERED)
    def test_only_immediate_successor_is_forward(self, old, new):
        assert is_forward_step(old, new) == (new.ordinal == old.ordinal + 1)

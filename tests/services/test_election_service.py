"""
End-to-end tests for the ElectionService facade.

Covers the reference election scenarios, the unit-of-work contract
(rejected or failed operations change nothing and publish nothing) and
post-commit notification delivery.
"""

import pytest

from ballot_kernel.domain.notifications import NotificationKind
from ballot_kernel.domain.phase import Phase
from ballot_kernel.exceptions import (
    AlreadyInitializedError,
    BallotKernelError,
    ElectionNotInitializedError,
    NotRegisteredError,
    PhaseClosedError,
    UnauthorizedError,
)
from ballot_kernel.models import BallotReceipt, NotificationRecord, Proposal, Voter
from ballot_kernel.services.election_service import ElectionService
from ballot_kernel.services.notification_service import (
    CallbackPublisher,
    InMemoryPublisher,
    NotificationService,
)

ADMIN = "admin"


def _snapshot(election: ElectionService) -> dict:
    """Everything observable through the facade that a rejection must not change."""
    return {
        "phase": election.get_phase(),
        "election": election.get_election(),
        "voters": {a: election.get_voter("A", a) for a in ("A", "B", "C", "D")},
        "proposals": election.list_proposals("A"),
        "history": election.notification_history(),
    }


class TestReferenceScenarios:

    def test_parks_wins_two_to_one(self, election, publisher):
        election.initialize(ADMIN)
        for voter in ("A", "B", "C"):
            election.register_voter(ADMIN, voter)
        election.start_proposal_registration(ADMIN)
        assert election.submit_proposal("A", "Parks").index == 0
        assert election.submit_proposal("B", "Roads").index == 1
        election.end_proposal_registration(ADMIN)
        election.start_voting_session(ADMIN)
        election.cast_vote("A", 0)
        election.cast_vote("B", 1)
        election.cast_vote("C", 0)
        election.end_voting_session(ADMIN)

        computed = election.compute_winner(ADMIN)
        assert computed.proposal_id == 0
        election.mark_tallied(ADMIN)

        winner = election.get_winner()
        assert (winner.description, winner.vote_count) == ("Parks", 2)
        assert election.get_phase() is Phase.VOTES_TALLIED

        assert publisher.kinds() == (
            [NotificationKind.VOTER_REGISTERED] * 3
            + [NotificationKind.PHASE_CHANGED]
            + [NotificationKind.PROPOSAL_REGISTERED] * 2
            + [NotificationKind.PHASE_CHANGED] * 2
            + [NotificationKind.VOTE_CAST] * 3
            + [NotificationKind.PHASE_CHANGED] * 2
        )
        seqs = [n.seq for n in publisher.published]
        assert seqs == list(range(1, len(seqs) + 1))

    def test_submit_during_voting_rejected(self, drive_election):
        election = drive_election(Phase.VOTING_SESSION_STARTED)
        before = election.list_proposals("C")

        with pytest.raises(PhaseClosedError):
            election.submit_proposal("C", "Libraries")

        assert election.list_proposals("C") == before

    def test_unregistered_voter_rejected(self, drive_election):
        election = drive_election(Phase.VOTING_SESSION_STARTED)
        with pytest.raises(NotRegisteredError):
            election.cast_vote("D", 0)


class TestInitialize:

    def test_initialize_records_administrator(self, election):
        info = election.initialize(ADMIN)
        assert info.phase is Phase.REGISTERING_VOTERS
        assert info.administrator_id == ADMIN
        assert election.get_phase() is Phase.REGISTERING_VOTERS

    def test_initialize_emits_nothing(self, election, publisher):
        election.initialize(ADMIN)
        assert publisher.published == []
        assert election.notification_history() == []

    def test_initialize_requires_administrator(self, election):
        with pytest.raises(UnauthorizedError):
            election.initialize("A")
        with pytest.raises(ElectionNotInitializedError):
            election.get_phase()

    def test_reinitialize_mid_election_rejected(self, drive_election):
        election = drive_election(Phase.VOTING_SESSION_STARTED, votes=[("A", 0)])

        with pytest.raises(AlreadyInitializedError):
            election.initialize(ADMIN)

        assert election.get_phase() is Phase.VOTING_SESSION_STARTED
        assert election.get_voter("A", "A").has_voted


class TestGateEnforcement:

    @pytest.mark.parametrize(
        "operation",
        [
            lambda e: e.register_voter(ADMIN, "D"),
            lambda e: e.submit_proposal("A", "Libraries"),
            lambda e: e.start_proposal_registration(ADMIN),
            lambda e: e.end_proposal_registration(ADMIN),
            lambda e: e.start_voting_session(ADMIN),
            lambda e: e.end_voting_session(ADMIN),
            lambda e: e.mark_tallied(ADMIN),
            lambda e: e.cast_vote("A", 0),
            lambda e: e.cast_vote("B", 0),
            lambda e: e.cast_vote("D", 0),
            lambda e: e.cast_vote("C", 7),
            lambda e: e.initialize(ADMIN),
            lambda e: e.end_voting_session("A"),
        ],
    )
    def test_rejected_operation_changes_nothing(self, drive_election, publisher, operation):
        election = drive_election(Phase.VOTING_SESSION_ENDED, votes=[("A", 1)])
        before = _snapshot(election)
        publisher.clear()

        with pytest.raises(BallotKernelError):
            operation(election)

        assert _snapshot(election) == before
        assert publisher.published == []

    def test_failure_after_partial_writes_rolls_back(self, drive_election, publisher, monkeypatch):
        election = drive_election(Phase.VOTING_SESSION_STARTED)
        before = _snapshot(election)
        publisher.clear()

        original = NotificationService.record

        def failing_record(self, pending):
            if pending.kind is NotificationKind.VOTE_CAST:
                raise RuntimeError("outbox unavailable")
            return original(self, pending)

        monkeypatch.setattr(NotificationService, "record", failing_record)

        with pytest.raises(RuntimeError):
            election.cast_vote("A", 0)

        monkeypatch.undo()
        assert _snapshot(election) == before
        assert election.get_receipt("A", "A") is None
        assert publisher.published == []

        # The voter can still vote once the failure is gone.
        election.cast_vote("A", 0)
        assert election.get_proposal("A", 0).vote_count == 1

    def test_failed_operation_logged(self, drive_election, monkeypatch, captured_logs):
        election = drive_election(Phase.VOTING_SESSION_STARTED)

        def failing_record(self, pending):
            raise RuntimeError("outbox unavailable")

        monkeypatch.setattr(NotificationService, "record", failing_record)
        with pytest.raises(RuntimeError):
            election.cast_vote("A", 0)

        failed = [r for r in captured_logs() if r["message"] == "operation_failed"]
        assert len(failed) == 1
        assert failed[0]["operation"] == "cast_vote"
        assert failed[0]["exc_type"] == "RuntimeError"


class TestNotificationDelivery:

    def test_published_only_after_commit(self, session_factory, authority, deterministic_clock):
        observed = []

        def on_notification(notification):
            # The outbox row must already be committed when the publisher runs.
            with session_factory() as session:
                committed = session.query(NotificationRecord).filter_by(seq=notification.seq).one_or_none()
            observed.append((notification.kind, committed is not None))

        election = ElectionService(
            session_factory,
            authority,
            publisher=CallbackPublisher(on_notification),
            clock=deterministic_clock,
        )
        election.initialize(ADMIN)
        election.register_voter(ADMIN, "A")
        election.start_proposal_registration(ADMIN)

        assert observed == [
            (NotificationKind.VOTER_REGISTERED, True),
            (NotificationKind.PHASE_CHANGED, True),
        ]

    def test_publisher_failure_propagates_after_commit(self, session_factory, authority, captured_logs):
        def broken(notification):
            raise ConnectionError("transport down")

        election = ElectionService(session_factory, authority, publisher=CallbackPublisher(broken))
        election.initialize(ADMIN)

        with pytest.raises(ConnectionError):
            election.register_voter(ADMIN, "A")

        assert election.is_eligible("A")
        assert [n.kind for n in election.notification_history()] == [NotificationKind.VOTER_REGISTERED]
        assert any(r["message"] == "notification_publish_failed" for r in captured_logs())

    def test_default_publisher_is_in_memory(self, session_factory, authority):
        election = ElectionService(session_factory, authority)
        election.initialize(ADMIN)
        election.register_voter(ADMIN, "A")

        assert isinstance(election.publisher, InMemoryPublisher)
        assert election.publisher.kinds() == [NotificationKind.VOTER_REGISTERED]

    def test_history_replays_in_order(self, drive_election):
        election = drive_election(Phase.PROPOSALS_REGISTRATION_STARTED, voters=("A", "B"), proposals=())

        history = election.notification_history()
        assert [n.kind for n in history] == [
            NotificationKind.VOTER_REGISTERED,
            NotificationKind.VOTER_REGISTERED,
            NotificationKind.PHASE_CHANGED,
        ]
        assert [n.payload.get("address") for n in history[:2]] == ["A", "B"]
        assert election.notification_history(after_seq=2) == history[2:]


class TestPersistedState:

    def test_rows_written_by_full_election(self, drive_election, session_factory):
        drive_election(Phase.VOTES_TALLIED, votes=[("A", 0), ("B", 1), ("C", 0)])

        with session_factory() as session:
            assert session.query(Voter).count() == 3
            assert session.query(Voter).filter_by(has_voted=True).count() == 3
            assert [p.vote_count for p in session.query(Proposal).order_by(Proposal.index)] == [2, 1]
            assert session.query(BallotReceipt).count() == 3
            # 3 registrations, 2 proposals, 3 votes, 5 phase changes
            assert session.query(NotificationRecord).count() == 13

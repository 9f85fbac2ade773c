"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

The services gate every mutation on the current phase and on the voter
registry.  This module is the second line: SQLAlchemy mapper events that
refuse any write breaking a ballot invariant, whichever code path issued it.

    session.flush()
         |
         v
    [before_update event] --> _check_*_update() --> ImmutabilityViolationError
         |                                                  ^
         v                                                  |
    [before_delete event] --> _check_*_delete() ------------+
         |
         v
    SQL sent to database (only if checks pass)

If a check fails the flush aborts; the unit of work in ElectionService
rolls the whole transaction back.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | Rule
--------------------|---------------------------------------------------------
Election            | phase moves only to its immediate successor;
                    | name/administrator/initialized_at never change;
                    | winner writable only during VotingSessionEnded;
                    | never deleted
Voter               | address/is_registered/registered_at never change;
                    | has_voted never reverts; vote fields sealed once voted;
                    | never deleted
Proposal            | index/description/submitter never change;
                    | vote_count never decreases; never deleted
BallotReceipt       | append-only
NotificationRecord  | append-only

updated_at is row metadata and is always allowed to change.
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from ballot_kernel.domain.phase import Phase, is_forward_step
from ballot_kernel.exceptions import ImmutabilityViolationError
from ballot_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_METADATA_FIELDS = frozenset({"updated_at"})


def _violation(entity_type: str, target, operation: str, field: str | None, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "field": field,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _changed_fields(target) -> list[str]:
    """Names of mapped attributes with pending changes, excluding metadata."""
    insp = inspect(target)
    return [
        attr.key
        for attr in insp.attrs
        if attr.key not in _METADATA_FIELDS and attr.history.has_changes()
    ]


def _old_and_new(target, key: str):
    """(old, new) for a changed attribute, or (current, current) if unchanged."""
    hist = get_history(target, key)
    if hist.deleted or hist.added:
        old = hist.deleted[0] if hist.deleted else None
        new = hist.added[0] if hist.added else None
        return old, new
    current = getattr(target, key)
    return current, current


# =============================================================================
# Election
# =============================================================================


def _check_election_update(mapper, connection, target):
    """
    Enforce phase monotonicity and seal election identity fields.

    Allowed changes:
        phase               -> immediate successor only
        winning_proposal_id -> only while the prior phase is VotingSessionEnded
        tallied_at          -> only together with the move to VotesTallied
    """
    old_phase_raw, new_phase_raw = _old_and_new(target, "phase")
    old_phase = Phase(old_phase_raw)
    new_phase = Phase(new_phase_raw)

    for field in _changed_fields(target):
        if field == "phase":
            if not is_forward_step(old_phase, new_phase):
                raise _violation(
                    "Election", target, "UPDATE", field,
                    f"Illegal phase change {old_phase.value} -> {new_phase.value}",
                )
        elif field == "winning_proposal_id":
            if old_phase is not Phase.VOTING_SESSION_ENDED:
                raise _violation(
                    "Election", target, "UPDATE", field,
                    f"Winner cannot change during {old_phase.value}",
                )
        elif field == "tallied_at":
            if new_phase is not Phase.VOTES_TALLIED or old_phase is Phase.VOTES_TALLIED:
                raise _violation(
                    "Election", target, "UPDATE", field,
                    "tallied_at is set only by the move to VotesTallied",
                )
        else:
            raise _violation(
                "Election", target, "UPDATE", field,
                f"Cannot modify field '{field}' on an election",
            )


def _check_election_delete(mapper, connection, target):
    raise _violation("Election", target, "DELETE", None, "Elections cannot be deleted")


# =============================================================================
# Voter
# =============================================================================

_VOTER_SEALED_FIELDS = frozenset({"address", "is_registered", "registered_at"})
_VOTER_VOTE_FIELDS = frozenset({"has_voted", "voted_proposal_id", "voted_at"})


def _check_voter_update(mapper, connection, target):
    """Registration is permanent; a cast vote is permanent."""
    old_has_voted, new_has_voted = _old_and_new(target, "has_voted")

    for field in _changed_fields(target):
        if field in _VOTER_SEALED_FIELDS:
            raise _violation(
                "Voter", target, "UPDATE", field,
                f"Cannot modify field '{field}' on a registered voter",
            )
        if field in _VOTER_VOTE_FIELDS and old_has_voted:
            raise _violation(
                "Voter", target, "UPDATE", field,
                f"Cannot modify field '{field}' after the voter has voted",
            )

    if old_has_voted and not new_has_voted:
        raise _violation("Voter", target, "UPDATE", "has_voted", "has_voted cannot revert")


def _check_voter_delete(mapper, connection, target):
    raise _violation("Voter", target, "DELETE", None, "Registrations cannot be removed")


# =============================================================================
# Proposal
# =============================================================================


def _check_proposal_update(mapper, connection, target):
    """Proposals are append-only except for a non-decreasing vote_count."""
    for field in _changed_fields(target):
        if field == "vote_count":
            old_count, new_count = _old_and_new(target, "vote_count")
            if old_count is not None and new_count < old_count:
                raise _violation(
                    "Proposal", target, "UPDATE", field,
                    f"vote_count cannot decrease ({old_count} -> {new_count})",
                )
        else:
            raise _violation(
                "Proposal", target, "UPDATE", field,
                f"Cannot modify field '{field}' on a registered proposal",
            )


def _check_proposal_delete(mapper, connection, target):
    raise _violation("Proposal", target, "DELETE", None, "Proposals cannot be removed")


# =============================================================================
# Append-only records
# =============================================================================


def _check_receipt_update(mapper, connection, target):
    raise _violation("BallotReceipt", target, "UPDATE", None, "Ballot receipts are immutable")


def _check_receipt_delete(mapper, connection, target):
    raise _violation("BallotReceipt", target, "DELETE", None, "Ballot receipts cannot be deleted")


def _check_notification_update(mapper, connection, target):
    raise _violation("NotificationRecord", target, "UPDATE", None, "Notifications are immutable")


def _check_notification_delete(mapper, connection, target):
    raise _violation(
        "NotificationRecord", target, "DELETE", None, "Notifications cannot be deleted"
    )


# =============================================================================
# Registration
# =============================================================================


def _listeners():
    from ballot_kernel.models import (
        BallotReceipt,
        Election,
        NotificationRecord,
        Proposal,
        Voter,
    )

    return (
        (Election, "before_update", _check_election_update),
        (Election, "before_delete", _check_election_delete),
        (Voter, "before_update", _check_voter_update),
        (Voter, "before_delete", _check_voter_delete),
        (Proposal, "before_update", _check_proposal_update),
        (Proposal, "before_delete", _check_proposal_delete),
        (BallotReceipt, "before_update", _check_receipt_update),
        (BallotReceipt, "before_delete", _check_receipt_delete),
        (NotificationRecord, "before_update", _check_notification_update),
        (NotificationRecord, "before_delete", _check_notification_delete),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners (idempotent).

    Called by create_tables(); safe to call again.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that deliberately bypass the guards.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)

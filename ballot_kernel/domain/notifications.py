"""
Notifications -- what the kernel announces to external observers.

Responsibility:
    Defines the four notification kinds, their payloads, and the
    publisher interface the transport collaborator implements.  The kernel
    decides *what* to announce; delivery is the publisher's concern.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.

Invariants enforced:
    - Payloads are frozen (MappingProxyType) once built.
    - ``seq`` is assigned by NotificationService at record time and is
      strictly increasing in commit order.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Protocol

from ballot_kernel.domain.phase import Phase


class NotificationKind(str, Enum):
    VOTER_REGISTERED = "voter_registered"
    PHASE_CHANGED = "phase_changed"
    PROPOSAL_REGISTERED = "proposal_registered"
    VOTE_CAST = "vote_cast"


@dataclass(frozen=True)
class Notification:
    """A committed change announcement."""

    seq: int
    kind: NotificationKind
    payload: Mapping[str, Any]
    occurred_at: datetime

    def __post_init__(self) -> None:
        if not isinstance(self.payload, MappingProxyType):
            object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))


@dataclass(frozen=True)
class PendingNotification:
    """A notification built by a service, not yet sequenced."""

    kind: NotificationKind
    payload: Mapping[str, Any]


def voter_registered(address: str) -> PendingNotification:
    return PendingNotification(
        NotificationKind.VOTER_REGISTERED, MappingProxyType({"address": address})
    )


def phase_changed(previous: Phase, new: Phase) -> PendingNotification:
    return PendingNotification(
        NotificationKind.PHASE_CHANGED,
        MappingProxyType({"previous": previous.value, "new": new.value}),
    )


def proposal_registered(index: int) -> PendingNotification:
    return PendingNotification(
        NotificationKind.PROPOSAL_REGISTERED, MappingProxyType({"index": index})
    )


def vote_cast(address: str, proposal_id: int) -> PendingNotification:
    return PendingNotification(
        NotificationKind.VOTE_CAST,
        MappingProxyType({"address": address, "proposal_id": proposal_id}),
    )


class NotificationPublisher(Protocol):
    """Transport boundary.  Called only after the producing operation commits."""

    def publish(self, notification: Notification) -> None:
        ...

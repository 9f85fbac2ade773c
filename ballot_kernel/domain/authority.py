"""
Administrator authority -- injected capability check.

Responsibility:
    Answers one question for the kernel: "is this actor the designated
    administrator?"  Every privileged operation (initialize, register,
    phase transitions, tally) calls ``require_administrator`` before it
    touches state.

Architecture position:
    Kernel > Domain.  The kernel stays identity-agnostic: it never
    resolves, verifies or transfers administrator identity.  Callers
    supply an ``AdministratorAuthority`` implementation at construction.

Failure modes:
    - UnauthorizedError when the check fails.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ballot_kernel.exceptions import UnauthorizedError


@runtime_checkable
class AdministratorAuthority(Protocol):
    """Capability check consulted before every privileged operation."""

    def is_administrator(self, actor_id: str) -> bool:
        ...


class StaticAdministratorAuthority:
    """Authority backed by a single, fixed administrator identifier."""

    def __init__(self, administrator_id: str):
        administrator_id = administrator_id.strip()
        if not administrator_id:
            raise ValueError("administrator_id must be non-empty")
        self._administrator_id = administrator_id

    @property
    def administrator_id(self) -> str:
        return self._administrator_id

    def is_administrator(self, actor_id: str) -> bool:
        return actor_id.strip() == self._administrator_id

    def __repr__(self) -> str:
        return f"StaticAdministratorAuthority({self._administrator_id!r})"


def require_administrator(
    authority: AdministratorAuthority, actor_id: str, operation: str
) -> None:
    """Raise UnauthorizedError unless ``actor_id`` holds the capability."""
    if not authority.is_administrator(actor_id):
        raise UnauthorizedError(actor_id, operation)

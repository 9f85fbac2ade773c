"""
Config -> Kernel Bridges.

Functions that convert a BallotConfig into kernel collaborators.  These
live in ballot_config (the producer) because the kernel must NEVER import
ballot_config.

Usage:
    from ballot_config.bridges import build_election_service, init_database

    config = get_active_config()
    session_factory = init_database(config)
    election = build_election_service(config, session_factory)
"""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.orm import Session

from ballot_config.schema import BallotConfig
from ballot_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from ballot_kernel.domain.authority import StaticAdministratorAuthority
from ballot_kernel.domain.clock import Clock
from ballot_kernel.domain.notifications import NotificationPublisher
from ballot_kernel.logging_config import configure_logging
from ballot_kernel.services.election_service import ElectionService


def build_authority(config: BallotConfig) -> StaticAdministratorAuthority:
    """The administrator capability named by ``election.administrator``."""
    return StaticAdministratorAuthority(config.election.administrator)


def init_database(config: BallotConfig) -> Callable[[], Session]:
    """
    Initialize the module-level engine from ``database.*`` and create the
    schema.

    Returns:
        The session factory ElectionService opens one session per
        operation from.
    """
    configure_logging(level=config.logging.level_number)
    init_engine_from_url(config.database.url, echo=config.database.echo)
    create_tables()
    return get_session_factory()


def build_election_service(
    config: BallotConfig,
    session_factory: Callable[[], Session],
    publisher: NotificationPublisher | None = None,
    clock: Clock | None = None,
) -> ElectionService:
    """Wire an ElectionService from configuration."""
    return ElectionService(
        session_factory=session_factory,
        authority=build_authority(config),
        publisher=publisher,
        clock=clock,
        tally_scan=config.tally.scan,
        max_description_length=config.proposals.max_description_length,
        election_name=config.election.name,
    )

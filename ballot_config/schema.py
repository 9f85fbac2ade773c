"""
BallotConfig schema.

Defines the runtime configuration artifact for one election deployment.
YAML files are parsed into these types by the loader; the bridges turn
them into kernel collaborators (authority, engine, ElectionService).

All types are frozen: a loaded configuration never changes for the
lifetime of the process that loaded it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ballot_kernel.domain.tally import TallyScan

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ElectionSettings:
    """Identity of the election and its administrator."""

    name: str
    administrator: str


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite+pysqlite:///:memory:"
    echo: bool = False


@dataclass(frozen=True)
class TallySettings:
    scan: TallyScan = TallyScan.FULL


@dataclass(frozen=True)
class ProposalSettings:
    max_description_length: int | None = None  # None = unbounded


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"

    @property
    def level_number(self) -> int:
        return logging.getLevelName(self.level)


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BallotConfig:
    """The complete, validated configuration for one election."""

    config_id: str
    version: int
    election: ElectionSettings
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    tally: TallySettings = field(default_factory=TallySettings)
    proposals: ProposalSettings = field(default_factory=ProposalSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    checksum: str = ""

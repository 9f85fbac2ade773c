"""
ballot_config -- single public entrypoint for election configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files directly.  Returns a frozen ``BallotConfig``.

Architecture position:
    Configuration -- YAML-driven, sits above ``ballot_kernel``.  The kernel
    MUST NEVER import from ``ballot_config``; bridges in this package
    translate the config into kernel collaborators.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - Deterministic identity: the same YAML always yields the same
      checksum.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``KeyError`` / ``ValueError`` -- required keys missing or invalid.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``BALLOT_CONFIG_TRACE`` log entry with the config_id, version,
    checksum, administrator and tally scan mode.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ballot_config.loader import load_config
from ballot_config.schema import BallotConfig

_logger = logging.getLogger("ballot_kernel.config")

# Default configuration file shipped with the package
_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> BallotConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Path to a YAML configuration file.  Defaults to
            ballot_config/sets/default.yaml.

    Returns:
        The parsed, frozen BallotConfig.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value is invalid.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    config = load_config(path)

    _logger.info(
        "BALLOT_CONFIG_TRACE",
        extra={
            "trace_type": "BALLOT_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "config_path": str(path),
            "election_name": config.election.name,
            "administrator": config.election.administrator,
            "tally_scan": config.tally.scan.value,
        },
    )
    return config


__all__ = ["BallotConfig", "get_active_config"]

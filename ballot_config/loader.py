"""
Configuration Loader (``ballot_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``ballot_config.schema`` dataclasses.  The single public entry point for
runtime config is ``ballot_config.get_active_config()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on PyYAML and on
the kernel's ``TallyScan`` enum only.

Invariants enforced
-------------------
* No silent defaults for required fields: ``config_id``, ``version``,
  ``election.name`` and ``election.administrator`` must be present.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  parsed content for identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError``.
* Invalid values (unknown scan mode, bad level, non-positive length)
  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from ballot_config.schema import (
    BallotConfig,
    DatabaseSettings,
    ElectionSettings,
    LoggingSettings,
    ProposalSettings,
    TallySettings,
)
from ballot_kernel.domain.tally import TallyScan


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top-level document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML document must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 over the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _require_text(data: dict[str, Any], key: str, section: str) -> str:
    value = data[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{section}.{key} must be a non-empty string, got {value!r}")
    return value.strip()


def parse_election(data: dict[str, Any]) -> ElectionSettings:
    return ElectionSettings(
        name=_require_text(data, "name", "election"),
        administrator=_require_text(data, "administrator", "election"),
    )


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    defaults = DatabaseSettings()
    return DatabaseSettings(
        url=str(data.get("url", defaults.url)),
        echo=bool(data.get("echo", defaults.echo)),
    )


def parse_tally(data: dict[str, Any]) -> TallySettings:
    raw = data.get("scan", TallyScan.FULL.value)
    try:
        scan = TallyScan(raw)
    except ValueError:
        allowed = ", ".join(s.value for s in TallyScan)
        raise ValueError(f"tally.scan must be one of: {allowed} (got {raw!r})") from None
    return TallySettings(scan=scan)


def parse_proposals(data: dict[str, Any]) -> ProposalSettings:
    raw = data.get("max_description_length")
    if raw is None:
        return ProposalSettings()
    if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
        raise ValueError(
            f"proposals.max_description_length must be a positive integer, got {raw!r}"
        )
    return ProposalSettings(max_description_length=raw)


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    level = str(data.get("level", LoggingSettings().level)).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"logging.level is not a known level: {level!r}")
    return LoggingSettings(level=level)


def parse_config(data: dict[str, Any]) -> BallotConfig:
    """
    Parse a complete ``BallotConfig`` from a loaded YAML mapping.

    Optional sections fall back to the schema defaults.

    Raises:
        KeyError: if a required key is missing.
        ValueError: if a value is invalid.
    """
    version = data["version"]
    if isinstance(version, bool) or not isinstance(version, int):
        raise ValueError(f"version must be an integer, got {version!r}")

    return BallotConfig(
        config_id=str(data["config_id"]),
        version=version,
        election=parse_election(data["election"]),
        database=parse_database(data.get("database") or {}),
        tally=parse_tally(data.get("tally") or {}),
        proposals=parse_proposals(data.get("proposals") or {}),
        logging=parse_logging(data.get("logging") or {}),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> BallotConfig:
    """Load and parse one configuration file."""
    return parse_config(load_yaml_file(path))

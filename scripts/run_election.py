#!/usr/bin/env python3
"""
Replay an election scenario against a fresh ballot database.

A scenario is a YAML file with a ``steps`` list; each step names the
acting identity, the ElectionService operation and its arguments:

    steps:
      - {actor: admin, op: initialize}
      - {actor: admin, op: register_voter, args: {participant: A}}
      - {actor: admin, op: start_proposal_registration}
      - {actor: A, op: submit_proposal, args: {description: Parks}}
      - {actor: A, op: cast_vote, args: {proposal_id: 0}}

Rejected steps are reported with their error code and the replay
continues; a rejected step changes nothing.

Usage:
    python scripts/run_election.py scenario.yaml [--config path.yaml]
        [--database-url sqlite+pysqlite:///ballot.db] [--quiet]

Exit codes:
    0  the scenario was replayed to the end
    1  the scenario or configuration file is malformed
"""

from __future__ import annotations

import argparse
import dataclasses
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any, TextIO

import yaml

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from ballot_config import get_active_config
from ballot_config.bridges import build_election_service, init_database
from ballot_kernel.domain.phase import Phase
from ballot_kernel.exceptions import BallotKernelError
from ballot_kernel.services.election_service import ElectionService

# op name -> ElectionService method name, argument names
OPERATIONS: dict[str, tuple[str, tuple[str, ...]]] = {
    "initialize": ("initialize", ()),
    "register_voter": ("register_voter", ("participant",)),
    "start_proposal_registration": ("start_proposal_registration", ()),
    "submit_proposal": ("submit_proposal", ("description",)),
    "end_proposal_registration": ("end_proposal_registration", ()),
    "start_voting_session": ("start_voting_session", ()),
    "cast_vote": ("cast_vote", ("proposal_id",)),
    "end_voting_session": ("end_voting_session", ()),
    "compute_winner": ("compute_winner", ()),
    "mark_tallied": ("mark_tallied", ()),
    "tally": ("mark_tallied", ()),
}


class ScenarioError(ValueError):
    """The scenario file does not describe a valid list of steps."""


@dataclasses.dataclass(frozen=True)
class Step:
    number: int
    actor: str
    op: str
    args: tuple[Any, ...]


@dataclasses.dataclass(frozen=True)
class StepOutcome:
    step: Step
    ok: bool
    code: str | None = None
    detail: str = ""


def parse_scenario(data: Any) -> list[Step]:
    """Validate a loaded scenario document and return its steps."""
    if not isinstance(data, dict) or not isinstance(data.get("steps"), list):
        raise ScenarioError("scenario must be a mapping with a 'steps' list")

    steps: list[Step] = []
    for number, raw in enumerate(data["steps"], start=1):
        if not isinstance(raw, dict):
            raise ScenarioError(f"step {number}: expected a mapping, got {raw!r}")
        actor = raw.get("actor")
        op = raw.get("op")
        if not isinstance(actor, str) or not actor.strip():
            raise ScenarioError(f"step {number}: missing 'actor'")
        if op not in OPERATIONS:
            raise ScenarioError(f"step {number}: unknown op {op!r}")

        _, arg_names = OPERATIONS[op]
        raw_args = raw.get("args") or {}
        if isinstance(raw_args, dict):
            missing = [name for name in arg_names if name not in raw_args]
            if missing:
                raise ScenarioError(f"step {number}: {op} requires {', '.join(missing)}")
            args = tuple(raw_args[name] for name in arg_names)
        elif isinstance(raw_args, list):
            if len(raw_args) != len(arg_names):
                raise ScenarioError(
                    f"step {number}: {op} takes {len(arg_names)} argument(s)"
                )
            args = tuple(raw_args)
        else:
            raise ScenarioError(f"step {number}: 'args' must be a mapping or list")

        steps.append(Step(number=number, actor=actor, op=op, args=args))
    return steps


def load_scenario(path: Path) -> list[Step]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ScenarioError(f"cannot read scenario: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ScenarioError(f"invalid YAML: {exc}") from exc
    return parse_scenario(data)


def run_step(election: ElectionService, step: Step) -> StepOutcome:
    method_name, _ = OPERATIONS[step.op]
    method = getattr(election, method_name)
    try:
        result = method(step.actor, *step.args)
    except BallotKernelError as exc:
        return StepOutcome(step=step, ok=False, code=exc.code, detail=str(exc))
    return StepOutcome(step=step, ok=True, detail=_describe(result))


def _describe(result: Any) -> str:
    if result is None:
        return ""
    if hasattr(result, "phase"):
        return f"phase={result.phase.value}"
    if hasattr(result, "proposal_id") and hasattr(result, "vote_count"):
        return f"proposal={result.proposal_id} votes={result.vote_count}"
    if hasattr(result, "index"):
        return f"proposal={result.index}"
    if hasattr(result, "address"):
        return f"voter={result.address}"
    return str(result)


def replay(
    election: ElectionService,
    steps: Sequence[Step],
    out: TextIO | None = None,
    quiet: bool = False,
) -> list[StepOutcome]:
    """Run every step in order and print one line per step to ``out`` (stdout by default)."""
    out = out if out is not None else sys.stdout
    outcomes = []
    for step in steps:
        outcome = run_step(election, step)
        outcomes.append(outcome)
        if quiet:
            continue
        status = "ok" if outcome.ok else f"REJECTED {outcome.code}"
        line = f"[{step.number:3d}] {step.actor:<12} {step.op:<28} {status}"
        if outcome.detail:
            line += f"  {outcome.detail}"
        print(line, file=out)
    return outcomes


def print_summary(election: ElectionService, out: TextIO | None = None) -> None:
    out = out if out is not None else sys.stdout
    try:
        phase = election.get_phase()
    except BallotKernelError:
        print("Election was never initialized.", file=out)
        return

    print(f"Final phase: {phase.value}", file=out)
    if phase is Phase.VOTES_TALLIED:
        winner = election.get_winner()
        print(
            f"Winner: proposal {winner.proposal_id} "
            f"({winner.description!r}) with {winner.vote_count} vote(s)",
            file=out,
        )


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Replay an election scenario.")
    parser.add_argument("scenario", type=Path, help="Scenario YAML file")
    parser.add_argument("--config", type=Path, default=None, help="Configuration YAML file")
    parser.add_argument("--database-url", default=None, help="Override database.url")
    parser.add_argument("--quiet", action="store_true", help="Only print the summary")
    args = parser.parse_args(argv)

    try:
        config = get_active_config(args.config)
        steps = load_scenario(args.scenario)
    except (FileNotFoundError, KeyError, ValueError, yaml.YAMLError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.database_url:
        config = dataclasses.replace(
            config, database=dataclasses.replace(config.database, url=args.database_url)
        )

    session_factory = init_database(config)
    election = build_election_service(config, session_factory)

    print(f"Replaying {len(steps)} step(s) for {config.election.name}")
    outcomes = replay(election, steps, quiet=args.quiet)
    rejected = sum(1 for o in outcomes if not o.ok)
    print(f"{len(outcomes) - rejected} applied, {rejected} rejected")
    print_summary(election)
    return 0


if __name__ == "__main__":
    sys.exit(main())

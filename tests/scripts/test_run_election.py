"""Tests for the scenario replay CLI (scripts/run_election.py)."""

from contextlib import redirect_stdout
from io import StringIO

import pytest
import yaml

from ballot_kernel.db.engine import reset_engine
from scripts.run_election import ScenarioError, main, parse_scenario, print_summary, replay

PARKS_SCENARIO = {
    "steps": [
        {"actor": "admin", "op": "initialize"},
        {"actor": "admin", "op": "register_voter", "args": {"participant": "A"}},
        {"actor": "admin", "op": "register_voter", "args": {"participant": "B"}},
        {"actor": "admin", "op": "register_voter", "args": ["C"]},
        {"actor": "admin", "op": "start_proposal_registration"},
        {"actor": "A", "op": "submit_proposal", "args": {"description": "Parks"}},
        {"actor": "B", "op": "submit_proposal", "args": {"description": "Roads"}},
        {"actor": "admin", "op": "end_proposal_registration"},
        {"actor": "admin", "op": "start_voting_session"},
        {"actor": "A", "op": "cast_vote", "args": {"proposal_id": 0}},
        {"actor": "B", "op": "cast_vote", "args": {"proposal_id": 1}},
        {"actor": "C", "op": "cast_vote", "args": {"proposal_id": 0}},
        {"actor": "D", "op": "cast_vote", "args": {"proposal_id": 0}},
        {"actor": "C", "op": "submit_proposal", "args": {"description": "Libraries"}},
        {"actor": "admin", "op": "end_voting_session"},
        {"actor": "admin", "op": "compute_winner"},
        {"actor": "admin", "op": "tally"},
    ]
}


@pytest.fixture(autouse=True)
def _reset_module_engine():
    yield
    reset_engine()


def _write(tmp_path, name, data) -> str:
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestParseScenario:

    def test_steps_numbered_and_arguments_ordered(self):
        steps = parse_scenario(PARKS_SCENARIO)
        assert len(steps) == 17
        assert steps[0].number == 1
        assert steps[1].args == ("A",)
        assert steps[3].args == ("C",)
        assert steps[9].args == (0,)

    @pytest.mark.parametrize(
        "document",
        [
            None,
            [],
            {"steps": "initialize"},
            {"steps": ["initialize"]},
            {"steps": [{"op": "initialize"}]},
            {"steps": [{"actor": "admin", "op": "reset"}]},
            {"steps": [{"actor": "admin", "op": "register_voter"}]},
            {"steps": [{"actor": "A", "op": "cast_vote", "args": [0, 1]}]},
            {"steps": [{"actor": "A", "op": "cast_vote", "args": "0"}]},
        ],
    )
    def test_malformed_documents(self, document):
        with pytest.raises(ScenarioError):
            parse_scenario(document)


class TestReplay:

    def test_rejected_steps_reported_with_code(self, election):
        out = StringIO()
        outcomes = replay(election, parse_scenario(PARKS_SCENARIO), out=out)

        rejected = [(o.step.number, o.code) for o in outcomes if not o.ok]
        assert rejected == [(13, "NOT_REGISTERED"), (14, "PHASE_CLOSED")]
        assert "REJECTED NOT_REGISTERED" in out.getvalue()

        winner = election.get_winner()
        assert (winner.proposal_id, winner.vote_count) == (0, 2)

    def test_default_output_follows_redirected_stdout(self, election):
        buffer = StringIO()
        with redirect_stdout(buffer):
            replay(election, parse_scenario(PARKS_SCENARIO))
            print_summary(election)

        text = buffer.getvalue()
        assert "[ 17] admin" in text
        assert "Final phase: VotesTallied" in text
        assert "Winner: proposal 0 ('Parks') with 2 vote(s)" in text

    def test_non_text_description_reported_as_rejected(self, election):
        steps = parse_scenario(
            {
                "steps": [
                    {"actor": "admin", "op": "initialize"},
                    {"actor": "admin", "op": "register_voter", "args": ["A"]},
                    {"actor": "admin", "op": "start_proposal_registration"},
                    {"actor": "A", "op": "submit_proposal", "args": {"description": 42}},
                ]
            }
        )
        outcomes = replay(election, steps, out=StringIO())

        assert [o.ok for o in outcomes] == [True, True, True, False]
        assert outcomes[-1].code == "INVALID_DESCRIPTION"


class TestMain:

    def test_full_replay(self, tmp_path, capsys):
        scenario = _write(tmp_path, "scenario.yaml", PARKS_SCENARIO)

        assert main([scenario]) == 0

        out = capsys.readouterr().out
        assert "15 applied, 2 rejected" in out
        assert "Final phase: VotesTallied" in out
        assert "Winner: proposal 0 ('Parks') with 2 vote(s)" in out

    def test_custom_config(self, tmp_path, capsys):
        config = _write(
            tmp_path,
            "config.yaml",
            {
                "config_id": "CLI",
                "version": 1,
                "election": {"name": "cli-election", "administrator": "clerk"},
            },
        )
        scenario = _write(
            tmp_path,
            "scenario.yaml",
            {"steps": [{"actor": "admin", "op": "initialize"}, {"actor": "clerk", "op": "initialize"}]},
        )

        assert main([scenario, "--config", config, "--quiet"]) == 0

        out = capsys.readouterr().out
        assert "Replaying 2 step(s) for cli-election" in out
        assert "1 applied, 1 rejected" in out
        assert "Final phase: RegisteringVoters" in out

    def test_file_database(self, tmp_path, capsys):
        scenario = _write(tmp_path, "scenario.yaml", {"steps": [{"actor": "admin", "op": "initialize"}]})
        url = f"sqlite+pysqlite:///{tmp_path / 'ballot.db'}"

        assert main([scenario, "--database-url", url]) == 0
        assert (tmp_path / "ballot.db").exists()

    def test_malformed_scenario_exits_1(self, tmp_path, capsys):
        scenario = _write(tmp_path, "bad.yaml", {"steps": [{"actor": "admin", "op": "reset"}]})

        assert main([scenario]) == 1
        assert "unknown op" in capsys.readouterr().err

    def test_missing_scenario_exits_1(self, tmp_path, capsys):
        assert main([str(tmp_path / "absent.yaml")]) == 1
        assert "cannot read scenario" in capsys.readouterr().err

    def test_never_initialized(self, tmp_path, capsys):
        scenario = _write(tmp_path, "scenario.yaml", {"steps": [{"actor": "A", "op": "initialize"}]})

        assert main([scenario]) == 0
        assert "Election was never initialized." in capsys.readouterr().out

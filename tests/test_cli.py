"""
Tests for the command-line entry point.
"""

import io
import json
import os

import pytest

from diplomacy_engine.cli import main

DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'data')
MAP_FILE = os.path.join(DATA_DIR, 'map.json')
RULES_FILE = os.path.join(DATA_DIR, 'rules.json')


@pytest.fixture
def base_args(tmp_path):
    return [
        "--map-file", MAP_FILE,
        "--rules-file", RULES_FILE,
        "--state", str(tmp_path / "state.json"),
        "--log", str(tmp_path / "log.json"),
    ]


def test_commands_from_stdin(base_args, tmp_path, monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO(
        "# opening\n"
        "--order ENGLAND LON_C M NTH_C\n"
        "--press ENGLAND public Hello all\n"
        "--press FRANCE\n"
        "--ready ENGLAND\n"
        "--advance\n"
    ))

    assert main(base_args) == 0

    out = capsys.readouterr().out.splitlines()
    assert out[0] == "Phase 1 move"
    assert "ENGLAND/public: Hello all" in out
    assert "LON_C: Moved to NTH_C" in out
    assert out[-1] == "Phase 2 move"

    with open(tmp_path / "log.json") as f:
        log = json.load(f)
    assert "LON_C M NTH_C" in log["Phase 1 move"]["ENGLAND"]


def test_one_command_per_invocation(base_args, tmp_path, capsys):
    assert main(base_args + ["--order", "ENGLAND", "LON_C", "M", "NTH_C"]) == 0
    assert main(base_args + ["--ready", "ENGLAND"]) == 0
    assert main(base_args + ["--advance"]) == 0

    out = capsys.readouterr().out.splitlines()
    assert "LON_C: Moved to NTH_C" in out

    with open(tmp_path / "state.json") as f:
        state = json.load(f)
    assert state["units"]["NTH_C"] == "ENGLAND"
    assert state["pending_orders"] == {}


def test_bad_command_reported_and_skipped(base_args, monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("--order ENGLAND LON_C Q NTH_C\n--phase\n"))
    assert main(base_args) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[1].startswith("error: ")
    assert out[2] == "Phase 1 move"


def test_votes_query(base_args, capsys):
    main(base_args + ["--draw", "FRANCE", "1"])
    main(base_args + ["--votes"])
    out = capsys.readouterr().out.splitlines()
    assert out == ["Draw votes: 1/3", "FRANCE 1"]


def test_missing_map_is_fatal(tmp_path, capsys):
    code = main(["--map-file", str(tmp_path / "missing.json"), "--rules-file", RULES_FILE, "--advance"])
    assert code == 2
    assert "error:" in capsys.readouterr().err


def test_invalid_rules_are_fatal(tmp_path):
    rules_file = tmp_path / "rules.json"
    rules_file.write_text(json.dumps({"drawType": "XYZ"}))
    assert main(["--map-file", MAP_FILE, "--rules-file", str(rules_file), "--phase"]) == 2


def test_withdraw_clears_pending_orders(base_args, tmp_path):
    main(base_args + ["--order", "ENGLAND", "LON_C", "M", "NTH_C"])
    main(base_args + ["--order", "FRANCE", "PAR_L", "M", "BUR_L"])
    assert main(base_args + ["--withdraw", "ENGLAND"]) == 0

    with open(tmp_path / "state.json") as f:
        state = json.load(f)
    assert state["pending_orders"] == {"FRANCE": ["PAR_L M BUR_L"]}


def test_draw_with_session_player(base_args, monkeypatch, capsys):
    main(base_args + ["--player", "GERMANY", "--draw", "1"])
    monkeypatch.setenv("DIPLOMACY_PLAYER", "FRANCE")
    main(base_args + ["--draw", "1"])
    main(base_args + ["--votes"])
    out = capsys.readouterr().out.splitlines()
    assert out == ["Draw votes: 2/3", "FRANCE 1", "GERMANY 1"]


def test_short_draw_without_session_player(base_args, monkeypatch, capsys):
    monkeypatch.delenv("DIPLOMACY_PLAYER", raising=False)
    assert main(base_args + ["--draw", "1"]) == 0
    assert capsys.readouterr().out.startswith("error: ")

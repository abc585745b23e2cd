from __future__ import annotations

import json

import pytest

from threecard import cli


def test_json_output(capsys):
    assert cli.main(["--hands", "2", "--players", "2", "--seeds", "5", "--mc-samples", "30", "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["hands"] == 2
    assert payload["seeds"] == [5]
    assert [seat["identity"] for seat in payload["seats"]] == ["ai-1", "ai-2"]


def test_table_output_without_color(capsys):
    code = cli.main(
        ["--hands", "1", "--players", "3", "--archetypes", "tight,tricky", "--mc-samples", "30", "--no-color"]
    )
    assert code == 0
    out = capsys.readouterr().out
    assert "Self-play" in out
    assert "tricky" in out
    assert "\x1b[" not in out


def test_bad_arguments_exit_with_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--archetypes", "reckless"])
    assert excinfo.value.code == 2
    with pytest.raises(SystemExit):
        cli.main(["--players", "12"])

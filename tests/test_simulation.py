from __future__ import annotations

import importlib.util
import json
from pathlib import Path

import pytest

from threecard.analysis.simulation import SimulationConfig, run_simulation


def test_config_validation():
    with pytest.raises(ValueError):
        SimulationConfig(hands=0)
    with pytest.raises(ValueError):
        SimulationConfig(players=9)
    with pytest.raises(ValueError):
        SimulationConfig(seeds=())
    with pytest.raises(ValueError):
        SimulationConfig(archetypes=("reckless",))
    assert SimulationConfig(archetypes=("tight", "tricky")).archetype_for(3) == "tricky"


def test_same_seed_gives_the_same_summary():
    config = SimulationConfig(hands=4, seeds=(7,), players=3, mc_samples=40)
    first = run_simulation(config).summary().to_dict()
    second = run_simulation(config).summary().to_dict()
    assert first == second


def test_chips_are_conserved_across_seats():
    config = SimulationConfig(hands=5, seeds=(3, 4), players=4, mc_samples=40)
    result = run_simulation(config)
    summary = result.summary()

    assert summary.hands == sum(run.hands for run in result.runs)
    assert all(run.hands == 5 for run in result.runs if run.unfinished == 0)
    assert summary.seeds == [3, 4]
    assert len(summary.seats) == 4
    for run in result.runs:
        if run.unfinished == 0:
            assert sum(stats.net_chips for stats in run.seats) == 0
            assert sum(stats.hands_won for stats in run.seats) == run.hands
    assert all(seat.actions for seat in summary.seats)


def _load_script():
    path = Path(__file__).resolve().parents[1] / "scripts" / "run_simulation.py"
    spec = importlib.util.spec_from_file_location("run_simulation_script", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_baseline_script_writes_per_seed_results(tmp_path):
    script = _load_script()
    out = tmp_path / "baseline.json"
    assert script.main(["--hands", "2", "--players", "2", "--seeds", "5,6", "--mc-samples", "30", "--out", str(out)]) == 0

    payload = json.loads(out.read_text(encoding="utf-8"))
    assert [run["seed"] for run in payload["runs"]] == [5, 6]
    assert set(payload["runs"][0]["net_chips"]) == {"ai-1", "ai-2"}
    assert payload["combined"]["seeds"] == [5, 6]

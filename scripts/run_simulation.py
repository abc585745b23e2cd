#!/usr/bin/env python3

"""Record per-seed self-play results as a JSON baseline.

Policy changes can be compared by diffing two baselines produced with the
same seeds.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

if __package__ is None:
    repo_root = Path(__file__).resolve().parents[1]
    src_dir = repo_root / "src"
    if str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))

from threecard.analysis.simulation import SimulationConfig, SimulationResult, run_simulation
from threecard.cli import parse_archetypes, parse_seeds


def baseline(result: SimulationResult) -> dict:
    return {
        "combined": result.summary().to_dict(),
        "runs": [
            {
                "seed": run.seed,
                "hands": run.hands,
                "unfinished": run.unfinished,
                "net_chips": {stats.identity: stats.net_chips for stats in run.seats},
                "hands_won": {stats.identity: stats.hands_won for stats in run.seats},
                "rebuys": {stats.identity: stats.rebuys for stats in run.seats},
            }
            for run in result.runs
        ],
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Write a deterministic self-play baseline")
    parser.add_argument("--hands", type=int, default=50, help="Hands per seed")
    parser.add_argument("--players", type=int, default=4)
    parser.add_argument("--archetypes", type=parse_archetypes, default=None)
    parser.add_argument("--mc-samples", type=int, default=200)
    parser.add_argument("--seeds", type=parse_seeds, default=(101, 202, 303), help="Comma-separated seeds")
    parser.add_argument("--out", type=Path, default=None, help="Write to this file instead of stdout")
    args = parser.parse_args(argv)

    try:
        config = SimulationConfig(
            hands=args.hands,
            seeds=args.seeds,
            players=args.players,
            archetypes=args.archetypes,
            mc_samples=args.mc_samples,
        )
    except ValueError as exc:
        parser.error(str(exc))

    text = json.dumps(baseline(run_simulation(config)), indent=2, sort_keys=True)
    if args.out is None:
        print(text)
    else:
        args.out.write_text(text + "\n", encoding="utf-8")
        print(f"baseline written to {args.out}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

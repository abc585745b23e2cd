"""``threecard-sim``: run AI self-play from the command line."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from rich.console import Console
from rich.table import Table

from .ai.personality import ARCHETYPES
from .analysis.simulation import SimulationConfig, SimulationSummary, run_simulation

__all__ = ["main", "parse_archetypes", "parse_seeds", "render_summary"]


def parse_seeds(raw: str) -> tuple[int, ...]:
    try:
        return tuple(int(item) for item in raw.split(",") if item.strip())
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid seed list '{raw}'") from exc


def parse_archetypes(raw: str) -> tuple[str, ...]:
    names = tuple(item.strip().lower() for item in raw.split(",") if item.strip())
    for name in names:
        if name not in ARCHETYPES:
            raise argparse.ArgumentTypeError(f"unknown archetype '{name}' (options: {', '.join(ARCHETYPES)})")
    return names


def render_summary(summary: SimulationSummary, console: Console) -> None:
    table = Table(
        title=f"Self-play: {summary.hands} hands, seeds {', '.join(map(str, summary.seeds))}",
        show_header=True,
        header_style="bold blue",
    )
    table.add_column("Seat", no_wrap=True)
    table.add_column("Archetype", no_wrap=True)
    table.add_column("Won", justify="right")
    table.add_column("Win %", justify="right")
    table.add_column("Net chips", justify="right")
    table.add_column("Rebuys", justify="right")
    table.add_column("Showdowns (won)", justify="right")
    table.add_column("Actions", style="dim", overflow="fold")
    for seat in summary.seats:
        net_style = "green" if seat.net_chips >= 0 else "red"
        table.add_row(
            seat.identity,
            seat.archetype,
            str(seat.hands_won),
            f"{100.0 * seat.win_rate:.1f}",
            f"[{net_style}]{seat.net_chips:+d}[/{net_style}]",
            str(seat.rebuys),
            f"{seat.showdowns_initiated} ({seat.showdowns_won})",
            " ".join(f"{kind}={count}" for kind, count in seat.actions.items()),
        )
    console.print(table)
    if summary.unfinished:
        console.print(f"[yellow]{summary.unfinished} hand(s) stopped at the action limit[/yellow]")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run deterministic three-card AI self-play")
    parser.add_argument("--hands", type=int, default=50, help="Hands per seed")
    parser.add_argument(
        "--seeds",
        type=parse_seeds,
        default=(101,),
        help="Comma-separated list of integer seeds (default: 101)",
    )
    parser.add_argument("--players", type=int, default=4, help="AI seats at the table (2-8)")
    parser.add_argument(
        "--archetypes",
        type=parse_archetypes,
        default=None,
        help=f"Comma-separated archetypes assigned round-robin ({', '.join(ARCHETYPES)})",
    )
    parser.add_argument("--ante", type=int, default=10)
    parser.add_argument("--chips", type=int, default=1000, help="Starting chips per seat")
    parser.add_argument("--mc-samples", type=int, default=200, help="Monte Carlo samples per win-rate estimate")
    parser.add_argument("--json", action="store_true", help="Emit the summary as JSON")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging level for the engine (default: WARNING)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    try:
        config = SimulationConfig(
            hands=args.hands,
            seeds=args.seeds,
            players=args.players,
            archetypes=args.archetypes,
            ante=args.ante,
            starting_chips=args.chips,
            mc_samples=args.mc_samples,
        )
    except ValueError as exc:
        parser.error(str(exc))

    summary = run_simulation(config).summary()
    if args.json:
        json.dump(summary.to_dict(), sys.stdout, indent=2)
        sys.stdout.write("\n")
        return 0

    if args.no_color:
        console = Console(force_terminal=False, color_system=None)
    else:
        console = Console()
    render_summary(summary, console)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())

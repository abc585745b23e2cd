"""Deterministic AI self-play harness.

Runs all-AI tables through the room service with think delays switched off,
so a seed fully determines every deal and every decision. Useful for
regression checks on policy tweaks without a transport layer.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict

from ..ai.personality import ARCHETYPES
from ..features.room.concurrency import shutdown_executor
from ..features.room.service import RoomConfig, RoomManager
from ..table.actions import ActionEvent, EventKind, Phase

__all__ = [
    "SimulationConfig",
    "SeatStats",
    "SimulationRun",
    "SimulationResult",
    "SimulationSummary",
    "run_simulation",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationConfig:
    hands: int = 50
    seeds: tuple[int, ...] = (101,)
    players: int = 4
    archetypes: tuple[str, ...] | None = None
    ante: int = 10
    starting_chips: int = 1000
    mc_samples: int = 200
    max_actions_per_hand: int = 1000

    def __post_init__(self) -> None:
        if self.hands <= 0:
            raise ValueError("hands must be positive")
        if not self.seeds:
            raise ValueError("at least one seed is required")
        if not 2 <= self.players <= 8:
            raise ValueError("players must be between 2 and 8")
        if self.archetypes:
            unknown = [name for name in self.archetypes if name not in ARCHETYPES]
            if unknown:
                raise ValueError(f"Unknown archetype '{unknown[0]}'. Options: {', '.join(ARCHETYPES)}")

    def archetype_for(self, index: int) -> str:
        pool = self.archetypes or ARCHETYPES
        return pool[index % len(pool)]


@dataclass
class SeatStats:
    identity: str
    archetype: str
    hands: int = 0
    hands_won: int = 0
    net_chips: int = 0
    rebuys: int = 0
    showdowns_initiated: int = 0
    showdowns_won: int = 0
    actions: Counter[str] = field(default_factory=Counter)

    @property
    def win_rate(self) -> float:
        return self.hands_won / self.hands if self.hands else 0.0

    def merge(self, other: SeatStats) -> None:
        self.hands += other.hands
        self.hands_won += other.hands_won
        self.net_chips += other.net_chips
        self.rebuys += other.rebuys
        self.showdowns_initiated += other.showdowns_initiated
        self.showdowns_won += other.showdowns_won
        self.actions.update(other.actions)


@dataclass(frozen=True)
class SimulationRun:
    seed: int
    hands: int
    unfinished: int
    seats: tuple[SeatStats, ...]


@dataclass(frozen=True)
class SimulationResult:
    runs: tuple[SimulationRun, ...]
    combined: tuple[SeatStats, ...]

    def summary(self) -> SimulationSummary:
        return SimulationSummary(
            hands=sum(run.hands for run in self.runs),
            seeds=[run.seed for run in self.runs],
            unfinished=sum(run.unfinished for run in self.runs),
            seats=[_seat_payload(stats) for stats in self.combined],
        )


class _SummaryModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SeatSummary(_SummaryModel):
    identity: str
    archetype: str
    hands: int
    hands_won: int
    win_rate: float
    net_chips: int
    rebuys: int
    showdowns_initiated: int
    showdowns_won: int
    actions: dict[str, int]


class SimulationSummary(_SummaryModel):
    hands: int
    seeds: list[int]
    unfinished: int
    seats: list[SeatSummary]


def _seat_payload(stats: SeatStats) -> SeatSummary:
    return SeatSummary(
        identity=stats.identity,
        archetype=stats.archetype,
        hands=stats.hands,
        hands_won=stats.hands_won,
        win_rate=round(stats.win_rate, 4),
        net_chips=stats.net_chips,
        rebuys=stats.rebuys,
        showdowns_initiated=stats.showdowns_initiated,
        showdowns_won=stats.showdowns_won,
        actions=dict(sorted(stats.actions.items())),
    )


def _tally(events: list[ActionEvent], stats: dict[int, SeatStats]) -> None:
    for event in events:
        seat_stats = stats.get(event.seat)
        if seat_stats is not None:
            seat_stats.actions[event.kind.value] += 1
        if event.kind is EventKind.SHOWDOWN and event.showdown is not None:
            stats[event.showdown.challenger].showdowns_initiated += 1
            stats[event.showdown.winner].showdowns_won += 1


async def _run_seed(config: SimulationConfig, seed: int) -> SimulationRun:
    manager = RoomManager()
    await manager.load_biases()
    room_id = manager.create_room(
        RoomConfig(
            ante=config.ante,
            starting_chips=config.starting_chips,
            max_seats=max(config.players, 2),
            think_delay_ms=0,
            ai_only_think_delay_ms=0,
            mc_samples=config.mc_samples,
            seed=seed,
        )
    )
    stats: dict[int, SeatStats] = {}
    for index in range(config.players):
        identity = f"ai-{index + 1}"
        archetype = config.archetype_for(index)
        await manager.sit(room_id, index, identity, is_ai=True, archetype=archetype)
        stats[index] = SeatStats(identity=identity, archetype=archetype)

    table = manager.room(room_id).table
    unfinished = 0
    for hand in range(config.hands):
        for index, seat in table.seats():
            if seat.chips < config.ante:
                seat.chips += config.starting_chips
                stats[index].rebuys += 1
        await manager.start_hand(room_id, host_seat=hand % config.players)
        for index in stats:
            stats[index].hands += 1
        events = await manager.run_ai_turns(room_id, limit=config.max_actions_per_hand)
        _tally(events, stats)
        if table.phase is not Phase.ENDED:
            unfinished += 1
            logger.warning("Seed %d hand %d hit the action limit; abandoning the hand", seed, hand + 1)
            break
        if table.result is not None:
            stats[table.result.winner].hands_won += 1

    for index, seat in table.seats():
        stats[index].net_chips = seat.chips - config.starting_chips * (1 + stats[index].rebuys)
    await manager.flush()
    await manager.close_room(room_id)
    hands_played = max((s.hands for s in stats.values()), default=0)
    logger.info("Seed %d finished %d hands", seed, hands_played)
    return SimulationRun(seed=seed, hands=hands_played, unfinished=unfinished, seats=tuple(stats.values()))


async def _run_all(config: SimulationConfig) -> list[SimulationRun]:
    return [await _run_seed(config, seed) for seed in config.seeds]


def run_simulation(config: SimulationConfig) -> SimulationResult:
    try:
        runs = asyncio.run(_run_all(config))
    finally:
        shutdown_executor()
    combined: dict[str, SeatStats] = {}
    for run in runs:
        for stats in run.seats:
            total = combined.setdefault(stats.identity, SeatStats(stats.identity, stats.archetype))
            total.merge(stats)
    return SimulationResult(runs=tuple(runs), combined=tuple(combined.values()))

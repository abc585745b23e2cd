"""Self-tuning strategy biases learned from decision outcomes.

Each AI identity keeps a bounded history of its decisions. When a hand
resolves, the outcome is written onto every unresolved decision and, once
enough decisions have completed, small bounded nudges are applied to the
archetype-level and table-wide biases the decision policy reads.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace

from .stores import GlobalBias, PersonalityBias

__all__ = ["DecisionRecord", "StrategyAdjustments", "StrategyAdjuster", "BOUNDS"]

logger = logging.getLogger(__name__)

BOUNDS: dict[str, tuple[float, float]] = {
    "bluff_adjust": (-0.15, 0.15),
    "aggression_adjust": (-0.15, 0.15),
    "slow_play_adjust": (-0.15, 0.1),
    "trap_adjust": (-0.2, 0.2),
    "fold_adjust": (-0.1, 0.1),
    "showdown_adjust": (-0.15, 0.15),
    "monster_threshold_adjust": (-500.0, 500.0),
    "strong_threshold_adjust": (-500.0, 500.0),
    "medium_threshold_adjust": (-500.0, 500.0),
    "probe_adjust": (-0.1, 0.1),
}


@dataclass
class DecisionRecord:
    action: str
    amount: int
    strength: int
    round: int
    pot: int
    call_amount: int
    position: str = "middle"
    tier: str | None = None
    won: bool | None = None
    profit: float | None = None

    @property
    def resolved(self) -> bool:
        return self.won is not None


@dataclass(frozen=True)
class StrategyAdjustments:
    """Everything the policy reads: one archetype's bias plus the global one."""

    bluff_adjust: float = 0.0
    aggression_adjust: float = 0.0
    slow_play_adjust: float = 0.0
    trap_adjust: float = 0.0
    fold_adjust: float = 0.0
    showdown_adjust: float = 0.0
    monster_threshold_adjust: float = 0.0
    strong_threshold_adjust: float = 0.0
    medium_threshold_adjust: float = 0.0
    probe_adjust: float = 0.0

    @classmethod
    def combine(cls, personality: PersonalityBias, global_bias: GlobalBias) -> StrategyAdjustments:
        values = {f.name: getattr(personality, f.name) for f in fields(PersonalityBias)}
        values.update({f.name: getattr(global_bias, f.name) for f in fields(GlobalBias)})
        return cls(**values)


def _nudge(bias, name: str, step: float):
    low, high = BOUNDS[name]
    value = max(low, min(high, getattr(bias, name) + step))
    return replace(bias, **{name: value})


def _win_rate(records: list[DecisionRecord]) -> float:
    return sum(1 for r in records if r.won) / len(records)


def _avg_profit(records: list[DecisionRecord]) -> float:
    return sum(r.profit or 0.0 for r in records) / len(records)


class StrategyAdjuster:
    def __init__(self, *, history_size: int = 50, min_decisions: int = 5) -> None:
        self.history_size = history_size
        self.min_decisions = min_decisions
        self._history: dict[str, deque[DecisionRecord]] = {}
        self._archetypes: dict[str, str] = {}
        self._personality: dict[str, PersonalityBias] = {}
        self._global = GlobalBias()
        self.decisions_since_save = 0

    # ------------------------------------------------------------------ persistence

    def load(self, personality: Mapping[str, PersonalityBias], global_bias: GlobalBias) -> None:
        self._personality = {name: self._bounded(bias) for name, bias in personality.items()}
        self._global = self._bounded(global_bias)

    def reset(self) -> None:
        self._personality = {}
        self._global = GlobalBias()

    def snapshot(self) -> tuple[dict[str, PersonalityBias], GlobalBias]:
        return dict(self._personality), self._global

    @staticmethod
    def _bounded(bias):
        for spec in fields(bias):
            low, high = BOUNDS[spec.name]
            value = getattr(bias, spec.name)
            if not low <= value <= high:
                bias = replace(bias, **{spec.name: max(low, min(high, value))})
        return bias

    # ------------------------------------------------------------------ reads

    def personality_bias(self, archetype: str) -> PersonalityBias:
        return self._personality.get(archetype, PersonalityBias())

    @property
    def global_bias(self) -> GlobalBias:
        return self._global

    def adjustments(self, archetype: str) -> StrategyAdjustments:
        return StrategyAdjustments.combine(self.personality_bias(archetype), self._global)

    def history(self, identity: str) -> list[DecisionRecord]:
        return list(self._history.get(identity, ()))

    # ------------------------------------------------------------------ updates

    def record_decision(self, identity: str, archetype: str, record: DecisionRecord) -> None:
        history = self._history.setdefault(identity, deque(maxlen=self.history_size))
        history.append(record)
        self._archetypes[identity] = archetype
        self.decisions_since_save += 1

    def record_result(self, identity: str, *, won: bool, profit: float) -> bool:
        """Resolve pending decisions for ``identity``; True when biases moved."""

        history = self._history.get(identity)
        if not history:
            return False
        for record in history:
            if not record.resolved:
                record.won = won
                record.profit = profit
        return self.analyze_and_adjust(identity)

    def analyze_and_adjust(self, identity: str) -> bool:
        completed = [r for r in self._history.get(identity, ()) if r.resolved]
        if len(completed) < self.min_decisions:
            return False
        archetype = self._archetypes.get(identity, "balanced")
        before = (self.personality_bias(archetype), self._global)
        personal = self.personality_bias(archetype)
        shared = self._global

        bluffs = [r for r in completed if r.action == "raise" and r.strength < 4000]
        if len(bluffs) >= 2:
            rate = _win_rate(bluffs)
            if rate < 0.3:
                personal = _nudge(personal, "bluff_adjust", -0.03)
            elif rate > 0.5:
                personal = _nudge(personal, "bluff_adjust", 0.02)

        strong = [r for r in completed if r.strength >= 5000]
        if len(strong) >= 2:
            rate = _win_rate(strong)
            if rate > 0.6 and _avg_profit(strong) < 30:
                personal = _nudge(personal, "aggression_adjust", 0.03)
            elif rate < 0.4:
                personal = _nudge(personal, "aggression_adjust", -0.02)
                shared = _nudge(shared, "strong_threshold_adjust", 100)

        monsters = [r for r in completed if r.strength >= 7000]
        if len(monsters) >= 2 and _win_rate(monsters) < 0.5:
            shared = _nudge(shared, "monster_threshold_adjust", 100)

        folds = [r for r in completed if r.action == "fold"]
        stayed = [r for r in completed if r.action != "fold"]
        if len(folds) >= 3 and len(stayed) >= 3:
            rate = _win_rate(stayed)
            if rate < 0.35:
                shared = _nudge(shared, "fold_adjust", -0.02)
            elif rate > 0.55 and len(folds) > len(stayed):
                shared = _nudge(shared, "fold_adjust", 0.02)

        showdowns = [r for r in completed if r.action == "showdown"]
        if len(showdowns) >= 3:
            rate = _win_rate(showdowns)
            if rate < 0.4:
                shared = _nudge(shared, "showdown_adjust", -0.03)
            elif rate > 0.65:
                shared = _nudge(shared, "showdown_adjust", 0.02)

        slow = [r for r in completed if r.action == "call" and r.strength >= 5000]
        if len(slow) >= 2:
            profit = _avg_profit(slow)
            if profit < 20:
                personal = _nudge(personal, "slow_play_adjust", -0.03)
            elif profit > 40:
                personal = _nudge(personal, "slow_play_adjust", 0.02)

        traps = [r for r in completed if r.action == "call" and r.strength >= 6000]
        if len(traps) >= 2:
            profit = _avg_profit(traps)
            if profit < 20:
                personal = _nudge(personal, "trap_adjust", -0.05)
            elif profit > 50:
                personal = _nudge(personal, "trap_adjust", 0.03)

        medium_calls = [r for r in completed if r.action == "call" and 3000 <= r.strength < 5000]
        if len(medium_calls) >= 3:
            rate = _win_rate(medium_calls)
            if rate < 0.35:
                shared = _nudge(shared, "medium_threshold_adjust", 100)
            elif rate > 0.6:
                shared = _nudge(shared, "medium_threshold_adjust", -100)

        probes = [r for r in completed if r.action == "raise" and r.strength < 3000]
        if len(probes) >= 2:
            rate = _win_rate(probes)
            if rate < 0.25:
                shared = _nudge(shared, "probe_adjust", -0.02)
            elif rate > 0.5:
                shared = _nudge(shared, "probe_adjust", 0.02)

        self._personality[archetype] = personal
        self._global = shared
        changed = (personal, shared) != before
        if changed:
            logger.info("Strategy biases for %s adjusted: %s %s", archetype, personal, shared)
        return changed

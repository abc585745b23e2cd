"""Layered decision policy for AI seats.

The first layer that produces an action wins:

1. low chips (cannot afford the call)
2. blind play while the AI has not looked at its cards
3. showdown consideration once the first round is complete
4. risk governor against unknown human opponents
5. mixed strategy against unknown or balanced tables
6. short-stack play
7. slow play with deep stacks
8. hand-tier branches (monster, strong, medium, weak)

A tilt adjustment and a final guard (never fold monster or strong hands) run
over the result. Every random draw goes through the injected
``random.Random`` so a seeded policy replays exactly.
"""

from __future__ import annotations

import enum
import logging
import math
import random
from collections.abc import Sequence
from dataclasses import dataclass, field

from ..table.actions import ActionKind
from .opponent_model import OpponentAnalysis, OpponentView, SessionBehavior
from .personality import DEFAULT_PERSONALITY, Personality
from .range_estimator import HandRange
from .stores import BetPattern
from .strategy import StrategyAdjustments
from .win_rate import Matchup, WinRateCalculator

__all__ = [
    "Tier",
    "OpponentRead",
    "DecisionContext",
    "Decision",
    "WeightedOption",
    "StackDepth",
    "select_weighted",
    "seat_position",
    "round_pressure",
    "stack_depth",
    "pot_odds",
    "tier_thresholds",
    "classify_tier",
    "multiway_factors",
    "DecisionPolicy",
]

logger = logging.getLogger(__name__)


class Tier(str, enum.Enum):
    MONSTER = "monster"
    STRONG = "strong"
    MEDIUM = "medium"
    WEAK = "weak"


_POT_FRACTIONS = {"value_heavy": 0.8, "value": 0.6, "standard": 0.5, "bluff": 0.65, "thin": 0.35}
_VALUE_KINDS = ("value_heavy", "value", "standard")
_INVEST_CAPS = {Tier.MONSTER: 0.8, Tier.STRONG: 0.5, Tier.MEDIUM: 0.3, Tier.WEAK: 0.15}


@dataclass(frozen=True)
class OpponentRead:
    view: OpponentView
    analysis: OpponentAnalysis
    range: HandRange
    estimated_strength: float
    behavior: SessionBehavior = field(default_factory=SessionBehavior)
    bet_pattern: BetPattern | None = None

    @property
    def seat(self) -> int:
        return self.view.seat

    @property
    def matchup(self) -> Matchup:
        return Matchup(self.range, self.analysis, self.view.chips)

    @property
    def unknown_human(self) -> bool:
        return not self.view.is_ai and (self.bet_pattern is None or self.bet_pattern.total_records < 5)


@dataclass(frozen=True)
class DecisionContext:
    seat: int
    chips: int
    current_wager: int
    peeked: bool
    weight: int | None
    call_amount: int
    pot: int
    ante: int
    round: int
    first_round_complete: bool
    opponents: tuple[OpponentRead, ...] = ()
    personality: Personality = DEFAULT_PERSONALITY
    adjustments: StrategyAdjustments = field(default_factory=StrategyAdjustments)
    position: str = "middle"
    showdown_cost: int | None = None

    @property
    def player_count(self) -> int:
        return len(self.opponents) + 1

    @property
    def cost_to_showdown(self) -> int:
        return self.call_amount if self.showdown_cost is None else self.showdown_cost


@dataclass(frozen=True)
class Decision:
    action: ActionKind
    amount: int = 0
    target: int | None = None
    tier: Tier | None = None
    layer: str = ""


@dataclass(frozen=True)
class WeightedOption:
    action: ActionKind
    weight: float
    pot_fraction: float = 0.0


@dataclass(frozen=True)
class StackDepth:
    relative: float
    short: bool
    deep: bool
    covered: bool
    covers: bool


def select_weighted(options: Sequence[WeightedOption], rng: random.Random) -> WeightedOption:
    """Pick one option with probability proportional to its weight."""

    if not options:
        raise ValueError("no options to choose from")
    total = sum(max(option.weight, 0.0) for option in options)
    if total <= 0:
        return options[0]
    draw = rng.random() * total
    cumulative = 0.0
    for option in options:
        cumulative += max(option.weight, 0.0)
        if draw < cumulative:
            return option
    return options[-1]


def seat_position(seat: int, seats: Sequence[int]) -> str:
    ordered = sorted(set(seats) | {seat})
    if len(ordered) <= 1:
        return "middle"
    ratio = ordered.index(seat) / (len(ordered) - 1)
    if ratio <= 0.33:
        return "early"
    if ratio <= 0.66:
        return "middle"
    return "late"


def round_pressure(round_number: int) -> float:
    if round_number <= 2:
        return 0.0
    if round_number <= 4:
        return 0.2
    if round_number <= 6:
        return 0.4
    return 0.6


def stack_depth(chips: int, avg_opponent_chips: float, ante: int) -> StackDepth:
    relative = chips / avg_opponent_chips if avg_opponent_chips > 0 else 1.0
    return StackDepth(
        relative=relative,
        short=chips < ante * 15,
        deep=chips > ante * 50,
        covered=relative < 0.7,
        covers=relative > 1.5,
    )


def pot_odds(call_amount: int, pot: int) -> float:
    total = pot + call_amount
    return call_amount / total if total > 0 else 0.0


def tier_thresholds(
    player_count: int,
    position: str = "middle",
    adjustments: StrategyAdjustments | None = None,
) -> tuple[float, float, float]:
    """Minimum weights for (monster, strong, medium); tighter at bigger tables."""

    if player_count <= 3:
        monster, strong, medium = 7000.0, 5000.0, 3000.0
    elif player_count <= 5:
        monster, strong, medium = 8000.0, 6000.0, 4000.0
    else:
        monster, strong, medium = 9000.0, 7000.0, 5000.0
    shift = {"late": -500.0, "early": 500.0}.get(position, 0.0)
    adj = adjustments or StrategyAdjustments()
    return (
        monster + shift + adj.monster_threshold_adjust,
        strong + shift + adj.strong_threshold_adjust,
        medium + shift + adj.medium_threshold_adjust,
    )


def classify_tier(
    weight: int,
    player_count: int,
    position: str = "middle",
    adjustments: StrategyAdjustments | None = None,
) -> Tier:
    monster, strong, medium = tier_thresholds(player_count, position, adjustments)
    if weight >= monster:
        return Tier.MONSTER
    if weight >= strong:
        return Tier.STRONG
    if weight >= medium:
        return Tier.MEDIUM
    return Tier.WEAK


def multiway_factors(player_count: int) -> tuple[float, float, float]:
    """(strength, bluff, fold) multipliers for the number of live players."""

    if player_count <= 2:
        return 1.0, 1.0, 1.0
    if player_count == 3:
        return 1.1, 0.7, 1.15
    if player_count == 4:
        return 1.2, 0.5, 1.25
    return 1.3, 0.3, 1.35


@dataclass(frozen=True)
class _TableRead:
    avg_bluff: float
    avg_fold: float
    avg_danger: float
    avg_tilt: float
    max_tilt: float
    max_likelihood: float
    avg_chips: float
    types: frozenset[str]

    @classmethod
    def of(cls, opponents: Sequence[OpponentRead]) -> _TableRead:
        if not opponents:
            return cls(0.3, 0.5, 0.5, 0.0, 0.0, 0.0, 0.0, frozenset())
        count = len(opponents)
        return cls(
            avg_bluff=sum(o.analysis.bluff_likelihood for o in opponents) / count,
            avg_fold=sum(o.analysis.fold_pressure for o in opponents) / count,
            avg_danger=sum(o.analysis.danger_level for o in opponents) / count,
            avg_tilt=sum(o.analysis.tilt_level for o in opponents) / count,
            max_tilt=max(o.analysis.tilt_level for o in opponents),
            max_likelihood=max(o.behavior.strong_hand_likelihood for o in opponents),
            avg_chips=sum(o.view.chips for o in opponents) / count,
            types=frozenset(o.analysis.type for o in opponents),
        )


class DecisionPolicy:
    def __init__(
        self,
        rng: random.Random | None = None,
        calculator: WinRateCalculator | None = None,
        *,
        mixed_strategy_rate: float = 0.3,
    ) -> None:
        self.rng = rng or random.Random()
        self.calculator = calculator or WinRateCalculator()
        self.mixed_strategy_rate = mixed_strategy_rate

    def decide(self, ctx: DecisionContext) -> Decision:
        if ctx.call_amount > ctx.chips:
            decision = self._low_chips(ctx)
        elif not ctx.peeked or ctx.weight is None:
            decision = self._blind(ctx)
        else:
            tier = classify_tier(ctx.weight, ctx.player_count, ctx.position, ctx.adjustments)
            decision = None
            if ctx.first_round_complete and ctx.opponents:
                decision = self._consider_showdown(ctx, tier)
            if decision is None:
                decision = self._bet(ctx, tier)
            decision = self._tilt_adjust(ctx, decision)
            if decision.action is ActionKind.FOLD and tier in (Tier.MONSTER, Tier.STRONG):
                decision = Decision(ActionKind.CALL, tier=tier, layer="guard")
        decision = self._legalize(ctx, decision)
        logger.debug(
            "Seat %d decided %s amount=%d target=%s (layer=%s tier=%s)",
            ctx.seat,
            decision.action.value,
            decision.amount,
            decision.target,
            decision.layer,
            decision.tier.value if decision.tier else None,
        )
        return decision

    # ------------------------------------------------------------------ layers

    def _low_chips(self, ctx: DecisionContext) -> Decision:
        if not ctx.peeked or ctx.weight is None:
            return Decision(ActionKind.PEEK, layer="low_chips")
        if ctx.weight >= 3000 or self.rng.random() > 0.4:
            return Decision(ActionKind.CALL, layer="low_chips")
        return Decision(ActionKind.FOLD, layer="low_chips")

    def _blind(self, ctx: DecisionContext) -> Decision:
        read = _TableRead.of(ctx.opponents)
        personality = ctx.personality
        chip_pressure = ctx.call_amount / max(ctx.chips, 1)

        peek = 0.3 - (personality.blind_preference - 0.4) + ctx.round * 0.15
        if chip_pressure > 0.4:
            peek += 0.4
        elif chip_pressure > 0.2:
            peek += 0.3
        if read.avg_danger > 0.5:
            peek += 0.25
        if "maniac" in read.types:
            peek += 0.2
        if read.avg_bluff > 0.4:
            peek -= 0.1
        if read.avg_tilt > 0.4:
            peek -= 0.15
        peek = max(0.15, min(0.95, peek))
        if self.rng.random() < peek:
            return Decision(ActionKind.PEEK, layer="blind")

        call = ctx.call_amount
        if ctx.round >= 3:
            return Decision(ActionKind.BLIND, call, layer="blind")
        raise_by = self._blind_raise(ctx, read)
        if "rock" in read.types and raise_by and ctx.chips > call + raise_by:
            rock_fold = max(o.analysis.fold_pressure for o in ctx.opponents if o.analysis.type == "rock")
            if self.rng.random() < rock_fold * 0.4:
                return Decision(ActionKind.BLIND, call + raise_by, layer="blind")
        if read.avg_tilt > 0.5 and raise_by and self.rng.random() < read.avg_tilt * 0.35:
            return Decision(ActionKind.BLIND, call + raise_by, layer="blind")
        if "calling_station" in read.types:
            return Decision(ActionKind.BLIND, call, layer="blind")
        if raise_by and self.rng.random() < 0.1:
            return Decision(ActionKind.BLIND, call + raise_by, layer="blind")
        return Decision(ActionKind.BLIND, call, layer="blind")

    def _blind_raise(self, ctx: DecisionContext, read: _TableRead) -> int:
        amount = ctx.pot * 0.4
        if ctx.round <= 1:
            amount *= 0.7
        if read.avg_fold > 0.6:
            amount *= 0.8
        ceiling = ctx.chips - ctx.call_amount
        if ceiling <= 0:
            return 0
        return min(max(math.floor(amount), ctx.ante), ceiling)

    def _consider_showdown(self, ctx: DecisionContext, tier: Tier) -> Decision | None:
        weight = ctx.weight or 0
        count = ctx.player_count
        cost = ctx.cost_to_showdown
        if weight < 3500 or (count >= 4 and weight < 5000) or (count >= 3 and weight < 4000):
            return None
        if ctx.chips < cost:
            return None

        aggression = ctx.personality.showdown_aggression + ctx.adjustments.showdown_adjust
        target = min(
            ctx.opponents,
            key=lambda o: (o.estimated_strength, -self.calculator.showdown_priority(weight, o.matchup), o.seat),
        )
        estimate = self.calculator.showdown_ev(weight, target.matchup, pot=ctx.pot, cost=cost)
        win = estimate.win_rate * 0.9 ** max(0, count - 2)
        if target.analysis.type == "rock":
            win *= 0.85
        if win <= 0.5:
            return None
        ev = win * ctx.pot - (1 - win) * cost
        if ev <= 0:
            return None
        if target.analysis.type == "rock" and weight < (5500 if aggression > 0.5 else 6500):
            return None

        chance = 0.05 + aggression * 0.15
        chance += 0.4 if ev > cost * 0.5 else 0.25
        if win > 0.7:
            chance += 0.2
        elif win > 0.55:
            chance += 0.1
        if target.analysis.bluff_likelihood > 0.5:
            chance += 0.15
        if target.analysis.tilt_level > 0.4:
            chance += 0.1
        chance += round_pressure(ctx.round) * 0.2

        bet = self._bet_size(ctx, "standard", _TableRead.of(ctx.opponents))
        if bet > 0:
            comparison = self.calculator.compare_bet_vs_showdown(
                weight,
                target.matchup,
                [o.matchup for o in ctx.opponents],
                pot=ctx.pot,
                cost=cost,
                bet=bet,
            )
            if comparison.recommendation == "bet":
                chance *= 0.7
        chance = min(0.85, chance * (0.7 + aggression * 0.6))

        if self.rng.random() < chance:
            return Decision(ActionKind.SHOWDOWN, target=target.seat, tier=tier, layer="showdown")
        return None

    def _bet(self, ctx: DecisionContext, tier: Tier) -> Decision:
        read = _TableRead.of(ctx.opponents)
        personality = ctx.personality
        adj = ctx.adjustments
        pressure = round_pressure(ctx.round)
        depth = stack_depth(ctx.chips, read.avg_chips, ctx.ante)
        strength_mul, bluff_mul, fold_mul = multiway_factors(ctx.player_count)
        raise_freq = (personality.raise_frequency + pressure * 0.15 + adj.aggression_adjust) / strength_mul
        bluff_freq = (personality.bluff_frequency + pressure * 0.1 + adj.bluff_adjust) * bluff_mul
        fold_thr = (personality.fold_threshold + pressure * 0.1 + adj.fold_adjust) / fold_mul
        chip_pressure = ctx.call_amount / max(ctx.chips, 1)

        governed = self._risk_governor(ctx, tier)
        if governed is not None:
            return governed

        unknown = sum(1 for o in ctx.opponents if o.analysis.type in ("unknown", "balanced"))
        if unknown and unknown * 2 >= len(ctx.opponents) and not depth.short:
            if self.rng.random() < self.mixed_strategy_rate:
                option = select_weighted(self._mixed_options(tier, personality, adj, read), self.rng)
                amount = self._clip_raise(ctx, math.floor(ctx.pot * option.pot_fraction)) if option.pot_fraction else 0
                return Decision(option.action, amount, tier=tier, layer="mixed")

        if depth.short:
            return self._short_stack(ctx, tier, read)

        if depth.deep and tier in (Tier.MONSTER, Tier.STRONG) and pressure < 0.4:
            chance = personality.slow_play_chance + adj.slow_play_adjust
            chance += 0.25 if tier is Tier.MONSTER else 0.1
            if "maniac" in read.types:
                chance += 0.25
            if "calling_station" in read.types:
                chance -= 0.3
            chance += 0.15 if ctx.round <= 2 else -0.2
            if ctx.pot < ctx.chips * 0.15:
                chance += 0.1
            if self.rng.random() < max(0.0, min(0.7, chance)):
                return Decision(ActionKind.CALL, tier=tier, layer="slow_play")

        match tier:
            case Tier.MONSTER:
                return self._monster(ctx, read, raise_freq)
            case Tier.STRONG:
                return self._strong(ctx, read, raise_freq)
            case Tier.MEDIUM:
                return self._medium(ctx, read, bluff_freq, fold_thr, chip_pressure)
            case _:
                return self._weak(ctx, read, bluff_freq, fold_thr, chip_pressure)

    def _risk_governor(self, ctx: DecisionContext, tier: Tier) -> Decision | None:
        if not any(o.unknown_human for o in ctx.opponents):
            return None
        invest = (ctx.current_wager + ctx.call_amount) / max(ctx.chips + ctx.current_wager, 1)
        over = invest - _INVEST_CAPS[tier]
        if over <= 0:
            return None
        if self.rng.random() < min(0.8, over * 0.6):
            return Decision(ActionKind.FOLD, tier=tier, layer="risk_governor")
        return Decision(ActionKind.CALL, tier=tier, layer="risk_governor")

    def _mixed_options(
        self,
        tier: Tier,
        personality: Personality,
        adjustments: StrategyAdjustments,
        read: _TableRead,
    ) -> list[WeightedOption]:
        raise_, call, fold = ActionKind.RAISE, ActionKind.CALL, ActionKind.FOLD
        match tier:
            case Tier.MONSTER:
                options = [WeightedOption(raise_, 0.65, 0.7), WeightedOption(call, 0.30), WeightedOption(raise_, 0.05, 0.4)]
            case Tier.STRONG:
                options = [WeightedOption(raise_, 0.55, 0.5), WeightedOption(call, 0.40), WeightedOption(raise_, 0.05, 0.8)]
            case Tier.MEDIUM:
                options = [WeightedOption(call, 0.6), WeightedOption(raise_, 0.2, 0.5), WeightedOption(fold, 0.2)]
            case _:
                bluff = max(0.0, (0.25 if read.avg_fold > 0.5 else 0.10) + adjustments.bluff_adjust)
                options = [
                    WeightedOption(fold, 0.5 - bluff / 2),
                    WeightedOption(call, 0.5 - bluff / 2),
                    WeightedOption(raise_, bluff, 0.6),
                ]
        raise_scale = 0.7 + personality.raise_frequency
        fold_scale = 1.5 - personality.fold_threshold
        scaled: list[WeightedOption] = []
        for option in options:
            if option.action is raise_:
                option = WeightedOption(option.action, option.weight * raise_scale, option.pot_fraction)
            elif option.action is fold:
                option = WeightedOption(option.action, option.weight * fold_scale, option.pot_fraction)
            scaled.append(option)
        return scaled

    def _short_stack(self, ctx: DecisionContext, tier: Tier, read: _TableRead) -> Decision:
        remaining = ctx.chips - ctx.call_amount
        if tier in (Tier.MONSTER, Tier.STRONG):
            if remaining > 0:
                return Decision(ActionKind.RAISE, remaining, tier=tier, layer="short_stack")
            return Decision(ActionKind.CALL, tier=tier, layer="short_stack")
        if tier is Tier.MEDIUM:
            if read.avg_danger < 0.5 and remaining > 0 and self.rng.random() < 0.5:
                return Decision(ActionKind.RAISE, remaining, tier=tier, layer="short_stack")
            return Decision(ActionKind.CALL, tier=tier, layer="short_stack")
        if self.rng.random() < 0.7:
            return Decision(ActionKind.FOLD, tier=tier, layer="short_stack")
        return Decision(ActionKind.CALL, tier=tier, layer="short_stack")

    def _monster(self, ctx: DecisionContext, read: _TableRead, raise_freq: float) -> Decision:
        tier = Tier.MONSTER
        if (read.max_likelihood >= 0.5 or "maniac" in read.types) and self.rng.random() < 0.6:
            return Decision(ActionKind.CALL, tier=tier, layer="tier")
        if "calling_station" in read.types:
            return self._raise(ctx, read, "value_heavy", tier)
        if "maniac" in read.types and self.rng.random() < 0.5 + ctx.adjustments.trap_adjust:
            return Decision(ActionKind.CALL, tier=tier, layer="tier")
        if self.rng.random() < raise_freq + 0.3:
            return self._raise(ctx, read, "value", tier)
        return Decision(ActionKind.CALL, tier=tier, layer="tier")

    def _strong(self, ctx: DecisionContext, read: _TableRead, raise_freq: float) -> Decision:
        tier = Tier.STRONG
        if (read.max_likelihood >= 0.5 or "maniac" in read.types) and self.rng.random() < 0.5:
            return Decision(ActionKind.CALL, tier=tier, layer="tier")
        if "rock" in read.types and read.avg_danger > 0.6:
            return Decision(ActionKind.CALL, tier=tier, layer="tier")
        if "calling_station" in read.types:
            return self._raise(ctx, read, "value", tier)
        if self.rng.random() < raise_freq:
            return self._raise(ctx, read, "standard", tier)
        return Decision(ActionKind.CALL, tier=tier, layer="tier")

    def _medium(
        self,
        ctx: DecisionContext,
        read: _TableRead,
        bluff_freq: float,
        fold_thr: float,
        chip_pressure: float,
    ) -> Decision:
        tier = Tier.MEDIUM
        if read.max_likelihood >= 0.7:
            if chip_pressure > 0.3 and self.rng.random() < 0.5:
                return Decision(ActionKind.FOLD, tier=tier, layer="tier")
            return Decision(ActionKind.CALL, tier=tier, layer="tier")
        if "rock" in read.types and read.avg_fold > 0.5 and read.max_likelihood < 0.5:
            if self.rng.random() < bluff_freq + 0.15:
                return self._raise(ctx, read, "bluff", tier)
        good_odds = pot_odds(ctx.call_amount, ctx.pot) < 0.45
        if "calling_station" in read.types:
            if good_odds and self.rng.random() < 0.3:
                return self._raise(ctx, read, "thin", tier)
            return Decision(ActionKind.CALL, tier=tier, layer="tier")
        if chip_pressure > 0.4 and read.avg_danger > 0.65 and not good_odds:
            if self.rng.random() < 1 - fold_thr:
                return Decision(ActionKind.FOLD, tier=tier, layer="tier")
        return Decision(ActionKind.CALL, tier=tier, layer="tier")

    def _weak(
        self,
        ctx: DecisionContext,
        read: _TableRead,
        bluff_freq: float,
        fold_thr: float,
        chip_pressure: float,
    ) -> Decision:
        tier = Tier.WEAK
        call = ctx.call_amount
        est_win = 0.25 + read.avg_bluff * 0.25
        implied = call / max(ctx.pot + call + read.avg_chips * est_win * 0.3, 1)
        good_odds = implied < est_win
        odds = pot_odds(call, ctx.pot)

        aggression = 0.0
        for opponent in ctx.opponents:
            last = opponent.view.last_wager
            if opponent.view.peeked and last > 30:
                aggression += 0.4
            elif opponent.view.peeked and last > 20:
                aggression += 0.25
            elif not opponent.view.peeked and last > 25:
                aggression += 0.15
            elif last <= ctx.ante:
                aggression += 0.05
        aggression /= max(len(ctx.opponents), 1)

        fold = 1 - fold_thr + aggression * 0.5 + read.avg_danger * 0.3 + chip_pressure * 0.4
        if ctx.current_wager / max(ctx.chips + ctx.current_wager, 1) > 0.3:
            fold += 0.2
        if odds > 0.35:
            fold += 0.15
        if "calling_station" in read.types:
            fold += 0.3
        if read.max_tilt > 0.4:
            fold -= 0.15
        if good_odds:
            fold -= 0.25
        if odds < 0.15 and chip_pressure < 0.1:
            fold -= 0.2
        if read.max_likelihood >= 0.8:
            fold += 0.2
        elif read.max_likelihood >= 0.6:
            fold += 0.1
        fold = max(0.1, min(0.75, fold))
        if read.max_likelihood > 0.5:
            bluff_freq *= 0.3

        if self.rng.random() < fold:
            return Decision(ActionKind.FOLD, tier=tier, layer="tier")
        if "rock" in read.types and read.avg_fold > 0.6 and ctx.chips > call + 20:
            if self.rng.random() < read.avg_fold * bluff_freq * 1.5:
                return self._raise(ctx, read, "bluff", tier)
        if read.avg_bluff > 0.5 and read.max_likelihood < 0.5 and ctx.chips > call + 15:
            if self.rng.random() < 0.15 + bluff_freq * 0.5 + ctx.adjustments.probe_adjust:
                return self._raise(ctx, read, "thin", tier, layer="probe")
        return Decision(ActionKind.CALL, tier=tier, layer="tier")

    # ------------------------------------------------------------------ sizing and cleanup

    def _raise(self, ctx: DecisionContext, read: _TableRead, kind: str, tier: Tier, *, layer: str = "tier") -> Decision:
        amount = self._bet_size(ctx, kind, read)
        if amount <= 0:
            return Decision(ActionKind.CALL, tier=tier, layer=layer)
        return Decision(ActionKind.RAISE, amount, tier=tier, layer=layer)

    def _bet_size(self, ctx: DecisionContext, kind: str, read: _TableRead) -> int:
        """Raise-by amount for a bet of ``kind`` (value_heavy, value, standard, bluff or thin)."""

        amount = ctx.pot * _POT_FRACTIONS[kind]
        if ctx.position == "late":
            amount *= 1.15
        elif ctx.position == "early":
            amount *= 0.9
        if "calling_station" in read.types and kind in _VALUE_KINDS:
            amount *= 1.3
        if kind == "bluff":
            if "rock" in read.types:
                amount *= 0.7
            if read.avg_fold > 0.6:
                amount *= 0.8
        depth = stack_depth(ctx.chips, read.avg_chips, ctx.ante)
        if depth.deep:
            amount *= 1.15
        if depth.covers:
            amount *= 1.1
        return self._clip_raise(ctx, math.floor(amount))

    @staticmethod
    def _clip_raise(ctx: DecisionContext, amount: int) -> int:
        ceiling = ctx.chips - ctx.call_amount
        if ceiling <= 0:
            return 0
        return min(max(amount, ctx.ante), ceiling)

    def _tilt_adjust(self, ctx: DecisionContext, decision: Decision) -> Decision:
        max_tilt = max((o.analysis.tilt_level for o in ctx.opponents), default=0.0)
        if max_tilt <= 0.3:
            return decision
        if decision.action is ActionKind.FOLD and max_tilt > 0.5 and self.rng.random() < max_tilt * 0.4:
            return Decision(ActionKind.CALL, tier=decision.tier, layer="tilt")
        if decision.action is ActionKind.RAISE and max_tilt > 0.4:
            extra = math.floor(decision.amount * max_tilt * 0.5)
            amount = min(decision.amount + extra, ctx.chips - ctx.call_amount)
            return Decision(ActionKind.RAISE, amount, tier=decision.tier, layer=decision.layer)
        return decision

    def _legalize(self, ctx: DecisionContext, decision: Decision) -> Decision:
        """Turn a decision the table would reject into the nearest legal one."""

        call = ctx.call_amount
        match decision.action:
            case ActionKind.RAISE if decision.amount <= 0 or ctx.chips < call + decision.amount:
                return Decision(ActionKind.CALL, tier=decision.tier, layer=decision.layer)
            case ActionKind.BLIND if decision.amount > ctx.chips or decision.amount < call:
                return Decision(ActionKind.CALL, tier=decision.tier, layer=decision.layer)
            case ActionKind.BLIND if decision.amount <= 0:
                return Decision(ActionKind.BLIND, max(call, ctx.ante), tier=decision.tier, layer=decision.layer)
            case ActionKind.CALL if call <= 0:
                if ctx.chips >= ctx.ante:
                    return Decision(ActionKind.RAISE, ctx.ante, tier=decision.tier, layer=decision.layer)
                return Decision(ActionKind.FOLD, tier=decision.tier, layer=decision.layer)
            case _:
                return decision

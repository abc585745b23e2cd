"""Win-probability and showdown EV estimates against opponent hand ranges."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ..core.hand_rank import all_weights
from .opponent_model import OpponentAnalysis
from .range_estimator import HandRange

__all__ = ["Matchup", "ShowdownEstimate", "BetComparison", "WinRateCalculator"]

logger = logging.getLogger(__name__)

_MC_MIN_CONFIDENCE = 0.5
_MC_MAX_WIDTH = 5000
_WIDE_RANGE = 6000
_SIGMOID_SCALE = 800.0


@dataclass(frozen=True)
class Matchup:
    range: HandRange
    analysis: OpponentAnalysis | None = None
    chips: int = 0


@dataclass(frozen=True)
class ShowdownEstimate:
    ev: float
    win_rate: float
    should_showdown: bool
    confidence: float
    ev_per_chip: float


@dataclass(frozen=True)
class BetComparison:
    recommendation: str
    showdown_ev: float
    bet_ev: float
    win_rate: float


def _clamp(value: float, low: float = 0.05, high: float = 0.95) -> float:
    return max(low, min(high, value))


class WinRateCalculator:
    """Scores a hand weight against estimated opponent ranges.

    Narrow, confident ranges are sampled by Monte Carlo over the exact weight
    distribution; wide ones blend the position inside the range with a
    logistic curve around the range average. Sampling is seeded from the
    range bounds, so equal inputs always give equal answers.
    """

    def __init__(self, *, samples: int = 500, seed: int = 0) -> None:
        if samples <= 0:
            raise ValueError("samples must be positive")
        self.samples = samples
        self.seed = seed

    def monte_carlo(self, my_weight: int, hand_range: HandRange) -> float | None:
        weights = all_weights()
        lo = int(np.searchsorted(weights, hand_range.min_weight, side="left"))
        hi = int(np.searchsorted(weights, hand_range.max_weight, side="right"))
        pool = weights[lo:hi]
        if pool.size == 0:
            return None
        rng = np.random.default_rng([self.seed, int(hand_range.min_weight), int(hand_range.max_weight)])
        drawn = rng.choice(pool, size=self.samples)
        wins = np.count_nonzero(drawn < my_weight) + 0.5 * np.count_nonzero(drawn == my_weight)
        return float(wins) / self.samples

    def _blend(self, my_weight: int, hand_range: HandRange) -> float:
        width = max(hand_range.width, 1.0)
        position = (my_weight - hand_range.min_weight) / width
        logistic = 1.0 / (1.0 + math.exp(-(my_weight - hand_range.avg_weight) / _SIGMOID_SCALE))
        rate = hand_range.confidence * position + (1 - hand_range.confidence) * logistic
        if hand_range.width > _WIDE_RANGE:
            rate = rate * 0.7 + 0.15
        return rate

    def win_rate(self, my_weight: int, hand_range: HandRange, analysis: OpponentAnalysis | None = None) -> float:
        if my_weight >= hand_range.max_weight:
            return 0.95
        if my_weight <= hand_range.min_weight:
            return 0.05

        rate = None
        if hand_range.confidence >= _MC_MIN_CONFIDENCE and hand_range.width < _MC_MAX_WIDTH:
            rate = self.monte_carlo(my_weight, hand_range)
        if rate is None:
            rate = self._blend(my_weight, hand_range)

        bluff = analysis.bluff_likelihood if analysis is not None else 0.3
        tilt = analysis.tilt_level if analysis is not None else 0.0
        return _clamp(rate + bluff * 0.08 + tilt * 0.05)

    def multiway(self, my_weight: int, matchups: Sequence[Matchup]) -> float:
        """Probability of beating every opponent, treating them as independent."""

        rate = 1.0
        for matchup in matchups:
            rate *= self.win_rate(my_weight, matchup.range, matchup.analysis)
        return rate

    def showdown_ev(self, my_weight: int, matchup: Matchup, *, pot: int, cost: int) -> ShowdownEstimate:
        win = self.win_rate(my_weight, matchup.range, matchup.analysis)
        ev = win * pot - (1 - win) * cost
        threshold = 0.5 + (1 - matchup.range.confidence) * 0.1
        return ShowdownEstimate(
            ev=ev,
            win_rate=win,
            should_showdown=ev > 0 and win > threshold,
            confidence=matchup.range.confidence,
            ev_per_chip=ev / cost if cost > 0 else 0.0,
        )

    def showdown_priority(self, my_weight: int, matchup: Matchup) -> float:
        """Score for choosing whom to challenge; higher is a better target."""

        analysis = matchup.analysis or OpponentAnalysis()
        score = self.win_rate(my_weight, matchup.range, analysis) * 100
        if matchup.chips < 50:
            score += 20
        elif matchup.chips < 100:
            score += 10
        elif matchup.chips > 300:
            score -= 10
        score += (1 - analysis.danger_level) * 15
        score += analysis.bluff_likelihood * 10
        score += analysis.tilt_level * 10
        return score

    def compare_bet_vs_showdown(
        self,
        my_weight: int,
        target: Matchup,
        opponents: Sequence[Matchup],
        *,
        pot: int,
        cost: int,
        bet: int,
    ) -> BetComparison:
        showdown = self.showdown_ev(my_weight, target, pot=pot, cost=cost)
        count = max(len(opponents), 1)
        avg_fold = sum((m.analysis or OpponentAnalysis()).fold_pressure for m in opponents) / count
        all_fold = avg_fold**count
        multi = self.multiway(my_weight, opponents) if opponents else showdown.win_rate
        bet_ev = all_fold * pot + (1 - all_fold) * (multi * (pot + bet) - (1 - multi) * bet)

        if showdown.ev > bet_ev and showdown.should_showdown:
            recommendation = "showdown"
        elif showdown.ev < 0 and bet_ev < 0:
            recommendation = "showdown" if showdown.ev > bet_ev else "fold_or_check"
        else:
            recommendation = "bet"
        return BetComparison(recommendation, showdown.ev, bet_ev, showdown.win_rate)

    def rank_targets(
        self,
        my_weight: int,
        matchups: Sequence[tuple[int, Matchup]],
        *,
        pot: int,
        cost: int,
    ) -> list[tuple[int, ShowdownEstimate]]:
        """Showdown estimates per seat, best EV first (ties by priority)."""

        scored = [
            (seat, self.showdown_ev(my_weight, matchup, pot=pot, cost=cost), self.showdown_priority(my_weight, matchup))
            for seat, matchup in matchups
        ]
        scored.sort(key=lambda entry: (-entry[1].ev, -entry[2], entry[0]))
        return [(seat, estimate) for seat, estimate, _ in scored]

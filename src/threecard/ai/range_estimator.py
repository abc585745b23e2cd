"""Hand-range estimation for opponents.

Two estimators cooperate. :class:`BayesianRangeTracker` keeps a posterior
over hand categories per opponent and narrows it after every observed action.
:meth:`HandRangeEstimator.estimate` prefers that posterior once it is
confident and otherwise falls back to heuristics over peek state, bet size,
historical bet patterns, player type and the current session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

import numpy as np

from ..core.hand_rank import MAX_WEIGHT, MIN_WEIGHT, Category, category_probabilities
from .opponent_model import OpponentAnalysis, SessionBehavior
from .stores import BetPattern, intensity_level

__all__ = ["HandRange", "FULL_RANGE", "action_likelihoods", "BayesianRangeTracker", "HandRangeEstimator"]

logger = logging.getLogger(__name__)

_CATEGORIES = tuple(Category)
_FLOORS = np.array([c.floor for c in _CATEGORIES], dtype=float)
_CEILINGS = np.array([c.ceiling for c in _CATEGORIES], dtype=float)
_MIDS = (_FLOORS + _CEILINGS) / 2
_KEEP_THRESHOLD = 0.01
_POSTERIOR_TRUST = 0.4


@dataclass(frozen=True)
class HandRange:
    min_weight: float
    max_weight: float
    avg_weight: float
    confidence: float

    @property
    def width(self) -> float:
        return self.max_weight - self.min_weight

    def clamped(self) -> HandRange:
        low = max(float(MIN_WEIGHT), min(self.min_weight, float(MAX_WEIGHT)))
        high = max(low, min(self.max_weight, float(MAX_WEIGHT)))
        return HandRange(
            min_weight=low,
            max_weight=high,
            avg_weight=max(low, min(self.avg_weight, high)),
            confidence=max(0.1, min(self.confidence, 0.9)),
        )


FULL_RANGE = HandRange(float(MIN_WEIGHT), float(MAX_WEIGHT), 3500.0, 0.3)


def action_likelihoods(action: str, bet_amount: int = 0, pot: int = 0) -> np.ndarray:
    """P(action | category) for every category, indexed like :class:`Category`."""

    mids = _MIDS
    if action == "fold":
        return np.where(mids < 3000, 0.6, np.where(mids < 5000, 0.3, 0.05))
    if action == "call":
        return np.select([mids < 2000, mids < 4000, mids < 6000], [0.2, 0.5, 0.4], 0.3)
    if action == "raise":
        ratio = bet_amount / pot if pot > 0 else 0.5
        if ratio >= 0.7:
            return np.select([mids >= 6000, mids >= 5000, mids < 2500], [0.7, 0.4, 0.25], 0.15)
        if ratio >= 0.4:
            return np.select([mids >= 5000, mids >= 3000], [0.6, 0.5], 0.2)
        return np.select([mids >= 4000, mids >= 3000], [0.5, 0.4], 0.3)
    return np.full(len(_CATEGORIES), 0.4)


_CONFIDENCE_STEP = {"fold": 0.2, "call": 0.1, "raise": 0.15}


@dataclass
class _Posterior:
    probs: np.ndarray
    range: HandRange
    observations: int = 0


class BayesianRangeTracker:
    def __init__(self) -> None:
        self._posteriors: dict[str, _Posterior] = {}
        self._prior = np.array([category_probabilities()[c] for c in _CATEGORIES], dtype=float)

    def update(self, identity: str, action: str, bet_amount: int = 0, pot: int = 0) -> HandRange:
        """Fold one observed action into ``identity``'s posterior.

        The resulting range is the intersection of the previous range with the
        categories still carrying meaningful mass, so min never falls and max
        never rises within a hand.
        """

        state = self._posteriors.get(identity)
        if state is None:
            state = _Posterior(self._prior.copy(), FULL_RANGE)
        prior_range = state.range

        in_range = (_CEILINGS >= prior_range.min_weight) & (_FLOORS <= prior_range.max_weight)
        posterior = state.probs * action_likelihoods(action, bet_amount, pot) * in_range
        total = posterior.sum()
        if total <= 0:
            logger.debug("Posterior for %s collapsed after %s; keeping previous range", identity, action)
            return prior_range
        posterior /= total

        kept = np.flatnonzero(posterior > _KEEP_THRESHOLD)
        if kept.size == 0:
            kept = np.array([int(np.argmax(posterior))])
        low = max(prior_range.min_weight, float(_FLOORS[kept[0]]))
        high = min(prior_range.max_weight, float(_CEILINGS[kept[-1]]))
        if high < low:
            high = low
        weights = posterior[kept]
        avg = float(np.dot(weights, _MIDS[kept]) / weights.sum())
        confidence = min(0.9, prior_range.confidence + _CONFIDENCE_STEP.get(action, 0.05))

        result = HandRange(low, high, max(low, min(avg, high)), confidence)
        self._posteriors[identity] = _Posterior(posterior, result, state.observations + 1)
        return result

    def range_for(self, identity: str) -> HandRange | None:
        state = self._posteriors.get(identity)
        return state.range if state is not None else None

    def observations(self, identity: str) -> int:
        state = self._posteriors.get(identity)
        return state.observations if state is not None else 0

    def clear(self) -> None:
        self._posteriors.clear()


def _peeked_range(last_bet: int) -> HandRange:
    if last_bet >= 50:
        return HandRange(3000.0, float(MAX_WEIGHT), 6000.0, 0.6)
    if last_bet >= 30:
        return HandRange(3000.0, float(MAX_WEIGHT), 4500.0, 0.5)
    if last_bet >= 15:
        return HandRange(float(MIN_WEIGHT), 6999.0, 3500.0, 0.4)
    return HandRange(float(MIN_WEIGHT), float(MAX_WEIGHT), 3000.0, 0.3)


def _pattern_range(last_bet: int, avg_bet: float, pattern: BetPattern | None) -> HandRange | None:
    ratio = last_bet / avg_bet if avg_bet > 0 else 1.0
    if ratio >= 2:
        found = HandRange(5000.0, float(MAX_WEIGHT), 6500.0, 0.5)
    elif ratio >= 1.5:
        found = HandRange(3000.0, float(MAX_WEIGHT), 5000.0, 0.4)
    elif ratio <= 0.5:
        found = HandRange(float(MIN_WEIGHT), 6999.0, 3000.0, 0.3)
    else:
        found = None

    bucket = pattern.bucket(intensity_level(ratio)) if pattern is not None else None
    if bucket is not None and bucket.sample_count >= 2:
        base = found or FULL_RANGE
        found = replace(base, avg_weight=float(bucket.avg_hand_weight), confidence=min(0.8, base.confidence + 0.2))
    return found


def _combine(base: HandRange, pattern: HandRange) -> HandRange:
    low = max(base.min_weight, pattern.min_weight)
    high = min(base.max_weight, pattern.max_weight)
    if high < low:
        # Disjoint reads: trust the historical pattern.
        return pattern
    return HandRange(
        low,
        high,
        (base.avg_weight + pattern.avg_weight) / 2,
        min(0.8, base.confidence + pattern.confidence * 0.3),
    )


def _adjust_for_type(found: HandRange, analysis: OpponentAnalysis) -> HandRange:
    match analysis.type:
        case "rock":
            return HandRange(
                max(found.min_weight, 3500.0),
                found.max_weight,
                max(found.avg_weight, 4500.0),
                found.confidence + 0.1,
            )
        case "maniac":
            return HandRange(float(MIN_WEIGHT), found.max_weight, min(found.avg_weight, 3500.0), found.confidence - 0.1)
        case "calling_station":
            return replace(found, avg_weight=min(found.avg_weight + 500, 5000.0))
        case "aggressive" if analysis.bluff_likelihood > 0.4:
            return replace(found, avg_weight=max(found.avg_weight - 800, 2500.0), confidence=found.confidence - 0.05)
        case "blind_lover":
            # Blind wagers say little about the hand.
            return replace(found, confidence=found.confidence - 0.05)
        case _:
            return found


def _adjust_for_session(found: HandRange, behavior: SessionBehavior, analysis: OpponentAnalysis | None) -> HandRange:
    likelihood = behavior.strong_hand_likelihood
    if likelihood >= 0.8:
        return HandRange(
            max(found.min_weight, 5000.0),
            found.max_weight,
            max(found.avg_weight, 6500.0),
            min(0.85, found.confidence + 0.2),
        )
    if likelihood >= 0.6:
        return HandRange(
            max(found.min_weight, 3500.0),
            found.max_weight,
            max(found.avg_weight, 5000.0),
            min(0.75, found.confidence + 0.1),
        )
    bluffy = analysis is not None and analysis.bluff_likelihood > 0.3
    if behavior.is_abnormal and bluffy:
        return replace(found, avg_weight=max(found.avg_weight - 1000, 2000.0), confidence=found.confidence - 0.1)
    return found


class HandRangeEstimator:
    def __init__(self, tracker: BayesianRangeTracker | None = None) -> None:
        self.tracker = tracker or BayesianRangeTracker()

    def observe(self, identity: str, action: str, bet_amount: int = 0, pot: int = 0) -> HandRange:
        return self.tracker.update(identity, action, bet_amount, pot)

    def clear(self) -> None:
        self.tracker.clear()

    def estimate(
        self,
        identity: str,
        *,
        peeked: bool,
        last_bet: int,
        analysis: OpponentAnalysis | None = None,
        behavior: SessionBehavior | None = None,
        bet_pattern: BetPattern | None = None,
        avg_bet: float | None = None,
    ) -> HandRange:
        posterior = self.tracker.range_for(identity)
        if posterior is not None and posterior.confidence > _POSTERIOR_TRUST:
            found = posterior
            if analysis is not None and analysis.type == "rock":
                found = replace(found, min_weight=max(found.min_weight, 3000.0))
            elif analysis is not None and analysis.type == "maniac":
                found = replace(found, min_weight=min(found.min_weight, 2000.0))
            return found.clamped()

        if not peeked:
            found = HandRange(float(MIN_WEIGHT), float(MAX_WEIGHT), 3000.0, 0.2)
        else:
            found = _peeked_range(last_bet)

        pattern = _pattern_range(last_bet, avg_bet or 20.0, bet_pattern)
        if pattern is not None:
            found = _combine(found, pattern)
        if analysis is not None:
            found = _adjust_for_type(found, analysis)
        if behavior is not None:
            found = _adjust_for_session(found, behavior, analysis)
        return found.clamped()

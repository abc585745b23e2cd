from __future__ import annotations

import numpy as np
import pytest

from threecard.ai.opponent_model import OpponentAnalysis, SessionBehavior
from threecard.ai.range_estimator import (
    FULL_RANGE,
    BayesianRangeTracker,
    HandRange,
    HandRangeEstimator,
    action_likelihoods,
)
from threecard.ai.stores import BetBucket, BetPattern
from threecard.core.hand_rank import MAX_WEIGHT, MIN_WEIGHT


def test_likelihoods_cover_every_category():
    for action in ("fold", "call", "raise", "blind", "peek"):
        values = action_likelihoods(action, bet_amount=40, pot=50)
        assert values.shape == (6,)
        assert np.all(values > 0)


def test_big_raises_favour_made_hands():
    values = action_likelihoods("raise", bet_amount=80, pot=100)
    assert values[-1] > values[1]


def test_tracker_only_ever_narrows():
    tracker = BayesianRangeTracker()
    previous = FULL_RANGE
    for action, amount, pot in [("call", 10, 40), ("raise", 40, 50), ("raise", 90, 100), ("call", 90, 200)]:
        current = tracker.update("villain", action, amount, pot)
        assert current.min_weight >= previous.min_weight
        assert current.max_weight <= previous.max_weight
        assert current.min_weight <= current.avg_weight <= current.max_weight
        assert current.confidence <= 0.9
        previous = current
    assert tracker.observations("villain") == 4
    assert previous.confidence == pytest.approx(0.3 + 0.1 + 0.15 + 0.15 + 0.1)


def test_tracker_is_per_identity_and_clearable():
    tracker = BayesianRangeTracker()
    tracker.update("a", "fold")
    assert tracker.range_for("b") is None
    tracker.clear()
    assert tracker.range_for("a") is None
    assert tracker.observations("a") == 0


def test_clamped_range_stays_inside_weight_bounds():
    wild = HandRange(-50.0, 12000.0, 20000.0, 1.5).clamped()
    assert wild.min_weight == MIN_WEIGHT
    assert wild.max_weight == MAX_WEIGHT
    assert wild.avg_weight == MAX_WEIGHT
    assert wild.confidence == pytest.approx(0.9)
    assert HandRange(2000.0, 3000.0, 2500.0, 0.0).clamped().confidence == pytest.approx(0.1)


def test_unpeeked_opponent_gets_a_wide_low_confidence_range():
    estimate = HandRangeEstimator().estimate("villain", peeked=False, last_bet=20)
    assert estimate.min_weight == MIN_WEIGHT
    assert estimate.max_weight == MAX_WEIGHT
    assert estimate.confidence == pytest.approx(0.2)


def test_big_seen_bet_lifts_the_floor():
    estimate = HandRangeEstimator().estimate("villain", peeked=True, last_bet=60, avg_bet=20.0)
    assert estimate.min_weight >= 5000
    assert estimate.confidence > 0.5


def test_rock_reads_tighten_the_range():
    analysis = OpponentAnalysis(type="rock")
    estimate = HandRangeEstimator().estimate("villain", peeked=True, last_bet=20, analysis=analysis)
    assert estimate.min_weight >= 3500
    assert estimate.avg_weight >= 4500


def test_session_strength_signal_raises_the_floor():
    behavior = SessionBehavior(trend="escalating", strong_hand_likelihood=0.9)
    estimate = HandRangeEstimator().estimate("villain", peeked=True, last_bet=20, behavior=behavior)
    assert estimate.min_weight >= 5000
    assert estimate.avg_weight >= 6500


def test_bet_pattern_average_is_used():
    pattern = BetPattern(medium=BetBucket(5200, 4), total_records=6)
    estimate = HandRangeEstimator().estimate("villain", peeked=True, last_bet=20, bet_pattern=pattern, avg_bet=20.0)
    # Medium-intensity bets land near the recorded average.
    assert estimate.avg_weight > 3500


def test_confident_posterior_takes_priority():
    estimator = HandRangeEstimator()
    estimator.observe("villain", "raise", 90, 100)
    estimator.observe("villain", "raise", 90, 100)
    posterior = estimator.tracker.range_for("villain")
    assert posterior.confidence > 0.4

    estimate = estimator.estimate("villain", peeked=False, last_bet=5, analysis=OpponentAnalysis(type="maniac"))
    assert estimate.max_weight == posterior.max_weight
    assert estimate.min_weight <= 2000

from __future__ import annotations

import pytest

from threecard.ai.opponent_model import OpponentAnalysis
from threecard.ai.range_estimator import FULL_RANGE, HandRange
from threecard.ai.win_rate import Matchup, WinRateCalculator

NARROW = HandRange(3000.0, 6999.0, 4500.0, 0.6)


@pytest.mark.parametrize("hand_range", [FULL_RANGE, NARROW, HandRange(1000.0, 8999.0, 3000.0, 0.2)])
def test_win_rate_is_monotonic_and_bounded(hand_range):
    calculator = WinRateCalculator(samples=200, seed=3)
    rates = [calculator.win_rate(weight, hand_range) for weight in range(1000, 9000, 97)]
    assert all(0.05 <= rate <= 0.95 for rate in rates)
    assert all(later >= earlier for earlier, later in zip(rates, rates[1:]))


def test_range_edges_short_circuit():
    calculator = WinRateCalculator()
    assert calculator.win_rate(7000, NARROW) == pytest.approx(0.95)
    assert calculator.win_rate(2500, NARROW) == pytest.approx(0.05)


def test_monte_carlo_is_deterministic_for_equal_inputs():
    first = WinRateCalculator(samples=300, seed=11).monte_carlo(4500, NARROW)
    second = WinRateCalculator(samples=300, seed=11).monte_carlo(4500, NARROW)
    assert first == second
    assert 0.0 < first < 1.0


def test_bluffy_opponents_improve_our_odds():
    calculator = WinRateCalculator()
    honest = calculator.win_rate(4500, NARROW, OpponentAnalysis(bluff_likelihood=0.05))
    bluffer = calculator.win_rate(4500, NARROW, OpponentAnalysis(bluff_likelihood=0.8))
    assert bluffer > honest


def test_multiway_never_beats_the_weakest_heads_up_odds():
    calculator = WinRateCalculator(samples=200)
    matchups = [Matchup(NARROW), Matchup(FULL_RANGE)]
    multi = calculator.multiway(4800, matchups)
    assert multi <= min(calculator.win_rate(4800, m.range) for m in matchups)


def test_showdown_ev_follows_win_rate():
    calculator = WinRateCalculator()
    strong = calculator.showdown_ev(7500, Matchup(NARROW), pot=100, cost=20)
    weak = calculator.showdown_ev(2000, Matchup(NARROW), pot=100, cost=20)
    assert strong.should_showdown
    assert strong.ev == pytest.approx(0.95 * 100 - 0.05 * 20)
    assert not weak.should_showdown
    assert weak.ev_per_chip == pytest.approx(weak.ev / 20)


def test_bet_beats_showdown_against_folders():
    calculator = WinRateCalculator()
    folder = Matchup(FULL_RANGE, OpponentAnalysis(fold_pressure=0.95))
    comparison = calculator.compare_bet_vs_showdown(4000, folder, [folder], pot=100, cost=20, bet=30)
    assert comparison.recommendation == "bet"
    assert comparison.bet_ev > comparison.showdown_ev


def test_targets_are_ranked_by_expected_value():
    calculator = WinRateCalculator()
    weak_target = Matchup(HandRange(1000.0, 2999.0, 2000.0, 0.7), chips=400)
    strong_target = Matchup(HandRange(6000.0, 8999.0, 7000.0, 0.7), chips=400)
    ranked = calculator.rank_targets(5000, [(1, strong_target), (2, weak_target)], pot=100, cost=20)
    assert [seat for seat, _ in ranked] == [2, 1]


def test_samples_must_be_positive():
    with pytest.raises(ValueError):
        WinRateCalculator(samples=0)

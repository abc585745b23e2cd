from __future__ import annotations

from itertools import combinations

import pytest

from threecard.core.cards import Card, fresh_deck, parse_cards
from threecard.core.hand_rank import (
    MAX_WEIGHT,
    MIN_WEIGHT,
    Category,
    all_weights,
    category_counts,
    category_of_weight,
    category_probabilities,
    rank_hand,
)


def test_every_hand_lands_inside_its_category_band():
    seen_by_weight: dict[int, Category] = {}
    total = 0
    for hand in combinations(fresh_deck(), 3):
        result = rank_hand(hand)
        total += 1
        assert result.category.floor <= result.weight <= result.category.ceiling
        assert category_of_weight(result.weight) is result.category
        previous = seen_by_weight.setdefault(result.weight, result.category)
        assert previous is result.category
    assert total == 22100


def test_category_counts_match_combinatorics():
    counts = category_counts()
    assert counts == {
        Category.LEOPARD: 52,
        Category.STRAIGHT_FLUSH: 48,
        Category.FLUSH: 1096,
        Category.STRAIGHT: 720,
        Category.PAIR: 3744,
        Category.HIGH_CARD: 16440,
    }
    assert sum(category_probabilities().values()) == pytest.approx(1.0)


def test_all_weights_is_sorted_and_read_only():
    weights = all_weights()
    assert weights.size == 22100
    assert weights[0] >= MIN_WEIGHT
    assert weights[-1] <= MAX_WEIGHT
    assert (weights[1:] >= weights[:-1]).all()
    with pytest.raises(ValueError):
        weights[0] = 0


def test_wheel_straight_flush_is_the_lowest_of_its_category():
    wheel = rank_hand(parse_cards("As 2s 3s"))
    assert wheel.category is Category.STRAIGHT_FLUSH
    lowest = min(
        rank_hand(hand).weight
        for hand in combinations(fresh_deck(), 3)
        if rank_hand(hand).category is Category.STRAIGHT_FLUSH
    )
    assert wheel.weight == lowest


def test_king_ace_two_does_not_wrap():
    result = rank_hand(parse_cards("Ks Ah 2d"))
    assert result.category is Category.HIGH_CARD


def test_wheel_straight_ranks_below_two_three_four():
    wheel = rank_hand(parse_cards("Ah 2s 3d"))
    low = rank_hand(parse_cards("2h 3s 4d"))
    assert wheel.category is Category.STRAIGHT
    assert wheel.weight < low.weight


def test_ordering_across_and_within_categories():
    leopard = rank_hand(parse_cards("2s 2h 2d"))
    straight_flush = rank_hand(parse_cards("Qh Kh Ah"))
    flush = rank_hand(parse_cards("Ac Kc Jc"))
    straight = rank_hand(parse_cards("Qh Kd As"))
    pair = rank_hand(parse_cards("As Ad Kc"))
    high = rank_hand(parse_cards("As Kd Jc"))
    assert leopard.weight > straight_flush.weight > flush.weight > straight.weight > pair.weight > high.weight

    assert rank_hand(parse_cards("9s 9h Ad")).weight > rank_hand(parse_cards("9c 9d Kh")).weight
    assert rank_hand(parse_cards("Ts 9h 2d")).weight > rank_hand(parse_cards("9c 8d 6h")).weight


def test_suits_do_not_break_ties():
    assert rank_hand(parse_cards("As Kd 9c")).weight == rank_hand(parse_cards("Ah Kc 9s")).weight


def test_rank_hand_rejects_malformed_hands():
    with pytest.raises(ValueError):
        rank_hand(parse_cards("As Kd"))
    with pytest.raises(ValueError):
        rank_hand((Card(14, "s"), Card(14, "s"), Card(2, "d")))


def test_describe_mentions_category():
    assert rank_hand(parse_cards("7s 7h 7d")).describe().startswith("leopard")

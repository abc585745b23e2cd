"""Three-card hand ranking.

Every hand maps to one category band and a weight inside that band. Sorting
by weight alone totally orders all 22,100 three-card hands:

========================  ===========
category                  weight band
========================  ===========
high card                 1000 - 2999
pair                      3000 - 4999
straight                  5000 - 5999
flush                     6000 - 6999
straight flush            7000 - 7999
leopard (three of a kind) 8000 - 8999
========================  ===========

A-2-3 is the lowest straight; K-A-2 is not a straight at all.
"""

from __future__ import annotations

import enum
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from itertools import combinations
from math import comb

import numpy as np

from .cards import Card, fresh_deck

__all__ = [
    "Category",
    "HandRank",
    "MIN_WEIGHT",
    "MAX_WEIGHT",
    "rank_hand",
    "category_of_weight",
    "category_counts",
    "category_probabilities",
    "all_weights",
]


class Category(enum.IntEnum):
    HIGH_CARD = 0
    PAIR = 1
    STRAIGHT = 2
    FLUSH = 3
    STRAIGHT_FLUSH = 4
    LEOPARD = 5

    @property
    def floor(self) -> int:
        return _BANDS[self][0]

    @property
    def ceiling(self) -> int:
        return _BANDS[self][1]

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").lower()


_BANDS: dict[Category, tuple[int, int]] = {
    Category.HIGH_CARD: (1000, 2999),
    Category.PAIR: (3000, 4999),
    Category.STRAIGHT: (5000, 5999),
    Category.FLUSH: (6000, 6999),
    Category.STRAIGHT_FLUSH: (7000, 7999),
    Category.LEOPARD: (8000, 8999),
}

MIN_WEIGHT = _BANDS[Category.HIGH_CARD][0]
MAX_WEIGHT = _BANDS[Category.LEOPARD][1]


@dataclass(frozen=True)
class HandRank:
    category: Category
    weight: int
    ranks: tuple[int, int, int]

    def describe(self) -> str:
        return f"{self.category.label} ({self.weight})"


def _kicker_index(values: Sequence[int]) -> int:
    """Lexicographic index (0..285) of three distinct descending ranks."""

    v0, v1, v2 = values
    return comb(v0 - 2, 3) + comb(v1 - 2, 2) + comb(v2 - 2, 1)


def _straight_top(values: Sequence[int]) -> int | None:
    # ``values`` are distinct and descending.
    if tuple(values) == (14, 3, 2):
        return 1
    if values[0] - values[1] == 1 and values[1] - values[2] == 1:
        return values[0]
    return None


def rank_hand(cards: Sequence[Card]) -> HandRank:
    """Classify exactly three distinct cards."""

    if len(cards) != 3:
        raise ValueError(f"a hand holds exactly 3 cards, got {len(cards)}")
    if len(set(cards)) != 3:
        raise ValueError("a hand cannot contain duplicate cards")

    values = sorted((card.rank for card in cards), reverse=True)
    ranks = (values[0], values[1], values[2])
    counts = Counter(values)

    if len(counts) == 1:
        return HandRank(Category.LEOPARD, 8000 + values[0], ranks)

    if len(counts) == 2:
        pair = next(value for value, count in counts.items() if count == 2)
        kicker = next(value for value, count in counts.items() if count == 1)
        return HandRank(Category.PAIR, 3000 + pair * 100 + kicker, ranks)

    suited = len({card.suit for card in cards}) == 1
    top = _straight_top(values)
    if top is not None:
        if suited:
            return HandRank(Category.STRAIGHT_FLUSH, 7000 + top, ranks)
        return HandRank(Category.STRAIGHT, 5000 + top, ranks)

    index = _kicker_index(values)
    if suited:
        return HandRank(Category.FLUSH, 6000 + 3 * index, ranks)
    return HandRank(Category.HIGH_CARD, 1000 + 6 * index, ranks)


def category_of_weight(weight: float) -> Category:
    for category in reversed(Category):
        if weight >= category.floor:
            return category
    return Category.HIGH_CARD


@lru_cache(maxsize=1)
def _enumerate() -> tuple[np.ndarray, tuple[int, ...]]:
    weights: list[int] = []
    tally = [0] * len(Category)
    for hand in combinations(fresh_deck(), 3):
        result = rank_hand(hand)
        weights.append(result.weight)
        tally[result.category] += 1
    array = np.sort(np.asarray(weights, dtype=np.int64))
    array.setflags(write=False)
    return array, tuple(tally)


def all_weights() -> np.ndarray:
    """Sorted, read-only array with the weight of every possible hand."""

    return _enumerate()[0]


def category_counts() -> dict[Category, int]:
    """Exact number of hands in each category (sums to 22,100)."""

    tally = _enumerate()[1]
    return {category: tally[category] for category in Category}


def category_probabilities() -> dict[Category, float]:
    counts = category_counts()
    total = sum(counts.values())
    return {category: count / total for category, count in counts.items()}

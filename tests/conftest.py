from __future__ import annotations

import sys
from pathlib import Path

# Ensure "src" is on sys.path for imports in tests
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


import random  # noqa: E402

import pytest  # noqa: E402

from threecard.core.cards import fresh_deck, parse_cards  # noqa: E402


class StackedRandom(random.Random):
    """Random whose shuffle stacks the deck so ``hands[i]`` lands on the i-th dealt seat."""

    def __init__(self, hands: list[str], seed: int = 0) -> None:
        super().__init__(seed)
        self._hands = [parse_cards(text) for text in hands]

    def shuffle(self, x) -> None:  # type: ignore[override]
        dealt = [self._hands[seat][card] for card in range(3) for seat in range(len(self._hands))]
        rest = [card for card in fresh_deck() if card not in dealt]
        # The machine pops from the end of the deck.
        x[:] = rest + list(reversed(dealt))


@pytest.fixture
def stacked_rng():
    return StackedRandom

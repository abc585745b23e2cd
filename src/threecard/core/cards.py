from __future__ import annotations

import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

__all__ = [
    "RANKS",
    "SUITS",
    "Card",
    "fresh_deck",
    "shuffled_deck",
    "parse_cards",
    "format_cards",
]

RANKS = "23456789TJQKA"
SUITS = "shdc"  # spades, hearts, diamonds, clubs


@dataclass(frozen=True, order=True)
class Card:
    """A single playing card. ``rank`` runs 2..14 with the ace high."""

    rank: int
    suit: str

    def __post_init__(self) -> None:
        if not 2 <= self.rank <= 14:
            raise ValueError(f"rank out of range: {self.rank}")
        if self.suit not in SUITS:
            raise ValueError(f"unknown suit: {self.suit!r}")

    @classmethod
    def from_str(cls, text: str) -> Card:
        token = text.strip()
        if len(token) != 2:
            raise ValueError(f"card must be two characters, got {text!r}")
        r, s = token[0].upper(), token[1].lower()
        if r not in RANKS:
            raise ValueError(f"unknown rank: {r!r}")
        return cls(RANKS.index(r) + 2, s)

    @classmethod
    def from_index(cls, index: int) -> Card:
        if not 0 <= index < 52:
            raise ValueError(f"card index out of range: {index}")
        return cls(index // 4 + 2, SUITS[index % 4])

    @property
    def index(self) -> int:
        return (self.rank - 2) * 4 + SUITS.index(self.suit)

    def __str__(self) -> str:
        return RANKS[self.rank - 2] + self.suit


def fresh_deck() -> list[Card]:
    return [Card.from_index(i) for i in range(52)]


def shuffled_deck(rng: random.Random) -> list[Card]:
    deck = fresh_deck()
    rng.shuffle(deck)
    return deck


def parse_cards(text: str | Iterable[str]) -> tuple[Card, ...]:
    """Parse ``"As Kd 2c"`` (or an iterable of tokens) into cards."""

    tokens = text.split() if isinstance(text, str) else list(text)
    return tuple(Card.from_str(token) for token in tokens)


def format_cards(cards: Sequence[Card]) -> str:
    # Highest rank first for a stable display.
    ordered = sorted(cards, key=lambda c: (c.rank, SUITS.index(c.suit)), reverse=True)
    return " ".join(str(card).upper() for card in ordered)

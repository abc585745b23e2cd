"""Seat state and the seat-index to player-handle arena.

Seats are addressed by index, players by handle. A vacated seat retires its
handle, so a stale handle can never resolve to whoever sits down next.
"""

from __future__ import annotations

import itertools
from collections.abc import Iterator
from dataclasses import dataclass, field

from ..core.cards import Card

__all__ = ["PlayerHandle", "Seat", "SeatArena"]


@dataclass(frozen=True)
class PlayerHandle:
    id: int
    identity: str


@dataclass
class Seat:
    handle: PlayerHandle
    chips: int
    is_ai: bool = False
    cards: tuple[Card, ...] = ()
    current_wager: int = 0
    last_wager: int = 0
    last_wager_blind: bool = False
    folded: bool = False
    peeked: bool = False
    all_in: bool = False
    has_acted: bool = False
    lost_showdown: bool = False
    showdown_by: int | None = None

    @property
    def identity(self) -> str:
        return self.handle.identity

    @property
    def actionable(self) -> bool:
        return not self.folded and not self.all_in

    def reset_for_hand(self) -> None:
        self.cards = ()
        self.current_wager = 0
        self.last_wager = 0
        self.last_wager_blind = False
        self.folded = False
        self.peeked = False
        self.all_in = False
        self.has_acted = False
        self.lost_showdown = False
        self.showdown_by = None

    def commit(self, amount: int, *, blind: bool = False) -> int:
        """Move up to ``amount`` chips into the wager; returns what moved."""

        applied = max(0, min(amount, self.chips))
        self.chips -= applied
        self.current_wager += applied
        self.last_wager = applied
        self.last_wager_blind = blind
        if self.chips == 0:
            self.all_in = True
        return applied


@dataclass
class SeatArena:
    size: int
    _slots: list[int | None] = field(init=False)
    _players: dict[int, Seat] = field(init=False, default_factory=dict)
    _ids: Iterator[int] = field(init=False, default_factory=lambda: itertools.count(1))

    def __post_init__(self) -> None:
        self._slots = [None] * self.size

    def occupy(self, index: int, identity: str, chips: int, *, is_ai: bool = False) -> PlayerHandle:
        self._check_index(index)
        if self._slots[index] is not None:
            raise ValueError(f"seat {index} is already occupied")
        handle = PlayerHandle(next(self._ids), identity)
        self._players[handle.id] = Seat(handle=handle, chips=chips, is_ai=is_ai)
        self._slots[index] = handle.id
        return handle

    def vacate(self, index: int) -> Seat | None:
        self._check_index(index)
        handle_id = self._slots[index]
        if handle_id is None:
            return None
        self._slots[index] = None
        return self._players.pop(handle_id)

    def get(self, index: int) -> Seat | None:
        if not 0 <= index < self.size:
            return None
        handle_id = self._slots[index]
        return None if handle_id is None else self._players[handle_id]

    def resolve(self, handle: PlayerHandle) -> int | None:
        """Seat index currently held by ``handle``, or None once retired."""

        for index, handle_id in enumerate(self._slots):
            if handle_id == handle.id:
                return index
        return None

    def occupied(self) -> list[tuple[int, Seat]]:
        return [(i, self._players[h]) for i, h in enumerate(self._slots) if h is not None]

    def __len__(self) -> int:
        return sum(1 for handle_id in self._slots if handle_id is not None)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.size:
            raise IndexError(f"seat index {index} outside 0..{self.size - 1}")

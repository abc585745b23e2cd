from __future__ import annotations

import enum
from dataclasses import dataclass

from ..core.cards import Card
from ..core.errors import RejectReason, TableError
from ..core.hand_rank import HandRank

__all__ = [
    "ActionKind",
    "EventKind",
    "Phase",
    "ShowdownResult",
    "HandResult",
    "ActionEvent",
]


class ActionKind(str, enum.Enum):
    PEEK = "peek"
    CALL = "call"
    RAISE = "raise"
    BLIND = "blind"
    FOLD = "fold"
    SHOWDOWN = "showdown"

    @classmethod
    def parse(cls, value: str | ActionKind) -> ActionKind:
        if isinstance(value, ActionKind):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise TableError(RejectReason.INVALID_ACTION, f"unknown action {value!r}") from None


class EventKind(str, enum.Enum):
    PEEK = "peek"
    CALL = "call"
    ALL_IN = "all_in"
    RAISE = "raise"
    BLIND = "blind"
    FOLD = "fold"
    SHOWDOWN = "showdown"


class Phase(str, enum.Enum):
    WAITING = "waiting"
    DEALING = "dealing"
    BETTING = "betting"
    SHOWDOWN = "showdown"
    ENDED = "ended"


@dataclass(frozen=True)
class ShowdownResult:
    challenger: int
    target: int
    winner: int
    loser: int
    challenger_rank: HandRank
    target_rank: HandRank
    cost: int


@dataclass(frozen=True)
class HandResult:
    winner: int
    identity: str
    pot: int
    rank: HandRank | None
    cards: tuple[Card, ...]
    by_fold: bool


@dataclass(frozen=True)
class ActionEvent:
    """What a successfully applied action did to the table."""

    kind: EventKind
    seat: int
    amount: int = 0
    chips_left: int = 0
    blind: bool = False
    showdown: ShowdownResult | None = None
    hand_result: HandResult | None = None

    @property
    def hand_ended(self) -> bool:
        return self.hand_result is not None

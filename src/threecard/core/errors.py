from __future__ import annotations

import enum

__all__ = [
    "RejectReason",
    "ThreeCardError",
    "TableError",
    "StoreError",
    "RoomClosedError",
]


class RejectReason(str, enum.Enum):
    """Reason codes for actions the table refuses to apply."""

    NO_PLAYERS = "no_players"
    NOT_BETTING_PHASE = "not_betting_phase"
    NOT_YOUR_TURN = "not_your_turn"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    FIRST_ROUND_INCOMPLETE = "first_round_incomplete"
    INVALID_TARGET = "invalid_target"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_SEAT = "invalid_seat"
    ALREADY_PEEKED = "already_peeked"
    INVALID_ACTION = "invalid_action"


class ThreeCardError(Exception):
    """Base class for errors raised by the package."""


class TableError(ThreeCardError, ValueError):
    """A rule violation. Raised before the table mutates any state."""

    def __init__(self, reason: RejectReason, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message or reason.value)


class StoreError(ThreeCardError):
    """A profile, bias or bet-pattern store could not serve a request."""


class RoomClosedError(ThreeCardError, KeyError):
    """The room does not exist or was torn down."""

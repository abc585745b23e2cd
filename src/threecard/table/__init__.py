"""Table engine: seats, betting state machine and per-viewer snapshots."""

from .actions import ActionEvent, ActionKind, EventKind, HandResult, Phase, ShowdownResult
from .machine import BettingStateMachine
from .seat import PlayerHandle, Seat, SeatArena
from .snapshot import TableSnapshot, build_snapshot

__all__ = [
    "ActionEvent",
    "ActionKind",
    "BettingStateMachine",
    "EventKind",
    "HandResult",
    "Phase",
    "PlayerHandle",
    "Seat",
    "SeatArena",
    "ShowdownResult",
    "TableSnapshot",
    "build_snapshot",
]

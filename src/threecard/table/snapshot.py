from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from ..core.cards import format_cards
from .machine import BettingStateMachine

__all__ = ["SeatView", "HandResultView", "TableSnapshot", "build_snapshot"]


class _ViewModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SeatView(_ViewModel):
    seat: int
    identity: str
    is_ai: bool
    chips: int
    current_wager: int
    folded: bool
    peeked: bool
    all_in: bool
    lost_showdown: bool
    card_count: int
    is_turn: bool
    cards: list[str] | None = None
    hand: str | None = None


class HandResultView(_ViewModel):
    winner: int
    identity: str
    pot: int
    by_fold: bool
    hand: str | None = None


class TableSnapshot(_ViewModel):
    viewer: int | None
    phase: str
    hand_number: int
    pot: int
    current_bet: int
    round: int
    turn: int | None
    first_round_complete: bool
    showdown_ready: bool
    seats: list[SeatView]
    call_amount: int | None = None
    result: HandResultView | None = None


def build_snapshot(machine: BettingStateMachine, viewer: int | None) -> TableSnapshot:
    """Render the table as ``viewer`` may see it.

    A seat always sees its own cards and sees another seat's cards only when
    the two met in a showdown this hand. ``viewer=None`` is a spectator.
    """

    views: list[SeatView] = []
    for index, seat in machine.seats():
        visible = viewer is not None and machine.linked(viewer, index) and bool(seat.cards)
        rank = machine.rank_of(index) if visible else None
        views.append(
            SeatView(
                seat=index,
                identity=seat.identity,
                is_ai=seat.is_ai,
                chips=seat.chips,
                current_wager=seat.current_wager,
                folded=seat.folded,
                peeked=seat.peeked,
                all_in=seat.all_in,
                lost_showdown=seat.lost_showdown,
                card_count=len(seat.cards),
                is_turn=machine.turn == index,
                cards=format_cards(seat.cards).split() if visible else None,
                hand=rank.describe() if rank is not None else None,
            )
        )

    call_amount = None
    if viewer is not None and machine.turn == viewer:
        call_amount = machine.required_amount(viewer)

    result = None
    if machine.result is not None:
        outcome = machine.result
        shown = viewer is not None and machine.linked(viewer, outcome.winner)
        result = HandResultView(
            winner=outcome.winner,
            identity=outcome.identity,
            pot=outcome.pot,
            by_fold=outcome.by_fold,
            hand=outcome.rank.describe() if shown and outcome.rank is not None else None,
        )

    return TableSnapshot(
        viewer=viewer,
        phase=machine.phase.value,
        hand_number=machine.hand_number,
        pot=machine.pot,
        current_bet=machine.current_bet,
        round=machine.round,
        turn=machine.turn,
        first_round_complete=machine.first_round_complete,
        showdown_ready=machine.showdown_ready,
        seats=views,
        call_amount=call_amount,
        result=result,
    )

"""Authoritative betting state machine for one table.

The machine owns seats, pot, current bet and turn order. Rule violations raise
:class:`~threecard.core.errors.TableError` before anything is mutated; a short
stack on ``call`` degrades to an all-in instead of failing.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Callable

from ..core.cards import shuffled_deck
from ..core.errors import RejectReason, TableError
from ..core.hand_rank import HandRank, rank_hand
from .actions import ActionEvent, ActionKind, EventKind, HandResult, Phase, ShowdownResult
from .seat import PlayerHandle, Seat, SeatArena

__all__ = ["BettingStateMachine", "EventListener"]

logger = logging.getLogger(__name__)

EventListener = Callable[[ActionEvent], None]


class BettingStateMachine:
    def __init__(self, *, max_seats: int = 8, rng: random.Random | None = None) -> None:
        self.arena = SeatArena(max_seats)
        self.rng = rng or random.Random()
        self.phase = Phase.WAITING
        self.pot = 0
        self.ante = 0
        self.current_bet = 0
        self.turn: int | None = None
        self.round = 0
        self.hand_number = 0
        self.first_round_complete = False
        self.showdown_ready = False
        self.last_winner: int | None = None
        self.result: HandResult | None = None
        self._first_actor: int | None = None
        self._ranks: dict[int, HandRank] = {}
        self._links: set[frozenset[int]] = set()
        self._listeners: list[EventListener] = []

    @property
    def size(self) -> int:
        return self.arena.size

    # ------------------------------------------------------------------ seats

    def sit(self, index: int, identity: str, chips: int, *, is_ai: bool = False) -> PlayerHandle:
        handle = self.arena.occupy(index, identity, chips, is_ai=is_ai)
        if self.phase in (Phase.DEALING, Phase.BETTING):
            # Joins mid-hand sit out until the next deal.
            seat = self.arena.get(index)
            assert seat is not None
            seat.folded = True
        return handle

    def vacate(self, index: int) -> ActionEvent | None:
        """Remove the occupant; a live hand treats the departure as a fold."""

        seat = self.arena.get(index)
        if seat is None:
            return None
        event = None
        if self.phase in (Phase.DEALING, Phase.BETTING) and not seat.folded:
            event = self._fold(index, seat)
        self.arena.vacate(index)
        self._ranks.pop(index, None)
        self._links = {link for link in self._links if index not in link}
        return event

    def seat(self, index: int) -> Seat | None:
        return self.arena.get(index)

    def seats(self) -> list[tuple[int, Seat]]:
        return self.arena.occupied()

    def active_seats(self) -> list[tuple[int, Seat]]:
        return [(i, s) for i, s in self.arena.occupied() if not s.folded]

    def actionable_seats(self) -> list[tuple[int, Seat]]:
        return [(i, s) for i, s in self.arena.occupied() if s.actionable]

    def rank_of(self, index: int) -> HandRank | None:
        return self._ranks.get(index)

    def linked(self, a: int, b: int) -> bool:
        return a == b or frozenset((a, b)) in self._links

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------ hand lifecycle

    def start_round(self, host_seat: int, ante: int) -> list[int]:
        """Deal a new hand and collect antes. Returns the dealt-in seat indices."""

        if ante <= 0:
            raise TableError(RejectReason.INVALID_AMOUNT, "ante must be positive")
        dealt = [(i, s) for i, s in self.arena.occupied() if s.chips > 0]
        if not dealt:
            raise TableError(RejectReason.NO_PLAYERS)

        for _, seat in self.arena.occupied():
            seat.reset_for_hand()
            if seat.chips <= 0:
                seat.folded = True

        deck = shuffled_deck(self.rng)
        hands: dict[int, list] = {index: [] for index, _ in dealt}
        for _ in range(3):
            for index, _seat in dealt:
                hands[index].append(deck.pop())

        self.pot = 0
        self._ranks = {}
        for index, seat in dealt:
            seat.cards = tuple(hands[index])
            self._ranks[index] = rank_hand(seat.cards)
            self.pot += seat.commit(ante)

        self.ante = ante
        self.current_bet = ante
        self.round = 1
        self.first_round_complete = False
        self.showdown_ready = False
        self.result = None
        self._links = set()
        self.hand_number += 1

        anchor = self.last_winner if self.last_winner is not None and self.arena.get(self.last_winner) else host_seat
        self.turn = self._next_actionable(anchor)
        self._first_actor = self.turn
        self.phase = Phase.DEALING
        logger.info(
            "Hand %d dealt to %d seats (ante=%d, pot=%d, first=%s)",
            self.hand_number,
            len(dealt),
            ante,
            self.pot,
            self.turn,
        )
        return [index for index, _ in dealt]

    def finish_dealing(self) -> HandResult | None:
        if self.phase is not Phase.DEALING:
            raise TableError(RejectReason.NOT_BETTING_PHASE, "no deal in progress")
        self.phase = Phase.BETTING
        if self.turn is None or len(self.active_seats()) <= 1:
            return self._end_hand()
        return None

    # ------------------------------------------------------------------ actions

    def required_amount(self, index: int) -> int:
        """Chips ``index`` must put in to call, after the blind/peeked rule."""

        seat = self.arena.get(index)
        if seat is None:
            raise TableError(RejectReason.INVALID_SEAT)
        last = self._last_bettor(index)
        if last is None:
            return self.current_bet
        acting_blind = not seat.peeked
        if acting_blind and not last.last_wager_blind:
            return math.ceil(last.last_wager / 2)
        if not acting_blind and last.last_wager_blind:
            return last.last_wager * 2
        return last.last_wager

    def handle_action(
        self,
        index: int,
        action: ActionKind | str,
        amount: int = 0,
        *,
        target: int | None = None,
    ) -> ActionEvent:
        kind = ActionKind.parse(action)
        if self.phase is not Phase.BETTING:
            raise TableError(RejectReason.NOT_BETTING_PHASE)
        seat = self.arena.get(index)
        if seat is None or seat.folded:
            raise TableError(RejectReason.INVALID_SEAT, f"seat {index} is not in the hand")
        if kind is not ActionKind.FOLD and index != self.turn:
            raise TableError(RejectReason.NOT_YOUR_TURN)

        match kind:
            case ActionKind.FOLD:
                event = self._fold(index, seat)
            case ActionKind.PEEK:
                seat.peeked = True
                event = ActionEvent(EventKind.PEEK, index, chips_left=seat.chips)
            case ActionKind.CALL:
                event = self._call(index, seat)
            case ActionKind.RAISE:
                event = self._raise(index, seat, amount)
            case ActionKind.BLIND:
                event = self._blind(index, seat, amount)
            case ActionKind.SHOWDOWN:
                event = self._showdown(index, seat, target)
            case _:  # pragma: no cover - ActionKind is closed
                raise AssertionError(f"unhandled action {kind!r}")

        logger.debug("Seat %d %s -> %s amount=%d pot=%d", index, kind.value, event.kind.value, event.amount, self.pot)
        for listener in self._listeners:
            listener(event)
        return event

    def _fold(self, index: int, seat: Seat) -> ActionEvent:
        seat.folded = True
        seat.has_acted = True
        result = self._after_action(index, advance=index == self.turn)
        return ActionEvent(EventKind.FOLD, index, chips_left=seat.chips, hand_result=result)

    def _call(self, index: int, seat: Seat) -> ActionEvent:
        required = self.required_amount(index)
        if required <= 0:
            raise TableError(RejectReason.INVALID_AMOUNT, "nothing to call")
        kind = EventKind.CALL
        if seat.chips < required:
            kind = EventKind.ALL_IN
        applied = seat.commit(required)
        self.pot += applied
        seat.has_acted = True
        result = self._after_action(index)
        return ActionEvent(kind, index, amount=applied, chips_left=seat.chips, hand_result=result)

    def _raise(self, index: int, seat: Seat, amount: int) -> ActionEvent:
        if amount <= 0:
            raise TableError(RejectReason.INVALID_AMOUNT, "raise must be positive")
        total = self.required_amount(index) + amount
        if seat.chips < total:
            raise TableError(RejectReason.INSUFFICIENT_FUNDS)
        self.pot += seat.commit(total)
        self._reopen_betting(index, seat)
        result = self._after_action(index)
        kind = EventKind.ALL_IN if seat.all_in else EventKind.RAISE
        return ActionEvent(kind, index, amount=total, chips_left=seat.chips, hand_result=result)

    def _blind(self, index: int, seat: Seat, amount: int) -> ActionEvent:
        if seat.peeked:
            raise TableError(RejectReason.ALREADY_PEEKED)
        required = self.required_amount(index)
        if amount < required or amount <= 0:
            raise TableError(RejectReason.INVALID_AMOUNT, f"blind wager must be at least {required}")
        if seat.chips < amount:
            raise TableError(RejectReason.INSUFFICIENT_FUNDS)
        self.pot += seat.commit(amount, blind=True)
        if amount > required:
            self._reopen_betting(index, seat)
        else:
            seat.has_acted = True
        result = self._after_action(index)
        return ActionEvent(EventKind.BLIND, index, amount=amount, chips_left=seat.chips, blind=True, hand_result=result)

    def _showdown(self, index: int, seat: Seat, target: int | None) -> ActionEvent:
        if not self.first_round_complete:
            raise TableError(RejectReason.FIRST_ROUND_INCOMPLETE)
        opponent = self.arena.get(target) if target is not None else None
        if target is None or target == index or opponent is None or opponent.folded:
            raise TableError(RejectReason.INVALID_TARGET)
        cost = self.required_amount(index)
        if seat.chips < cost:
            raise TableError(RejectReason.INSUFFICIENT_FUNDS)

        self.pot += seat.commit(cost)
        seat.has_acted = True
        mine, theirs = self._ranks[index], self._ranks[target]
        # Equal weight goes to the defender.
        if mine.weight > theirs.weight:
            winner, loser = index, target
        else:
            winner, loser = target, index
        winner_seat, loser_seat = (seat, opponent) if winner == index else (opponent, seat)
        loser_seat.folded = True
        loser_seat.lost_showdown = True
        loser_seat.showdown_by = winner
        if not winner_seat.peeked:
            winner_seat.peeked = True
        self._links.add(frozenset((index, target)))
        showdown = ShowdownResult(
            challenger=index,
            target=target,
            winner=winner,
            loser=loser,
            challenger_rank=mine,
            target_rank=theirs,
            cost=cost,
        )
        logger.info("Showdown seat %d vs %d: winner %d (%d vs %d)", index, target, winner, mine.weight, theirs.weight)
        result = self._after_action(index)
        return ActionEvent(
            EventKind.SHOWDOWN,
            index,
            amount=cost,
            chips_left=seat.chips,
            showdown=showdown,
            hand_result=result,
        )

    # ------------------------------------------------------------------ turn order

    def _reopen_betting(self, index: int, seat: Seat) -> None:
        self.current_bet = max(self.current_bet, seat.current_wager)
        for other_index, other in self.arena.occupied():
            if other_index != index and other.actionable:
                other.has_acted = False
        seat.has_acted = True

    def _last_bettor(self, index: int) -> Seat | None:
        cursor = index
        for _ in range(self.size - 1):
            cursor = (cursor - 1) % self.size
            seat = self.arena.get(cursor)
            if seat is not None and not seat.folded and seat.last_wager > 0:
                return seat
        return None

    def _next_actionable(self, start: int) -> int | None:
        cursor = start
        for _ in range(self.size):
            cursor = (cursor + 1) % self.size
            seat = self.arena.get(cursor)
            if seat is not None and seat.actionable:
                return cursor
        return None

    def _refresh_showdown_ready(self) -> None:
        active = self.active_seats()
        self.showdown_ready = bool(active) and all(
            s.all_in or (s.has_acted and s.current_wager == self.current_bet) for _, s in active
        )

    def _after_action(self, index: int, *, advance: bool = True) -> HandResult | None:
        active = self.active_seats()
        if len(active) <= 1:
            return self._end_hand()
        self._refresh_showdown_ready()
        actionable = self.actionable_seats()
        if not actionable:
            return self._end_hand()
        if len(actionable) == 1 and actionable[0][1].has_acted:
            # Everyone else is all-in: nobody left to bet against.
            return self._end_hand()
        if advance:
            self._advance_turn(index)
        return None

    def _advance_turn(self, index: int) -> None:
        cursor = index
        lapped = False
        chosen: int | None = None
        for _ in range(self.size):
            cursor = (cursor + 1) % self.size
            if cursor == self._first_actor:
                lapped = True
            seat = self.arena.get(cursor)
            if seat is not None and seat.actionable:
                chosen = cursor
                break
        if lapped:
            self.round += 1
            if not self.first_round_complete:
                logger.debug("First betting round complete on hand %d", self.hand_number)
            self.first_round_complete = True
        self.turn = chosen

    def _end_hand(self) -> HandResult | None:
        active = self.active_seats()
        self.phase = Phase.ENDED
        self.turn = None
        if not active:
            logger.warning("Hand %d ended with no seats left; pot of %d unclaimed", self.hand_number, self.pot)
            return None
        by_fold = len(active) == 1
        winner_index, winner = active[0]
        for index, seat in active[1:]:
            if self._ranks[index].weight > self._ranks[winner_index].weight:
                winner_index, winner = index, seat
        pot = self.pot
        winner.chips += pot
        self.pot = 0
        self.last_winner = winner_index
        for index, _ in active:
            if not by_fold and index != winner_index:
                self._links.add(frozenset((index, winner_index)))
        self.result = HandResult(
            winner=winner_index,
            identity=winner.identity,
            pot=pot,
            rank=self._ranks.get(winner_index),
            cards=winner.cards,
            by_fold=by_fold,
        )
        logger.info("Hand %d won by seat %d (%s) pot=%d by_fold=%s", self.hand_number, winner_index, winner.identity, pot, by_fold)
        return self.result

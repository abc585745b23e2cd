from __future__ import annotations

import random

import pytest

from threecard.core.errors import RejectReason, TableError
from threecard.table import ActionKind, BettingStateMachine, EventKind, Phase


def _table(chips: list[int], *, rng: random.Random | None = None, host: int | None = None, ante: int = 10):
    machine = BettingStateMachine(max_seats=len(chips) + 1, rng=rng or random.Random(7))
    for index, stack in enumerate(chips):
        machine.sit(index, f"p{index}", stack)
    machine.start_round(host if host is not None else len(chips) - 1, ante)
    machine.finish_dealing()
    return machine


def test_start_round_deals_three_unique_cards_and_collects_antes():
    machine = _table([1000, 1000, 1000])

    dealt = [card for _, seat in machine.seats() for card in seat.cards]
    assert len(dealt) == 9
    assert len(set(dealt)) == 9
    assert machine.pot == 30
    assert all(seat.chips == 990 for _, seat in machine.seats())
    assert machine.phase is Phase.BETTING
    assert machine.turn == 0
    assert machine.round == 1
    assert not machine.first_round_complete


def test_start_round_without_players_is_rejected():
    machine = BettingStateMachine(max_seats=4)
    with pytest.raises(TableError) as excinfo:
        machine.start_round(0, 10)
    assert excinfo.value.reason is RejectReason.NO_PLAYERS
    assert machine.phase is Phase.WAITING


def test_busted_seats_sit_out_the_deal():
    machine = BettingStateMachine(max_seats=4, rng=random.Random(3))
    machine.sit(0, "a", 100)
    machine.sit(1, "b", 0)
    machine.sit(2, "c", 100)
    dealt = machine.start_round(2, 10)
    assert dealt == [0, 2]
    assert machine.seat(1).folded
    assert machine.seat(1).cards == ()


def test_unpeeked_caller_pays_half_of_a_seen_wager():
    machine = _table([1000, 1000, 1000])
    machine.handle_action(0, ActionKind.PEEK)
    event = machine.handle_action(0, ActionKind.RAISE, 10)
    assert event.kind is EventKind.RAISE
    assert event.amount == 20

    assert machine.required_amount(1) == 10
    machine.handle_action(1, ActionKind.PEEK)
    assert machine.required_amount(1) == 20


def test_seen_caller_pays_double_a_blind_wager():
    machine = _table([1000, 1000, 1000])
    event = machine.handle_action(0, ActionKind.BLIND, 20)
    assert event.blind

    assert machine.required_amount(1) == 20
    machine.handle_action(1, ActionKind.PEEK)
    assert machine.required_amount(1) == 40


def test_blind_then_peeked_call_in_heads_up(stacked_rng):
    machine = _table([1000, 1000], rng=stacked_rng(["As Ks 2d", "7h 7d 3c"]), host=1)
    machine.handle_action(0, ActionKind.BLIND, 10)
    machine.handle_action(1, ActionKind.PEEK)
    event = machine.handle_action(1, ActionKind.CALL)
    assert event.amount == 20
    assert machine.pot == 50


def test_peek_keeps_the_turn_and_blind_after_peek_is_rejected():
    machine = _table([1000, 1000])
    machine.handle_action(0, ActionKind.PEEK)
    assert machine.turn == 0
    with pytest.raises(TableError) as excinfo:
        machine.handle_action(0, ActionKind.BLIND, 50)
    assert excinfo.value.reason is RejectReason.ALREADY_PEEKED


def test_unknown_action_names_are_rejected_as_table_errors():
    machine = _table([1000, 1000])
    with pytest.raises(TableError) as excinfo:
        machine.handle_action(0, "bogus")
    assert excinfo.value.reason is RejectReason.INVALID_ACTION
    assert machine.turn == 0
    assert machine.pot == 20
    assert ActionKind.parse(" Call ") is ActionKind.CALL


def test_out_of_turn_actions_are_rejected_but_fold_is_not():
    machine = _table([1000, 1000, 1000])
    with pytest.raises(TableError) as excinfo:
        machine.handle_action(1, "call")
    assert excinfo.value.reason is RejectReason.NOT_YOUR_TURN

    event = machine.handle_action(2, "fold")
    assert event.kind is EventKind.FOLD
    assert machine.turn == 0


def test_raise_beyond_stack_is_rejected_without_mutation():
    machine = _table([1000, 50])
    machine.handle_action(0, ActionKind.PEEK)
    machine.handle_action(0, ActionKind.RAISE, 30)
    pot_before = machine.pot
    machine.handle_action(1, ActionKind.PEEK)
    with pytest.raises(TableError) as excinfo:
        machine.handle_action(1, ActionKind.RAISE, 100)
    assert excinfo.value.reason is RejectReason.INSUFFICIENT_FUNDS
    assert machine.pot == pot_before
    assert machine.seat(1).chips == 40


def test_short_call_becomes_all_in():
    machine = _table([1000, 30])
    machine.handle_action(0, ActionKind.PEEK)
    machine.handle_action(0, ActionKind.RAISE, 40)
    machine.handle_action(1, ActionKind.PEEK)
    event = machine.handle_action(1, ActionKind.CALL)
    assert event.kind is EventKind.ALL_IN
    assert event.amount == 20
    assert machine.seat(1).all_in
    assert machine.phase is Phase.ENDED


def test_raise_reopens_betting_for_everyone_else():
    machine = _table([1000, 1000, 1000])
    machine.handle_action(0, ActionKind.PEEK)
    machine.handle_action(0, ActionKind.CALL)
    machine.handle_action(1, ActionKind.PEEK)
    machine.handle_action(1, ActionKind.CALL)
    assert machine.seat(0).has_acted and machine.seat(1).has_acted

    machine.handle_action(2, ActionKind.PEEK)
    machine.handle_action(2, ActionKind.RAISE, 30)
    assert not machine.seat(0).has_acted
    assert not machine.seat(1).has_acted
    assert machine.seat(2).has_acted
    assert machine.current_bet == machine.seat(2).current_wager


def test_showdown_requires_a_completed_first_round():
    machine = _table([1000, 1000])
    with pytest.raises(TableError) as excinfo:
        machine.handle_action(0, ActionKind.SHOWDOWN, target=1)
    assert excinfo.value.reason is RejectReason.FIRST_ROUND_INCOMPLETE


def test_first_round_completes_after_one_lap():
    machine = _table([1000, 1000, 1000])
    for index in (0, 1, 2):
        machine.handle_action(index, ActionKind.PEEK)
        machine.handle_action(index, ActionKind.CALL)
    assert machine.first_round_complete
    assert machine.round == 2
    assert machine.turn == 0


def _play_to_showdown(machine: BettingStateMachine) -> None:
    for index in (0, 1):
        machine.handle_action(index, ActionKind.PEEK)
        machine.handle_action(index, ActionKind.CALL)


def test_leopard_beats_pair_and_takes_the_pot(stacked_rng):
    machine = _table([1000, 1000], rng=stacked_rng(["7s 7h 7d", "Ks Kh 2c"]), host=1)
    assert machine.rank_of(0).weight == 8007
    assert machine.rank_of(1).weight == 4302

    _play_to_showdown(machine)
    with pytest.raises(TableError) as excinfo:
        machine.handle_action(0, ActionKind.SHOWDOWN, target=0)
    assert excinfo.value.reason is RejectReason.INVALID_TARGET

    event = machine.handle_action(0, ActionKind.SHOWDOWN, target=1)
    assert event.showdown is not None
    assert event.showdown.winner == 0
    assert event.showdown.cost == 10
    assert event.hand_ended

    loser = machine.seat(1)
    assert loser.folded and loser.lost_showdown and loser.showdown_by == 0
    assert machine.result.winner == 0
    assert machine.result.pot == 50
    assert machine.seat(0).chips == 1020
    assert machine.seat(1).chips == 980
    assert machine.linked(0, 1)


def test_equal_hands_go_to_the_defender(stacked_rng):
    machine = _table([1000, 1000], rng=stacked_rng(["As Kd 9c", "Ah Kc 9s"]), host=1)
    assert machine.rank_of(0).weight == machine.rank_of(1).weight
    _play_to_showdown(machine)

    event = machine.handle_action(0, ActionKind.SHOWDOWN, target=1)
    assert event.showdown.winner == 1
    assert machine.result.winner == 1


def test_last_seat_standing_wins_by_fold():
    machine = _table([1000, 1000, 1000])
    machine.handle_action(0, ActionKind.FOLD)
    event = machine.handle_action(1, ActionKind.FOLD)
    assert event.hand_ended
    assert machine.result.winner == 2
    assert machine.result.by_fold
    assert machine.phase is Phase.ENDED
    assert machine.seat(2).chips == 1020
    assert machine.last_winner == 2


def test_next_hand_starts_after_the_previous_winner():
    machine = _table([1000, 1000, 1000])
    machine.handle_action(0, ActionKind.FOLD)
    machine.handle_action(1, ActionKind.FOLD)

    machine.start_round(0, 10)
    machine.finish_dealing()
    assert machine.hand_number == 2
    assert machine.turn == 0


def test_vacating_mid_hand_counts_as_fold():
    machine = _table([1000, 1000])
    event = machine.vacate(1)
    assert event is not None and event.kind is EventKind.FOLD
    assert machine.result.winner == 0
    assert machine.seat(1) is None


def test_listeners_see_every_applied_action():
    machine = _table([1000, 1000])
    seen = []
    machine.subscribe(seen.append)
    machine.handle_action(0, ActionKind.PEEK)
    machine.handle_action(0, ActionKind.CALL)
    assert [event.kind for event in seen] == [EventKind.PEEK, EventKind.CALL]


def test_actions_outside_betting_are_rejected():
    machine = BettingStateMachine(max_seats=3)
    machine.sit(0, "a", 100)
    with pytest.raises(TableError) as excinfo:
        machine.handle_action(0, ActionKind.CALL)
    assert excinfo.value.reason is RejectReason.NOT_BETTING_PHASE


def test_vacated_handles_never_resolve_to_the_next_occupant():
    machine = BettingStateMachine(max_seats=3)
    old = machine.sit(1, "alice", 100)
    assert machine.arena.resolve(old) == 1

    machine.vacate(1)
    new = machine.sit(1, "bob", 100)
    assert machine.arena.resolve(old) is None
    assert machine.arena.resolve(new) == 1
    assert new.id != old.id

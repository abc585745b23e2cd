from __future__ import annotations

import asyncio
import logging

import pytest

from threecard.ai.stores import InMemoryBetPatternStore, InMemoryBiasStore, InMemoryProfileStore
from threecard.core import settings
from threecard.core.errors import RejectReason, RoomClosedError, StoreError, TableError
from threecard.features.room import DecisionPayload, EventPayload, RoomConfig, RoomManager
from threecard.table import EventKind, Phase


def _config(**changes) -> RoomConfig:
    values = dict(think_delay_ms=0, ai_only_think_delay_ms=0, mc_samples=50, seed=17)
    values.update(changes)
    return RoomConfig(**values)


class _BrokenProfiles:
    async def load_profile(self, identity):
        raise StoreError("profile db offline")

    async def load_profiles(self, identities):
        raise StoreError("profile db offline")

    async def save_profile_delta(self, identity, increments):
        raise StoreError("profile db offline")


def test_config_reads_settings_overrides():
    with settings.override(ante=25, think_delay_ms=0):
        config = RoomConfig.from_settings(mc_samples=42)
    assert config.ante == 25
    assert config.think_delay_ms == 0
    assert config.mc_samples == 42


def test_ai_only_table_plays_a_hand_to_completion():
    async def scenario():
        manager = RoomManager()
        await manager.load_biases()
        room_id = manager.create_room(_config())
        for seat in range(3):
            await manager.sit(room_id, seat, f"ai-{seat}", is_ai=True, archetype="balanced")
        snapshot = await manager.start_hand(room_id, host_seat=2)
        events = await manager.run_ai_turns(room_id)
        await manager.flush()
        return manager, room_id, snapshot, events

    manager, room_id, snapshot, events = asyncio.run(scenario())
    table = manager.room(room_id).table
    assert snapshot.phase == "betting"
    assert events and events[-1].hand_ended
    assert table.phase is Phase.ENDED
    assert table.pot == 0
    assert sum(seat.chips for _, seat in table.seats()) == 3000
    assert any(manager.adjuster.history(f"ai-{seat}") for seat in range(3))
    assert all(EventPayload.from_event(event).to_dict()["kind"] for event in events)


def test_seeded_rooms_replay_identically():
    async def scenario():
        manager = RoomManager()
        room_id = manager.create_room(_config(seed=99))
        for seat in range(4):
            await manager.sit(room_id, seat, f"ai-{seat}", is_ai=True, archetype="tricky")
        trace = []
        for hand in range(3):
            await manager.start_hand(room_id, host_seat=hand % 4)
            events = await manager.run_ai_turns(room_id)
            trace.extend((e.kind, e.seat, e.amount) for e in events)
        return trace

    assert asyncio.run(scenario()) == asyncio.run(scenario())


def test_ai_waits_for_the_human_to_act():
    profiles = InMemoryProfileStore()

    async def scenario():
        manager = RoomManager(profiles=profiles)
        room_id = manager.create_room(_config())
        await manager.sit(room_id, 0, "alice")
        await manager.sit(room_id, 1, "bot", is_ai=True)
        await manager.start_hand(room_id, host_seat=1)

        assert await manager.play_ai_turn(room_id) is None
        with pytest.raises(TableError):
            await manager.make_ai_decision(room_id, 0)

        await manager.apply_action(room_id, 0, "peek")
        await manager.apply_action(room_id, 0, "call")
        assert manager.snapshot(room_id).turn == 1
        decision = await manager.make_ai_decision(room_id, 1)
        await manager.flush()
        return decision, await profiles.load_profile("alice")

    decision, profile = asyncio.run(scenario())
    assert decision is not None
    assert profile.peek_count == 1
    assert profile.call_count == 1
    assert profile.avg_bet_size == pytest.approx(10.0)


def test_start_hand_rejects_a_hand_in_progress():
    async def scenario():
        manager = RoomManager()
        room_id = manager.create_room(_config())
        await manager.sit(room_id, 0, "alice")
        await manager.sit(room_id, 1, "bob")
        await manager.start_hand(room_id)
        with pytest.raises(TableError) as excinfo:
            await manager.start_hand(room_id)
        return excinfo.value.reason

    assert asyncio.run(scenario()) is RejectReason.NOT_BETTING_PHASE


def test_outside_actions_are_rejected_while_the_ai_thinks():
    async def scenario():
        manager = RoomManager()
        room_id = manager.create_room(_config(think_delay_ms=200))
        await manager.sit(room_id, 0, "alice")
        await manager.sit(room_id, 1, "bot", is_ai=True)
        await manager.start_hand(room_id, host_seat=0)

        task = asyncio.create_task(manager.play_ai_turn(room_id))
        await asyncio.sleep(0.01)
        assert 1 in manager.room(room_id).thinking
        with pytest.raises(TableError) as excinfo:
            await manager.apply_action(room_id, 1, "fold")
        event = await task
        return excinfo.value.reason, event, manager.room(room_id).thinking

    reason, event, thinking = asyncio.run(scenario())
    assert reason is RejectReason.NOT_YOUR_TURN
    assert event is not None and event.seat == 1
    assert thinking == set()


def test_closing_a_room_discards_in_flight_decisions():
    async def scenario():
        manager = RoomManager()
        room_id = manager.create_room(_config(ai_only_think_delay_ms=200))
        await manager.sit(room_id, 0, "ai-a", is_ai=True)
        await manager.sit(room_id, 1, "ai-b", is_ai=True)
        await manager.start_hand(room_id, host_seat=1)
        table = manager.room(room_id).table
        pot, turn = table.pot, table.turn

        task = asyncio.create_task(manager.play_ai_turn(room_id))
        await asyncio.sleep(0.01)
        await manager.close_room(room_id)
        event = await task
        return manager, room_id, table, pot, turn, event

    manager, room_id, table, pot, turn, event = asyncio.run(scenario())
    assert event is None
    assert table.pot == pot
    assert table.turn == turn
    assert manager.adjuster.history("ai-a") == []
    with pytest.raises(RoomClosedError):
        manager.room(room_id)
    with pytest.raises(KeyError):
        asyncio.run(manager.close_room(room_id))


def test_only_applied_decisions_feed_the_strategy_history():
    async def scenario():
        manager = RoomManager()
        room_id = manager.create_room(_config())
        await manager.sit(room_id, 0, "ai-a", is_ai=True)
        await manager.sit(room_id, 1, "ai-b", is_ai=True)
        await manager.start_hand(room_id, host_seat=1)
        await manager.apply_action(room_id, 0, "peek")

        for _ in range(3):
            assert await manager.make_ai_decision(room_id, 0) is not None
        unapplied = manager.adjuster.history("ai-a")
        event = await manager.play_ai_turn(room_id)
        return unapplied, event, manager.adjuster.history("ai-a")

    unapplied, event, history = asyncio.run(scenario())
    assert unapplied == []
    assert event is not None and event.seat == 0
    assert event.kind is not EventKind.PEEK
    assert len(history) == 1
    assert history[0].amount == event.amount


def test_showdown_between_humans_is_persisted(stacked_rng):
    profiles = InMemoryProfileStore()
    patterns = InMemoryBetPatternStore()

    async def scenario():
        manager = RoomManager(profiles=profiles, patterns=patterns)
        room_id = manager.create_room(_config())
        await manager.sit(room_id, 0, "alice")
        await manager.sit(room_id, 1, "bob")
        manager.room(room_id).table.rng = stacked_rng(["7s 7h 7d", "Ks Kh 2c"])
        await manager.start_hand(room_id, host_seat=1)
        for seat in (0, 1):
            await manager.apply_action(room_id, seat, "peek")
            await manager.apply_action(room_id, seat, "call")
        event = await manager.apply_action(room_id, 0, "showdown", target=1)
        view = manager.snapshot(room_id, viewer=1)
        await manager.flush()
        return (
            event,
            view,
            await profiles.load_profile("alice"),
            await profiles.load_profile("bob"),
            await patterns.query_bet_pattern("bob"),
        )

    event, view, alice, bob, bob_pattern = asyncio.run(scenario())
    assert event.kind is EventKind.SHOWDOWN
    assert event.showdown.winner == 0
    assert event.hand_ended

    assert alice.showdown_initiated == 1 and alice.showdown_wins == 1
    assert alice.total_hands == 1 and alice.total_chips_won == 20
    assert bob.showdown_received == 1 and bob.showdown_losses == 1
    assert bob.total_chips_lost == 20 and bob.recent_losses == 1
    assert bob_pattern.total_records == 1

    alice_view = next(seat for seat in view.seats if seat.seat == 0)
    assert alice_view.cards == ["7D", "7H", "7S"]
    assert view.result.winner == 0


def test_leaving_mid_hand_folds_the_seat():
    async def scenario():
        manager = RoomManager()
        room_id = manager.create_room(_config())
        await manager.sit(room_id, 0, "alice")
        await manager.sit(room_id, 1, "bob")
        await manager.start_hand(room_id)
        event = await manager.leave(room_id, 1)
        await manager.flush()
        return event, manager.room(room_id).table

    event, table = asyncio.run(scenario())
    assert event.kind is EventKind.FOLD
    assert event.hand_ended
    assert table.result.winner == 0
    assert table.seat(1) is None


def test_store_failures_are_logged_and_play_continues(caplog):
    async def scenario():
        manager = RoomManager(profiles=_BrokenProfiles())
        room_id = manager.create_room(_config())
        await manager.sit(room_id, 0, "alice")
        await manager.sit(room_id, 1, "bot", is_ai=True)
        await manager.start_hand(room_id, host_seat=1)
        await manager.apply_action(room_id, 0, "peek")
        await manager.apply_action(room_id, 0, "call")
        event = await manager.play_ai_turn(room_id)
        await manager.flush()
        return event

    with caplog.at_level(logging.WARNING, logger="threecard.features.room.service"):
        event = asyncio.run(scenario())
    assert event is not None
    messages = [record.getMessage() for record in caplog.records]
    assert any("Profile load failed" in message for message in messages)
    assert any("not saved" in message for message in messages)


def test_bias_load_failure_falls_back_to_zero_bias(caplog):
    class _BrokenBiases(InMemoryBiasStore):
        async def load_personality_biases(self):
            raise OSError("disk gone")

    manager = RoomManager(biases=_BrokenBiases())
    with caplog.at_level(logging.WARNING, logger="threecard.features.room.service"):
        asyncio.run(manager.load_biases())
    assert manager.adjuster.snapshot() == ({}, manager.adjuster.global_bias)
    assert any("zero bias" in record.getMessage() for record in caplog.records)


def test_decision_payload_serialises_without_empty_fields():
    async def scenario():
        manager = RoomManager()
        room_id = manager.create_room(_config())
        await manager.sit(room_id, 0, "ai-a", is_ai=True)
        await manager.sit(room_id, 1, "ai-b", is_ai=True)
        await manager.start_hand(room_id, host_seat=1)
        return await manager.make_ai_decision(room_id, 0)

    decision = asyncio.run(scenario())
    payload = DecisionPayload.from_decision(decision).to_dict()
    assert payload["action"] == decision.action.value
    assert payload["layer"] == decision.layer
    if decision.target is None:
        assert "target" not in payload

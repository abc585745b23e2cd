"""Room orchestration: one table, its AI state and its collaborators.

Every mutation of a room goes through that room's ``asyncio.Lock``, so a room
has exactly one writer at a time while separate rooms run independently. AI
decisions are computed under the lock (store lookups may suspend), the think
delay runs outside it, and the decision is re-validated before it is applied.
Persistence to the profile, bias and bet-pattern stores is fire-and-forget:
failures are logged and never block play.
"""

from __future__ import annotations

import asyncio
import logging
import random
import secrets
import string
import threading
from collections.abc import Coroutine, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from ...ai.opponent_model import (
    OpponentModel,
    OpponentView,
    analyze_opponent,
    analyze_session,
    estimate_strength,
)
from ...ai.personality import PersonalityRegistry
from ...ai.policy import Decision, DecisionContext, DecisionPolicy, OpponentRead, seat_position
from ...ai.range_estimator import HandRangeEstimator
from ...ai.stores import (
    BetPattern,
    BetPatternStore,
    BiasStore,
    CrossSessionProfile,
    InMemoryBetPatternStore,
    InMemoryBiasStore,
    InMemoryProfileStore,
    ProfileStore,
)
from ...ai.strategy import DecisionRecord, StrategyAdjuster
from ...ai.win_rate import WinRateCalculator
from ...core import settings as settings_mod
from ...core.errors import RejectReason, RoomClosedError, StoreError, TableError
from ...table.actions import ActionEvent, ActionKind, HandResult, Phase
from ...table.machine import BettingStateMachine
from ...table.seat import PlayerHandle, Seat
from ...table.snapshot import TableSnapshot, build_snapshot
from .concurrency import run_blocking

__all__ = ["RoomConfig", "RoomState", "RoomManager"]

logger = logging.getLogger(__name__)

_STORE_FAILURES = (StoreError, OSError)
_DEFAULT_AVG_BET = 20.0
_BIG_RAISE = 20
_BLUFF_WEIGHT = 3500
_BLUFF_WAGER = 30


@dataclass(frozen=True)
class RoomConfig:
    ante: int = 10
    starting_chips: int = 1000
    max_seats: int = 8
    think_delay_ms: int = 1500
    ai_only_think_delay_ms: int = 800
    mc_samples: int = 500
    seed: int | None = None

    @classmethod
    def from_settings(cls, settings: settings_mod.Settings | None = None, **changes: Any) -> RoomConfig:
        base = settings or settings_mod.current()
        config = cls(
            ante=base.ante,
            starting_chips=base.starting_chips,
            max_seats=base.max_seats,
            think_delay_ms=base.think_delay_ms,
            ai_only_think_delay_ms=base.ai_only_think_delay_ms,
            mc_samples=base.mc_samples,
        )
        return replace(config, **changes) if changes else config


@dataclass
class RoomState:
    id: str
    config: RoomConfig
    table: BettingStateMachine
    policy: DecisionPolicy
    opponents: OpponentModel
    ranges: HandRangeEstimator
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    host_seat: int = 0
    closed: bool = False
    thinking: set[int] = field(default_factory=set)
    participants: dict[int, str] = field(default_factory=dict)
    bet_patterns: dict[str, BetPattern | None] = field(default_factory=dict)


@dataclass(frozen=True)
class _Before:
    """Table facts captured just before an action is applied."""

    identity: str
    is_ai: bool
    round: int
    pot: int
    current_bet: int
    required: int
    first_round_complete: bool


@dataclass(frozen=True)
class _Decided:
    decision: Decision
    context: DecisionContext


class RoomManager:
    """Owns room lifecycle independent of any transport layer."""

    def __init__(
        self,
        *,
        profiles: ProfileStore | None = None,
        biases: BiasStore | None = None,
        patterns: BetPatternStore | None = None,
        personalities: PersonalityRegistry | None = None,
        adjuster: StrategyAdjuster | None = None,
    ) -> None:
        current = settings_mod.current()
        self.profiles: ProfileStore = profiles if profiles is not None else InMemoryProfileStore()
        self.biases: BiasStore = biases if biases is not None else InMemoryBiasStore()
        self.patterns: BetPatternStore = patterns if patterns is not None else InMemoryBetPatternStore()
        self.personalities = personalities or PersonalityRegistry()
        self.adjuster = adjuster or StrategyAdjuster(
            history_size=current.decision_history,
            min_decisions=current.min_decisions_to_adjust,
        )
        self._profile_ttl = current.profile_ttl_s
        self._analysis_ttl = current.analysis_ttl_s
        self._rooms: dict[str, RoomState] = {}
        self._lock = threading.Lock()
        self._pending: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------ lifecycle

    def create_room(self, config: RoomConfig | None = None) -> str:
        config = config or RoomConfig.from_settings()
        seed = config.seed if config.seed is not None else secrets.SystemRandom().getrandbits(32)
        config = replace(config, seed=seed)
        rng = random.Random(seed)
        state = RoomState(
            id=_room_id(),
            config=config,
            table=BettingStateMachine(max_seats=config.max_seats, rng=random.Random(rng.getrandbits(32))),
            policy=DecisionPolicy(
                random.Random(rng.getrandbits(32)),
                WinRateCalculator(samples=config.mc_samples, seed=seed),
            ),
            opponents=OpponentModel(profile_ttl=self._profile_ttl, analysis_ttl=self._analysis_ttl),
            ranges=HandRangeEstimator(),
        )
        with self._lock:
            self._rooms[state.id] = state
        logger.info("Room %s created (ante=%d, seats=%d, seed=%d)", state.id, config.ante, config.max_seats, seed)
        return state.id

    async def close_room(self, room_id: str) -> None:
        """Tear a room down; in-flight AI decisions for it are discarded."""

        with self._lock:
            state = self._rooms.pop(room_id, None)
        if state is None:
            raise RoomClosedError(f"room '{room_id}' not found")
        state.closed = True
        logger.info("Room %s closed", room_id)

    def room(self, room_id: str) -> RoomState:
        return self._require(room_id)

    def _require(self, room_id: str) -> RoomState:
        with self._lock:
            state = self._rooms.get(room_id)
        if state is None or state.closed:
            raise RoomClosedError(f"room '{room_id}' not found")
        return state

    async def load_biases(self) -> None:
        """Prime the strategy adjuster from the bias store, falling back to zero bias."""

        try:
            personality = await self.biases.load_personality_biases()
            global_bias = await self.biases.load_global_bias()
        except _STORE_FAILURES as exc:
            logger.warning("Strategy bias load failed; using zero bias: %s", exc)
            self.adjuster.reset()
            return
        self.adjuster.load(personality, global_bias)

    async def flush(self) -> None:
        """Wait for outstanding background persistence."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------ seats and hands

    async def sit(
        self,
        room_id: str,
        seat: int,
        identity: str,
        *,
        chips: int | None = None,
        is_ai: bool = False,
        archetype: str | None = None,
    ) -> PlayerHandle:
        state = self._require(room_id)
        if archetype is not None:
            self.personalities.override(identity, archetype)
        async with state.lock:
            stack = state.config.starting_chips if chips is None else chips
            return state.table.sit(seat, identity, stack, is_ai=is_ai)

    async def leave(self, room_id: str, seat: int) -> ActionEvent | None:
        state = self._require(room_id)
        async with state.lock:
            occupant = state.table.seat(seat)
            if occupant is None:
                return None
            before = self._capture(state, seat, occupant)
            event = state.table.vacate(seat)
            if event is not None:
                self._observe(state, before, ActionKind.FOLD, event)
                if event.hand_result is not None:
                    self._finish_hand(state, event.hand_result)
            return event

    async def start_hand(self, room_id: str, host_seat: int | None = None) -> TableSnapshot:
        state = self._require(room_id)
        async with state.lock:
            table = state.table
            if table.phase in (Phase.DEALING, Phase.BETTING):
                raise TableError(RejectReason.NOT_BETTING_PHASE, "a hand is already in progress")
            if host_seat is not None:
                state.host_seat = host_seat
            dealt = table.start_round(state.host_seat, state.config.ante)
            state.opponents.clear()
            state.ranges.clear()
            state.bet_patterns.clear()
            state.participants = {}
            for index in dealt:
                dealt_seat = table.seat(index)
                if dealt_seat is not None:
                    state.participants[index] = dealt_seat.identity
            result = table.finish_dealing()
            if result is not None:
                self._finish_hand(state, result)
            return build_snapshot(table, None)

    def snapshot(self, room_id: str, viewer: int | None = None) -> TableSnapshot:
        return build_snapshot(self._require(room_id).table, viewer)

    # ------------------------------------------------------------------ actions

    async def apply_action(
        self,
        room_id: str,
        seat: int,
        action: ActionKind | str,
        amount: int = 0,
        *,
        target: int | None = None,
    ) -> ActionEvent:
        state = self._require(room_id)
        async with state.lock:
            if seat in state.thinking:
                raise TableError(RejectReason.NOT_YOUR_TURN, f"decision pending for seat {seat}")
            return self._apply_locked(state, seat, action, amount, target)

    def _apply_locked(
        self,
        state: RoomState,
        seat: int,
        action: ActionKind | str,
        amount: int,
        target: int | None,
        *,
        decided: _Decided | None = None,
    ) -> ActionEvent:
        kind = ActionKind.parse(action)
        occupant = state.table.seat(seat)
        if occupant is None:
            raise TableError(RejectReason.INVALID_SEAT, f"seat {seat} is empty")
        before = self._capture(state, seat, occupant)
        event = state.table.handle_action(seat, kind, amount, target=target)
        if decided is not None and kind is not ActionKind.PEEK:
            # Only applied AI actions are scored; the hand result below resolves this one too.
            self.adjuster.record_decision(
                occupant.identity,
                self.personalities.archetype(occupant.identity),
                DecisionRecord(
                    action=kind.value,
                    amount=event.amount,
                    strength=decided.context.weight or 0,
                    round=decided.context.round,
                    pot=decided.context.pot,
                    call_amount=decided.context.call_amount,
                    position=decided.context.position,
                    tier=decided.decision.tier.value if decided.decision.tier else None,
                ),
            )
        self._observe(state, before, kind, event)
        if event.hand_result is not None:
            self._finish_hand(state, event.hand_result)
        return event

    async def make_ai_decision(self, room_id: str, seat: int) -> Decision | None:
        """Compute the AI action for ``seat``; None when the room closed meanwhile.

        Nothing is applied or recorded; callers that act on the decision go
        through :meth:`apply_action`.
        """

        decided = await self._decide(self._require(room_id), seat)
        return decided.decision if decided is not None else None

    async def _decide(self, state: RoomState, seat: int) -> _Decided | None:
        async with state.lock:
            table = state.table
            occupant = table.seat(seat)
            if table.phase is not Phase.BETTING or table.turn != seat:
                raise TableError(RejectReason.NOT_YOUR_TURN, f"seat {seat} is not to act")
            if occupant is None or not occupant.is_ai:
                raise TableError(RejectReason.INVALID_SEAT, f"seat {seat} is not an AI seat")
            context = await self._build_context(state, seat, occupant)
            if state.closed:
                return None
            decision: Decision = await run_blocking(state.policy.decide, context)
            if state.closed:
                logger.debug("Room %s closed while seat %d was deciding", state.id, seat)
                return None
            return _Decided(decision, context)

    async def play_ai_turn(self, room_id: str) -> ActionEvent | None:
        """Let the AI seat to act decide, think, and act. None when nothing was applied."""

        state = self._require(room_id)
        async with state.lock:
            table = state.table
            seat = table.turn
            occupant = table.seat(seat) if seat is not None else None
            if table.phase is not Phase.BETTING or seat is None or occupant is None or not occupant.is_ai:
                return None
            state.thinking.add(seat)
        try:
            decided = await self._decide(state, seat)
            if decided is None:
                return None
            decision = decided.decision
            delay = self._think_delay(state)
            if delay > 0:
                await asyncio.sleep(delay)
            async with state.lock:
                if state.closed:
                    logger.debug("Discarding decision for seat %d: room %s closed", seat, state.id)
                    return None
                if state.table.phase is not Phase.BETTING or state.table.turn != seat:
                    logger.debug("Discarding stale decision for seat %d in room %s", seat, state.id)
                    return None
                try:
                    return self._apply_locked(
                        state, seat, decision.action, decision.amount, decision.target, decided=decided
                    )
                except TableError as exc:
                    logger.warning("AI seat %d decision %s rejected (%s); falling back", seat, decision.action.value, exc.reason.value)
                    fallback = ActionKind.CALL if state.table.required_amount(seat) > 0 else ActionKind.FOLD
                    return self._apply_locked(state, seat, fallback, 0, None, decided=decided)
        finally:
            state.thinking.discard(seat)

    async def run_ai_turns(self, room_id: str, *, limit: int = 500) -> list[ActionEvent]:
        """Play AI turns until a human is to act, the hand ends or ``limit`` is hit."""

        events: list[ActionEvent] = []
        for _ in range(limit):
            event = await self.play_ai_turn(room_id)
            if event is None:
                break
            events.append(event)
            if event.hand_ended:
                break
        return events

    def _think_delay(self, state: RoomState) -> float:
        active = state.table.active_seats()
        only_ai = bool(active) and all(seat.is_ai for _, seat in active)
        delay_ms = state.config.ai_only_think_delay_ms if only_ai else state.config.think_delay_ms
        return delay_ms / 1000

    # ------------------------------------------------------------------ decision context

    async def _build_context(self, state: RoomState, seat: int, me: Seat) -> DecisionContext:
        table = state.table
        others = [(index, other) for index, other in table.active_seats() if index != seat]
        profiles = await self._profiles_for(state, [other.identity for _, other in others if not other.is_ai])

        reads: list[OpponentRead] = []
        for index, other in others:
            identity = other.identity
            view = OpponentView(
                seat=index,
                identity=identity,
                is_ai=other.is_ai,
                chips=other.chips,
                current_wager=other.current_wager,
                last_wager=other.last_wager,
                peeked=other.peeked,
            )
            profile = profiles.get(identity)
            memory = state.opponents.memory(identity)
            behavior = analyze_session(memory, other.last_wager)
            pattern = None if other.is_ai else await self._bet_pattern(state, identity)
            analysis = state.opponents.cached_analysis(identity, other.last_wager)
            if analysis is None:
                analysis = analyze_opponent(
                    view,
                    profile=profile,
                    behavior=behavior,
                    personality=self.personalities.get(identity) if other.is_ai else None,
                    memory=memory,
                )
                state.opponents.store_analysis(identity, other.last_wager, analysis)
            strength = estimate_strength(view, profile=profile, memory=memory, behavior=behavior, bet_pattern=pattern)
            hand_range = state.ranges.estimate(
                identity,
                peeked=other.peeked,
                last_bet=other.last_wager,
                analysis=analysis,
                behavior=behavior,
                bet_pattern=pattern,
                avg_bet=profile.avg_bet_size if profile is not None and profile.avg_bet_size > 0 else None,
            )
            reads.append(OpponentRead(view, analysis, hand_range, strength, behavior, pattern))

        rank = table.rank_of(seat) if me.peeked else None
        call = table.required_amount(seat)
        personality = self.personalities.get(me.identity)
        return DecisionContext(
            seat=seat,
            chips=me.chips,
            current_wager=me.current_wager,
            peeked=me.peeked,
            weight=rank.weight if rank is not None else None,
            call_amount=call,
            pot=table.pot,
            ante=table.ante,
            round=table.round,
            first_round_complete=table.first_round_complete,
            opponents=tuple(reads),
            personality=personality,
            adjustments=self.adjuster.adjustments(personality.archetype),
            position=seat_position(seat, [index for index, _ in table.active_seats()]),
            showdown_cost=call,
        )

    async def _profiles_for(self, state: RoomState, identities: list[str]) -> dict[str, CrossSessionProfile]:
        found: dict[str, CrossSessionProfile] = {}
        missing: list[str] = []
        for identity in identities:
            hit, profile = state.opponents.cached_profile(identity)
            if not hit:
                missing.append(identity)
            elif profile is not None:
                found[identity] = profile
        if not missing:
            return found
        try:
            loaded = await self.profiles.load_profiles(missing)
        except _STORE_FAILURES as exc:
            logger.warning("Profile load failed for %s; using defaults: %s", ", ".join(missing), exc)
            return found
        for identity in missing:
            profile = loaded.get(identity)
            state.opponents.store_profile(identity, profile)
            if profile is not None:
                found[identity] = profile
        return found

    async def _bet_pattern(self, state: RoomState, identity: str) -> BetPattern | None:
        if identity in state.bet_patterns:
            return state.bet_patterns[identity]
        try:
            pattern: BetPattern | None = await self.patterns.query_bet_pattern(identity)
        except _STORE_FAILURES as exc:
            logger.warning("Bet pattern query failed for %s: %s", identity, exc)
            pattern = None
        state.bet_patterns[identity] = pattern
        return pattern

    # ------------------------------------------------------------------ observation and bookkeeping

    def _capture(self, state: RoomState, seat: int, occupant: Seat) -> _Before:
        table = state.table
        required = table.required_amount(seat) if table.phase is Phase.BETTING else 0
        return _Before(
            identity=occupant.identity,
            is_ai=occupant.is_ai,
            round=table.round,
            pot=table.pot,
            current_bet=table.current_bet,
            required=required,
            first_round_complete=table.first_round_complete,
        )

    def _observe(self, state: RoomState, before: _Before, kind: ActionKind, event: ActionEvent) -> None:
        """Feed one applied action to the opponent model, range tracker and stores."""

        seat = state.table.seat(event.seat)
        peeked = seat.peeked if seat is not None else False
        state.opponents.record_action(
            before.identity,
            kind.value,
            event.amount,
            round=before.round,
            peeked=peeked,
            current_bet=before.current_bet,
        )
        if kind in (ActionKind.FOLD, ActionKind.CALL, ActionKind.RAISE, ActionKind.BLIND):
            state.ranges.observe(before.identity, kind.value, event.amount, before.pot)

        if not before.is_ai:
            delta = _action_delta(kind, event, before)
            if delta:
                self._persist_profile(before.identity, delta)
        if event.showdown is not None:
            self._record_showdown(state, event)

    def _record_showdown(self, state: RoomState, event: ActionEvent) -> None:
        showdown = event.showdown
        assert showdown is not None
        ranks = {showdown.challenger: showdown.challenger_rank, showdown.target: showdown.target_rank}
        for index in (showdown.challenger, showdown.target):
            seat = state.table.seat(index)
            if seat is None or seat.is_ai:
                continue
            won = index == showdown.winner
            delta: dict[str, float] = {
                "showdown_initiated" if index == showdown.challenger else "showdown_received": 1,
                "showdown_wins" if won else "showdown_losses": 1,
            }
            rank = ranks[index]
            if not won and rank.weight < _BLUFF_WEIGHT and seat.current_wager > _BLUFF_WAGER:
                delta["bluff_caught"] = 1
            self._persist_profile(seat.identity, delta)

            hit, profile = state.opponents.cached_profile(seat.identity)
            avg_bet = profile.avg_bet_size if hit and profile is not None and profile.avg_bet_size > 0 else _DEFAULT_AVG_BET
            self._spawn(
                self._save_showdown(seat.identity, rank.category.label, rank.weight, seat.current_wager / avg_bet, won)
            )

    def _finish_hand(self, state: RoomState, result: HandResult) -> None:
        changed = False
        for index, identity in state.participants.items():
            seat = state.table.seat(index)
            if seat is None or seat.identity != identity:
                continue
            won = index == result.winner
            wager = seat.current_wager
            profit = result.pot - wager if won else -wager
            if seat.is_ai:
                changed = self.adjuster.record_result(identity, won=won, profit=profit) or changed
                continue
            delta: dict[str, float] = {"total_hands": 1}
            if won:
                delta["chips_won"] = max(profit, 0)
                if result.by_fold:
                    delta["won_without_showdown"] = 1
                    memory = state.opponents.memory(identity)
                    if memory is not None and memory.raise_count > 0:
                        delta["pressure_wins"] = 1
            else:
                delta["chips_lost"] = wager
            self._persist_profile(identity, delta)
            state.opponents.invalidate_profile(identity)
        if changed:
            self._spawn(self._save_biases())
        logger.info("Room %s hand %d settled: seat %d won %d", state.id, state.table.hand_number, result.winner, result.pot)

    # ------------------------------------------------------------------ background persistence

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Background persistence task failed", exc_info=exc)

    def _persist_profile(self, identity: str, delta: Mapping[str, float]) -> None:
        self._spawn(self._save_profile(identity, dict(delta)))

    async def _save_profile(self, identity: str, delta: Mapping[str, float]) -> None:
        try:
            await self.profiles.save_profile_delta(identity, delta)
        except _STORE_FAILURES as exc:
            logger.warning("Profile delta for %s not saved: %s", identity, exc)

    async def _save_showdown(self, identity: str, hand_type: str, weight: int, intensity: float, won: bool) -> None:
        try:
            await self.patterns.record_showdown(identity, hand_type, weight, intensity, won)
        except _STORE_FAILURES as exc:
            logger.warning("Showdown pattern for %s not saved: %s", identity, exc)

    async def _save_biases(self) -> None:
        personality, global_bias = self.adjuster.snapshot()
        decisions = self.adjuster.decisions_since_save
        try:
            await self.biases.save_biases(personality, global_bias, decisions)
        except _STORE_FAILURES as exc:
            logger.warning("Strategy biases not saved: %s", exc)
            return
        self.adjuster.decisions_since_save = 0


def _action_delta(kind: ActionKind, event: ActionEvent, before: _Before) -> dict[str, float]:
    amount = event.amount
    match kind:
        case ActionKind.FOLD:
            return {"fold_count": 1, "late_fold_count" if before.first_round_complete else "early_fold_count": 1}
        case ActionKind.RAISE:
            return {
                "raise_count": 1,
                "pressure_attempts": 1,
                "big_raise_count" if amount > _BIG_RAISE else "small_raise_count": 1,
                "bet_size": amount,
            }
        case ActionKind.CALL:
            return {"call_count": 1, "bet_size": amount}
        case ActionKind.BLIND:
            delta: dict[str, float] = {"blind_bet_count": 1, "bet_size": amount}
            if amount > before.required:
                delta["raise_count"] = 1
                delta["big_raise_count" if amount > _BIG_RAISE else "small_raise_count"] = 1
            return delta
        case ActionKind.PEEK:
            return {"peek_count": 1}
        case _:
            # Showdown counters are written from the showdown outcome.
            return {}


def _room_id(length: int = 10) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))

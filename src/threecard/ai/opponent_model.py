"""Opponent modelling from public information.

Three layers feed every read: within-hand session memory (what a seat did this
hand), the cross-session behavioural profile (counters persisted across
games), and the seat's personality when the opponent is itself an AI. Nothing
here ever looks at another seat's cards.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .personality import Personality
from .stores import BetPattern, CrossSessionProfile, intensity_level

__all__ = [
    "ObservedAction",
    "SessionMemory",
    "SessionBehavior",
    "PatternEstimate",
    "OpponentAnalysis",
    "OpponentView",
    "detect_behavior_shift",
    "analyze_session",
    "estimate_by_bet_pattern",
    "analyze_opponent",
    "detect_tilt",
    "estimate_strength",
    "OpponentModel",
]

logger = logging.getLogger(__name__)

_BIG_BET = 30
_MIN_PROFILE_HANDS = 10
_MIN_STRENGTH_PROFILE_HANDS = 20


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class ObservedAction:
    action: str
    amount: int
    round: int
    peeked: bool


@dataclass
class SessionMemory:
    actions: list[ObservedAction] = field(default_factory=list)
    raise_count: int = 0
    fold_count: int = 0
    total_bet: int = 0
    max_bet: int = 0
    peeked_at_round: int | None = None
    behavior_shift: float = 0.0


@dataclass(frozen=True)
class SessionBehavior:
    trend: str = "stable"
    intensity: float = 0.0
    is_abnormal: bool = False
    avg_bet: float = 0.0
    consecutive_big_bets: int = 0
    total_big_bets: int = 0
    strong_hand_likelihood: float = 0.0


@dataclass(frozen=True)
class PatternEstimate:
    avg_weight: float
    confidence: float
    sample_count: int
    level: str


@dataclass(frozen=True)
class OpponentAnalysis:
    type: str = "unknown"
    bluff_likelihood: float = 0.3
    fold_pressure: float = 0.5
    danger_level: float = 0.5
    exploit_hint: str | None = None
    bet_size_pattern: str = "normal"
    showdown_tendency: float = 0.5
    tilt_level: float = 0.0
    session_aggression: float = 0.0


@dataclass(frozen=True)
class OpponentView:
    """What any seat may know about another: no cards."""

    seat: int
    identity: str
    is_ai: bool
    chips: int
    current_wager: int
    last_wager: int
    peeked: bool


def detect_behavior_shift(actions: Sequence[ObservedAction]) -> float:
    """Relative change of the last two bets against the earlier average."""

    if len(actions) < 3:
        return 0.0
    recent, earlier = actions[-2:], actions[:-2]
    recent_avg = sum(a.amount for a in recent) / len(recent)
    earlier_avg = sum(a.amount for a in earlier) / len(earlier)
    if earlier_avg <= 0:
        return 0.0
    return (recent_avg - earlier_avg) / earlier_avg


def analyze_session(memory: SessionMemory | None, current_bet: int) -> SessionBehavior:
    if memory is None or len(memory.actions) < 2:
        return SessionBehavior()
    bets = [a.amount for a in memory.actions if a.amount > 0]
    if len(bets) < 2:
        return SessionBehavior()

    avg_bet = sum(bets) / len(bets)
    intensity = memory.behavior_shift
    trend = "stable"
    if intensity > 0.3:
        trend = "escalating"
    elif intensity < -0.3:
        trend = "declining"

    abnormal = current_bet > avg_bet * 2 or 0 < current_bet < avg_bet * 0.5

    consecutive = 0
    for amount in reversed(bets):
        if amount < _BIG_BET:
            break
        consecutive += 1
    total_big = sum(1 for amount in bets if amount >= _BIG_BET)

    likelihood = 0.0
    if consecutive >= 4:
        likelihood = 0.9
    elif consecutive >= 3:
        likelihood = 0.8
    elif consecutive >= 2:
        likelihood = 0.6
    elif consecutive >= 1 and trend == "escalating":
        likelihood = 0.4
    if memory.total_bet > 100:
        likelihood = min(0.95, likelihood + 0.15)

    return SessionBehavior(
        trend=trend,
        intensity=intensity,
        is_abnormal=abnormal,
        avg_bet=avg_bet,
        consecutive_big_bets=consecutive,
        total_big_bets=total_big,
        strong_hand_likelihood=likelihood,
    )


def estimate_by_bet_pattern(pattern: BetPattern | None, bet_intensity: float) -> PatternEstimate | None:
    if pattern is None or pattern.total_records < 5:
        return None
    level = intensity_level(bet_intensity)
    bucket = pattern.bucket(level)
    if bucket is None or bucket.sample_count < 2:
        return None
    return PatternEstimate(
        avg_weight=bucket.avg_hand_weight,
        confidence=min(bucket.sample_count / 10, 1.0),
        sample_count=bucket.sample_count,
        level=level,
    )


def _rates(profile: CrossSessionProfile) -> dict[str, float]:
    hands = max(profile.total_hands, 1)
    raises = profile.raise_count
    folds = profile.fold_count
    showdowns = profile.showdown_wins + profile.showdown_losses
    return {
        "raise": raises / hands,
        "fold": folds / hands,
        "blind": profile.blind_bet_count / hands,
        "bluff": profile.bluff_caught / max(showdowns, 1),
        "big_raise": profile.big_raise_count / raises if raises else 0.0,
        "early_fold": profile.early_fold_count / folds if folds else 0.0,
        "showdown_win": profile.showdown_wins / showdowns if showdowns else 0.5,
        "pressure_win": profile.won_without_showdown / hands,
        "pressure_success": profile.pressure_wins / profile.pressure_attempts if profile.pressure_attempts else 0.0,
        "showdowns": float(showdowns),
    }


def _classify(rates: dict[str, float]) -> tuple[str, str | None]:
    if rates["raise"] > 0.4 and rates["fold"] < 0.3 and rates["big_raise"] > 0.5:
        return "maniac", "call down lighter; they overbet weak hands"
    if rates["raise"] > 0.35 or rates["big_raise"] > 0.6:
        return "aggressive", "let them bet into strong hands"
    if rates["fold"] > 0.5 or rates["early_fold"] > 0.7:
        return "rock", "pressure them early"
    if rates["blind"] > 0.4:
        return "blind_lover", "value bet against unpeeked wagers"
    if rates["raise"] < 0.15 and rates["fold"] < 0.3:
        return "calling_station", "value bet, never bluff"
    if rates["pressure_win"] > 0.4:
        return "pressure_player", "stand firm against pressure"
    return "balanced", None


def detect_tilt(profile: CrossSessionProfile | None, memory: SessionMemory | None) -> float:
    tilt = 0.0
    if profile is not None:
        if profile.recent_losses >= 3:
            tilt += 0.3
        elif profile.recent_losses >= 2:
            tilt += 0.15
        if profile.net_chips < -300:
            tilt += 0.2
    if memory is not None and memory.behavior_shift > 0.5:
        tilt += 0.2
    return min(tilt, 1.0)


def analyze_opponent(
    view: OpponentView,
    *,
    profile: CrossSessionProfile | None = None,
    behavior: SessionBehavior | None = None,
    personality: Personality | None = None,
    memory: SessionMemory | None = None,
) -> OpponentAnalysis:
    """Classify one opponent and derive bluff, fold-pressure and danger reads."""

    behavior = behavior or SessionBehavior()
    session_aggression = max(0.0, behavior.intensity)
    tilt = detect_tilt(profile, memory)

    if view.is_ai and personality is not None:
        bluff = personality.read_bluff + (0.1 if behavior.is_abnormal else 0.0)
        return OpponentAnalysis(
            type=personality.read_as,
            bluff_likelihood=_clamp(bluff, 0.05, 0.85),
            fold_pressure=personality.read_fold_pressure,
            danger_level=personality.read_danger,
            tilt_level=tilt,
            session_aggression=session_aggression,
        )

    if profile is None or profile.total_hands < _MIN_PROFILE_HANDS:
        bluff = 0.3 + (0.15 if behavior.is_abnormal else 0.0)
        return OpponentAnalysis(
            type="aggressive" if view.last_wager > 30 else "unknown",
            bluff_likelihood=bluff,
            tilt_level=tilt,
            session_aggression=session_aggression,
        )

    rates = _rates(profile)
    kind, hint = _classify(rates)

    bluff = rates["bluff"] * 0.5 + 0.2
    if rates["pressure_success"] > 0.3 and rates["bluff"] > 0.1:
        bluff += rates["pressure_success"] * 0.3
    elif rates["pressure_success"] > 0.3 and rates["bluff"] < 0.1 and rates["showdowns"] >= 3:
        bluff -= 0.1
    if rates["big_raise"] > 0.5 and rates["showdown_win"] < 0.4:
        bluff += 0.2
    if rates["pressure_win"] > 0.4:
        bluff += 0.1
    if not view.peeked and view.last_wager > 25:
        bluff += 0.15
    if view.peeked and profile.avg_bet_size > 0 and view.last_wager > profile.avg_bet_size * 1.5:
        bluff += 0.1 if rates["bluff"] > 0.15 else -0.1
    if behavior.is_abnormal:
        bluff += 0.15

    fold = rates["fold"] * 0.6 + 0.15
    if rates["early_fold"] > 0.6:
        fold += 0.15
    fold += {"rock": 0.15, "calling_station": -0.25, "maniac": -0.3, "pressure_player": -0.1}.get(kind, 0.0)

    danger = rates["showdown_win"] * 0.5 + 0.25
    if profile.net_chips > 500:
        danger += 0.15
    elif profile.net_chips < -500:
        danger -= 0.1
    if profile.max_single_win > 200:
        danger += 0.1
    if view.peeked and view.last_wager > 35:
        danger += 0.15

    size_pattern = "normal"
    if profile.avg_bet_size > 35:
        size_pattern = "big"
    elif 0 < profile.avg_bet_size < 15:
        size_pattern = "small"

    return OpponentAnalysis(
        type=kind,
        bluff_likelihood=_clamp(bluff, 0.05, 0.85),
        fold_pressure=_clamp(fold, 0.05, 0.85),
        danger_level=_clamp(danger, 0.1, 0.9),
        exploit_hint=hint,
        bet_size_pattern=size_pattern,
        showdown_tendency=rates["showdown_win"],
        tilt_level=tilt,
        session_aggression=session_aggression,
    )


def estimate_strength(
    view: OpponentView,
    *,
    profile: CrossSessionProfile | None = None,
    memory: SessionMemory | None = None,
    behavior: SessionBehavior | None = None,
    bet_pattern: BetPattern | None = None,
) -> float:
    """Heuristic 0..1 strength of an opponent's holding from public signals."""

    last = view.last_wager
    if view.peeked:
        if last > 40:
            strength = 0.75
        elif last > 25:
            strength = 0.6
        elif last <= 10:
            strength = 0.35
        else:
            strength = 0.5
    else:
        strength = 0.55 if last > 30 else 0.45

    avg_bet = profile.avg_bet_size if profile is not None and profile.avg_bet_size > 0 else 20.0
    estimate = estimate_by_bet_pattern(bet_pattern, last / avg_bet)
    if estimate is not None and estimate.confidence >= 0.3:
        pattern_strength = min(0.95, estimate.avg_weight / 10000 + 0.2)
        strength = strength * (1 - estimate.confidence) + pattern_strength * estimate.confidence

    if behavior is not None:
        strength = max(strength, behavior.strong_hand_likelihood)
        if behavior.is_abnormal and behavior.strong_hand_likelihood < 0.5:
            bluffy = profile is not None and _rates(profile)["bluff"] > 0.2
            strength += -0.1 if bluffy else 0.1
        if behavior.trend == "escalating":
            strength += 0.1
        elif behavior.trend == "declining":
            strength -= 0.1

    if memory is not None and len(memory.actions) >= 2:
        if memory.max_bet > 50:
            strength += 0.1
        if memory.peeked_at_round is not None:
            if memory.peeked_at_round <= 1:
                strength -= 0.05
            elif memory.peeked_at_round >= 3:
                strength += 0.05

    if profile is not None and profile.total_hands >= _MIN_STRENGTH_PROFILE_HANDS:
        rates = _rates(profile)
        if rates["bluff"] > 0.15 and last > 25:
            strength *= 0.8
        if rates["raise"] < 0.2 and last > 30:
            strength *= 1.2
        if profile.avg_bet_size > 0:
            if last > profile.avg_bet_size * 1.8:
                strength *= 0.85 if rates["bluff"] > 0.2 else 1.15
            elif last < profile.avg_bet_size * 0.6:
                strength *= 0.9
        if rates["fold"] > 0.5:
            strength += 0.1
        if rates["pressure_win"] > 0.4 and last > 30:
            strength *= 0.85

    return _clamp(strength, 0.1, 0.95)


@dataclass
class _Cached:
    value: object
    stored_at: float


class OpponentModel:
    """Per-room memory of opponents with short-lived read caches."""

    def __init__(
        self,
        *,
        profile_ttl: float = 60.0,
        analysis_ttl: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.profile_ttl = profile_ttl
        self.analysis_ttl = analysis_ttl
        self._clock = clock
        self._memory: dict[str, SessionMemory] = {}
        self._profiles: dict[str, _Cached] = {}
        self._analyses: dict[tuple[str, int], _Cached] = {}

    # ------------------------------------------------------------------ session memory

    def record_action(
        self,
        identity: str,
        action: str,
        amount: int,
        *,
        round: int,
        peeked: bool,
        current_bet: int,
    ) -> SessionMemory:
        memory = self._memory.setdefault(identity, SessionMemory())
        memory.actions.append(ObservedAction(action, amount, round, peeked))
        if action == "raise" or (action == "blind" and amount > current_bet):
            memory.raise_count += 1
        if action in ("raise", "blind", "call", "showdown"):
            memory.total_bet += amount
            memory.max_bet = max(memory.max_bet, amount)
        if action == "fold":
            memory.fold_count += 1
        if action == "peek" and memory.peeked_at_round is None:
            memory.peeked_at_round = round
        memory.behavior_shift = detect_behavior_shift([a for a in memory.actions if a.amount > 0])
        # Any new public action invalidates the cached reads for that seat.
        self._analyses = {key: entry for key, entry in self._analyses.items() if key[0] != identity}
        return memory

    def memory(self, identity: str) -> SessionMemory | None:
        return self._memory.get(identity)

    def clear(self) -> None:
        """Forget the current hand: session memory and cached analyses."""

        self._memory.clear()
        self._analyses.clear()

    # ------------------------------------------------------------------ caches

    def _fresh(self, entry: _Cached | None, ttl: float) -> bool:
        return entry is not None and self._clock() - entry.stored_at < ttl

    def cached_profile(self, identity: str) -> tuple[bool, CrossSessionProfile | None]:
        """Return ``(hit, profile)``; a hit may carry ``None`` for unknown players."""

        entry = self._profiles.get(identity)
        if self._fresh(entry, self.profile_ttl):
            assert entry is not None
            return True, entry.value  # type: ignore[return-value]
        return False, None

    def store_profile(self, identity: str, profile: CrossSessionProfile | None) -> None:
        self._profiles[identity] = _Cached(profile, self._clock())

    def invalidate_profile(self, identity: str) -> None:
        self._profiles.pop(identity, None)

    def cached_analysis(self, identity: str, last_wager: int) -> OpponentAnalysis | None:
        entry = self._analyses.get((identity, last_wager))
        if self._fresh(entry, self.analysis_ttl):
            assert entry is not None
            return entry.value  # type: ignore[return-value]
        return None

    def store_analysis(self, identity: str, last_wager: int, analysis: OpponentAnalysis) -> None:
        self._analyses[(identity, last_wager)] = _Cached(analysis, self._clock())

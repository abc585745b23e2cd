"""Collaborator interfaces for persisted AI data, plus in-memory versions.

The engine only ever reads whole records and writes increments; the stores
own the rows. Real deployments back these protocols with a database; the
in-memory versions serve the simulation harness and tests.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Protocol

__all__ = [
    "CrossSessionProfile",
    "BetBucket",
    "BetPattern",
    "PersonalityBias",
    "GlobalBias",
    "ProfileStore",
    "BiasStore",
    "BetPatternStore",
    "InMemoryProfileStore",
    "InMemoryBiasStore",
    "InMemoryBetPatternStore",
    "intensity_level",
]

logger = logging.getLogger(__name__)


@dataclass
class CrossSessionProfile:
    total_hands: int = 0
    fold_count: int = 0
    early_fold_count: int = 0
    late_fold_count: int = 0
    raise_count: int = 0
    big_raise_count: int = 0
    small_raise_count: int = 0
    call_count: int = 0
    blind_bet_count: int = 0
    peek_count: int = 0
    showdown_wins: int = 0
    showdown_losses: int = 0
    showdown_initiated: int = 0
    showdown_received: int = 0
    won_without_showdown: int = 0
    bluff_caught: int = 0
    pressure_attempts: int = 0
    pressure_wins: int = 0
    recent_losses: int = 0
    total_chips_won: int = 0
    total_chips_lost: int = 0
    max_single_win: int = 0
    max_single_loss: int = 0
    avg_bet_size: float = 0.0
    bet_samples: int = 0

    @property
    def net_chips(self) -> int:
        return self.total_chips_won - self.total_chips_lost

    def apply(self, increments: Mapping[str, float]) -> None:
        """Fold a delta into the profile.

        Plain keys are counter increments. ``bet_size`` feeds the running
        average; ``chips_won``/``chips_lost`` update totals, single-hand
        maxima and the loss streak.
        """

        for key, value in increments.items():
            if key == "bet_size":
                self.bet_samples += 1
                self.avg_bet_size += (float(value) - self.avg_bet_size) / self.bet_samples
            elif key == "chips_won":
                self.total_chips_won += int(value)
                self.max_single_win = max(self.max_single_win, int(value))
                self.recent_losses = 0
            elif key == "chips_lost":
                self.total_chips_lost += int(value)
                self.max_single_loss = max(self.max_single_loss, int(value))
                self.recent_losses += 1
            elif hasattr(self, key) and isinstance(getattr(self, key), int):
                setattr(self, key, getattr(self, key) + int(value))
            else:
                logger.debug("Ignoring unknown profile counter %s", key)


@dataclass(frozen=True)
class BetBucket:
    avg_hand_weight: float
    sample_count: int


@dataclass(frozen=True)
class BetPattern:
    low: BetBucket | None = None
    medium: BetBucket | None = None
    high: BetBucket | None = None
    total_records: int = 0

    def bucket(self, level: str) -> BetBucket | None:
        return getattr(self, level, None)


def intensity_level(bet_intensity: float) -> str:
    if bet_intensity < 0.8:
        return "low"
    if bet_intensity < 1.3:
        return "medium"
    return "high"


@dataclass(frozen=True)
class PersonalityBias:
    bluff_adjust: float = 0.0
    aggression_adjust: float = 0.0
    slow_play_adjust: float = 0.0
    trap_adjust: float = 0.0


@dataclass(frozen=True)
class GlobalBias:
    fold_adjust: float = 0.0
    showdown_adjust: float = 0.0
    monster_threshold_adjust: float = 0.0
    strong_threshold_adjust: float = 0.0
    medium_threshold_adjust: float = 0.0
    probe_adjust: float = 0.0


class ProfileStore(Protocol):
    async def load_profile(self, identity: str) -> CrossSessionProfile | None: ...

    async def load_profiles(self, identities: Iterable[str]) -> dict[str, CrossSessionProfile]: ...

    async def save_profile_delta(self, identity: str, increments: Mapping[str, float]) -> None: ...


class BiasStore(Protocol):
    async def load_personality_biases(self) -> dict[str, PersonalityBias]: ...

    async def load_global_bias(self) -> GlobalBias: ...

    async def save_biases(
        self,
        personality: Mapping[str, PersonalityBias],
        global_bias: GlobalBias,
        decisions: int,
    ) -> None: ...


class BetPatternStore(Protocol):
    async def record_showdown(
        self,
        identity: str,
        hand_type: str,
        weight: int,
        bet_intensity: float,
        won: bool,
    ) -> None: ...

    async def query_bet_pattern(self, identity: str) -> BetPattern: ...


class InMemoryProfileStore:
    def __init__(self, profiles: Mapping[str, CrossSessionProfile] | None = None) -> None:
        self._profiles: dict[str, CrossSessionProfile] = {k: replace(v) for k, v in (profiles or {}).items()}

    async def load_profile(self, identity: str) -> CrossSessionProfile | None:
        profile = self._profiles.get(identity)
        return replace(profile) if profile is not None else None

    async def load_profiles(self, identities: Iterable[str]) -> dict[str, CrossSessionProfile]:
        return {name: replace(self._profiles[name]) for name in identities if name in self._profiles}

    async def save_profile_delta(self, identity: str, increments: Mapping[str, float]) -> None:
        self._profiles.setdefault(identity, CrossSessionProfile()).apply(increments)


class InMemoryBiasStore:
    def __init__(self) -> None:
        self.personality: dict[str, PersonalityBias] = {}
        self.global_bias = GlobalBias()
        self.saves = 0

    async def load_personality_biases(self) -> dict[str, PersonalityBias]:
        return dict(self.personality)

    async def load_global_bias(self) -> GlobalBias:
        return self.global_bias

    async def save_biases(
        self,
        personality: Mapping[str, PersonalityBias],
        global_bias: GlobalBias,
        decisions: int,
    ) -> None:
        self.personality = dict(personality)
        self.global_bias = global_bias
        self.saves += 1


@dataclass
class _BucketTally:
    weight_sum: float = 0.0
    count: int = 0


@dataclass
class InMemoryBetPatternStore:
    _tallies: dict[str, dict[str, _BucketTally]] = field(default_factory=dict)

    async def record_showdown(
        self,
        identity: str,
        hand_type: str,
        weight: int,
        bet_intensity: float,
        won: bool,
    ) -> None:
        buckets = self._tallies.setdefault(identity, {})
        tally = buckets.setdefault(intensity_level(bet_intensity), _BucketTally())
        tally.weight_sum += weight
        tally.count += 1

    async def query_bet_pattern(self, identity: str) -> BetPattern:
        buckets = self._tallies.get(identity, {})
        built: dict[str, BetBucket] = {
            level: BetBucket(round(t.weight_sum / t.count), t.count) for level, t in buckets.items() if t.count
        }
        return BetPattern(total_records=sum(b.sample_count for b in built.values()), **built)

"""AI personality archetypes.

Each archetype bundles the tuning knobs the decision policy reads, plus how
other seats read a player of that archetype (AI opponents do not need a
behavioural profile to be classified).
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "Personality",
    "PERSONALITIES",
    "ARCHETYPES",
    "DEFAULT_PERSONALITY",
    "archetype_for",
    "PersonalityRegistry",
]


@dataclass(frozen=True)
class Personality:
    archetype: str
    raise_frequency: float
    bluff_frequency: float
    fold_threshold: float  # higher folds less
    slow_play_chance: float
    showdown_aggression: float
    blind_preference: float
    read_as: str
    read_bluff: float
    read_fold_pressure: float
    read_danger: float


PERSONALITIES: dict[str, Personality] = {
    "aggressive": Personality("aggressive", 0.6, 0.35, 0.7, 0.2, 0.7, 0.5, "aggressive", 0.45, 0.3, 0.6),
    "conservative": Personality("conservative", 0.25, 0.1, 0.4, 0.4, 0.3, 0.3, "rock", 0.15, 0.7, 0.4),
    "balanced": Personality("balanced", 0.4, 0.2, 0.55, 0.3, 0.5, 0.4, "balanced", 0.3, 0.5, 0.5),
    "tricky": Personality("tricky", 0.45, 0.4, 0.5, 0.5, 0.4, 0.6, "maniac", 0.55, 0.4, 0.7),
    "tight": Personality("tight", 0.5, 0.15, 0.35, 0.25, 0.6, 0.25, "aggressive", 0.25, 0.55, 0.65),
}

ARCHETYPES: tuple[str, ...] = tuple(PERSONALITIES)
DEFAULT_PERSONALITY = PERSONALITIES["balanced"]


def archetype_for(identity: str) -> str:
    """Stable archetype for ``identity`` (sum of code points, not ``hash()``)."""

    return ARCHETYPES[sum(ord(ch) for ch in identity) % len(ARCHETYPES)]


class PersonalityRegistry:
    def __init__(self) -> None:
        self._assigned: dict[str, str] = {}

    def get(self, identity: str) -> Personality:
        archetype = self._assigned.setdefault(identity, archetype_for(identity))
        return PERSONALITIES[archetype]

    def archetype(self, identity: str) -> str:
        return self.get(identity).archetype

    def override(self, identity: str, archetype: str) -> None:
        if archetype not in PERSONALITIES:
            raise KeyError(f"Unknown archetype '{archetype}'. Options: {', '.join(ARCHETYPES)}")
        self._assigned[identity] = archetype

    def clear(self) -> None:
        self._assigned.clear()

from __future__ import annotations

import pytest

from threecard.ai.personality import (
    ARCHETYPES,
    DEFAULT_PERSONALITY,
    PERSONALITIES,
    PersonalityRegistry,
    archetype_for,
)


def test_archetypes_are_stable_per_identity():
    assert archetype_for("alice") == archetype_for("alice")
    assert archetype_for("ai-1") in ARCHETYPES
    # "a" is code point 97; 97 % 5 == 2
    assert archetype_for("a") == ARCHETYPES[2]


def test_default_is_balanced():
    assert DEFAULT_PERSONALITY.archetype == "balanced"
    assert set(ARCHETYPES) == {"aggressive", "conservative", "balanced", "tricky", "tight"}


def test_personality_knobs_stay_in_unit_interval():
    for personality in PERSONALITIES.values():
        for value in (
            personality.raise_frequency,
            personality.bluff_frequency,
            personality.fold_threshold,
            personality.slow_play_chance,
            personality.showdown_aggression,
            personality.blind_preference,
        ):
            assert 0.0 <= value <= 1.0


def test_registry_override_and_clear():
    registry = PersonalityRegistry()
    natural = registry.archetype("bot")
    forced = next(name for name in ARCHETYPES if name != natural)
    registry.override("bot", forced)
    assert registry.get("bot").archetype == forced

    registry.clear()
    assert registry.archetype("bot") == natural


def test_registry_rejects_unknown_archetype():
    with pytest.raises(KeyError):
        PersonalityRegistry().override("bot", "reckless")

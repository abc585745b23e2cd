"""Runtime settings read from the environment.

Tables and the AI engine need a handful of tunables (ante, starting stacks,
pacing, Monte-Carlo sample counts).  They are exposed through ``THREECARD_*``
environment variables and can be temporarily overridden in tests via a
context manager.

Usage::

    from threecard.core import settings

    cfg = settings.current()
    with settings.override(think_delay_ms=0):
        ...

Unparseable or out-of-range values fall back to the defaults and are logged.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, fields, replace
from typing import Any, Final

__all__ = ["Settings", "current", "override", "load_from_env"]

logger = logging.getLogger(__name__)

_ENV_PREFIX: Final = "THREECARD_"


@dataclass(frozen=True)
class Settings:
    ante: int = 10
    starting_chips: int = 1000
    max_seats: int = 8
    think_delay_ms: int = 1500
    ai_only_think_delay_ms: int = 800
    mc_samples: int = 500
    decision_history: int = 50
    min_decisions_to_adjust: int = 5
    profile_ttl_s: float = 60.0
    analysis_ttl_s: float = 10.0

    def __post_init__(self) -> None:
        if self.ante <= 0:
            raise ValueError("ante must be positive")
        if self.starting_chips <= 0:
            raise ValueError("starting_chips must be positive")
        if not 2 <= self.max_seats <= 8:
            raise ValueError("max_seats must be between 2 and 8")
        if self.think_delay_ms < 0 or self.ai_only_think_delay_ms < 0:
            raise ValueError("think delays cannot be negative")
        if self.mc_samples <= 0:
            raise ValueError("mc_samples must be positive")
        if self.decision_history < self.min_decisions_to_adjust:
            raise ValueError("decision_history must hold at least min_decisions_to_adjust records")


def _coerce(raw: str, kind: type) -> Any:
    if kind is float:
        return float(raw)
    return int(raw)


def load_from_env(environ: dict[str, str] | None = None) -> Settings:
    """Build settings from ``THREECARD_<FIELD>`` variables."""

    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    defaults = Settings()
    for spec in fields(Settings):
        raw = env.get(_ENV_PREFIX + spec.name.upper())
        if raw is None or not raw.strip():
            continue
        default = getattr(defaults, spec.name)
        try:
            values[spec.name] = _coerce(raw.strip(), type(default))
        except ValueError:
            logger.warning("Ignoring %s%s=%r; expected %s", _ENV_PREFIX, spec.name.upper(), raw, type(default).__name__)
    try:
        return Settings(**values)
    except ValueError as exc:
        logger.warning("Invalid settings from environment (%s); using defaults", exc)
        return defaults


_OVERRIDE_STACK: list[dict[str, Any]] = []


def current() -> Settings:
    """Return environment settings with any active overrides applied."""

    base = load_from_env()
    if not _OVERRIDE_STACK:
        return base
    merged: dict[str, Any] = {}
    for layer in _OVERRIDE_STACK:
        merged.update(layer)
    return replace(base, **merged)


@contextmanager
def override(**changes: Any):
    """Temporarily override settings within the context.

    Overrides are stacked, so nested contexts behave predictably.
    """

    known = {spec.name for spec in fields(Settings)}
    unknown = set(changes) - known
    if unknown:
        raise KeyError(f"unknown settings: {', '.join(sorted(unknown))}")
    _OVERRIDE_STACK.append(dict(changes))
    try:
        yield current()
    finally:
        _OVERRIDE_STACK.pop()

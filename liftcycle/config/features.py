"""
Feature flags for behaviours whose intended semantics are still being settled.

A flag's value comes from, later sources winning:
1. its registered default (changed in memory by set_feature_flag())
2. the environment: APP_FEATURE_<NAME>=true/false

Services never read flags ambiently; they receive a FeatureSet snapshot in
their constructor so tests can pin behaviour explicitly.
"""

import logging
import os
from dataclasses import dataclass, fields
from typing import NamedTuple

logger = logging.getLogger(__name__)

ENV_PREFIX = "APP_FEATURE_"
_TRUTHY = ("true", "1", "yes", "on")


class FlagSpec(NamedTuple):
    default: bool
    category: str
    description: str


FLAG_SPECS: dict[str, FlagSpec] = {
    "reset_cycle_on_selection_change": FlagSpec(
        True, "cycle", "Discard completed workouts when the cycle selection changes"
    ),
    "require_rpe_for_empty_exercises": FlagSpec(
        True, "session", "Require an RPE entry for exercises with no target sets"
    ),
    "auto_trigger_analysis": FlagSpec(
        True, "analysis", "Run cycle analysis automatically when a cycle closes"
    ),
}

# In-memory defaults; set_feature_flag() writes here
DEFAULT_FEATURE_FLAGS: dict[str, bool] = {name: spec.default for name, spec in FLAG_SPECS.items()}


@dataclass(frozen=True)
class FeatureFlag:
    """Current value of one flag together with where it came from."""
    name: str
    enabled: bool
    category: str
    description: str
    source: str


def _env_override(name: str) -> bool | None:
    raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
    if raw is None:
        return None
    return raw.strip().lower() in _TRUTHY


def get_feature_flags() -> dict[str, bool]:
    """Resolved value of every registered flag."""
    flags = dict(DEFAULT_FEATURE_FLAGS)
    for name in flags:
        override = _env_override(name)
        if override is not None:
            flags[name] = override
    return flags


def get_feature_flag(name: str) -> FeatureFlag:
    spec = FLAG_SPECS.get(name, FlagSpec(False, "general", f"Feature flag: {name}"))
    override = _env_override(name)
    if override is not None:
        return FeatureFlag(name, override, spec.category, spec.description, "environment")
    return FeatureFlag(name, DEFAULT_FEATURE_FLAGS.get(name, False), spec.category, spec.description, "default")


def is_feature_enabled(name: str) -> bool:
    return get_feature_flags().get(name, False)


def set_feature_flag(name: str, enabled: bool) -> None:
    """Change a flag's in-memory default. An environment override still wins."""
    if name not in FLAG_SPECS:
        raise KeyError(f"Unknown feature flag: {name}")
    DEFAULT_FEATURE_FLAGS[name] = enabled
    logger.info(f"Feature flag '{name}' set to {enabled}")


@dataclass(frozen=True)
class FeatureSet:
    """Resolved flag values handed to services at construction time."""
    reset_cycle_on_selection_change: bool = True
    require_rpe_for_empty_exercises: bool = True
    auto_trigger_analysis: bool = True

    @classmethod
    def from_flags(cls, flags: dict[str, bool] | None = None) -> "FeatureSet":
        flags = flags if flags is not None else get_feature_flags()
        values = {f.name: bool(flags[f.name]) for f in fields(cls) if f.name in flags}
        return cls(**values)

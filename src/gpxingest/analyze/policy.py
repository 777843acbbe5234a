# gpxingest/analyze/policy.py
"""
Policies consulted by the ingest engine.

- SmartTrackPolicy: when a time gap means "start a new track"
- SuppressionPolicy: which field categories are left out of the output
- FeatureSet: experimental capability flags (currently: distance)

All three are built from an IngestConfig and can be toggled afterwards;
an ingest run takes a snapshot so toggling never affects a pass in flight.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from gpxingest.config import (
    DEFAULT_SMART_TRACK_THRESHOLD,
    EXPERIMENTAL_FEATURES,
    SUPPRESSIBLE,
    IngestConfig,
)
from gpxingest.errors import ConfigError


@dataclass(frozen=True)
class SmartTrackPolicy:
    enabled: bool = True
    threshold: int = DEFAULT_SMART_TRACK_THRESHOLD

    def __post_init__(self) -> None:
        if self.threshold <= 0:
            raise ConfigError(f"SmartTrack threshold must be positive, got {self.threshold}")

    def should_split(self, previous_time: int | None, entry_period: int) -> bool:
        return self.enabled and previous_time is not None and entry_period > self.threshold

    def describe(self) -> dict:
        return {"enabled": self.enabled, "threshold": self.threshold}


@dataclass
class SuppressionPolicy:
    suppressed: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        for category in self.suppressed:
            self._check(category)
        self.suppressed = set(self.suppressed)

    @staticmethod
    def _check(category: str) -> None:
        if category not in SUPPRESSIBLE:
            raise ConfigError(
                f"unknown suppression category {category!r} (allowed: {', '.join(SUPPRESSIBLE)})"
            )

    def suppress(self, category: str) -> None:
        self._check(category)
        self.suppressed.add(category)

    def unsuppress(self, category: str) -> None:
        self._check(category)
        self.suppressed.discard(category)

    def active(self, *categories: str) -> bool:
        """True when none of `categories` is suppressed."""
        return not any(c in self.suppressed for c in categories)

    def listing(self) -> list[str]:
        return [c for c in SUPPRESSIBLE if c in self.suppressed]

    def copy(self) -> "SuppressionPolicy":
        return SuppressionPolicy(set(self.suppressed))


@dataclass
class FeatureSet:
    enabled: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        for name in self.enabled:
            self._check(name)
        self.enabled = set(self.enabled)

    @staticmethod
    def _check(name: str) -> None:
        if name not in EXPERIMENTAL_FEATURES:
            raise ConfigError(
                f"unknown experimental feature {name!r} (available: {', '.join(EXPERIMENTAL_FEATURES)})"
            )

    def enable(self, name: str) -> None:
        self._check(name)
        self.enabled.add(name)

    def disable(self, name: str) -> None:
        self._check(name)
        self.enabled.discard(name)

    def is_enabled(self, name: str) -> bool:
        return name in self.enabled

    def states(self) -> dict[str, bool]:
        return {name: name in self.enabled for name in EXPERIMENTAL_FEATURES}

    def copy(self) -> "FeatureSet":
        return FeatureSet(set(self.enabled))


def policies_from_config(cfg: IngestConfig) -> tuple[SmartTrackPolicy, SuppressionPolicy, FeatureSet]:
    return (
        SmartTrackPolicy(enabled=cfg.smart_track, threshold=cfg.smart_track_threshold),
        SuppressionPolicy(set(cfg.suppress)),
        FeatureSet(set(cfg.experimental)),
    )

# gpxingest/analyze/accumulate.py
"""
Running accumulators for the three aggregation scopes.

Points are added to the SegmentAccumulator. When a segment closes its
accumulator is finalized into Stats and absorbed by the TrackAccumulator;
a closed track is absorbed by the JourneyAccumulator the same way. Every
scope therefore finalizes from the full list of points beneath it, and the
journey totals always reduce over the track totals, which reduce over the
segment totals.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from gpxingest.analyze.derive import Motion
from gpxingest.analyze.policy import SuppressionPolicy
from gpxingest.errors import DegenerateAggregateError
from gpxingest.model import Bounds, ElevationStats, Point, Stats


# ---------------------------------------------------------------------------
# Reductions; each refuses an empty collection
# ---------------------------------------------------------------------------
def _require(values: list, scope: str, aggregate: str) -> None:
    if not values:
        raise DegenerateAggregateError(scope, aggregate)


def round_half_up(value: float, ndigits: int) -> float:
    """round() without banker's rounding: 0.125 -> 0.13."""
    step = Decimal(1).scaleb(-ndigits)
    return float(Decimal(repr(value)).quantize(step, rounding=ROUND_HALF_UP))


def mean(values: list[float], scope: str, aggregate: str, ndigits: int = 2) -> float:
    _require(values, scope, aggregate)
    return round_half_up(sum(values) / len(values), ndigits)


def minimum(values: list[float], scope: str, aggregate: str) -> float:
    _require(values, scope, aggregate)
    return min(values)


def maximum(values: list[float], scope: str, aggregate: str) -> float:
    _require(values, scope, aggregate)
    return max(values)


def mode(values: list[float], scope: str, aggregate: str) -> float:
    """
    Most frequent value. Ties go to the value seen first: Counter keeps
    first-seen order and most_common(1) returns the first maximal entry.
    """
    _require(values, scope, aggregate)
    return Counter(values).most_common(1)[0][0]


@dataclass
class PointSample:
    """One written point plus the derived values that are not stored on it."""

    point: Point
    distance: Optional[float] = None
    period: Optional[int] = None
    motion: Optional[Motion] = None


@dataclass
class ScopeAccumulator:
    scope: str
    point_count: int = 0
    speeds: list[float] = field(default_factory=list)
    speed_uoms: list[str] = field(default_factory=list)
    times: list[int] = field(default_factory=list)
    elevations: list[float] = field(default_factory=list)
    elevation_changes: list[float] = field(default_factory=list)
    distances: list[float] = field(default_factory=list)
    lats: list[float] = field(default_factory=list)
    lons: list[float] = field(default_factory=list)
    accelerations: list[float] = field(default_factory=list)
    decelerations: list[float] = field(default_factory=list)
    time_moving: int = 0
    time_stationary: int = 0
    time_accelerating: int = 0
    time_decelerating: int = 0
    recorded_duration: int = 0

    def _merge(self, other: "ScopeAccumulator") -> None:
        self.point_count += other.point_count
        self.speeds.extend(other.speeds)
        for uom in other.speed_uoms:
            if uom not in self.speed_uoms:
                self.speed_uoms.append(uom)
        self.times.extend(other.times)
        self.elevations.extend(other.elevations)
        self.elevation_changes.extend(other.elevation_changes)
        self.distances.extend(other.distances)
        self.lats.extend(other.lats)
        self.lons.extend(other.lons)
        self.accelerations.extend(other.accelerations)
        self.decelerations.extend(other.decelerations)
        self.time_moving += other.time_moving
        self.time_stationary += other.time_stationary
        self.time_accelerating += other.time_accelerating
        self.time_decelerating += other.time_decelerating

    def _recorded_duration(self, duration: int) -> int:
        return self.recorded_duration

    def finalize(self, policy: SuppressionPolicy, *, distance_enabled: bool) -> Stats:
        """Write out Stats for this scope."""
        if self.point_count == 0:
            raise DegenerateAggregateError(self.scope, "trackpoints")

        scope = self.scope
        stats = Stats(trackpoints=self.point_count)

        if policy.active("speed"):
            stats.avg_speed = mean(self.speeds, scope, "avg_speed")
            stats.min_speed = minimum(self.speeds, scope, "min_speed")
            stats.max_speed = maximum(self.speeds, scope, "max_speed")
            stats.modal_speed = mode(self.speeds, scope, "modal_speed")
            stats.speed_uom = list(self.speed_uoms)

        if policy.active("speed", "date"):
            stats.time_moving = self.time_moving
            stats.time_stationary = self.time_stationary
            stats.time_accelerating = self.time_accelerating
            stats.time_decelerating = self.time_decelerating
            if self.accelerations:
                stats.avg_acceleration = mean(self.accelerations, scope, "avg_acceleration", 4)
                stats.min_acceleration = minimum(self.accelerations, scope, "min_acceleration")
                stats.max_acceleration = maximum(self.accelerations, scope, "max_acceleration")
            if self.decelerations:
                stats.avg_deceleration = mean(self.decelerations, scope, "avg_deceleration", 4)
                stats.min_deceleration = minimum(self.decelerations, scope, "min_deceleration")
                stats.max_deceleration = maximum(self.decelerations, scope, "max_deceleration")

        if policy.active("date") and self.times:
            stats.start = minimum(self.times, scope, "start")
            stats.end = maximum(self.times, scope, "end")
            stats.duration = stats.end - stats.start
            stats.recorded_duration = self._recorded_duration(stats.duration)

        if policy.active("location") and distance_enabled:
            stats.distance_travelled = round(sum(self.distances), 3)

        if policy.active("elevation") and self.elevations:
            stats.elevation = ElevationStats(
                min=minimum(self.elevations, scope, "elevation.min"),
                max=maximum(self.elevations, scope, "elevation.max"),
                avg_change=mean(self.elevation_changes, scope, "elevation.avg_change", 4),
            )

        if policy.active("location") and self.lats:
            stats.bounds = Bounds(
                lat_min=minimum(self.lats, scope, "bounds.lat_min"),
                lat_max=maximum(self.lats, scope, "bounds.lat_max"),
                lon_min=minimum(self.lons, scope, "bounds.lon_min"),
                lon_max=maximum(self.lons, scope, "bounds.lon_max"),
            )

        return stats


@dataclass
class SegmentAccumulator(ScopeAccumulator):

    def add(self, sample: PointSample) -> None:
        p = sample.point
        self.point_count += 1

        if p.speed is not None:
            self.speeds.append(p.speed)
            if p.speed_uom and p.speed_uom not in self.speed_uoms:
                self.speed_uoms.append(p.speed_uom)
        if p.time is not None:
            self.times.append(p.time)
        if p.elevation is not None:
            self.elevations.append(p.elevation)
            self.elevation_changes.append(p.elevation_change or 0)
        if p.lat is not None and p.lon is not None:
            self.lats.append(p.lat)
            self.lons.append(p.lon)
        if sample.distance is not None:
            self.distances.append(sample.distance)

        if sample.motion is not None:
            m = sample.motion
            if m.acceleration:
                self.accelerations.append(m.acceleration)
            if m.deceleration:
                self.decelerations.append(m.deceleration)
            self.time_accelerating += m.accelerating
            self.time_decelerating += m.decelerating

        # out-of-order timestamps give a negative period; count none of it
        if sample.period is not None and sample.period > 0 and p.speed is not None:
            if p.speed > 0:
                self.time_moving += sample.period
            else:
                self.time_stationary += sample.period

    def _recorded_duration(self, duration: int) -> int:
        return duration


@dataclass
class TrackAccumulator(ScopeAccumulator):
    segments: int = 0

    def absorb(self, segment: SegmentAccumulator, stats: Stats) -> None:
        self._merge(segment)
        self.segments += 1
        self.recorded_duration += stats.duration or 0

    def finalize(self, policy: SuppressionPolicy, *, distance_enabled: bool) -> Stats:
        stats = super().finalize(policy, distance_enabled=distance_enabled)
        stats.segments = self.segments
        return stats


@dataclass
class JourneyAccumulator(ScopeAccumulator):
    segments: int = 0
    tracks: int = 0

    def absorb(self, track: TrackAccumulator, stats: Stats) -> None:
        self._merge(track)
        self.segments += track.segments
        self.tracks += 1
        self.recorded_duration += stats.recorded_duration or 0

    def finalize(self, policy: SuppressionPolicy, *, distance_enabled: bool) -> Stats:
        if self.tracks == 0:
            # trackless document (waypoints/routes only): nothing to reduce
            return Stats(trackpoints=0, segments=0, tracks=0)
        stats = super().finalize(policy, distance_enabled=distance_enabled)
        stats.segments = self.segments
        stats.tracks = self.tracks
        return stats

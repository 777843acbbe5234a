# gpxingest/analyze/derive.py
"""
Per-point derived values.

Every calculator is a function of the carried DerivationContext plus the
current point's input, and updates the context fields it owns so the next
call sees this point as "previous".
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import NamedTuple, Optional

# degrees of arc -> statute miles -> feet
FEET_PER_DEGREE = 60 * 1.1515 * 5280

KPH_TO_MPS = 1000 / 3600
MPH_TO_MPS = 1609.344 / 3600


@dataclass
class DerivationContext:
    """Values carried from the previous point of the current segment."""

    last_time: Optional[int] = None
    last_speed: Optional[float] = None
    last_speed_mps: Optional[float] = None
    last_position: Optional[tuple[float, float]] = None
    last_elevation: Optional[float] = None
    entry_period: int = 0

    def reset(self) -> None:
        self.last_time = None
        self.last_speed = None
        self.last_speed_mps = None
        self.last_position = None
        self.last_elevation = None
        self.entry_period = 0

    def begin_point(self, time: Optional[int]) -> int:
        """Set and return the entry period (seconds since the previous point)."""
        if time is None or self.last_time is None:
            self.entry_period = 0
        else:
            self.entry_period = time - self.last_time
        return self.entry_period

    def end_point(self, time: Optional[int]) -> None:
        if time is not None:
            self.last_time = time


class Motion(NamedTuple):
    acceleration: float
    deceleration: float
    accelerating: int
    decelerating: int


STILL = Motion(0, 0, 0, 0)


def elevation_change(ctx: DerivationContext, elevation: float) -> float:
    previous = ctx.last_elevation
    ctx.last_elevation = elevation
    if previous is None:
        return 0
    return round(elevation - previous, 3)


def distance(ctx: DerivationContext, lat: float, lon: float, *, enabled: bool) -> float:
    """
    Great-circle distance in feet from the previous position.

    Spherical law of cosines; 0 when the feature is disabled, there is no
    previous position, or the result is not a finite number.
    """
    previous = ctx.last_position
    ctx.last_position = (lat, lon)
    if not enabled or previous is None or previous == (lat, lon):
        return 0

    lat1, lon1 = previous
    theta = lon1 - lon
    cos_d = (
        math.sin(math.radians(lat1)) * math.sin(math.radians(lat))
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat)) * math.cos(math.radians(theta))
    )
    cos_d = min(1.0, max(-1.0, cos_d))
    dist = math.degrees(math.acos(cos_d)) * FEET_PER_DEGREE
    if not math.isfinite(dist):
        return 0
    return round(dist, 3)


def speed_to_mps(speed: float, uom: Optional[str]) -> float:
    """kph or mph to metres/second; any other unit is read as mph."""
    if uom == "kph":
        return speed * KPH_TO_MPS
    return speed * MPH_TO_MPS


def acceleration(ctx: DerivationContext, speed: float, uom: Optional[str], time: Optional[int]) -> Motion:
    """
    Acceleration or deceleration (m/s^2) since the previous point.

    A point is never both. Unchanged speed, a missing previous sample, or a
    zero entry period give STILL.
    """
    speed_mps = speed_to_mps(speed, uom)
    previous_speed = ctx.last_speed
    previous_mps = ctx.last_speed_mps
    previous_time = ctx.last_time
    period = ctx.entry_period

    ctx.last_speed = speed
    ctx.last_speed_mps = speed_mps
    ctx.end_point(time)

    if previous_time is None or previous_mps is None or speed == previous_speed or period <= 0:
        return STILL

    dv = (speed_mps - previous_mps) / period
    if dv < 0:
        return Motion(0, round(-dv, 4), 0, period)
    if dv == 0:
        return STILL
    return Motion(round(dv, 4), 0, period, 0)


def auto_speed(distance_ft: float, period: int) -> int:
    """Speed in mph derived from distance (feet) covered in `period` seconds."""
    if period <= 0:
        return 0
    return round(distance_ft / period * 3600 / 5280)

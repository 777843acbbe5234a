import math

import pytest
from haversine import Unit, haversine

from gpxingest.analyze.derive import (
    FEET_PER_DEGREE,
    STILL,
    DerivationContext,
    acceleration,
    auto_speed,
    distance,
    elevation_change,
    speed_to_mps,
)


def test_elevation_change_first_point_is_zero():
    ctx = DerivationContext()
    assert elevation_change(ctx, 100.0) == 0
    assert elevation_change(ctx, 102.5) == 2.5
    assert elevation_change(ctx, 101.0) == -1.5


def test_distance_disabled_or_without_previous_is_zero():
    ctx = DerivationContext()
    assert distance(ctx, 0.0, 0.0, enabled=True) == 0
    assert distance(ctx, 1.0, 0.0, enabled=False) == 0
    # position is still carried while disabled
    assert ctx.last_position == (1.0, 0.0)


def test_distance_one_degree_of_latitude():
    ctx = DerivationContext()
    distance(ctx, 0.0, 0.0, enabled=True)
    assert distance(ctx, 1.0, 0.0, enabled=True) == pytest.approx(FEET_PER_DEGREE, abs=0.01)


def test_distance_agrees_with_haversine():
    ctx = DerivationContext()
    distance(ctx, 51.5, -0.1, enabled=True)
    d = distance(ctx, 48.85, 2.35, enabled=True)
    expected = haversine((51.5, -0.1), (48.85, 2.35), unit=Unit.FEET)
    assert d == pytest.approx(expected, rel=1e-3)


def test_distance_identical_and_antipodal_points_stay_finite():
    ctx = DerivationContext()
    distance(ctx, 45.123456, 7.654321, enabled=True)
    assert distance(ctx, 45.123456, 7.654321, enabled=True) == 0

    ctx.reset()
    distance(ctx, 0.0, 0.0, enabled=True)
    d = distance(ctx, 0.0, 180.0, enabled=True)
    assert math.isfinite(d)
    assert d == pytest.approx(180 * FEET_PER_DEGREE, abs=0.01)


def test_speed_to_mps():
    assert speed_to_mps(36, "kph") == pytest.approx(10.0)
    assert speed_to_mps(10, "mph") == pytest.approx(4.4704)
    # unknown units read as mph
    assert speed_to_mps(10, "ped") == pytest.approx(4.4704)


def test_acceleration_zero_cases():
    ctx = DerivationContext()
    ctx.begin_point(100)
    assert acceleration(ctx, 10, "mph", 100) == STILL  # no previous sample

    ctx.begin_point(110)
    assert acceleration(ctx, 10, "mph", 110) == STILL  # unchanged speed

    ctx.begin_point(110)
    assert acceleration(ctx, 20, "mph", 110) == STILL  # zero entry period
    assert ctx.last_speed == 20


def test_acceleration_and_deceleration():
    ctx = DerivationContext()
    ctx.begin_point(0)
    acceleration(ctx, 10, "mph", 0)

    ctx.begin_point(10)
    m = acceleration(ctx, 20, "mph", 10)
    assert m.acceleration == pytest.approx(0.447)
    assert m.deceleration == 0
    assert (m.accelerating, m.decelerating) == (10, 0)

    ctx.begin_point(15)
    m = acceleration(ctx, 15, "mph", 15)
    assert m.acceleration == 0
    assert m.deceleration == pytest.approx(0.447)
    assert (m.accelerating, m.decelerating) == (0, 5)
    assert ctx.last_time == 15


def test_acceleration_from_standstill():
    ctx = DerivationContext()
    ctx.begin_point(0)
    acceleration(ctx, 0, "kph", 0)
    ctx.begin_point(10)
    m = acceleration(ctx, 36, "kph", 10)
    assert m.acceleration == pytest.approx(1.0)


def test_reset_clears_everything():
    ctx = DerivationContext(last_time=5, last_speed=3, last_speed_mps=1.0,
                            last_position=(1.0, 2.0), last_elevation=4.0, entry_period=9)
    ctx.reset()
    assert ctx == DerivationContext()


def test_auto_speed():
    # one degree of latitude in one hour is ~69 mph
    assert auto_speed(FEET_PER_DEGREE, 3600) == 69
    assert auto_speed(100.0, 0) == 0


def test_distance_short_step_is_not_rounded_away():
    ctx = DerivationContext()
    distance(ctx, 51.5, -0.1, enabled=True)
    d = distance(ctx, 51.50003, -0.1, enabled=True)
    expected = haversine((51.5, -0.1), (51.50003, -0.1), unit=Unit.FEET)
    assert d > 0
    assert d == pytest.approx(expected, abs=1.0)

import pytest

from gpxingest.analyze.accumulate import (
    JourneyAccumulator,
    PointSample,
    SegmentAccumulator,
    TrackAccumulator,
    mean,
    mode,
)
from gpxingest.analyze.derive import Motion
from gpxingest.analyze.policy import SuppressionPolicy
from gpxingest.errors import DegenerateAggregateError
from gpxingest.model import Point


def _sample(speed, time, *, period=0, motion=None, ele=None, lat=51.5, lon=-0.1, dist=0.0):
    return PointSample(
        point=Point(lat=lat, lon=lon, speed=speed, speed_uom="mph", time=time,
                    elevation=ele, elevation_change=0 if ele is not None else None),
        distance=dist,
        period=period,
        motion=motion,
    )


def test_mode_tie_goes_to_first_seen():
    assert mode([5, 0, 0, 5], "s", "modal_speed") == 5
    assert mode([0, 5, 5, 0], "s", "modal_speed") == 0
    assert mode([1, 2, 2, 3], "s", "modal_speed") == 2


def test_reductions_refuse_empty_collections():
    with pytest.raises(DegenerateAggregateError) as exc:
        mean([], "journey0/seg0", "avg_speed")
    assert exc.value.scope == "journey0/seg0"
    assert exc.value.aggregate == "avg_speed"


def test_empty_segment_is_degenerate():
    acc = SegmentAccumulator("journey0/seg3")
    with pytest.raises(DegenerateAggregateError, match="journey0/seg3"):
        acc.finalize(SuppressionPolicy(), distance_enabled=False)


def test_segment_finalize():
    acc = SegmentAccumulator("journey0/seg0")
    acc.add(_sample(10, 100, ele=5.0, lat=1.0, lon=2.0))
    acc.add(_sample(20, 110, period=10, motion=Motion(0.447, 0, 10, 0), ele=7.0, lat=1.5, lon=1.0, dist=12.5))
    acc.add(_sample(0, 130, period=20, motion=Motion(0, 0.894, 0, 20), lat=0.5, lon=3.0, dist=1.25))

    stats = acc.finalize(SuppressionPolicy(), distance_enabled=True)

    assert stats.trackpoints == 3
    assert stats.avg_speed == 10.0
    assert (stats.min_speed, stats.max_speed, stats.modal_speed) == (0, 20, 10)
    assert stats.speed_uom == ["mph"]
    assert (stats.start, stats.end, stats.duration, stats.recorded_duration) == (100, 130, 30, 30)
    assert stats.time_moving == 10
    assert stats.time_stationary == 20
    assert (stats.time_accelerating, stats.time_decelerating) == (10, 20)
    assert stats.max_acceleration == 0.447
    assert stats.max_deceleration == 0.894
    assert stats.distance_travelled == 13.75
    assert (stats.elevation.min, stats.elevation.max) == (5.0, 7.0)
    assert (stats.bounds.lat_min, stats.bounds.lat_max) == (0.5, 1.5)
    assert (stats.bounds.lon_min, stats.bounds.lon_max) == (1.0, 3.0)


def test_suppressed_categories_are_left_unset():
    acc = SegmentAccumulator("journey0/seg0")
    acc.add(_sample(10, 100))
    stats = acc.finalize(SuppressionPolicy({"speed", "location"}), distance_enabled=True)

    assert stats.trackpoints == 1
    assert stats.avg_speed is None
    assert stats.speed_uom == []
    assert stats.time_moving is None
    assert stats.bounds is None
    assert stats.distance_travelled is None
    assert stats.duration == 0


def test_rollup_through_track_and_journey():
    policy = SuppressionPolicy()
    track = TrackAccumulator("journey0")
    for start in (0, 1000):
        seg = SegmentAccumulator("journey0/segX")
        seg.add(_sample(10, start))
        seg.add(_sample(30, start + 60, period=60))
        track.absorb(seg, seg.finalize(policy, distance_enabled=False))

    track_stats = track.finalize(policy, distance_enabled=False)
    assert track_stats.trackpoints == 4
    assert track_stats.segments == 2
    assert track_stats.duration == 1060
    assert track_stats.recorded_duration == 120
    assert track_stats.time_moving == 120

    journey = JourneyAccumulator("journey")
    journey.absorb(track, track_stats)
    stats = journey.finalize(policy, distance_enabled=False)
    assert (stats.trackpoints, stats.segments, stats.tracks) == (4, 2, 1)
    assert stats.recorded_duration == 120
    assert stats.avg_speed == 20.0


def test_trackless_journey():
    stats = JourneyAccumulator("journey").finalize(SuppressionPolicy(), distance_enabled=False)
    assert (stats.trackpoints, stats.segments, stats.tracks) == (0, 0, 0)
    assert stats.avg_speed is None


def test_mean_rounds_halves_away_from_zero():
    assert mean([0.125], "s", "avg_speed") == 0.13
    assert mean([2.5], "s", "avg_speed", 0) == 3.0
    assert mean([1, 2], "s", "avg_speed") == 1.5


def test_negative_period_is_not_counted_as_moving_or_stationary():
    seg = SegmentAccumulator("journey0/seg0")
    seg.add(_sample(10, 1100, period=0))
    seg.add(_sample(10, 1040, period=-60))
    seg.add(_sample(0, 1050, period=10))

    stats = seg.finalize(SuppressionPolicy(), distance_enabled=False)
    assert stats.time_moving == 0
    assert stats.time_stationary == 10
    assert stats.duration == 60

import json

import pytest

from gpxingest.analyze.ingest import GPXIngest
from gpxingest.config import IngestConfig
from gpxingest.errors import JSONModelError
from gpxingest.formats.jsonio import journey_from_json, journey_to_json, read_journey, write_journey


def _index_snapshot(gi):
    return {k: (v.name, dict(v.segments)) for k, v in gi.index.items()}


def test_round_trip_rebuilds_the_same_index(sample_gpx_path):
    gi = GPXIngest()
    journey = gi.ingest_file(sample_gpx_path)
    before = _index_snapshot(gi)

    reloaded = GPXIngest()
    again = reloaded.load_json(gi.to_json())

    assert _index_snapshot(reloaded) == before
    assert again == journey
    assert reloaded.track_ids() == ["journey0", "journey1", "journey2"]
    assert reloaded.point_count("journey0", "seg1") == 2
    assert reloaded.stats("journey0", "seg0").avg_speed == 13.75


def test_json_keeps_order_and_numeric_types(sample_gpx_path):
    gi = GPXIngest(IngestConfig(experimental=frozenset({"distance"})))
    gi.ingest_file(sample_gpx_path)
    data = json.loads(gi.to_json())

    assert list(data["tracks"]) == ["journey0", "journey1", "journey2"]
    assert list(data["tracks"]["journey0"]["segments"]) == ["seg0", "seg1"]
    stats = data["tracks"]["journey0"]["segments"]["seg0"]["stats"]
    assert isinstance(stats["trackpoints"], int)
    assert isinstance(stats["avg_speed"], float)
    assert isinstance(stats["duration"], int)
    assert data["metadata"]["experimental"] == {"distance": True}


def test_loaded_stats_are_not_recomputed(sample_gpx_path):
    gi = GPXIngest()
    gi.ingest_file(sample_gpx_path)
    data = json.loads(gi.to_json())
    data["stats"]["avg_speed"] = 99.0

    reloaded = GPXIngest()
    reloaded.load_json(json.dumps(data))
    assert reloaded.total_avg_speed() == 99.0


def test_file_round_trip(sample_gpx_path, tmp_path):
    journey = GPXIngest().ingest_file(sample_gpx_path)
    out = tmp_path / "nested" / "sample.json"
    write_journey(journey, out)

    assert read_journey(out) == journey
    gi = GPXIngest()
    gi.load_json_file(out)
    assert gi.gpx_time() == journey.created.time


@pytest.mark.parametrize("text", ["not json", "[1, 2]", '{"tracks": []}', b"\xff\xfe{", b"{\xff}"])
def test_bad_json_is_rejected(text):
    with pytest.raises(JSONModelError):
        journey_from_json(text)


def test_empty_object_decodes_to_empty_journey():
    journey = journey_from_json("{}")
    assert journey.tracks == {}
    assert journey_from_json(journey_to_json(journey)) == journey


def test_non_finite_numbers_are_never_written(sample_gpx_path):
    journey = GPXIngest().ingest_file(sample_gpx_path)
    journey.stats.avg_speed = float("nan")
    with pytest.raises(ValueError):
        journey_to_json(journey)

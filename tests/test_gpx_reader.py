import textwrap

import pytest

from gpxingest.errors import InvalidInputError
from gpxingest.formats.gpx import format_gpx_time, parse_gpx_time, read_gpx, read_gpx_string

_GPX10 = textwrap.dedent("""\
<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.0" creator="old device" xmlns="http://www.topografix.com/GPX/1/0">
  <time>2020-01-01T00:00:00Z</time>
  <wpt lat="1.5" lon="2.5"><name>cache</name><url>http://example.org/c</url></wpt>
  <trk><name>legacy</name><trkseg>
    <trkpt lat="1.0" lon="2.0"><ele>3</ele><time>2020-01-01T00:00:10Z</time><desc>12 kph</desc></trkpt>
  </trkseg></trk>
</gpx>
""")


def test_read_sample(sample_gpx_path):
    doc = read_gpx(sample_gpx_path)

    assert doc.creator == "gpxingest tests"
    assert doc.version == "1.1"
    assert doc.time == "2024-05-01T07:58:00Z"
    assert [t.name for t in doc.tracks] == ["Morning Ride", "Evening"]
    assert [len(s.points) for s in doc.tracks[0].segments] == [4, 2]

    first = doc.tracks[0].segments[0].points[0]
    assert (first.lat, first.lon, first.ele, first.desc) == (51.5, -0.1, "100", "10 MPH")
    assert first.extensions["http://www.garmin.com/xmlschemas/TrackPointExtension/v1"] == {"hr": "120"}

    assert doc.waypoints[0].sym == "Flag"
    assert doc.routes[0].name == "Loop"
    assert len(doc.routes[0].points) == 2


def test_read_gpx_10_string():
    doc = read_gpx_string(_GPX10)
    assert doc.namespaces == ["http://www.topografix.com/GPX/1/0"]
    assert doc.time == "2020-01-01T00:00:00Z"
    assert doc.tracks[0].segments[0].points[0].desc == "12 kph"
    assert doc.waypoints[0].link == "http://example.org/c"


def test_no_namespace_document():
    doc = read_gpx_string('<gpx><trk><name>x</name><trkseg><trkpt lat="1" lon="2"/></trkseg></trk></gpx>')
    assert doc.tracks[0].name == "x"
    assert doc.tracks[0].segments[0].points[0].lat == 1.0


@pytest.mark.parametrize(
    "text",
    [
        "<gpx><trk>",
        "",
        "<kml></kml>",
        '<gpx><trk><trkseg><trkpt lon="2"/></trkseg></trk></gpx>',
        '<gpx><trk><trkseg><trkpt lat="north" lon="2"/></trkseg></trk></gpx>',
        '<gpx><trk><trkseg><trkpt lat="NaN" lon="2"/></trkseg></trk></gpx>',
        '<gpx><trk><trkseg><trkpt lat="1" lon="inf"/></trkseg></trk></gpx>',
    ],
)
def test_invalid_documents(text):
    with pytest.raises(InvalidInputError):
        read_gpx_string(text)


def test_time_helpers():
    assert parse_gpx_time("1970-01-01T00:01:00Z") == 60
    assert parse_gpx_time("1970-01-01T01:01:00+01:00") == 60
    assert parse_gpx_time("1970-01-01T00:01:00.750Z") == 60
    assert parse_gpx_time("1970-01-01T00:01:00") == 60
    assert parse_gpx_time("sometime") is None
    assert parse_gpx_time("  ") is None
    assert format_gpx_time(60) == "1970-01-01T00:01:00Z"

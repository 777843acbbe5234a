from datetime import datetime, timezone
from pathlib import Path

import pytest

from gpxingest.formats.gpx import GpxDocument, GpxPoint, GpxSegment, GpxTrack, format_gpx_time

T0 = int(datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc).timestamp())


@pytest.fixture
def t0() -> int:
    """Epoch seconds of 2024-05-01T08:00Z, the base time of point()."""
    return T0


@pytest.fixture
def sample_gpx_path() -> Path:
    return Path(__file__).parent / "data" / "sample.gpx"


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    """Keep real user config and GPXINGEST_* variables out of every test."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for var in (
        "GPXINGEST_SMART_TRACK",
        "GPXINGEST_SMART_TRACK_THRESHOLD",
        "GPXINGEST_SUPPRESS",
        "GPXINGEST_EXPERIMENTAL",
        "GPXINGEST_TIMEZONE",
        "GPXINGEST_VERBOSE",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def point():
    """point(offset_seconds, "10 MPH", lat=..., ele=...) -> GpxPoint at T0 + offset."""

    def _make(offset, speed=None, *, lat=51.5, lon=-0.1, ele=None, time=None):
        if time is None and offset is not None:
            time = format_gpx_time(T0 + offset)
        return GpxPoint(
            lat=lat,
            lon=lon,
            ele=None if ele is None else str(ele),
            time=time,
            desc=speed,
        )

    return _make


@pytest.fixture
def document():
    """document(("name", [[pt, pt], [pt]]), ...) -> GpxDocument."""

    def _make(*tracks, creator="pytest"):
        return GpxDocument(
            creator=creator,
            version="1.1",
            tracks=[
                GpxTrack(name=name, segments=[GpxSegment(points=list(seg)) for seg in segments])
                for name, segments in tracks
            ],
        )

    return _make

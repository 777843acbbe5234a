# gpxingest/analyze/ingest.py
"""
Ingest a parsed GPX tree into a Journey with statistics at every scope.

One IngestRun is one pass over one document:

    for each track      -> open track
      for each segment  -> open segment (derivation context reset)
        for each point  -> SmartTrack check, write fields, derive values
      close segment     -> segment Stats, absorbed by the track
    close track         -> track Stats, absorbed by the journey
    close journey       -> journey Stats, waypoints, routes, metadata

GPXIngest is the long-lived facade: it holds the policies, runs ingests,
reloads saved JSON and answers queries about the last journey.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from gpxingest.analyze.accumulate import (
    JourneyAccumulator,
    PointSample,
    SegmentAccumulator,
    TrackAccumulator,
)
from gpxingest.analyze.derive import (
    DerivationContext,
    acceleration,
    auto_speed,
    distance,
    elevation_change,
)
from gpxingest.analyze.policy import (
    FeatureSet,
    SmartTrackPolicy,
    SuppressionPolicy,
    policies_from_config,
)
from gpxingest.analyze.units import has_digits, parse_speed
from gpxingest.config import IngestConfig
from gpxingest.errors import InvalidInputError, NothingIngestedError, UnknownIdentifierError
from gpxingest.formats.gpx import GpxPoint, GpxWaypoint, parse_gpx_time, read_gpx, read_gpx_string
from gpxingest.formats.jsonio import journey_from_json, journey_to_json
from gpxingest.model import (
    Created,
    GpsQuality,
    Journey,
    Metadata,
    Point,
    Position,
    Route,
    Segment,
    Stats,
    Track,
    Waypoint,
    WaypointMeta,
)
from gpxingest.util.logging import log, warn


@dataclass
class TrackIndex:
    """Lightweight per-track index: name and point count per segment."""

    name: str
    segments: dict[str, int] = field(default_factory=dict)


def _float(text: Optional[str]) -> Optional[float]:
    if text is None:
        return None
    try:
        value = float(text)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _coordinate(value: Any, what: str) -> float:
    coord = _float(value)
    if coord is None:
        raise InvalidInputError(f"{what} is not a finite number: {value!r}")
    return coord


def _int(text: Optional[str]) -> Optional[int]:
    value = _float(text)
    return int(value) if value is not None else None


def build_index(journey: Journey) -> dict[str, TrackIndex]:
    """Rebuild the track/segment index from an existing journey (no stats work)."""
    return {
        key: TrackIndex(
            name=track.name,
            segments={seg_key: len(seg.points) for seg_key, seg in track.segments.items()},
        )
        for key, track in journey.tracks.items()
    }


class IngestRun:
    """Mutable state of a single ingest pass. Never reused."""

    def __init__(
        self,
        smart_track: SmartTrackPolicy,
        suppression: SuppressionPolicy,
        features: FeatureSet,
        *,
        timezone: str = "UTC",
        verbose: bool = False,
    ):
        self.smart_track = smart_track
        self.suppression = suppression
        self.distance_enabled = features.is_enabled("distance")
        self.features = features
        self.verbose = verbose

        self.ctx = DerivationContext()
        self.journey = Journey(timezone=timezone)
        self.journey_acc = JourneyAccumulator("journey")
        self.index: dict[str, TrackIndex] = {}

        self.track: Optional[Track] = None
        self.track_key = ""
        self.track_acc: Optional[TrackAccumulator] = None
        self.track_count = 0

        self.segment: Optional[Segment] = None
        self.segment_key = ""
        self.segment_acc: Optional[SegmentAccumulator] = None
        self.segment_count = 0
        self.point_count = 0

        self.malformed = {"timestamps": 0, "speeds": 0, "elevations": 0}
        self.auto_calc_speed = False

    # ------------------------------------------------------------------
    # Scope transitions
    # ------------------------------------------------------------------
    def _open_track(self, name: str) -> None:
        self.track_key = f"journey{self.track_count}"
        self.track_count += 1
        self.track = Track(name=name)
        self.track_acc = TrackAccumulator(self.track_key)
        self.journey.tracks[self.track_key] = self.track
        self.index[self.track_key] = TrackIndex(name=name)
        self.segment_count = 0

    def _open_segment(self) -> None:
        self.segment_key = f"seg{self.segment_count}"
        self.segment_count += 1
        self.segment = Segment()
        self.segment_acc = SegmentAccumulator(f"{self.track_key}/{self.segment_key}")
        self.track.segments[self.segment_key] = self.segment
        self.point_count = 0
        self.ctx.reset()

    def _close_segment(self) -> None:
        stats = self.segment_acc.finalize(self.suppression, distance_enabled=self.distance_enabled)
        self.segment.stats = stats
        self.track_acc.absorb(self.segment_acc, stats)
        self.index[self.track_key].segments[self.segment_key] = self.segment_acc.point_count

    def _close_track(self) -> None:
        stats = self.track_acc.finalize(self.suppression, distance_enabled=self.distance_enabled)
        self.track.stats = stats
        self.journey_acc.absorb(self.track_acc, stats)

    def _split(self, original_name: str, gap: int) -> None:
        """SmartTrack: close the current segment and track, continue in a new track."""
        self._close_segment()
        self._close_track()
        name = f"{original_name}-{self.track_count}"
        if self.verbose:
            log(f"SmartTrack: {gap}s gap after {self.track_key}, starting {name!r}")
        self._open_track(name)
        self._open_segment()

    # ------------------------------------------------------------------
    # Points
    # ------------------------------------------------------------------
    def _point_time(self, raw: Optional[str]) -> Optional[int]:
        if not self.suppression.active("date"):
            return None
        t = parse_gpx_time(raw)
        if t is None and raw:
            self.malformed["timestamps"] += 1
            if self.verbose:
                warn(f"{self.track_key}/{self.segment_key}: unparseable time {raw!r}, ignored")
        return t

    def _write_point(self, gpt: GpxPoint, original_name: str) -> None:
        t = self._point_time(gpt.time)

        previous_time = self.ctx.last_time
        period = self.ctx.begin_point(t)
        if t is not None and self.smart_track.should_split(previous_time, period):
            self._split(original_name, period)
            period = self.ctx.begin_point(t)

        point = Point(extensions={ns: dict(kv) for ns, kv in gpt.extensions.items()})
        sample = PointSample(point=point)
        dist = 0

        if self.suppression.active("location"):
            point.lat = _coordinate(gpt.lat, "latitude")
            point.lon = _coordinate(gpt.lon, "longitude")
            dist = distance(self.ctx, point.lat, point.lon, enabled=self.distance_enabled)
            sample.distance = dist

        if self.suppression.active("elevation") and gpt.ele is not None:
            ele = _float(gpt.ele)
            if ele is None:
                self.malformed["elevations"] += 1
            else:
                point.elevation = ele
                point.elevation_change = elevation_change(self.ctx, ele)

        if self.suppression.active("speed"):
            if gpt.desc is not None:
                if not has_digits(gpt.desc):
                    self.malformed["speeds"] += 1
                point.speed, point.speed_uom = parse_speed(gpt.desc)
            elif self.distance_enabled and sample.distance is not None and t is not None and period > 0:
                point.speed, point.speed_uom = auto_speed(dist, period), "mph"
                self.auto_calc_speed = True
            else:
                point.speed = 0

            if t is not None:
                sample.motion = acceleration(self.ctx, point.speed, point.speed_uom, t)
                point.acceleration = sample.motion.acceleration
                point.deceleration = sample.motion.deceleration

        if t is not None:
            point.time = t
            sample.period = period

        self.ctx.end_point(t)

        self.segment.points[f"trackpt{self.point_count}"] = point
        self.segment_acc.add(sample)
        self.point_count += 1

    # ------------------------------------------------------------------
    # Waypoints / routes
    # ------------------------------------------------------------------
    def _waypoint(self, w: GpxWaypoint) -> Waypoint:
        position = Position()
        if self.suppression.active("location"):
            position.lat = _coordinate(w.lat, "latitude")
            position.lon = _coordinate(w.lon, "longitude")
        if self.suppression.active("elevation"):
            position.elevation = _float(w.ele)
            position.geoid_height = _float(w.geoidheight)

        meta = WaypointMeta(
            magvar=_float(w.magvar),
            source=w.src,
            link=w.link,
            symbol=w.sym,
            type=w.type,
        )
        if self.suppression.active("date"):
            meta.time = parse_gpx_time(w.time)

        return Waypoint(
            name=w.name,
            description=w.desc,
            comment=w.cmt,
            position=position,
            meta=meta,
            gps=GpsQuality(
                fix=w.fix,
                sats=_int(w.sat),
                hdop=_float(w.hdop),
                vdop=_float(w.vdop),
                pdop=_float(w.pdop),
                age_of_dgps=_float(w.ageofdgpsdata),
                dgps_id=_int(w.dgpsid),
            ),
        )

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------
    def run(self, document: Any) -> tuple[Journey, dict[str, TrackIndex]]:
        if document is None:
            raise InvalidInputError("no document to ingest")
        tracks = getattr(document, "tracks", None)
        if tracks is None:
            raise InvalidInputError("document has no track container")
        if not isinstance(tracks, (list, tuple)):
            raise InvalidInputError(f"document tracks must be a sequence, got {type(tracks).__name__}")

        date_active = self.suppression.active("date")
        self.journey.created = Created(
            creator=getattr(document, "creator", "") or "",
            format="GPX",
            version=getattr(document, "version", "") or "",
            namespaces=list(getattr(document, "namespaces", None) or []),
            time=parse_gpx_time(getattr(document, "time", None)) if date_active else None,
        )

        for trk in tracks:
            segments = getattr(trk, "segments", None)
            if segments is None:
                raise InvalidInputError("track element has no segment list")
            name = getattr(trk, "name", "") or ""
            self._open_track(name)
            for seg in segments:
                points = getattr(seg, "points", None)
                if points is None:
                    raise InvalidInputError(f"{self.track_key}: segment element has no point list")
                self._open_segment()
                for gpt in points:
                    self._write_point(gpt, name)
                self._close_segment()
            self._close_track()

        self.journey.stats = self.journey_acc.finalize(
            self.suppression, distance_enabled=self.distance_enabled
        )

        self.journey.waypoints = [self._waypoint(w) for w in getattr(document, "waypoints", None) or []]
        self.journey.routes = {
            f"route{i}": Route(
                name=r.name,
                description=r.desc,
                points=[self._waypoint(p) for p in r.points],
            )
            for i, r in enumerate(getattr(document, "routes", None) or [])
        }

        self.journey.metadata = Metadata(
            suppressed=self.suppression.listing(),
            smart_track=self.smart_track.describe(),
            auto_calc={"speed": self.auto_calc_speed},
            experimental=self.features.states(),
            malformed=dict(self.malformed),
        )
        if self.verbose and any(self.malformed.values()):
            warn(f"recovered malformed values: {self.malformed}")

        return self.journey, self.index


class GPXIngest:
    """
    Ingest GPX trees and query the resulting journey.

        gi = GPXIngest(load_config())
        gi.suppress("elevation")
        journey = gi.ingest_file(Path("ride.gpx"))
        gi.stats("journey0", "seg0").avg_speed

    A failed ingest raises and leaves the previously held journey untouched.
    """

    def __init__(self, config: Optional[IngestConfig] = None):
        self.config = config or IngestConfig()
        self.smart_track, self.suppression, self.features = policies_from_config(self.config)
        self.timezone = self.config.timezone
        self.verbose = self.config.verbose
        self._journey: Optional[Journey] = None
        self._index: dict[str, TrackIndex] = {}

    def reset(self) -> None:
        self._journey = None
        self._index = {}

    # ---- policy toggles ----------------------------------------------
    def suppress(self, category: str) -> None:
        self.suppression.suppress(category)

    def unsuppress(self, category: str) -> None:
        self.suppression.unsuppress(category)

    def enable_experimental(self, name: str) -> None:
        self.features.enable(name)

    def disable_experimental(self, name: str) -> None:
        self.features.disable(name)

    def set_smart_track(self, enabled: bool = True, threshold: Optional[int] = None) -> None:
        self.smart_track = SmartTrackPolicy(
            enabled=enabled,
            threshold=self.smart_track.threshold if threshold is None else threshold,
        )

    # ---- loading -----------------------------------------------------
    def ingest(self, document: Any) -> Journey:
        run = IngestRun(
            self.smart_track,
            self.suppression.copy(),
            self.features.copy(),
            timezone=self.timezone,
            verbose=self.verbose,
        )
        journey, index = run.run(document)
        self._journey, self._index = journey, index
        return journey

    def ingest_file(self, path: Path) -> Journey:
        return self.ingest(read_gpx(path))

    def ingest_string(self, text: str | bytes) -> Journey:
        return self.ingest(read_gpx_string(text))

    def load_json(self, text: str | bytes) -> Journey:
        """Load a previously saved journey; stats are taken as stored."""
        journey = journey_from_json(text)
        self._journey, self._index = journey, build_index(journey)
        return journey

    def load_json_file(self, path: Path) -> Journey:
        return self.load_json(Path(path).read_text(encoding="utf-8"))

    # ---- output ------------------------------------------------------
    @property
    def journey(self) -> Journey:
        if self._journey is None:
            raise NothingIngestedError("no journey has been ingested or loaded")
        return self._journey

    @property
    def index(self) -> dict[str, TrackIndex]:
        return self._index

    def to_json(self, *, indent: Optional[int] = None) -> str:
        return journey_to_json(self.journey, indent=indent)

    # ---- lookups -----------------------------------------------------
    def track(self, track: str) -> Track:
        try:
            return self.journey.tracks[track]
        except KeyError:
            raise UnknownIdentifierError(f"unknown track {track!r}") from None

    def segment(self, track: str, segment: str) -> Segment:
        segments = self.track(track).segments
        try:
            return segments[segment]
        except KeyError:
            raise UnknownIdentifierError(f"unknown segment {segment!r} in {track}") from None

    def point(self, track: str, segment: str, point: str) -> Point:
        points = self.segment(track, segment).points
        try:
            return points[point]
        except KeyError:
            raise UnknownIdentifierError(f"unknown point {point!r} in {track}/{segment}") from None

    def track_ids(self) -> list[str]:
        return list(self._index)

    def track_names(self) -> list[dict[str, str]]:
        return [{"id": k, "name": v.name} for k, v in self._index.items()]

    def segment_ids(self, track: str) -> list[str]:
        if track not in self._index:
            raise UnknownIdentifierError(f"unknown track {track!r}")
        return list(self._index[track].segments)

    def point_ids(self, track: str, segment: str) -> list[str]:
        return list(self.segment(track, segment).points)

    def point_count(self, track: str, segment: str) -> int:
        try:
            return self._index[track].segments[segment]
        except KeyError:
            raise UnknownIdentifierError(f"unknown segment {track}/{segment}") from None

    # ---- statistics --------------------------------------------------
    def gpx_time(self) -> Optional[int]:
        return self.journey.created.time

    def gpx_timezone(self) -> str:
        return self.journey.timezone

    def journey_stats(self) -> Stats:
        return self.journey.stats

    def total_avg_speed(self) -> Optional[float]:
        return self.journey.stats.avg_speed

    def journey_start(self) -> Optional[int]:
        return self.journey.stats.start

    def journey_end(self) -> Optional[int]:
        return self.journey.stats.end

    def stats(self, track: str, segment: Optional[str] = None) -> Stats:
        if segment is None:
            return self.track(track).stats
        return self.segment(track, segment).stats

    def avg_speed(self, track: str, segment: Optional[str] = None) -> Optional[float]:
        return self.stats(track, segment).avg_speed

"""
Output object graph produced by an ingest run.

Journey -> Track -> Segment -> Point, with a Stats record at every scope.
Every record converts to plain dicts/lists (to_dict) and back (from_dict);
mappings keep insertion order so a decoded journey walks the route in the
same order it was recorded.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Optional

INGEST_VERSION = "1.5"


def _pick(cls, data: dict[str, Any]) -> dict[str, Any]:
    """Keep only the keys `cls` declares (tolerates extra keys in old JSON)."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class Point:
    lat: Optional[float] = None
    lon: Optional[float] = None
    elevation: Optional[float] = None
    time: Optional[int] = None
    speed: Optional[float] = None
    speed_uom: Optional[str] = None
    acceleration: Optional[float] = None
    deceleration: Optional[float] = None
    elevation_change: Optional[float] = None
    extensions: dict[str, dict[str, str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Point":
        return cls(**_pick(cls, data))


@dataclass
class ElevationStats:
    min: float
    max: float
    avg_change: float


@dataclass
class Bounds:
    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float


@dataclass
class Stats:
    """Aggregates for one scope (segment, track or journey).

    Fields belonging to a suppressed category, or to a category for which no
    point carried a value, stay None.
    """

    trackpoints: int = 0
    segments: Optional[int] = None
    tracks: Optional[int] = None

    avg_speed: Optional[float] = None
    min_speed: Optional[float] = None
    max_speed: Optional[float] = None
    modal_speed: Optional[float] = None
    speed_uom: list[str] = field(default_factory=list)

    avg_acceleration: Optional[float] = None
    min_acceleration: Optional[float] = None
    max_acceleration: Optional[float] = None
    avg_deceleration: Optional[float] = None
    min_deceleration: Optional[float] = None
    max_deceleration: Optional[float] = None

    time_moving: Optional[int] = None
    time_stationary: Optional[int] = None
    time_accelerating: Optional[int] = None
    time_decelerating: Optional[int] = None

    start: Optional[int] = None
    end: Optional[int] = None
    duration: Optional[int] = None
    recorded_duration: Optional[int] = None

    distance_travelled: Optional[float] = None
    elevation: Optional[ElevationStats] = None
    bounds: Optional[Bounds] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Stats":
        kw = _pick(cls, data)
        if kw.get("elevation") is not None:
            kw["elevation"] = ElevationStats(**kw["elevation"])
        if kw.get("bounds") is not None:
            kw["bounds"] = Bounds(**kw["bounds"])
        return cls(**kw)


@dataclass
class Segment:
    points: dict[str, Point] = field(default_factory=dict)
    stats: Stats = field(default_factory=Stats)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Segment":
        return cls(
            points={k: Point.from_dict(v) for k, v in (data.get("points") or {}).items()},
            stats=Stats.from_dict(data.get("stats") or {}),
        )


@dataclass
class Track:
    name: str = ""
    segments: dict[str, Segment] = field(default_factory=dict)
    stats: Stats = field(default_factory=Stats)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Track":
        return cls(
            name=data.get("name") or "",
            segments={k: Segment.from_dict(v) for k, v in (data.get("segments") or {}).items()},
            stats=Stats.from_dict(data.get("stats") or {}),
        )


@dataclass
class Position:
    lat: Optional[float] = None
    lon: Optional[float] = None
    elevation: Optional[float] = None
    geoid_height: Optional[float] = None


@dataclass
class WaypointMeta:
    time: Optional[int] = None
    magvar: Optional[float] = None
    source: Optional[str] = None
    link: Optional[str] = None
    symbol: Optional[str] = None
    type: Optional[str] = None


@dataclass
class GpsQuality:
    fix: Optional[str] = None
    sats: Optional[int] = None
    hdop: Optional[float] = None
    vdop: Optional[float] = None
    pdop: Optional[float] = None
    age_of_dgps: Optional[float] = None
    dgps_id: Optional[int] = None


@dataclass
class Waypoint:
    name: Optional[str] = None
    description: Optional[str] = None
    comment: Optional[str] = None
    position: Position = field(default_factory=Position)
    meta: WaypointMeta = field(default_factory=WaypointMeta)
    gps: GpsQuality = field(default_factory=GpsQuality)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Waypoint":
        return cls(
            name=data.get("name"),
            description=data.get("description"),
            comment=data.get("comment"),
            position=Position(**_pick(Position, data.get("position") or {})),
            meta=WaypointMeta(**_pick(WaypointMeta, data.get("meta") or {})),
            gps=GpsQuality(**_pick(GpsQuality, data.get("gps") or {})),
        )


@dataclass
class Route:
    name: Optional[str] = None
    description: Optional[str] = None
    points: list[Waypoint] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Route":
        return cls(
            name=data.get("name"),
            description=data.get("description"),
            points=[Waypoint.from_dict(p) for p in data.get("points") or []],
        )


@dataclass
class Created:
    creator: str = ""
    format: str = "GPX"
    version: str = ""
    namespaces: list[str] = field(default_factory=list)
    time: Optional[int] = None


@dataclass
class Metadata:
    """What was computed versus suppressed during the ingest run."""

    suppressed: list[str] = field(default_factory=list)
    smart_track: dict[str, Any] = field(default_factory=dict)
    auto_calc: dict[str, bool] = field(default_factory=lambda: {"speed": False})
    experimental: dict[str, bool] = field(default_factory=dict)
    malformed: dict[str, int] = field(default_factory=lambda: {"timestamps": 0, "speeds": 0, "elevations": 0})
    ingest_version: str = INGEST_VERSION


@dataclass
class Journey:
    created: Created = field(default_factory=Created)
    timezone: str = "UTC"
    tracks: dict[str, Track] = field(default_factory=dict)
    stats: Stats = field(default_factory=Stats)
    metadata: Metadata = field(default_factory=Metadata)
    waypoints: list[Waypoint] = field(default_factory=list)
    routes: dict[str, Route] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Journey":
        return cls(
            created=Created(**_pick(Created, data.get("created") or {})),
            timezone=data.get("timezone") or "UTC",
            tracks={k: Track.from_dict(v) for k, v in (data.get("tracks") or {}).items()},
            stats=Stats.from_dict(data.get("stats") or {}),
            metadata=Metadata(**_pick(Metadata, data.get("metadata") or {})),
            waypoints=[Waypoint.from_dict(w) for w in data.get("waypoints") or []],
            routes={k: Route.from_dict(v) for k, v in (data.get("routes") or {}).items()},
        )

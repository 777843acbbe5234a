# gpxingest/formats/gpx.py
"""
GPX reader for gpxingest

This module is intentionally format-focused:
- GPX namespace handling (1.0 and 1.1, plus extension namespaces)
- reading a file or string with ElementTree
- turning the XML into the plain parsed tree the ingest engine consumes

No statistics are computed here; values stay as the raw text found in the
document, apart from lat/lon which must be numeric for the tree to be valid.
"""

from __future__ import annotations

import datetime as _dt
import io
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union
from xml.etree import ElementTree as ET

from gpxingest.errors import InvalidInputError

GPX_NAMESPACES = (
    "http://www.topografix.com/GPX/1/1",
    "http://www.topografix.com/GPX/1/0",
)


# ---------------------------------------------------------------------------
# Parsed tree
# ---------------------------------------------------------------------------
@dataclass
class GpxPoint:
    lat: float
    lon: float
    ele: Optional[str] = None
    time: Optional[str] = None
    desc: Optional[str] = None
    extensions: dict[str, dict[str, str]] = field(default_factory=dict)


@dataclass
class GpxSegment:
    points: list[GpxPoint] = field(default_factory=list)


@dataclass
class GpxTrack:
    name: str = ""
    segments: list[GpxSegment] = field(default_factory=list)


@dataclass
class GpxWaypoint:
    lat: float
    lon: float
    ele: Optional[str] = None
    time: Optional[str] = None
    magvar: Optional[str] = None
    geoidheight: Optional[str] = None
    name: Optional[str] = None
    cmt: Optional[str] = None
    desc: Optional[str] = None
    src: Optional[str] = None
    link: Optional[str] = None
    sym: Optional[str] = None
    type: Optional[str] = None
    fix: Optional[str] = None
    sat: Optional[str] = None
    hdop: Optional[str] = None
    vdop: Optional[str] = None
    pdop: Optional[str] = None
    ageofdgpsdata: Optional[str] = None
    dgpsid: Optional[str] = None


@dataclass
class GpxRoute:
    name: Optional[str] = None
    desc: Optional[str] = None
    points: list[GpxWaypoint] = field(default_factory=list)


@dataclass
class GpxDocument:
    """
    Root of the parsed tree.

    `tracks` is None when the document carries no track container at all
    (the engine rejects that); an empty list is a valid, trackless document.
    """
    creator: str = ""
    version: str = ""
    time: Optional[str] = None
    namespaces: list[str] = field(default_factory=list)
    tracks: Optional[list[GpxTrack]] = field(default_factory=list)
    waypoints: list[GpxWaypoint] = field(default_factory=list)
    routes: list[GpxRoute] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------
def parse_gpx_time(text: Optional[str]) -> Optional[int]:
    """
    Parse an ISO-8601 timestamp found in GPX <time> nodes into epoch seconds.

    Expected examples:
      - "2026-01-02T21:14:44Z"
      - "2026-01-02T21:14:44.123Z"
      - "2026-01-02T21:14:44+00:00"

    Returns None for empty or unparseable text.
    """
    if not text:
        return None
    s = text.strip()
    if not s:
        return None

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    try:
        dt = _dt.datetime.fromisoformat(s)
    except ValueError:
        return None

    # Naive times are taken as UTC (conservative for GPX sources)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=_dt.timezone.utc)

    return int(dt.timestamp())


def format_gpx_time(epoch: int) -> str:
    """Format epoch seconds as GPX time (UTC with Z)."""
    dt = _dt.datetime.fromtimestamp(epoch, tz=_dt.timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# XML helpers
# ---------------------------------------------------------------------------
def _split(tag: str) -> tuple[str, str]:
    """Split an ElementTree "{uri}local" tag into (uri, local)."""
    if tag.startswith("{"):
        uri, _, local = tag[1:].partition("}")
        return uri, local
    return "", tag


def _children(elem: ET.Element, local: str) -> list[ET.Element]:
    """Direct children named `local` in the GPX namespace (or no namespace)."""
    out = []
    for child in elem:
        uri, name = _split(child.tag)
        if name == local and (uri in GPX_NAMESPACES or uri == ""):
            out.append(child)
    return out


def _text(elem: ET.Element, local: str) -> Optional[str]:
    found = _children(elem, local)
    if not found or found[0].text is None:
        return None
    s = found[0].text.strip()
    return s or None


def _coord(elem: ET.Element, attr: str) -> float:
    raw = elem.get(attr)
    if raw is None:
        raise InvalidInputError(f"<{_split(elem.tag)[1]}> is missing its {attr} attribute")
    try:
        value = float(raw)
    except ValueError as e:
        raise InvalidInputError(f"<{_split(elem.tag)[1]}> has a non-numeric {attr}: {raw!r}") from e
    if not math.isfinite(value):
        raise InvalidInputError(f"<{_split(elem.tag)[1]}> has a non-finite {attr}: {raw!r}")
    return value


def _extensions(elem: ET.Element) -> dict[str, dict[str, str]]:
    """
    Flatten <extensions> into {namespace: {leaf_name: text}}.

    Nested containers (e.g. gpxtpx:TrackPointExtension) are walked; only
    leaves with text are kept.
    """
    out: dict[str, dict[str, str]] = {}
    for ext in _children(elem, "extensions"):
        for node in ext.iter():
            if node is ext or len(node):
                continue
            text = (node.text or "").strip()
            if not text:
                continue
            uri, local = _split(node.tag)
            out.setdefault(uri, {})[local] = text
    return out


def _waypoint(elem: ET.Element) -> GpxWaypoint:
    link = None
    links = _children(elem, "link")
    if links:
        # GPX 1.1 puts the URL in href; 1.0 uses <url> text
        link = links[0].get("href") or (links[0].text or "").strip() or None
    if link is None:
        link = _text(elem, "url")

    return GpxWaypoint(
        lat=_coord(elem, "lat"),
        lon=_coord(elem, "lon"),
        ele=_text(elem, "ele"),
        time=_text(elem, "time"),
        magvar=_text(elem, "magvar"),
        geoidheight=_text(elem, "geoidheight"),
        name=_text(elem, "name"),
        cmt=_text(elem, "cmt"),
        desc=_text(elem, "desc"),
        src=_text(elem, "src"),
        link=link,
        sym=_text(elem, "sym"),
        type=_text(elem, "type"),
        fix=_text(elem, "fix"),
        sat=_text(elem, "sat"),
        hdop=_text(elem, "hdop"),
        vdop=_text(elem, "vdop"),
        pdop=_text(elem, "pdop"),
        ageofdgpsdata=_text(elem, "ageofdgpsdata"),
        dgpsid=_text(elem, "dgpsid"),
    )


def _document(root: ET.Element, namespaces: list[str]) -> GpxDocument:
    uri, local = _split(root.tag)
    if local != "gpx":
        raise InvalidInputError(f"root element is <{local}>, expected <gpx>")

    # GPX 1.1 keeps the document time under <metadata>; 1.0 at the root
    time = _text(root, "time")
    for md in _children(root, "metadata"):
        time = _text(md, "time") or time

    tracks: list[GpxTrack] = []
    for trk in _children(root, "trk"):
        segments = []
        for seg in _children(trk, "trkseg"):
            points = [
                GpxPoint(
                    lat=_coord(pt, "lat"),
                    lon=_coord(pt, "lon"),
                    ele=_text(pt, "ele"),
                    time=_text(pt, "time"),
                    desc=_text(pt, "desc"),
                    extensions=_extensions(pt),
                )
                for pt in _children(seg, "trkpt")
            ]
            segments.append(GpxSegment(points=points))
        tracks.append(GpxTrack(name=_text(trk, "name") or "", segments=segments))

    routes = [
        GpxRoute(
            name=_text(rte, "name"),
            desc=_text(rte, "desc"),
            points=[_waypoint(p) for p in _children(rte, "rtept")],
        )
        for rte in _children(root, "rte")
    ]

    return GpxDocument(
        creator=root.get("creator", ""),
        version=root.get("version", ""),
        time=time,
        namespaces=namespaces,
        tracks=tracks,
        waypoints=[_waypoint(w) for w in _children(root, "wpt")],
        routes=routes,
    )


def _parse(source) -> GpxDocument:
    namespaces: list[str] = []
    root = None
    try:
        for event, item in ET.iterparse(source, events=("start-ns", "start")):
            if event == "start-ns":
                uri = item[1]
                if uri not in namespaces:
                    namespaces.append(uri)
            elif root is None:
                root = item
    except ET.ParseError as e:
        raise InvalidInputError(f"GPX could not be parsed: {e}") from e

    if root is None:
        raise InvalidInputError("GPX document is empty")
    return _document(root, namespaces)


def read_gpx(path: Path) -> GpxDocument:
    """
    Read a GPX file into a GpxDocument.

    Raises:
      InvalidInputError, OSError
    """
    with open(path, "rb") as fh:
        return _parse(fh)


def read_gpx_string(text: Union[str, bytes]) -> GpxDocument:
    """Same as read_gpx() for an in-memory document."""
    if isinstance(text, str):
        text = text.encode("utf-8")
    return _parse(io.BytesIO(text))

#!/usr/bin/env python3
"""
gpxingest: analyze GPX file(s) and report journey statistics.

    gpxingest-analyze ride.gpx
    gpxingest-analyze --tsv *.gpx
    gpxingest-analyze --json out/ --suppress elevation --experimental distance ride.gpx
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from gpxingest.analyze.ingest import GPXIngest
from gpxingest.config import EXPERIMENTAL_FEATURES, SUPPRESSIBLE, IngestConfig, load_config
from gpxingest.errors import GPXIngestError
from gpxingest.formats.jsonio import write_journey
from gpxingest.model import Journey, Stats
from gpxingest.util.logging import log, warn

TSV_HEADER = "file\ttrack\tname\tpoints\tsegments\tduration_s\tavg_speed\tmax_speed\tmodal_speed\tdistance_ft"


def _fmt(value, spec: str = "") -> str:
    if value is None:
        return "-"
    return format(value, spec)


def _stats_lines(stats: Stats, indent: str = "  ") -> list[str]:
    uom = "/".join(stats.speed_uom) or "?"
    lines = [
        f"{indent}points        : {stats.trackpoints}",
        f"{indent}duration (s)  : {_fmt(stats.duration)}",
        f"{indent}avg speed     : {_fmt(stats.avg_speed, '.2f')} {uom}",
        f"{indent}min/max speed : {_fmt(stats.min_speed)} / {_fmt(stats.max_speed)}",
        f"{indent}modal speed   : {_fmt(stats.modal_speed)}",
        f"{indent}moving (s)    : {_fmt(stats.time_moving)}",
        f"{indent}stationary (s): {_fmt(stats.time_stationary)}",
    ]
    if stats.distance_travelled is not None:
        lines.append(f"{indent}distance (ft) : {stats.distance_travelled:.1f}")
    if stats.elevation is not None:
        lines.append(
            f"{indent}elevation     : {stats.elevation.min} .. {stats.elevation.max}"
            f" (avg change {stats.elevation.avg_change})"
        )
    return lines


def print_report(path: Path, journey: Journey, *, tsv: bool) -> None:
    if tsv:
        for key, track in journey.tracks.items():
            s = track.stats
            print(
                f"{path}\t{key}\t{track.name}\t"
                f"{s.trackpoints}\t{s.segments}\t"
                f"{_fmt(s.duration)}\t{_fmt(s.avg_speed, '.2f')}\t"
                f"{_fmt(s.max_speed)}\t{_fmt(s.modal_speed)}\t"
                f"{_fmt(s.distance_travelled, '.3f')}"
            )
        return

    s = journey.stats
    print(f"\n{path}")
    print(f"  tracks        : {s.tracks}")
    print(f"  segments      : {s.segments}")
    for line in _stats_lines(s):
        print(line)
    if journey.waypoints:
        print(f"  waypoints     : {len(journey.waypoints)}")
    if journey.metadata.suppressed:
        print(f"  suppressed    : {', '.join(journey.metadata.suppressed)}")

    for key, track in journey.tracks.items():
        print(f"\n  [{key}] {track.name or '(unnamed)'}")
        for line in _stats_lines(track.stats, indent="    "):
            print(line)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="gpxingest: Analyze GPX file(s).")
    ap.add_argument("gpx", nargs="+", help="One or more GPX files.")
    ap.add_argument("--tsv", action="store_true",
                    help="Print one tab-separated row per track (good for piping).")
    ap.add_argument("--json", metavar="DIR", default=None,
                    help="Also write <name>.json with the full journey model into DIR.")
    ap.add_argument("--suppress", action="append", default=[], choices=SUPPRESSIBLE,
                    help="Leave a field category out of the output (repeatable).")
    ap.add_argument("--experimental", action="append", default=[], choices=EXPERIMENTAL_FEATURES,
                    help="Enable an experimental feature (repeatable).")
    ap.add_argument("--no-smart-track", action="store_true",
                    help="Never split tracks on time gaps.")
    ap.add_argument("--smart-track-threshold", type=int, default=None, metavar="SECONDS",
                    help="Gap (seconds) that starts a new track (default: from config, 3600).")
    ap.add_argument("--config", type=Path, default=None,
                    help="Read this TOML file instead of ~/.config/gpxingest/config.toml.")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log SmartTrack splits and recovered values.")
    return ap


def resolve_config(args: argparse.Namespace) -> IngestConfig:
    """Config files/env first, then CLI flags on top."""
    cfg = load_config(user_config_path=args.config) if args.config else load_config()
    changes = {}
    if args.suppress:
        changes["suppress"] = cfg.suppress | set(args.suppress)
    if args.experimental:
        changes["experimental"] = cfg.experimental | set(args.experimental)
    if args.no_smart_track:
        changes["smart_track"] = False
    if args.smart_track_threshold is not None:
        changes["smart_track_threshold"] = args.smart_track_threshold
    if args.verbose:
        changes["verbose"] = True
    return cfg.replace(**changes) if changes else cfg


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = resolve_config(args)
    except GPXIngestError as e:
        warn(str(e))
        return 2

    if args.tsv:
        print(TSV_HEADER)

    failures = 0
    for raw in args.gpx:
        path = Path(raw).expanduser()
        if not path.is_file():
            warn(f"Skipping (not a file): {path}")
            failures += 1
            continue

        gi = GPXIngest(cfg)
        try:
            journey = gi.ingest_file(path)
        except GPXIngestError as e:
            warn(f"{path}: {e}")
            failures += 1
            continue

        print_report(path, journey, tsv=args.tsv)

        if args.json:
            out = Path(args.json).expanduser() / f"{path.stem}.json"
            write_journey(journey, out)
            if cfg.verbose:
                log(f"Wrote {out}")

    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))

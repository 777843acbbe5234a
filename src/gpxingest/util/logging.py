# gpxingest/util/logging.py
from __future__ import annotations

import datetime
import sys


def log(msg: str) -> None:
    """Print a timestamped log line (local time with timezone)."""
    ts = datetime.datetime.now().astimezone().isoformat(timespec="seconds")
    print(f"{ts}  {msg}")


def warn(msg: str) -> None:
    """Same as log(), but to stderr and tagged as a warning."""
    ts = datetime.datetime.now().astimezone().isoformat(timespec="seconds")
    print(f"{ts}  WARNING: {msg}", file=sys.stderr)

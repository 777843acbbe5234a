# gpxingest/formats/jsonio.py
"""
JSON encode/decode for the Journey object graph.

Keys are the dataclass field names; mappings are written in insertion order
and json preserves int vs float, so decode(encode(j)) == j.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from gpxingest.errors import JSONModelError
from gpxingest.model import Journey


def journey_to_json(journey: Journey, *, indent: int | None = None) -> str:
    return json.dumps(journey.to_dict(), indent=indent, ensure_ascii=False, allow_nan=False)


def journey_from_json(text: str | bytes) -> Journey:
    """
    Decode JSON text produced by journey_to_json().

    Raises:
      JSONModelError if the text is not JSON or not shaped like a Journey.
    """
    try:
        data: Any = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise JSONModelError(f"not valid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("tracks", {}), dict):
        raise JSONModelError("JSON does not describe a journey (expected an object with a tracks mapping)")

    try:
        return Journey.from_dict(data)
    except (TypeError, AttributeError) as e:
        raise JSONModelError(f"JSON does not describe a journey: {e}") from e


def write_journey(journey: Journey, out_path: Path, *, indent: int | None = 2) -> None:
    """Write a journey as UTF-8 JSON, creating parent directories."""
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(journey_to_json(journey, indent=indent), encoding="utf-8")


def read_journey(path: Path) -> Journey:
    return journey_from_json(path.read_text(encoding="utf-8"))

# gpxingest/analyze/units.py
"""
Speed annotations.

Many GPX writers smuggle the speed into a point's free-text <desc>
("32 MPH", "50kph"). Parsing is permissive: it never raises.
"""

from __future__ import annotations

import re

_NON_DIGIT = re.compile(r"\D+")
_NEGATIVE = re.compile(r"^\D*?-\d")


def has_digits(text: str | None) -> bool:
    return bool(text) and any(c.isdigit() for c in text)


def parse_speed(text: str | None) -> tuple[int, str]:
    """
    Return (magnitude, unit) from a speed annotation.

    The magnitude is the integer formed by every digit in the text (no digits
    gives 0). The unit is the lower-cased last three characters, which is
    where "mph"/"kph" conventionally sit; anything else comes back as-is.
    A minus sign directly before the first digit is kept.

        >>> parse_speed("32 MPH")
        (32, 'mph')
        >>> parse_speed("stopped")
        (0, 'ped')
        >>> parse_speed("-5 kph")
        (-5, 'kph')
    """
    s = (text or "").strip()
    digits = _NON_DIGIT.sub("", s)
    magnitude = int(digits) if digits else 0
    if magnitude and _NEGATIVE.match(s):
        magnitude = -magnitude
    return magnitude, s[-3:].lower()

# gpxingest/errors

"""
gpxingest.errors

Central exception hierarchy for gpxingest.

Callers can catch GPXIngestError (broad) or specific subclasses (narrow).
Malformed per-point values are not errors: they are recovered during the
ingest pass and counted in the journey metadata.
"""

from __future__ import annotations


class GPXIngestError(RuntimeError):
    """Base class for all gpxingest runtime errors."""


# ---- Input errors ------------------------------

class InvalidInputError(GPXIngestError):
    """Document is absent, unreadable or not shaped like a GPX tree."""


class JSONModelError(GPXIngestError):
    """JSON text could not be decoded into a Journey."""


# ---- Aggregation errors ------------------------

class DegenerateAggregateError(GPXIngestError):
    """An aggregate was requested over an empty collection.

    `scope` names where it happened ("journey0/seg1", "journey0" or
    "journey"), `aggregate` names the statistic.
    """

    def __init__(self, scope: str, aggregate: str):
        self.scope = scope
        self.aggregate = aggregate
        super().__init__(f"cannot compute {aggregate} for {scope}: no values collected")


# ---- Configuration / lookup errors -------------

class ConfigError(GPXIngestError):
    """Configuration file or value is invalid."""


class UnknownIdentifierError(GPXIngestError, KeyError):
    """A track, segment or point id is not present in the ingested journey."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class NothingIngestedError(GPXIngestError):
    """A query was made before any journey was ingested or loaded."""

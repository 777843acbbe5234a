"""
gpxingest configuration loader

This module centralizes *all* configuration handling for gpxingest.

Precedence (highest to lowest) for any given value:
1) CLI argument (handled by gpx_analyze via IngestConfig.replace)
2) Environment variables (GPXINGEST_*)
3) User config: ~/.config/gpxingest/config.toml
4) Repo config: <repo_root>/config/config.toml
5) Hard defaults (IngestConfig())

Everything lives under an `[ingest]` table:

    [ingest]
    smart_track = true
    smart_track_threshold = 3600
    suppress = ["elevation"]
    experimental = ["distance"]
    timezone = "UTC"
    verbose = false

This module uses Python's built-in tomllib on Python 3.11+, or `tomli` if installed.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from gpxingest.errors import ConfigError

# Stable category order; metadata listings follow it.
SUPPRESSIBLE = ("location", "speed", "elevation", "date")

# Experimental features that can be switched on.
EXPERIMENTAL_FEATURES = ("distance",)

DEFAULT_SMART_TRACK_THRESHOLD = 3600


# ---------------------------------------------------------------------------
# TOML loading helpers
# ---------------------------------------------------------------------------
def _load_toml(path: Path) -> dict[str, Any]:
    """
    Parse a TOML file at `path`.

    - If the file does not exist, return an empty dict (non-fatal).
    - If the file exists but is invalid TOML, raise ConfigError.
    """
    if not path.is_file():
        return {}

    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib

    try:
        return tomllib.loads(path.read_text(encoding="utf-8")) or {}
    except (tomllib.TOMLDecodeError, OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to parse TOML config: {path} ({e})") from e


# ---------------------------------------------------------------------------
# Generic coercion helpers
# ---------------------------------------------------------------------------
def _as_bool(v: Any, default: bool) -> bool:
    """
    Coerce loosely-typed config values into booleans.

    TOML booleans, env strings ("on", "0", ...) and ints all behave the same.
    """
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        s = v.strip().lower()
        if s in ("true", "yes", "y", "1", "on"):
            return True
        if s in ("false", "no", "n", "0", "off"):
            return False
    return default


def _as_int(v: Any, key: str) -> int:
    if isinstance(v, bool):
        raise ConfigError(f"{key} must be an integer, got {v!r}")
    try:
        return int(v)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be an integer, got {v!r}") from e


def _as_list(v: Any) -> list[str]:
    """Accept a TOML array or a comma separated string."""
    if v is None:
        return []
    if isinstance(v, str):
        return [p.strip().lower() for p in v.split(",") if p.strip()]
    if isinstance(v, (list, tuple, set, frozenset)):
        return [str(p).strip().lower() for p in v if str(p).strip()]
    raise ConfigError(f"expected a list or comma separated string, got {v!r}")


def _check_names(names: list[str], allowed: tuple[str, ...], key: str) -> frozenset[str]:
    unknown = [n for n in names if n not in allowed]
    if unknown:
        raise ConfigError(
            f"{key}: unknown value(s) {', '.join(unknown)} (allowed: {', '.join(allowed)})"
        )
    return frozenset(names)


# ---------------------------------------------------------------------------
# Repo discovery
# ---------------------------------------------------------------------------
def find_repo_root(start: Path) -> Optional[Path]:
    """
    Walk upward from `start` looking for the repo root.

    The presence of a `config/` directory marks the repo root.
    """
    start = start.resolve()
    for p in [start] + list(start.parents):
        if (p / "config").is_dir():
            return p
    return None


# ---------------------------------------------------------------------------
# Typed config
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class IngestConfig:
    """
    Engine configuration consumed by GPXIngest.

    - smart_track / smart_track_threshold: split tracks on time gaps (seconds)
    - suppress: subset of SUPPRESSIBLE
    - experimental: subset of EXPERIMENTAL_FEATURES
    - timezone: label recorded on the journey
    - verbose: log SmartTrack splits and malformed input
    - source: provenance map showing where each value came from
    """

    smart_track: bool = True
    smart_track_threshold: int = DEFAULT_SMART_TRACK_THRESHOLD
    suppress: frozenset[str] = frozenset()
    experimental: frozenset[str] = frozenset()
    timezone: str = "UTC"
    verbose: bool = False
    source: dict[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if self.smart_track_threshold <= 0:
            raise ConfigError(
                f"smart_track_threshold must be a positive number of seconds, "
                f"got {self.smart_track_threshold}"
            )
        object.__setattr__(self, "suppress", _check_names(list(self.suppress), SUPPRESSIBLE, "suppress"))
        object.__setattr__(
            self, "experimental",
            _check_names(list(self.experimental), EXPERIMENTAL_FEATURES, "experimental"),
        )

    def replace(self, **changes: Any) -> "IngestConfig":
        """Return a copy with `changes` applied (used for CLI overrides)."""
        return dataclasses.replace(self, **changes)


def _apply_section(values: dict[str, Any], src: dict[str, str], section: Any, label: str) -> None:
    if not isinstance(section, dict):
        return
    for key in ("smart_track", "smart_track_threshold", "suppress", "experimental", "timezone", "verbose"):
        if key in section:
            values[key] = section[key]
            src[f"ingest.{key}"] = label


def _coerce(values: dict[str, Any], src: dict[str, str]) -> IngestConfig:
    defaults = IngestConfig()
    return IngestConfig(
        smart_track=_as_bool(values.get("smart_track"), defaults.smart_track),
        smart_track_threshold=(
            _as_int(values["smart_track_threshold"], "smart_track_threshold")
            if values.get("smart_track_threshold") is not None
            else defaults.smart_track_threshold
        ),
        suppress=frozenset(_as_list(values.get("suppress"))),
        experimental=frozenset(_as_list(values.get("experimental"))),
        timezone=str(values.get("timezone") or defaults.timezone),
        verbose=_as_bool(values.get("verbose"), defaults.verbose),
        source=src,
    )


# ---------------------------------------------------------------------------
# Main config loader
# ---------------------------------------------------------------------------
ENV_MAP = {
    "GPXINGEST_SMART_TRACK": "smart_track",
    "GPXINGEST_SMART_TRACK_THRESHOLD": "smart_track_threshold",
    "GPXINGEST_SUPPRESS": "suppress",
    "GPXINGEST_EXPERIMENTAL": "experimental",
    "GPXINGEST_TIMEZONE": "timezone",
    "GPXINGEST_VERBOSE": "verbose",
}


def load_config(
    repo_root: Optional[Path] = None,
    repo_config_path: Optional[Path] = None,
    user_config_path: Optional[Path] = None,
) -> IngestConfig:
    """
    Load, merge, and validate all gpxingest configuration.

    This function is the single authoritative entry point
    for configuration access.
    """
    if repo_root is None:
        repo_root = find_repo_root(Path.cwd())
    if repo_config_path is None and repo_root is not None:
        repo_config_path = repo_root / "config" / "config.toml"
    if user_config_path is None:
        user_config_path = Path.home() / ".config" / "gpxingest" / "config.toml"

    repo_cfg = _load_toml(repo_config_path) if repo_config_path else {}
    user_cfg = _load_toml(user_config_path) if user_config_path else {}

    values: dict[str, Any] = {}
    src = {f"ingest.{k}": "default" for k in ENV_MAP.values()}

    # Repo first, user second: later layers win
    _apply_section(values, src, repo_cfg.get("ingest"), f"repo:{repo_config_path}")
    _apply_section(values, src, user_cfg.get("ingest"), f"user:{user_config_path}")

    for env, key in ENV_MAP.items():
        v = os.environ.get(env)
        if v is None or v == "":
            continue
        values[key] = v
        src[f"ingest.{key}"] = f"env:{env}"

    return _coerce(values, src)

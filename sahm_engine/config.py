"""
Engine configuration: signal defaults, match windows, file locations, logging.

Sections of ``config/default.toml`` map one-to-one onto frozen models:

  [signal]       → ``SignalParams``      defaults for ``compute`` / ``batch``
  [evaluation]   → ``EvaluationConfig``  match windows, lookback, committee dates
  [data]         → ``DataConfig``        series directory, recession series, presets
  [logging]      → ``LoggingConfig``

Layering, later wins: the TOML file, ``local.toml`` beside it, the project
``.env``, then ``SAHM_ENGINE_*`` variables (paths, log level and debug only).

Entry point: ``load_config(config_path=None) -> AppConfig``.
"""

from __future__ import annotations

import os
import tomllib
from datetime import date
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# NBER Business Cycle Dating Committee announcement dates for each peak
# (i.e. the day the start of a recession was declared).
DEFAULT_COMMITTEE_DATES: list[date] = [
    date(1980, 6, 3),    # peak Jan 1980
    date(1982, 1, 6),    # peak Jul 1981
    date(1991, 4, 25),   # peak Jul 1990
    date(2001, 11, 26),  # peak Mar 2001
    date(2008, 12, 1),   # peak Dec 2007
    date(2020, 6, 8),    # peak Feb 2020
]


# ── Sub-config models ─────────────────────────────────────────────────────────


class SignalParams(BaseModel):
    """Parameters of one Sahm Rule line.

    Attributes:
        k:            Moving-average window (months) for the base series.
        m:            Moving-average window (months) for the relative series.
        time_period:  Rolling-minimum window (months) over the relative average.
        use_seasonal: Read ``seasonal_value`` instead of ``value``.
        natural_rate: Lower bound clamped onto raw readings; 0 disables it.
        preceding:    Lag the relative average one month before the minimum.
        threshold:    Signal level at or above which a recession is flagged.
        start_date:   Optional floor applied when aligning the two series.
    """

    model_config = ConfigDict(frozen=True)

    k: int = 3
    m: int = 3
    time_period: int = 13
    use_seasonal: bool = False
    natural_rate: float = 0.0
    preceding: bool = False
    threshold: float = 0.5
    start_date: Optional[date] = None

    @field_validator("k", "m", "time_period")
    @classmethod
    def validate_window(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Window length must be >= 1, got {v}.")
        return v

    @field_validator("natural_rate")
    @classmethod
    def validate_natural_rate(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"natural_rate must be >= 0, got {v}.")
        return v


class EvaluationConfig(BaseModel):
    """Reference data and match-window policy for accuracy scoring.

    ``include_open_recession`` and ``exclude_unmatched_from_lead_time`` both
    default to the historical scoring rules.
    """

    model_config = ConfigDict(frozen=True)

    accuracy_window_days: int = 365
    committee_window_days: int = 365
    lookback_months: int = 3
    include_open_recession: bool = False
    exclude_unmatched_from_lead_time: bool = False
    committee_dates: list[date] = DEFAULT_COMMITTEE_DATES

    @field_validator("accuracy_window_days", "committee_window_days", "lookback_months")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Window must be >= 0, got {v}.")
        return v

    @field_validator("committee_dates")
    @classmethod
    def sort_committee_dates(cls, v: list[date]) -> list[date]:
        return sorted(v)


class DataConfig(BaseModel):
    """Filesystem locations for input series and outputs."""

    model_config = ConfigDict(frozen=True)

    series_dir: str = "data/series"
    recession_series: str = "USREC"
    presets_file: str = "config/presets.toml"
    output_dir: str = "data/outputs"


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration.

    Constructed by ``load_config()`` which merges TOML + .env + environment.
    """

    model_config = ConfigDict(frozen=True)

    signal: SignalParams = SignalParams()
    evaluation: EvaluationConfig = EvaluationConfig()
    data: DataConfig = DataConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

# Environment variable → (section, key) in the raw TOML dict.
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "SAHM_ENGINE_SERIES_DIR":   ("data", "series_dir"),
    "SAHM_ENGINE_OUTPUT_DIR":   ("data", "output_dir"),
    "SAHM_ENGINE_PRESETS_FILE": ("data", "presets_file"),
    "SAHM_ENGINE_LOG_LEVEL":    ("logging", "level"),
}
_TRUTHY = ("1", "true", "yes")


def _find_project_root() -> Path:
    """Return the nearest directory holding ``config/default.toml``.

    Searched from the working directory upwards first, so the CLI picks up a
    checkout's config wherever the package is installed; then from the
    package location.
    """
    for start in (Path.cwd(), Path(__file__).resolve().parent):
        for candidate in (start, *start.parents):
            if (candidate / "config" / "default.toml").exists():
                return candidate
    return Path(__file__).resolve().parent.parent


def read_toml(path: Path) -> dict[str, Any]:
    """Parse a TOML file; dates such as ``1965-01-01`` come back as ``date``."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Build the engine configuration.

    ``config_path`` replaces ``config/default.toml`` (the CLI's ``--config``);
    a ``local.toml`` beside it, the project ``.env`` and ``SAHM_ENGINE_*``
    variables are layered on top. Sections missing from the file keep the
    model defaults, so a file holding only ``[data]`` still yields the
    standard 3/3/13 signal and the 365-day match windows.

    Raises:
        FileNotFoundError: If the config file does not exist.
        pydantic.ValidationError: If a window, threshold or log level is invalid.
    """
    root = _find_project_root()
    load_dotenv(dotenv_path=root / ".env", override=False)

    config_path = Path(config_path) if config_path else root / "config" / "default.toml"
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Pass --config PATH or run from a checkout containing config/default.toml."
        )

    raw = read_toml(config_path)
    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        raw = _deep_merge(raw, read_toml(local_config_path))

    return _build_app_config(_apply_env_overrides(raw))


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply the ``_ENV_OVERRIDES`` paths plus ``SAHM_ENGINE_DEBUG``.

    Only file locations, the log level and debug are read from the
    environment; signal and evaluation parameters come from TOML alone.
    """
    for var, (section, key) in _ENV_OVERRIDES.items():
        if value := os.environ.get(var):
            raw.setdefault(section, {})[key] = value

    if debug := os.environ.get("SAHM_ENGINE_DEBUG"):
        raw["debug"] = debug.lower() in _TRUTHY

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    return AppConfig(
        signal=SignalParams(**raw.get("signal", {})),
        evaluation=EvaluationConfig(**raw.get("evaluation", {})),
        data=DataConfig(**raw.get("data", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", False),
    )

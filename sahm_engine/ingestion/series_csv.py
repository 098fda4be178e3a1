"""
CSV parsers for monthly series and recession indicators.

Series format — comma delimited, with a header row:
  date,value[,deseasonalized_value]

  date                  → YYYY-MM-DD
  value                 → float; empty, ``.`` (FRED's missing marker) or ``nan`` → None
  deseasonalized_value  → optional column, same rules

Recession format:
  date,value            → value must be 0 or 1

Rows may appear in any order; they are returned sorted by date. Duplicate
dates are an error. All rows are validated before anything is returned; if
any row fails, a single ``ValueError`` lists the first 10 failures.
"""

from __future__ import annotations

import csv
import logging
import math
from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from sahm_engine.models.series import Observation, TimeSeries

logger = logging.getLogger(__name__)

REQUIRED_SERIES_COLUMNS = frozenset({"date", "value"})
SEASONAL_COLUMN = "deseasonalized_value"
MISSING_MARKERS = frozenset({"", ".", "nan"})
_MAX_ERRORS_SHOWN = 10


def parse_series_csv(path: Path, series_id: Optional[str] = None) -> TimeSeries:
    """Parse a monthly series CSV into a validated ``TimeSeries``.

    Args:
        path:      Path to the CSV file.
        series_id: Identifier for the series; defaults to the file stem.

    Returns:
        ``TimeSeries`` sorted by date.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: On missing columns, bad rows, or duplicate dates.
    """
    rows = _read_rows(path, REQUIRED_SERIES_COLUMNS)

    observations: list[Observation] = []
    errors: list[tuple[int, str]] = []
    for i, row in enumerate(rows):
        line_no = i + 2  # 1-based, skip header row
        try:
            observations.append(
                Observation(
                    obs_date=_parse_date(row),
                    value=_parse_float(row, "value"),
                    seasonal_value=_parse_float(row, SEASONAL_COLUMN),
                )
            )
        except (ValueError, ValidationError) as exc:
            errors.append((line_no, str(exc)))
    _raise_if_errors(errors, path)

    observations.sort(key=lambda o: o.obs_date)
    _check_duplicates([o.obs_date for o in observations], path)

    series = TimeSeries(series_id=series_id or path.stem, observations=observations)
    logger.info("Parsed %d observations for %s from %s", len(series), series.series_id, path.name)
    return series


def parse_recession_csv(path: Path) -> dict[date, int]:
    """Parse a ``date,value`` 0/1 recession indicator CSV.

    Returns:
        ``{date: 0|1}`` in ascending date order.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: On missing columns, non-binary values, or duplicate dates.
    """
    rows = _read_rows(path, REQUIRED_SERIES_COLUMNS)

    pairs: list[tuple[date, int]] = []
    errors: list[tuple[int, str]] = []
    for i, row in enumerate(rows):
        line_no = i + 2
        try:
            pairs.append((_parse_date(row), _parse_flag(row)))
        except ValueError as exc:
            errors.append((line_no, str(exc)))
    _raise_if_errors(errors, path)

    pairs.sort()
    _check_duplicates([d for d, _ in pairs], path)
    logger.info("Parsed %d recession flags from %s", len(pairs), path.name)
    return dict(pairs)


def load_series(series_dir: Path, series_id: str) -> TimeSeries:
    """Load ``<series_dir>/<series_id>.csv``."""
    return parse_series_csv(Path(series_dir) / f"{series_id}.csv", series_id=series_id)


def load_recession_map(series_dir: Path, series_id: str) -> dict[date, int]:
    """Load ``<series_dir>/<series_id>.csv`` as a recession indicator."""
    return parse_recession_csv(Path(series_dir) / f"{series_id}.csv")


# ── Private helpers ────────────────────────────────────────────────────────────


def _read_rows(path: Path, required: frozenset[str]) -> list[dict[str, str]]:
    if not path.exists():
        raise FileNotFoundError(f"Series CSV file not found: {path}")

    with open(path, encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)

        if reader.fieldnames is None:
            raise ValueError(f"CSV file is empty or has no header row: {path}")

        actual_cols = {c.strip() for c in reader.fieldnames}
        missing = required - actual_cols
        if missing:
            raise ValueError(
                f"CSV missing required columns: {sorted(missing)}\n"
                f"Found columns: {sorted(actual_cols)}"
            )

        rows = [
            {(k or "").strip(): (v or "") for k, v in row.items()}
            for row in reader
        ]

    if not rows:
        logger.warning("Series CSV is empty (header only): %s", path)
    return rows


def _parse_date(row: dict[str, str]) -> date:
    v = row.get("date", "").strip()
    if not v:
        raise ValueError("Required field 'date' is empty.")
    try:
        return date.fromisoformat(v)
    except ValueError:
        raise ValueError(f"Invalid date '{v}'. Expected YYYY-MM-DD format.")


def _parse_float(row: dict[str, str], key: str) -> Optional[float]:
    v = row.get(key, "").strip()
    if v.lower() in MISSING_MARKERS:
        return None
    try:
        number = float(v)
    except ValueError:
        raise ValueError(f"Invalid number for '{key}': '{v}'.")
    if not math.isfinite(number):
        raise ValueError(f"Non-finite number for '{key}': '{v}'.")
    return number


def _parse_flag(row: dict[str, str]) -> int:
    v = row.get("value", "").strip()
    if v in ("0", "0.0"):
        return 0
    if v in ("1", "1.0"):
        return 1
    raise ValueError(f"Invalid recession flag '{v}'. Expected 0 or 1.")


def _check_duplicates(dates: list[date], path: Path) -> None:
    dupes = sorted({a for a, b in zip(dates, dates[1:]) if a == b})
    if dupes:
        raise ValueError(
            f"Duplicate dates in {path.name}: {', '.join(d.isoformat() for d in dupes[:_MAX_ERRORS_SHOWN])}"
        )


def _raise_if_errors(errors: list[tuple[int, str]], path: Path) -> None:
    if not errors:
        return
    detail = "\n".join(f"  Row {ln}: {msg}" for ln, msg in errors[:_MAX_ERRORS_SHOWN])
    suffix = (
        f"\n  … and {len(errors) - _MAX_ERRORS_SHOWN} more"
        if len(errors) > _MAX_ERRORS_SHOWN else ""
    )
    raise ValueError(
        f"{len(errors)} row(s) failed validation in {path.name}:\n{detail}{suffix}"
    )

"""
Shared pytest fixtures for the Sahm Rule engine test suite.

Provides:
  - ``make_series``: build a monthly ``TimeSeries`` from a list of values.
  - ``ramp_values``: the 24-month fixture (flat at 4.0, then rising to 6.0).
  - ``write_csv``: write CSV text into ``tmp_path``.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Callable, Optional

import pytest

from sahm_engine.models.series import Observation, TimeSeries
from sahm_engine.utils.time_utils import monthly_dates

START = date(2000, 1, 1)


def build_series(
    values: list[Optional[float]],
    start: date = START,
    series_id: str = "TEST",
    seasonal: Optional[list[Optional[float]]] = None,
) -> TimeSeries:
    """Monthly series starting at ``start``; ``seasonal`` defaults to all None."""
    dates = monthly_dates(start, len(values))
    seasonal = seasonal if seasonal is not None else [None] * len(values)
    return TimeSeries(
        series_id=series_id,
        observations=[
            Observation(obs_date=d, value=v, seasonal_value=s)
            for d, v, s in zip(dates, values, seasonal)
        ],
    )


@pytest.fixture
def make_series() -> Callable[..., TimeSeries]:
    return build_series


@pytest.fixture
def ramp_values() -> list[float]:
    """4.0 for 20 months, then 4.5, 5.0, 5.5, 6.0."""
    return [4.0] * 20 + [4.5, 5.0, 5.5, 6.0]


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[[str, str], Path]:
    def _write(name: str, content: str) -> Path:
        p = tmp_path / name
        p.write_text(content, encoding="utf-8")
        return p
    return _write

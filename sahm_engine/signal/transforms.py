"""
Sliding-window transforms and the Sahm Rule signal.

Signal definition
-----------------
For each month ``i``::

    signal[i] = base_avg[i] - rolling_min[i]

    base_avg     = k-month trailing mean of the base series
    rel_avg      = m-month trailing mean of the relative series
    rolling_min  = time_period-month trailing minimum of rel_avg
                   (of rel_avg lagged one month when ``preceding`` is set)

Missing values
--------------
``None`` is the missing marker throughout; NaN passed straight to a transform
is treated the same way. A trailing window containing any
``None`` (including the warm-up indices before the window is full) yields
``None``, and ``None`` minus anything is ``None``. Points are never dropped:
the output always has one ``ComputedPoint`` per input month.

Complexity
----------
All transforms are a single forward pass. The rolling minimum keeps a
monotonic deque of indices whose values increase from front to back, so the
front is always the window minimum and every index is pushed and popped at
most once.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from typing import Optional, Sequence, Union

from sahm_engine.models.series import Observation, TimeSeries
from sahm_engine.models.signal import ComputedPoint
from sahm_engine.signal.alignment import validate_aligned

logger = logging.getLogger(__name__)

SeriesInput = Union[TimeSeries, Sequence[Observation]]


def moving_average(values: Sequence[Optional[float]], window: int) -> list[Optional[float]]:
    """Trailing simple moving average, inclusive of the current index.

    ``result[i]`` is the mean of ``values[i-window+1 .. i]``; indices before
    ``window - 1`` and windows holding a ``None`` are ``None``.

    Raises:
        ValueError: If ``window < 1``.
    """
    _check_window(window)
    means: list[Optional[float]] = [None] * len(values)
    total = 0.0
    missing = 0
    for i, v in enumerate(values):
        if _is_missing(v):
            missing += 1
        else:
            total += v
        if i >= window:
            dropped = values[i - window]
            if _is_missing(dropped):
                missing -= 1
            else:
                total -= dropped
        if i >= window - 1 and missing == 0:
            means[i] = total / window
    return means


def lag(values: Sequence[Optional[float]]) -> list[Optional[float]]:
    """Shift a series forward by one index; index 0 becomes ``None``."""
    if not values:
        return []
    return [None, *values[:-1]]


def rolling_min(values: Sequence[Optional[float]], window: int) -> list[Optional[float]]:
    """Trailing minimum over ``window`` indices in O(n).

    ``result[i]`` is ``min(values[i-window+1 .. i])`` for ``i >= window - 1``
    when no value in that window is ``None``; otherwise ``None``.

    Raises:
        ValueError: If ``window < 1``.
    """
    _check_window(window)
    mins: list[Optional[float]] = [None] * len(values)
    candidates: deque[int] = deque()
    last_missing = -1

    for i, v in enumerate(values):
        # Front indices that slid out of the window.
        while candidates and candidates[0] <= i - window:
            candidates.popleft()

        if _is_missing(v):
            last_missing = i
        else:
            # Anything larger than v can never be a window minimum again.
            while candidates and values[candidates[-1]] > v:  # type: ignore[operator]
                candidates.pop()
            candidates.append(i)

        if i >= window - 1 and last_missing <= i - window:
            mins[i] = values[candidates[0]]

    return mins


def warmup_length(k: int, m: int, time_period: int, preceding: bool = False) -> int:
    """Minimum series length for at least one defined signal value."""
    return max(k, m + time_period - 1 + int(preceding))


def compute_signal(
    base: SeriesInput,
    relative: SeriesInput,
    k: int = 3,
    m: int = 3,
    time_period: int = 13,
    use_seasonal: bool = False,
    natural_rate: float = 0.0,
    preceding: bool = False,
) -> list[ComputedPoint]:
    """Compute the Sahm Rule signal for two aligned monthly series.

    Args:
        base:         Base (minuend) series.
        relative:     Relative (subtrahend) series; same dates as ``base``.
        k:            Base moving-average window.
        m:            Relative moving-average window.
        time_period:  Rolling-minimum window over the relative average.
        use_seasonal: Read ``seasonal_value`` instead of ``value``.
        natural_rate: When > 0, each reading is clamped to at least this value
                      before smoothing.
        preceding:    Lag the relative average one month before taking the
                      rolling minimum.

    Returns:
        One ``ComputedPoint`` per input month, dated like ``base``.

    Raises:
        SeriesAlignmentError: If the series differ in length or dates.
        ValueError: If any window is < 1.
    """
    base_obs = _observations(base)
    relative_obs = _observations(relative)
    validate_aligned(base_obs, relative_obs)
    for w in (k, m, time_period):
        _check_window(w)

    base_values = _select(base_obs, use_seasonal, natural_rate)
    relative_values = _select(relative_obs, use_seasonal, natural_rate)

    base_avg = moving_average(base_values, k)
    relative_avg = moving_average(relative_values, m)
    if preceding:
        relative_avg = lag(relative_avg)
    relative_min = rolling_min(relative_avg, time_period)

    n = len(base_obs)
    if n < warmup_length(k, m, time_period, preceding):
        logger.warning(
            "Series too short for a defined signal: %d months < warm-up %d "
            "(k=%d, m=%d, time_period=%d, preceding=%s)",
            n, warmup_length(k, m, time_period, preceding), k, m, time_period, preceding,
        )

    return [
        ComputedPoint(
            date=obs.obs_date,
            value=None if avg is None or low is None else avg - low,
        )
        for obs, avg, low in zip(base_obs, base_avg, relative_min)
    ]


# ── Internal helpers ───────────────────────────────────────────────────────────


def _check_window(window: int) -> None:
    if window < 1:
        raise ValueError(f"Window length must be >= 1, got {window}.")


def _is_missing(v: Optional[float]) -> bool:
    return v is None or math.isnan(v)


def _observations(series: SeriesInput) -> Sequence[Observation]:
    if isinstance(series, TimeSeries):
        return series.observations
    return series


def _select(
    observations: Sequence[Observation],
    use_seasonal: bool,
    natural_rate: float,
) -> list[Optional[float]]:
    """Pick the configured field and apply the natural-rate floor."""
    values = [obs.select(use_seasonal) for obs in observations]
    if natural_rate > 0:
        values = [None if v is None else max(natural_rate, v) for v in values]
    return values

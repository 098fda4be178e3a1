"""
Turning-point extraction — rising and falling edges of a binary state.

Both extractors walk the input once with a two-state machine (below / above,
starting below). Only transitions matter; repeated observations in the same
state emit nothing.

``extract_signal_starts``
    Thresholds a computed signal: ``value >= threshold`` is above, anything
    else (including ``None``) is below. Each below→above transition emits the
    point's date.

``extract_binary_intervals``
    Reads a 0/1 series. A rising edge opens an interval; the next falling
    edge closes it with ``end`` = date of that first 0. A run of 1's still
    open at the end of the input is dropped unless ``include_open=True``, in
    which case it is emitted with ``end=None``.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Mapping, Optional, Sequence, Union

from sahm_engine.models.signal import ComputedPoint, Interval, RecessionPeriod

BinaryInput = Union[Mapping[date, int], Iterable[tuple[date, int]]]


def extract_signal_starts(
    points: Sequence[ComputedPoint],
    threshold: float = 0.5,
) -> list[date]:
    """Return the dates where the signal first reaches ``threshold``.

    Args:
        points:    Computed signal in ascending date order.
        threshold: Level at or above which the state is "above".

    Returns:
        Onset dates, ascending. Two onsets are always separated by at least
        one below-threshold point.
    """
    starts: list[date] = []
    above = False
    for point in points:
        is_above = point.value is not None and point.value >= threshold
        if is_above and not above:
            starts.append(point.date)
        above = is_above
    return starts


def extract_binary_intervals(
    series: BinaryInput,
    include_open: bool = False,
) -> list[Interval]:
    """Return the ``{start, end}`` runs of 1's in a binary series.

    Args:
        series:       ``{date: 0|1}`` mapping or ``(date, 0|1)`` pairs. Pairs are
                      consumed in the order given; mappings are read in
                      ascending date order.
        include_open: Emit a run still open at the end with ``end=None``.

    Returns:
        Intervals in input order.
    """
    intervals: list[Interval] = []
    open_start: Optional[date] = None
    for d, flag in _pairs(series):
        if open_start is not None and flag == 0:
            intervals.append(Interval(start=open_start, end=d))
            open_start = None
        elif open_start is None and flag == 1:
            open_start = d
    if include_open and open_start is not None:
        intervals.append(Interval(start=open_start, end=None))
    return intervals


def recession_periods(
    series: BinaryInput,
    include_open: bool = False,
) -> list[RecessionPeriod]:
    """Number the recession intervals of a binary series for display."""
    return [
        RecessionPeriod(period=i, start=iv.start, end=iv.end)
        for i, iv in enumerate(extract_binary_intervals(series, include_open=include_open))
    ]


def _pairs(series: BinaryInput) -> Iterable[tuple[date, int]]:
    if isinstance(series, Mapping):
        return sorted(series.items())
    return series

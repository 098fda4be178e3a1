"""
Date-window matching between predicted onsets and reference dates.

Definitions
-----------
In window
  A reference date ``r`` is in the window of prediction ``p`` when
  ``|r - p| <= window_days`` (inclusive).

Match percent
  Share of predictions with at least one reference in window, as a percent.
  Not symmetric: references nobody predicted are not penalised, and a
  prediction near several references still counts once.

Signed offset
  ``nearest_reference - prediction`` in days. Positive means the prediction
  came first (it led the event); negative means it lagged. Among in-window
  references the closest wins; ties go to the earlier reference.

All inputs are expected in ascending date order.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from sahm_engine.utils.time_utils import days_between


@dataclass(frozen=True)
class LeadTimeSummary:
    """Mean offsets split by direction.

    Attributes:
        average_days_leading:  Mean of positive offsets (None if there are none).
        average_days_lagging:  Mean of negative offsets (None if there are none).
        overall_average_days:  Mean of all offsets, zeros included (None if empty).
    """

    average_days_leading: Optional[float]
    average_days_lagging: Optional[float]
    overall_average_days: Optional[float]


def in_window(prediction: date, reference: date, window_days: int) -> bool:
    return abs(days_between(prediction, reference)) <= window_days


def match_percent(
    predictions: Sequence[date],
    references: Sequence[date],
    window_days: int,
) -> Optional[float]:
    """Percent of ``predictions`` with a reference within ``window_days``.

    Returns:
        A float in [0, 100], or ``None`` when there are no predictions.
    """
    if not predictions:
        return None
    hits = sum(
        1 for p in predictions
        if any(in_window(p, r, window_days) for r in references)
    )
    return hits / len(predictions) * 100


def nearest_signed_offset(
    prediction: date,
    references: Sequence[date],
    window_days: int,
) -> Optional[int]:
    """Signed days from ``prediction`` to its nearest in-window reference.

    Returns:
        ``reference - prediction`` in days, or ``None`` if no reference lies
        within ``window_days``.
    """
    best: Optional[int] = None
    for r in references:
        offset = days_between(prediction, r)
        if abs(offset) > window_days:
            continue
        if best is None or abs(offset) < abs(best):
            best = offset
    return best


def offsets_to_nearest(
    predictions: Sequence[date],
    references: Sequence[date],
    window_days: int,
    missing_as_zero: bool = True,
) -> list[Optional[int]]:
    """``nearest_signed_offset`` for every prediction.

    With ``missing_as_zero`` (the historical scoring rule) a
    prediction without an in-window reference yields ``0`` instead of
    ``None``.
    """
    offsets: list[Optional[int]] = []
    for p in predictions:
        offset = nearest_signed_offset(p, references, window_days)
        if offset is None and missing_as_zero:
            offset = 0
        offsets.append(offset)
    return offsets


def summarize_offsets(offsets: Sequence[Optional[int]]) -> LeadTimeSummary:
    """Split offsets into leading / lagging means plus the overall mean.

    ``None`` entries are skipped; zeros count toward the overall mean only.
    """
    present = [o for o in offsets if o is not None]
    leading = [o for o in present if o > 0]
    lagging = [o for o in present if o < 0]
    return LeadTimeSummary(
        average_days_leading=_mean(leading),
        average_days_lagging=_mean(lagging),
        overall_average_days=_mean(present),
    )


def round_half_up(value: Optional[float]) -> Optional[int]:
    """Round to the nearest integer, halves toward +inf (``-2.5 -> -2``)."""
    if value is None:
        return None
    return math.floor(value + 0.5)


def _mean(values: Sequence[int]) -> Optional[float]:
    return sum(values) / len(values) if values else None

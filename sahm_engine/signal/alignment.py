"""
Series alignment — bring a base and a relative series onto identical dates.

The signal pipeline indexes both series in lock-step, so index ``i`` of the
base must refer to the same month as index ``i`` of the relative series.
``align_series`` produces that shape from two independently loaded series;
``validate_aligned`` is the precondition check the pipeline runs before
computing anything.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from sahm_engine.models.series import Observation, TimeSeries

logger = logging.getLogger(__name__)


class SeriesAlignmentError(ValueError):
    """Raised when two series are not index-for-index aligned.

    Attributes:
        index: First offending index, or ``None`` for a pure length mismatch.
    """

    def __init__(self, message: str, index: Optional[int] = None) -> None:
        self.index = index
        super().__init__(message)


def align_series(
    base: TimeSeries,
    relative: TimeSeries,
    start_date: Optional[date] = None,
) -> tuple[TimeSeries, TimeSeries]:
    """Trim both series to their overlapping date range.

    The range starts at the latest of the two first dates (and ``start_date``
    when given) and ends at the earliest of the two last dates.

    Args:
        base:       Base (minuend) series.
        relative:   Relative (subtrahend) series.
        start_date: Optional floor for the common range.

    Returns:
        ``(base, relative)`` restricted to the common range.

    Raises:
        SeriesAlignmentError: If either series is empty, the ranges do not
            overlap, or the trimmed series still disagree date-for-date
            (e.g. one of them has a gap).
    """
    if not base.observations or not relative.observations:
        raise SeriesAlignmentError(
            f"Cannot align empty series: {base.series_id} has {len(base)} "
            f"observations, {relative.series_id} has {len(relative)}."
        )

    start = max(base.first_date, relative.first_date)  # type: ignore[type-var]
    if start_date is not None:
        start = max(start, start_date)
    end = min(base.last_date, relative.last_date)  # type: ignore[type-var]

    if end < start:
        raise SeriesAlignmentError(
            f"Series {base.series_id} and {relative.series_id} do not overlap "
            f"(common range would be {start} .. {end})."
        )

    aligned_base = base.between(start, end)
    aligned_relative = relative.between(start, end)
    validate_aligned(aligned_base.observations, aligned_relative.observations)

    logger.debug(
        "Aligned %s/%s to %s .. %s (%d months)",
        base.series_id, relative.series_id, start, end, len(aligned_base),
    )
    return aligned_base, aligned_relative


def validate_aligned(
    base: Sequence[Observation],
    relative: Sequence[Observation],
) -> None:
    """Check that two observation lists are equal-length and date-aligned.

    Raises:
        SeriesAlignmentError: On the first length or date mismatch.
    """
    if len(base) != len(relative):
        raise SeriesAlignmentError(
            f"Series length mismatch: base has {len(base)} observations, "
            f"relative has {len(relative)}."
        )
    for i, (b, r) in enumerate(zip(base, relative)):
        if b.obs_date != r.obs_date:
            raise SeriesAlignmentError(
                f"Series dates diverge at index {i}: base {b.obs_date} vs "
                f"relative {r.obs_date}.",
                index=i,
            )

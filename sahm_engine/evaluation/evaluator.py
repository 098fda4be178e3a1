"""
Accuracy evaluation of Sahm Rule onsets.

Steps
-----
1.  Onsets = rising edges of the signal at ``threshold``.
2.  Recession starts = rising edges of the recession map, restricted to
    dates on/after (first onset - ``lookback_months``) so that recessions
    long before the analysed window do not enter the statistics.
3.  ``accuracy``            — percent of onsets with a recession start
                              within ``accuracy_window_days``.
4.  ``recession_lead_time`` — mean signed offset to the nearest recession
                              start. Onsets with no start in window count as
                              0 days unless ``exclude_unmatched_from_lead_time``
                              is set; either way they are counted in
                              ``n_unmatched``.
5.  ``committee_lead_time`` — mean of the *positive* offsets to the nearest
                              committee announcement within
                              ``committee_window_days``.

Results are rounded half-up to whole numbers. With no onsets at all every
statistic is ``None`` and the ``no_signal_crossings`` warning is set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Mapping, Optional, Sequence

from sahm_engine.config import EvaluationConfig
from sahm_engine.evaluation.matching import (
    LeadTimeSummary,
    match_percent,
    offsets_to_nearest,
    round_half_up,
    summarize_offsets,
)
from sahm_engine.models.signal import ComputedPoint
from sahm_engine.signal.turning_points import extract_binary_intervals, extract_signal_starts
from sahm_engine.utils.time_utils import add_months

logger = logging.getLogger(__name__)

NO_SIGNAL_CROSSINGS = "no_signal_crossings"
NO_RECESSION_STARTS = "no_recession_starts"
UNMATCHED_OFFSETS_AS_ZERO = "unmatched_offsets_as_zero"

_EMPTY_SUMMARY = LeadTimeSummary(None, None, None)


@dataclass(frozen=True)
class AccuracyStats:
    """Accuracy and lead-time statistics for one computed signal.

    Attributes:
        accuracy:            Percent of onsets matching a recession start (0–100).
        recession_lead_time: Mean signed days to the nearest recession start.
        committee_lead_time: Mean days by which onsets led committee announcements.
        n_signal_starts:     Number of onsets.
        n_recession_starts:  Recession starts considered after the lookback cut.
        n_matched:           Onsets with a recession start in window.
        n_unmatched:         Onsets without one.
        signal_starts:       The onset dates.
        recession_starts:    The recession start dates considered.
        recession_summary:   Leading / lagging split of the recession offsets.
        committee_summary:   Leading / lagging split of the committee offsets.
        warnings:            Machine-readable result flags.
    """

    accuracy: Optional[int]
    recession_lead_time: Optional[int]
    committee_lead_time: Optional[int]
    n_signal_starts: int
    n_recession_starts: int
    n_matched: int
    n_unmatched: int
    signal_starts: tuple[date, ...] = ()
    recession_starts: tuple[date, ...] = ()
    recession_summary: LeadTimeSummary = _EMPTY_SUMMARY
    committee_summary: LeadTimeSummary = _EMPTY_SUMMARY
    warnings: tuple[str, ...] = ()


def recession_starts_since(
    recession_map: Mapping[date, int],
    cutoff: date,
    include_open: bool = False,
) -> list[date]:
    """Rising-edge dates of ``recession_map`` restricted to ``date >= cutoff``."""
    recent = sorted((d, v) for d, v in recession_map.items() if d >= cutoff)
    return [iv.start for iv in extract_binary_intervals(recent, include_open=include_open)]


def evaluate(
    points: Sequence[ComputedPoint],
    recession_map: Mapping[date, int],
    threshold: float = 0.5,
    committee_dates: Optional[Sequence[date]] = None,
    config: Optional[EvaluationConfig] = None,
) -> AccuracyStats:
    """Score the onsets of a computed signal against reference dates.

    Args:
        points:          Computed signal, ascending by date.
        recession_map:   ``{date: 0|1}`` recession indicator.
        threshold:       Signal level that marks an onset.
        committee_dates: Committee announcement dates; defaults to
                         ``config.committee_dates``.
        config:          Match-window policy; defaults to ``EvaluationConfig()``.

    Returns:
        ``AccuracyStats``. Never raises for empty inputs.
    """
    cfg = config or EvaluationConfig()
    committee = sorted(committee_dates if committee_dates is not None else cfg.committee_dates)

    signal_starts = extract_signal_starts(points, threshold)
    if not signal_starts:
        logger.info("No signal crossings at threshold %.2f", threshold)
        return AccuracyStats(
            accuracy=None,
            recession_lead_time=None,
            committee_lead_time=None,
            n_signal_starts=0,
            n_recession_starts=0,
            n_matched=0,
            n_unmatched=0,
            warnings=(NO_SIGNAL_CROSSINGS,),
        )

    cutoff = add_months(signal_starts[0], -cfg.lookback_months)
    recession_starts = recession_starts_since(
        recession_map, cutoff, include_open=cfg.include_open_recession
    )

    accuracy = round_half_up(
        match_percent(signal_starts, recession_starts, cfg.accuracy_window_days)
    )

    raw_offsets = offsets_to_nearest(
        signal_starts, recession_starts, cfg.accuracy_window_days, missing_as_zero=False
    )
    n_unmatched = sum(1 for o in raw_offsets if o is None)
    n_matched = len(raw_offsets) - n_unmatched

    warnings: list[str] = []
    if not recession_starts:
        warnings.append(NO_RECESSION_STARTS)
    if cfg.exclude_unmatched_from_lead_time:
        recession_offsets = raw_offsets
    else:
        recession_offsets = [0 if o is None else o for o in raw_offsets]
        if n_unmatched:
            warnings.append(UNMATCHED_OFFSETS_AS_ZERO)
            logger.warning(
                "%d of %d onsets have no recession start within %d days; "
                "counted as 0-day offsets in recession_lead_time",
                n_unmatched, len(signal_starts), cfg.accuracy_window_days,
            )
    recession_summary = summarize_offsets(recession_offsets)

    committee_summary = summarize_offsets(
        offsets_to_nearest(signal_starts, committee, cfg.committee_window_days)
    )

    stats = AccuracyStats(
        accuracy=accuracy,
        recession_lead_time=round_half_up(recession_summary.overall_average_days),
        committee_lead_time=round_half_up(committee_summary.average_days_leading),
        n_signal_starts=len(signal_starts),
        n_recession_starts=len(recession_starts),
        n_matched=n_matched,
        n_unmatched=n_unmatched,
        signal_starts=tuple(signal_starts),
        recession_starts=tuple(recession_starts),
        recession_summary=recession_summary,
        committee_summary=committee_summary,
        warnings=tuple(warnings),
    )
    logger.debug(
        "Evaluated %d onsets: accuracy=%s recession_lead=%s committee_lead=%s",
        stats.n_signal_starts, stats.accuracy,
        stats.recession_lead_time, stats.committee_lead_time,
    )
    return stats

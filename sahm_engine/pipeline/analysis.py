"""
End-to-end Sahm Rule analysis: align → compute → extract → evaluate.

``run_analysis`` is the single entry point used by the CLI and by
``run_batch``. Every call is a full recomputation; nothing is cached between
calls and no input is mutated.

Result-level warnings
---------------------
``insufficient_data``           every computed point is missing (series shorter
                                than the warm-up length)
``no_signal_crossings``         the signal never reached the threshold
``no_recession_starts``         no recession began inside the analysed window
``unmatched_offsets_as_zero``   some onsets had no recession start in window
                                and were averaged in as 0-day offsets

``run_batch`` runs one analysis per series (each series is both base and
relative, as for the county maps). A series whose inputs are invalid is
recorded with its error message instead of aborting the batch.

``run_lines`` runs a preset group: several named lines, each with its own
series and parameters, scored against one recession indicator. Unlike a
batch, a group is all-or-nothing; the first line that cannot be aligned
raises, with the line name in the message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Mapping, Optional, Sequence

from sahm_engine.config import EvaluationConfig, SignalParams
from sahm_engine.evaluation.evaluator import AccuracyStats, evaluate
from sahm_engine.models.series import TimeSeries
from sahm_engine.models.signal import ComputedPoint, RecessionPeriod
from sahm_engine.signal.alignment import SeriesAlignmentError, align_series
from sahm_engine.signal.transforms import compute_signal, warmup_length
from sahm_engine.signal.turning_points import recession_periods

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA = "insufficient_data"


@dataclass(frozen=True)
class AnalysisResult:
    """Everything computed for one line.

    Attributes:
        base_id:           Base series identifier.
        relative_id:       Relative series identifier.
        params:            Parameters used.
        points:            Computed signal, one per aligned month.
        recession_periods: Recession intervals within the aligned range.
        stats:             Accuracy and lead-time statistics.
        warnings:          Union of computation and evaluation warnings.
    """

    base_id: str
    relative_id: str
    params: SignalParams
    points: list[ComputedPoint]
    recession_periods: list[RecessionPeriod]
    stats: AccuracyStats
    warnings: tuple[str, ...] = ()

    @property
    def signal_starts(self) -> tuple[date, ...]:
        return self.stats.signal_starts

    @property
    def latest(self) -> Optional[ComputedPoint]:
        """Most recent point with a defined value."""
        for point in reversed(self.points):
            if point.value is not None:
                return point
        return None


@dataclass(frozen=True)
class BatchRow:
    """Outcome of one series in a batch run."""

    series_id: str
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class LineInput:
    """One named line of a group, with its series and parameters."""

    name: str
    base: TimeSeries
    relative: TimeSeries
    params: SignalParams


def run_analysis(
    base: TimeSeries,
    relative: TimeSeries,
    recession_map: Mapping[date, int],
    params: Optional[SignalParams] = None,
    config: Optional[EvaluationConfig] = None,
) -> AnalysisResult:
    """Align two series, compute the signal and score it.

    Args:
        base:          Base series.
        relative:      Relative series (may be the same object as ``base``).
        recession_map: ``{date: 0|1}`` recession indicator.
        params:        Signal parameters; defaults to ``SignalParams()``.
        config:        Evaluation policy; defaults to ``EvaluationConfig()``.

    Raises:
        SeriesAlignmentError: If the two series cannot be aligned.
    """
    params = params or SignalParams()
    config = config or EvaluationConfig()

    aligned_base, aligned_relative = align_series(base, relative, params.start_date)
    points = compute_signal(
        aligned_base,
        aligned_relative,
        k=params.k,
        m=params.m,
        time_period=params.time_period,
        use_seasonal=params.use_seasonal,
        natural_rate=params.natural_rate,
        preceding=params.preceding,
    )

    warnings: list[str] = []
    if all(p.value is None for p in points):
        warnings.append(INSUFFICIENT_DATA)
        logger.warning(
            "No defined signal for %s/%s: %d aligned months, warm-up needs %d",
            base.series_id, relative.series_id, len(points),
            warmup_length(params.k, params.m, params.time_period, params.preceding),
        )

    stats = evaluate(points, recession_map, params.threshold, config=config)
    warnings.extend(w for w in stats.warnings if w not in warnings)

    start, end = aligned_base.first_date, aligned_base.last_date
    in_range = {d: v for d, v in recession_map.items() if start <= d <= end}
    periods = recession_periods(in_range, include_open=config.include_open_recession)

    logger.info(
        "Analysed %s vs %s: %d months, %d onsets, accuracy=%s",
        base.series_id, relative.series_id, len(points),
        stats.n_signal_starts, stats.accuracy,
    )
    return AnalysisResult(
        base_id=base.series_id,
        relative_id=relative.series_id,
        params=params,
        points=points,
        recession_periods=periods,
        stats=stats,
        warnings=tuple(warnings),
    )


def run_batch(
    series_list: Sequence[TimeSeries],
    recession_map: Mapping[date, int],
    params: Optional[SignalParams] = None,
    config: Optional[EvaluationConfig] = None,
) -> list[BatchRow]:
    """Run ``run_analysis`` for each series against itself, sequentially."""
    rows: list[BatchRow] = []
    for series in series_list:
        try:
            result = run_analysis(series, series, recession_map, params, config)
        except ValueError as exc:
            logger.error("Batch analysis failed for %s: %s", series.series_id, exc)
            rows.append(BatchRow(series_id=series.series_id, error=str(exc)))
            continue
        rows.append(BatchRow(series_id=series.series_id, result=result))

    n_failed = sum(1 for r in rows if not r.ok)
    logger.info("Batch complete: %d series, %d failed", len(rows), n_failed)
    return rows


def run_lines(
    lines: Sequence[LineInput],
    recession_map: Mapping[date, int],
    config: Optional[EvaluationConfig] = None,
) -> dict[str, AnalysisResult]:
    """Analyse each line of a group.

    Returns:
        ``{line name: AnalysisResult}`` in the order of ``lines``.

    Raises:
        ValueError: If two lines share a name.
        SeriesAlignmentError: If any line's series cannot be aligned.
    """
    results: dict[str, AnalysisResult] = {}
    for line in lines:
        if line.name in results:
            raise ValueError(f"Duplicate line name '{line.name}'.")
        try:
            results[line.name] = run_analysis(
                line.base, line.relative, recession_map, line.params, config
            )
        except SeriesAlignmentError as exc:
            raise SeriesAlignmentError(f"Line '{line.name}': {exc}", index=exc.index) from exc

    logger.info("Computed %d lines: %s", len(results), ", ".join(results))
    return results

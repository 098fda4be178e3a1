"""
Tests for sahm_engine.pipeline.analysis — end-to-end analysis and batches.

The 24-month ramp (flat 4.0, then 4.5 / 5.0 / 5.5 / 6.0 from Sep 2001) with
k = m = 3 and time_period = 13 first reaches 0.5 on 2001-10-01.
"""

from __future__ import annotations

from datetime import date

import pytest

from sahm_engine.config import EvaluationConfig, SignalParams
from sahm_engine.evaluation.evaluator import NO_SIGNAL_CROSSINGS
from sahm_engine.models.series import TimeSeries
from sahm_engine.models.signal import RecessionPeriod
from sahm_engine.pipeline.analysis import (
    INSUFFICIENT_DATA,
    LineInput,
    run_analysis,
    run_batch,
    run_lines,
)
from sahm_engine.signal.alignment import SeriesAlignmentError
from sahm_engine.utils.time_utils import monthly_dates

ONSET = date(2001, 10, 1)


@pytest.fixture
def recession_map() -> dict[date, int]:
    # Old recession (outside the analysed range) plus Sep–Oct 2001.
    flags = dict.fromkeys(monthly_dates(date(2000, 1, 1), 24), 0)
    flags[date(2001, 9, 1)] = 1
    flags[date(2001, 10, 1)] = 1
    flags[date(1990, 8, 1)] = 1
    flags[date(1991, 4, 1)] = 0
    return flags


class TestRunAnalysis:
    def test_onset_and_stats(self, make_series, ramp_values, recession_map):
        series = make_series(ramp_values, series_id="UNRATE")
        result = run_analysis(series, series, recession_map)

        assert result.base_id == "UNRATE"
        assert result.relative_id == "UNRATE"
        assert len(result.points) == 24
        assert result.signal_starts == (ONSET,)
        assert result.stats.accuracy == 100
        assert result.stats.recession_lead_time == -30   # 2001-09-01 - 2001-10-01
        assert result.stats.committee_lead_time == 56    # 2001-11-26 - 2001-10-01
        assert result.warnings == ()

    def test_recession_periods_limited_to_aligned_range(self, make_series, ramp_values, recession_map):
        series = make_series(ramp_values)
        result = run_analysis(series, series, recession_map)
        assert result.recession_periods == [
            RecessionPeriod(period=0, start=date(2001, 9, 1), end=date(2001, 11, 1))
        ]

    def test_latest_point(self, make_series, ramp_values, recession_map):
        series = make_series(ramp_values)
        latest = run_analysis(series, series, recession_map).latest
        assert latest.date == date(2001, 12, 1)
        # (5.0 + 5.5 + 6.0) / 3 - 4.0
        assert latest.value == pytest.approx(1.5)

    def test_default_params(self, make_series, ramp_values, recession_map):
        series = make_series(ramp_values)
        assert run_analysis(series, series, recession_map).params == SignalParams()

    def test_start_date_trims_range(self, make_series, ramp_values, recession_map):
        series = make_series(ramp_values)
        params = SignalParams(start_date=date(2000, 7, 1))
        result = run_analysis(series, series, recession_map, params)
        assert result.points[0].date == date(2000, 7, 1)
        assert len(result.points) == 18

    def test_insufficient_data(self, make_series, recession_map):
        series = make_series([4.0] * 10)
        result = run_analysis(series, series, recession_map)
        assert all(p.value is None for p in result.points)
        assert INSUFFICIENT_DATA in result.warnings
        assert NO_SIGNAL_CROSSINGS in result.warnings
        assert result.latest is None
        assert result.stats.accuracy is None

    def test_open_recession_policy(self, make_series, ramp_values):
        series = make_series(ramp_values)
        recession = {date(2001, 11, 1): 0, date(2001, 12, 1): 1}
        closed = run_analysis(series, series, recession)
        opened = run_analysis(series, series, recession,
                              config=EvaluationConfig(include_open_recession=True))
        assert closed.recession_periods == []
        assert opened.recession_periods == [
            RecessionPeriod(period=0, start=date(2001, 12, 1), end=None)
        ]
        assert opened.stats.recession_starts == (date(2001, 12, 1),)

    def test_misaligned_series_raise(self, make_series, ramp_values, recession_map):
        base = make_series(ramp_values)
        relative = make_series(ramp_values, start=date(2010, 1, 1))
        with pytest.raises(SeriesAlignmentError):
            run_analysis(base, relative, recession_map)


class TestRunBatch:
    def test_each_series_scored(self, make_series, ramp_values, recession_map):
        rows = run_batch(
            [make_series(ramp_values, series_id="CAUR"), make_series(ramp_values, series_id="TXUR")],
            recession_map,
        )
        assert [r.series_id for r in rows] == ["CAUR", "TXUR"]
        assert all(r.ok for r in rows)
        assert rows[0].result.stats.accuracy == 100

    def test_failure_recorded_not_raised(self, make_series, ramp_values, recession_map):
        empty = TimeSeries(series_id="EMPTY", observations=[])
        rows = run_batch([empty, make_series(ramp_values, series_id="NYUR")], recession_map)
        assert not rows[0].ok
        assert rows[0].result is None
        assert "empty" in rows[0].error
        assert rows[1].ok


class TestRunLines:
    def test_one_result_per_line_in_order(self, make_series, ramp_values, recession_map):
        long = make_series(ramp_values, series_id="UNRATE")
        short = make_series(ramp_values[6:], start=date(2000, 7, 1), series_id="U6RATE")
        results = run_lines(
            [
                LineInput("u6", short, short, SignalParams()),
                LineInput("u3", long, long, SignalParams()),
                LineInput("u3_vs_u6", long, short, SignalParams(time_period=12, preceding=True)),
            ],
            recession_map,
        )
        assert list(results) == ["u6", "u3", "u3_vs_u6"]
        assert len(results["u3"].points) == 24
        assert len(results["u6"].points) == 18
        assert results["u3"].signal_starts == (ONSET,)
        assert results["u3_vs_u6"].base_id == "UNRATE"
        assert results["u3_vs_u6"].relative_id == "U6RATE"
        assert results["u3_vs_u6"].params.preceding is True

    def test_matches_single_analysis(self, make_series, ramp_values, recession_map):
        series = make_series(ramp_values)
        results = run_lines([LineInput("only", series, series, SignalParams())], recession_map)
        assert results["only"] == run_analysis(series, series, recession_map)

    def test_duplicate_names_rejected(self, make_series, ramp_values, recession_map):
        series = make_series(ramp_values)
        line = LineInput("same", series, series, SignalParams())
        with pytest.raises(ValueError, match="Duplicate line name"):
            run_lines([line, line], recession_map)

    def test_alignment_failure_names_the_line(self, make_series, ramp_values, recession_map):
        base = make_series(ramp_values)
        relative = make_series(ramp_values, start=date(2010, 1, 1))
        with pytest.raises(SeriesAlignmentError, match="Line 'broken'"):
            run_lines(
                [
                    LineInput("fine", base, base, SignalParams()),
                    LineInput("broken", base, relative, SignalParams()),
                ],
                recession_map,
            )

    def test_empty_group(self, recession_map):
        assert run_lines([], recession_map) == {}

"""Tests for sahm_engine.reporting.formatters."""

from __future__ import annotations

from datetime import date

from sahm_engine.models.signal import ComputedPoint
from sahm_engine.pipeline.analysis import BatchRow, run_analysis
from sahm_engine.reporting.formatters import (
    MISSING,
    format_analysis,
    format_batch_table,
    format_group_table,
    format_signal_table,
    format_stats_summary,
    format_warnings,
)

RECESSION = {date(2001, 9, 1): 1, date(2001, 11, 1): 0}


def _accuracy_line(text: str) -> str:
    return next(line for line in text.splitlines() if "Accuracy:" in line)


def test_signal_table_marks_threshold() -> None:
    points = [
        ComputedPoint(date(2020, 1, 1), None),
        ComputedPoint(date(2020, 2, 1), 0.2),
        ComputedPoint(date(2020, 3, 1), 0.5),
    ]
    lines = format_signal_table(points, threshold=0.5).splitlines()
    assert len(lines) == 5
    assert MISSING in lines[2]
    assert not lines[3].endswith("*")
    assert lines[4].endswith(" *")
    assert "0.50" in lines[4]


def test_signal_table_limit() -> None:
    points = [ComputedPoint(date(2020, m, 1), 0.1) for m in range(1, 13)]
    lines = format_signal_table(points, limit=3).splitlines()
    assert len(lines) == 5
    assert "2020-10-01" in lines[2]


def test_stats_summary(make_series, ramp_values) -> None:
    series = make_series(ramp_values)
    stats = run_analysis(series, series, RECESSION).stats
    text = format_stats_summary(stats, title="TEST")
    assert _accuracy_line(text).endswith("100%")
    assert "-30 d" in text
    assert "+56 d" in text
    assert "2001-10-01" in text


def test_stats_summary_no_onsets(make_series) -> None:
    series = make_series([4.0] * 30)
    stats = run_analysis(series, series, RECESSION).stats
    text = format_stats_summary(stats)
    assert _accuracy_line(text).endswith(MISSING)
    assert "Onset dates" not in text


def test_warnings_empty() -> None:
    assert format_warnings(()) == ""
    assert format_warnings(("insufficient_data",)) == "  [WARN] insufficient_data"


def test_format_analysis_includes_warnings(make_series) -> None:
    series = make_series([4.0] * 5, series_id="SHORT")
    text = format_analysis(run_analysis(series, series, RECESSION))
    assert "SHORT vs SHORT" in text
    assert "[WARN] insufficient_data" in text


def test_batch_table(make_series, ramp_values) -> None:
    series = make_series(ramp_values)
    rows = [
        BatchRow("CAUR", result=run_analysis(series, series, RECESSION)),
        BatchRow("BAD", error="Series CSV file not found: BAD.csv"),
    ]
    lines = format_batch_table(rows).splitlines()
    assert "CAUR" in lines[2]
    assert "100%" in lines[2]
    assert "1.50" in lines[2]
    assert "[ERROR] Series CSV file not found" in lines[3]


def test_group_table_shows_pairs(make_series, ramp_values) -> None:
    u3 = make_series(ramp_values, series_id="UNRATE")
    u6 = make_series(ramp_values, series_id="U6RATE")
    results = {
        "unrate": run_analysis(u3, u3, RECESSION),
        "unrate_vs_u6": run_analysis(u3, u6, RECESSION),
    }
    lines = format_group_table(results).splitlines()
    assert lines[0].split()[0] == "Line"
    assert len(lines) == 4
    assert lines[2].split()[0] == "unrate"
    assert lines[2].endswith("  UNRATE")
    assert lines[3].endswith("  UNRATE/U6RATE")
    assert "1.50" in lines[2]

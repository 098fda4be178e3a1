"""
ASCII terminal formatters for CLI commands.

All formatters accept analysis results / record lists and return plain
multi-line strings suitable for ``typer.echo()``.

No third-party dependencies (no ``rich``, no ``colorama``).

Missing values render as ``--`` so a warm-up period or an undefined lead
time is visibly different from a zero.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from sahm_engine.evaluation.evaluator import AccuracyStats
from sahm_engine.models.signal import ComputedPoint
from sahm_engine.pipeline.analysis import AnalysisResult, BatchRow

MISSING = "--"


def _fmt_num(value: Optional[float], decimals: int = 2) -> str:
    if value is None:
        return MISSING
    return f"{value:.{decimals}f}"


def _fmt_days(value: Optional[int]) -> str:
    if value is None:
        return MISSING
    return f"{value:+d} d"


def format_stats_summary(stats: AccuracyStats, title: str = "") -> str:
    """Return the accuracy / lead-time block shown after ``compute``."""
    lines: list[str] = []
    if title:
        lines.append(f"  {title}")
        lines.append("  " + "-" * len(title))
    accuracy = MISSING if stats.accuracy is None else f"{stats.accuracy}%"
    lines.append(f"  Accuracy:             {accuracy}")
    lines.append(f"  Recession lead time:  {_fmt_days(stats.recession_lead_time)}")
    lines.append(f"  Committee lead time:  {_fmt_days(stats.committee_lead_time)}")
    lines.append(
        f"  Onsets: {stats.n_signal_starts}  "
        f"(matched {stats.n_matched}, unmatched {stats.n_unmatched}) | "
        f"recession starts: {stats.n_recession_starts}"
    )
    if stats.signal_starts:
        lines.append("  Onset dates:          " + ", ".join(d.isoformat() for d in stats.signal_starts))
    return "\n".join(lines)


def format_warnings(warnings: Sequence[str]) -> str:
    """One ``[WARN]`` line per result warning; empty string when none."""
    return "\n".join(f"  [WARN] {w}" for w in warnings)


def format_signal_table(
    points: Sequence[ComputedPoint],
    threshold: Optional[float] = None,
    limit: Optional[int] = None,
) -> str:
    """Tabulate computed points, most recent last.

    Args:
        points:    Computed signal.
        threshold: When given, rows at or above it are marked with ``*``.
        limit:     Show only the last ``limit`` points.
    """
    shown = list(points[-limit:]) if limit else list(points)
    header = f"  {'Date':<10}  {'Signal':>8}"
    lines = [header, "  " + "-" * (len(header) - 2)]
    for p in shown:
        flag = ""
        if threshold is not None and p.value is not None and p.value >= threshold:
            flag = " *"
        lines.append(f"  {p.date.isoformat():<10}  {_fmt_num(p.value):>8}{flag}")
    return "\n".join(lines)


def format_analysis(result: AnalysisResult, limit: Optional[int] = 12) -> str:
    """Full ``compute`` command output: header, recent signal, stats, warnings."""
    p = result.params
    title = (
        f"{result.base_id} vs {result.relative_id} "
        f"(k={p.k}, m={p.m}, time_period={p.time_period}, "
        f"threshold={p.threshold}, seasonal={p.use_seasonal}, "
        f"preceding={p.preceding}, natural_rate={p.natural_rate})"
    )
    parts = [
        format_stats_summary(result.stats, title=title),
        "",
        format_signal_table(result.points, threshold=p.threshold, limit=limit),
    ]
    warnings = format_warnings(result.warnings)
    if warnings:
        parts.extend(["", warnings])
    return "\n".join(parts)


def format_batch_table(rows: Sequence[BatchRow]) -> str:
    """One line per batch series with its headline statistics."""
    lines = _stats_table_header("Series")
    for row in rows:
        if row.result is None:
            lines.append(f"  {row.series_id:<16}  [ERROR] {row.error}")
        else:
            lines.append(_stats_table_row(row.series_id, row.result))
    return "\n".join(lines)


def format_group_table(results: Mapping[str, AnalysisResult]) -> str:
    """One line per group line, followed by its series pair."""
    lines = _stats_table_header("Line")
    for name, result in results.items():
        pair = result.base_id if result.base_id == result.relative_id else (
            f"{result.base_id}/{result.relative_id}"
        )
        lines.append(f"{_stats_table_row(name, result)}  {pair}")
    return "\n".join(lines)


def _stats_table_header(first: str) -> list[str]:
    header = f"  {first:<16}  {'Accuracy':>8}  {'Rec lead':>9}  {'Com lead':>9}  {'Latest':>7}"
    return [header, "  " + "-" * (len(header) - 2)]


def _stats_table_row(name: str, result: AnalysisResult) -> str:
    s = result.stats
    latest = result.latest
    accuracy = MISSING if s.accuracy is None else f"{s.accuracy}%"
    return (
        f"  {name:<16}  {accuracy:>8}  "
        f"{_fmt_days(s.recession_lead_time):>9}  "
        f"{_fmt_days(s.committee_lead_time):>9}  "
        f"{_fmt_num(latest.value if latest else None):>7}"
    )

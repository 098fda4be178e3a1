"""
Export helpers for computed signals and accuracy statistics.

All writers create parent directories, write to disk and return the written
``Path``. They accept generic ``list[dict]`` data; the ``*_to_record(s)``
adapters turn analysis results into those flat rows.

Column layouts:
  signal CSV      date, value                       (one row per month)
  batch signal    series_id, date, series_value, sahm_value
  batch stats     series_id, accuracy, recession_lead_time, committee_lead_time, ...
  group (wide)    date, <line 1>, <line 2>, ...         (one row per month of the
                                                        longest line)
"""

from __future__ import annotations

import csv
import json
from dataclasses import asdict
from pathlib import Path
from typing import Mapping, Optional, Sequence

import pyarrow as pa
import pyarrow.parquet as pq

from sahm_engine.evaluation.evaluator import AccuracyStats
from sahm_engine.models.series import TimeSeries
from sahm_engine.models.signal import ComputedPoint
from sahm_engine.pipeline.analysis import AnalysisResult, BatchRow

SIGNAL_COLUMNS = ["date", "value"]
BATCH_SIGNAL_COLUMNS = ["series_id", "date", "series_value", "sahm_value"]
STATS_COLUMNS = [
    "series_id", "accuracy", "recession_lead_time", "committee_lead_time",
    "n_signal_starts", "n_recession_starts", "n_unmatched", "warnings", "error",
]


# ── Record adapters ───────────────────────────────────────────────────────────


def points_to_records(points: Sequence[ComputedPoint], decimals: Optional[int] = None) -> list[dict]:
    """One ``{date, value}`` row per point; missing values stay ``None``."""
    return [
        {
            "date": p.date.isoformat(),
            "value": _round(p.value, decimals),
        }
        for p in points
    ]


def stats_to_record(stats: AccuracyStats, series_id: str = "") -> dict:
    """Flatten ``AccuracyStats`` into one export row."""
    return {
        "series_id":           series_id,
        "accuracy":            stats.accuracy,
        "recession_lead_time": stats.recession_lead_time,
        "committee_lead_time": stats.committee_lead_time,
        "n_signal_starts":     stats.n_signal_starts,
        "n_recession_starts":  stats.n_recession_starts,
        "n_unmatched":         stats.n_unmatched,
        "warnings":            ";".join(stats.warnings),
        "error":               None,
    }


def batch_stats_records(rows: Sequence[BatchRow]) -> list[dict]:
    """One stats row per batch series; failed series carry only the error."""
    records: list[dict] = []
    for row in rows:
        if row.result is None:
            records.append({col: None for col in STATS_COLUMNS} | {
                "series_id": row.series_id, "error": row.error,
            })
        else:
            records.append(stats_to_record(row.result.stats, row.series_id))
    return records


def batch_signal_records(
    rows: Sequence[BatchRow],
    series_by_id: dict[str, TimeSeries],
    decimals: int = 2,
) -> list[dict]:
    """Long-format time series rows (series value and signal per month)."""
    records: list[dict] = []
    for row in rows:
        if row.result is None:
            continue
        raw = {o.obs_date: o.value for o in series_by_id[row.series_id].observations}
        for p in row.result.points:
            records.append({
                "series_id":    row.series_id,
                "date":         p.date.isoformat(),
                "series_value": raw.get(p.date),
                "sahm_value":   _round(p.value, decimals),
            })
    return records


def wide_columns(results: Mapping[str, AnalysisResult]) -> list[str]:
    """``["date", *line names]`` for ``lines_to_wide_records`` output."""
    return ["date", *results]


def lines_to_wide_records(
    results: Mapping[str, AnalysisResult],
    decimals: Optional[int] = None,
) -> list[dict]:
    """Join several lines into one row per date, one column per line.

    Dates come from the line with the most points (the first such line on a
    tie). A line with no point on a date, or an undefined value there, gets
    ``None``.
    """
    if not results:
        return []
    longest = max(results.values(), key=lambda r: len(r.points))
    by_line = {
        name: {p.date: p.value for p in result.points}
        for name, result in results.items()
    }
    return [
        {"date": p.date.isoformat()} | {
            name: _round(values.get(p.date), decimals)
            for name, values in by_line.items()
        }
        for p in longest.points
    ]


def result_to_dict(result: AnalysisResult) -> dict:
    """Full JSON-serialisable view of one analysis."""
    return {
        "base_id":           result.base_id,
        "relative_id":       result.relative_id,
        "params":            result.params.model_dump(mode="json"),
        "stats":             asdict(result.stats),
        "recession_periods": [asdict(p) for p in result.recession_periods],
        "points":            points_to_records(result.points),
        "warnings":          list(result.warnings),
    }


# ── Writers ───────────────────────────────────────────────────────────────────


def export_to_csv(
    records: list[dict],
    path: Path,
    fieldnames: list[str] | None = None,
) -> Path:
    """Write ``records`` to a UTF-8 CSV file.

    ``None`` values are written as empty cells. If ``records`` is empty, a
    header-only file is written when ``fieldnames`` is given, otherwise an
    empty file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    cols = fieldnames or (list(records[0].keys()) if records else None)
    if cols is None:
        path.write_text("", encoding="utf-8")
        return path
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=cols, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(records)
    return path


def export_to_json(data: dict | list, path: Path) -> Path:
    """Write ``data`` to a pretty-printed JSON file (dates as ISO strings)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    return path


def export_to_parquet(
    records: list[dict],
    path: Path,
    fieldnames: list[str] | None = None,
) -> Path:
    """Write ``records`` to a Parquet file via pyarrow.

    Column order follows ``fieldnames`` (or the first record's keys).
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    cols = fieldnames or (list(records[0].keys()) if records else [])
    table = pa.Table.from_pylist(
        [{c: r.get(c) for c in cols} for r in records],
        schema=None if records else pa.schema([(c, pa.null()) for c in cols]),
    )
    pq.write_table(table, path)
    return path


def _round(value: Optional[float], decimals: Optional[int]) -> Optional[float]:
    if value is None or decimals is None:
        return value
    return round(value, decimals)

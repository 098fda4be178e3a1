"""
Sahm Rule engine — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Load and validate inputs (series CSVs, presets).
  4. Run the analysis.
  5. Report the result to stdout and optionally export it.

Install and run::

    pip install -e .
    sahm-engine --help
    sahm-engine validate-config
    sahm-engine list-presets
    sahm-engine compute UNRATE
    sahm-engine compute UNRATE U6RATE --k 3 --m 3 --time-period 12 --preceding
    sahm-engine compute --preset unrate --export data/outputs/unrate.csv
    sahm-engine batch CAUR TXUR NYUR --format parquet
    sahm-engine compute-group u_measures --export data/outputs/u_measures.csv
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any, Optional

import typer

app = typer.Typer(
    name="sahm-engine",
    help="Sahm Rule recession signal — compute, evaluate, and export.",
    add_completion=False,
)

EXPORT_SUFFIXES = (".csv", ".json", ".parquet")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from sahm_engine.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from sahm_engine.utils.logging import configure_logging
    configure_logging(config.logging, debug=config.debug)


def _fail(message: str) -> None:
    typer.echo(f"[ERROR] {message}", err=True)
    raise typer.Exit(code=1)


def _error_message(exc: Exception) -> str:
    if isinstance(exc, KeyError) and exc.args:
        return str(exc.args[0])
    return str(exc)


def _check_export_path(export: Optional[str]) -> Optional[Path]:
    if export is None:
        return None
    path = Path(export)
    if path.suffix.lower() not in EXPORT_SUFFIXES:
        _fail(
            f"Unsupported export file '{export}'. "
            f"Use one of: {', '.join(EXPORT_SUFFIXES)}."
        )
    return path


def _parse_date_option(value: Optional[str], name: str) -> Optional[date]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        _fail(f"Invalid {name} '{value}'. Expected YYYY-MM-DD.")
    return None


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    s = config.signal
    e = config.evaluation
    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Series dir:        {config.data.series_dir}")
    typer.echo(f"  Recession series:  {config.data.recession_series}")
    typer.echo(f"  Signal defaults:   k={s.k} m={s.m} time_period={s.time_period} threshold={s.threshold}")
    typer.echo(f"  Accuracy window:   {e.accuracy_window_days} days")
    typer.echo(f"  Committee window:  {e.committee_window_days} days ({len(e.committee_dates)} dates)")
    typer.echo(f"  Log level:         {config.logging.level}")
    typer.echo(f"  Debug mode:        {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("list-presets")
def list_presets(
    presets_path: Optional[str] = typer.Option(
        None, "--presets", help="Presets TOML file (default: data.presets_file)."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """List the named line presets and preset groups."""
    from sahm_engine.presets import load_groups, load_presets

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    path = Path(presets_path or config.data.presets_file)
    try:
        presets = load_presets(path)
        groups = load_groups(path)
    except (FileNotFoundError, ValueError) as exc:
        _fail(str(exc))

    if not presets:
        typer.echo("No presets defined.")
        return

    for name, p in sorted(presets.items()):
        typer.echo(
            f"  {name:<20} {p.base:>12} vs {p.relative:<12} "
            f"k={p.k} m={p.m} time_period={p.time_period} "
            f"threshold={p.alpha_threshold}  {p.label}"
        )

    if groups:
        typer.echo("")
        typer.echo("Groups:")
        for name, members in sorted(groups.items()):
            typer.echo(f"  {name:<20} {', '.join(members)}")


@app.command("compute")
def compute(
    base: Optional[str] = typer.Argument(None, help="Base series ID (CSV file stem)."),
    relative: Optional[str] = typer.Argument(None, help="Relative series ID (defaults to BASE)."),
    preset: Optional[str] = typer.Option(None, "--preset", "-p", help="Named preset to start from."),
    k: Optional[int] = typer.Option(None, "--k", help="Base moving-average window (months)."),
    m: Optional[int] = typer.Option(None, "--m", help="Relative moving-average window (months)."),
    time_period: Optional[int] = typer.Option(None, "--time-period", help="Rolling-minimum window (months)."),
    threshold: Optional[float] = typer.Option(None, "--threshold", help="Signal threshold."),
    natural_rate: Optional[float] = typer.Option(None, "--natural-rate", help="Lower bound for readings (0 = off)."),
    seasonal: Optional[bool] = typer.Option(None, "--seasonal/--raw", help="Use seasonally-adjusted values."),
    preceding: Optional[bool] = typer.Option(None, "--preceding/--no-preceding", help="Lag the relative average one month."),
    start_date: Optional[str] = typer.Option(None, "--start-date", help="Alignment floor (YYYY-MM-DD)."),
    series_dir: Optional[str] = typer.Option(None, "--series-dir", help="Directory of series CSVs."),
    recession: Optional[str] = typer.Option(None, "--recession", help="Recession indicator series ID."),
    export: Optional[str] = typer.Option(None, "--export", help="Write result to .csv, .json, or .parquet."),
    show_points: int = typer.Option(
        12, "--show-points", min=0, help="Number of recent points to print (0 = all)."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Compute the Sahm Rule signal for one line and score it."""
    from sahm_engine.config import SignalParams
    from sahm_engine.ingestion.series_csv import load_recession_map, load_series
    from sahm_engine.pipeline.analysis import run_analysis
    from sahm_engine.presets import get_preset
    from sahm_engine.reporting.formatters import format_analysis

    export_path = _check_export_path(export)
    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    params_base: dict[str, Any] = config.signal.model_dump()
    recession_id = config.data.recession_series
    if preset:
        try:
            line = get_preset(Path(config.data.presets_file), preset)
        except (FileNotFoundError, KeyError, ValueError) as exc:
            _fail(_error_message(exc))
        params_base = line.to_params().model_dump()
        base = base or line.base
        relative = relative or line.relative
        recession_id = line.recession

    if not base:
        _fail("Provide a BASE series ID or --preset.")
    relative = relative or base
    recession_id = recession or recession_id

    overrides = {
        "k": k, "m": m, "time_period": time_period, "threshold": threshold,
        "natural_rate": natural_rate, "use_seasonal": seasonal, "preceding": preceding,
        "start_date": _parse_date_option(start_date, "--start-date"),
    }
    try:
        params = SignalParams(**(params_base | {key: v for key, v in overrides.items() if v is not None}))
    except ValueError as exc:
        _fail(f"Invalid parameters: {exc}")

    directory = Path(series_dir or config.data.series_dir)
    try:
        base_series = load_series(directory, base)
        relative_series = base_series if relative == base else load_series(directory, relative)
        recession_map = load_recession_map(directory, recession_id)
        result = run_analysis(base_series, relative_series, recession_map, params, config.evaluation)
    except (FileNotFoundError, ValueError) as exc:
        _fail(str(exc))

    typer.echo(format_analysis(result, limit=show_points or None))

    if export_path:
        written = _export_result(result, export_path)
        typer.echo("")
        typer.echo(f"[OK] Exported to {written}")


@app.command("compute-group")
def compute_group(
    group: str = typer.Argument(..., help="Group name from the [groups] table of the presets file."),
    series_dir: Optional[str] = typer.Option(None, "--series-dir", help="Directory of series CSVs."),
    recession: Optional[str] = typer.Option(None, "--recession", help="Recession indicator series ID."),
    export: Optional[str] = typer.Option(
        None, "--export", help="Write one column per line to .csv, .json, or .parquet."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Compute every line of a preset group and export them side by side.

    The export has one row per month of the longest line and one column per
    line; a line with no value for a month is left empty.
    """
    from sahm_engine.ingestion.series_csv import load_recession_map, load_series
    from sahm_engine.pipeline.analysis import LineInput, run_lines
    from sahm_engine.presets import get_group
    from sahm_engine.reporting.export import (
        export_to_csv,
        export_to_json,
        export_to_parquet,
        lines_to_wide_records,
        wide_columns,
    )
    from sahm_engine.reporting.formatters import format_group_table

    export_path = _check_export_path(export)
    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        presets = get_group(Path(config.data.presets_file), group)
    except (FileNotFoundError, KeyError, ValueError) as exc:
        _fail(_error_message(exc))

    recession_ids = sorted({p.recession for p in presets})
    if recession is None and len(recession_ids) > 1:
        _fail(
            f"Lines of group '{group}' use different recession series "
            f"({', '.join(recession_ids)}); pass --recession."
        )
    recession_id = recession or recession_ids[0]

    directory = Path(series_dir or config.data.series_dir)
    try:
        series = {
            series_id: load_series(directory, series_id)
            for series_id in dict.fromkeys(s for p in presets for s in (p.base, p.relative))
        }
        recession_map = load_recession_map(directory, recession_id)
        results = run_lines(
            [LineInput(p.name, series[p.base], series[p.relative], p.to_params()) for p in presets],
            recession_map,
            config.evaluation,
        )
    except (FileNotFoundError, ValueError) as exc:
        _fail(str(exc))

    typer.echo(format_group_table(results))
    for name, result in results.items():
        if result.warnings:
            typer.echo(f"  [WARN] {name}: {', '.join(result.warnings)}")

    if export_path:
        records = lines_to_wide_records(results)
        suffix = export_path.suffix.lower()
        if suffix == ".json":
            written = export_to_json(records, export_path)
        elif suffix == ".parquet":
            written = export_to_parquet(records, export_path, wide_columns(results))
        else:
            written = export_to_csv(records, export_path, wide_columns(results))
        typer.echo("")
        typer.echo(f"[OK] Exported to {written}")

    typer.echo("")
    typer.echo(f"[OK] {len(results)} lines computed for group '{group}'.")


@app.command("batch")
def batch(
    series_ids: list[str] = typer.Argument(..., help="Series IDs; each is used as base and relative."),
    preset: Optional[str] = typer.Option(None, "--preset", "-p", help="Named preset for the parameters."),
    series_dir: Optional[str] = typer.Option(None, "--series-dir", help="Directory of series CSVs."),
    recession: Optional[str] = typer.Option(None, "--recession", help="Recession indicator series ID."),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", help="Directory for batch outputs."),
    fmt: str = typer.Option("csv", "--format", help="Output format: csv or parquet."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Compute and score many series, writing aggregated outputs.

    Writes ``sahm_signal.<fmt>`` (one row per series-month) and
    ``sahm_stats.<fmt>`` (one row per series) to the output directory.
    A series that fails to load or align is reported and skipped.
    """
    from sahm_engine.ingestion.series_csv import load_recession_map, load_series
    from sahm_engine.pipeline.analysis import BatchRow, run_batch
    from sahm_engine.presets import get_preset
    from sahm_engine.reporting.export import (
        BATCH_SIGNAL_COLUMNS,
        STATS_COLUMNS,
        batch_signal_records,
        batch_stats_records,
        export_to_csv,
        export_to_parquet,
    )
    from sahm_engine.reporting.formatters import format_batch_table

    if fmt not in ("csv", "parquet"):
        _fail(f"Unknown format '{fmt}'. Use csv or parquet.")

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    params = config.signal
    recession_id = config.data.recession_series
    if preset:
        try:
            line = get_preset(Path(config.data.presets_file), preset)
        except (FileNotFoundError, KeyError, ValueError) as exc:
            _fail(_error_message(exc))
        params = line.to_params()
        recession_id = line.recession
    recession_id = recession or recession_id

    directory = Path(series_dir or config.data.series_dir)
    try:
        recession_map = load_recession_map(directory, recession_id)
    except (FileNotFoundError, ValueError) as exc:
        _fail(str(exc))

    loaded = []
    load_failures: list[BatchRow] = []
    for series_id in series_ids:
        try:
            loaded.append(load_series(directory, series_id))
        except (FileNotFoundError, ValueError) as exc:
            load_failures.append(BatchRow(series_id=series_id, error=str(exc)))

    rows = run_batch(loaded, recession_map, params, config.evaluation) + load_failures
    typer.echo(format_batch_table(rows))

    out = Path(output_dir or config.data.output_dir)
    writer = export_to_parquet if fmt == "parquet" else export_to_csv
    signal_path = writer(
        batch_signal_records(rows, {s.series_id: s for s in loaded}),
        out / f"sahm_signal.{fmt}",
        BATCH_SIGNAL_COLUMNS,
    )
    stats_path = writer(batch_stats_records(rows), out / f"sahm_stats.{fmt}", STATS_COLUMNS)

    n_failed = sum(1 for r in rows if not r.ok)
    typer.echo("")
    typer.echo(f"  Signal rows: {signal_path}")
    typer.echo(f"  Stats rows:  {stats_path}")
    if n_failed:
        typer.echo(f"[WARN] {n_failed} of {len(rows)} series failed.")
    else:
        typer.echo(f"[OK] {len(rows)} series processed.")


def _export_result(result, path: Path) -> Path:
    from sahm_engine.reporting.export import (
        SIGNAL_COLUMNS,
        export_to_csv,
        export_to_json,
        export_to_parquet,
        points_to_records,
        result_to_dict,
    )

    suffix = path.suffix.lower()
    if suffix == ".json":
        return export_to_json(result_to_dict(result), path)
    if suffix == ".parquet":
        return export_to_parquet(points_to_records(result.points), path, SIGNAL_COLUMNS)
    if suffix != ".csv":
        raise ValueError(f"Unsupported export suffix: {path.suffix}")
    return export_to_csv(points_to_records(result.points), path, SIGNAL_COLUMNS)


if __name__ == "__main__":
    app()

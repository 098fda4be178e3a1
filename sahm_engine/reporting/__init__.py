"""
sahm_engine.reporting — Flattening, export, and terminal formatting of results.

Modules:
  export     — Flat record adapters plus CSV / JSON / Parquet writers.
  formatters — ASCII terminal formatters for Typer CLI commands.
"""

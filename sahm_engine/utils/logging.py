"""
Root-logger setup for the ``sahm-engine`` CLI.

Library modules only call ``logging.getLogger(__name__)``; the CLI calls
``configure_logging`` once per command, after the config is loaded and
before any series file is read.

What the engine logs, by level:

  DEBUG    alignment ranges, per-evaluation statistics, presets loaded
  INFO     CSV rows parsed, one summary line per analysis, batch totals
  WARNING  series shorter than the warm-up length, onsets averaged in as
           0-day offsets, header-only CSV files
  ERROR    a batch series that failed to load or align

``json_format = true`` in ``[logging]`` writes one object per line::

    {"ts": "2026-02-24T15:00:00Z", "level": "WARNING",
     "logger": "sahm_engine.evaluation.evaluator", "msg": "..."}

Fields passed through ``extra=`` are added at the top level.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sahm_engine.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        payload.update(
            (key, val) for key, val in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )
        return json.dumps(payload, default=str)


def configure_logging(config: "LoggingConfig", debug: bool = False) -> None:
    """Install stdout (and optional file) handlers on the root logger.

    Args:
        config: ``[logging]`` section.
        debug:  ``AppConfig.debug``; forces DEBUG regardless of ``config.level``.
    """
    level = logging.DEBUG if debug else getattr(logging, config.level.upper(), logging.INFO)
    formatter: logging.Formatter = (
        _JsonFormatter() if config.json_format
        else logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    # pyarrow is only used for Parquet output.
    logging.getLogger("pyarrow").setLevel(logging.WARNING)

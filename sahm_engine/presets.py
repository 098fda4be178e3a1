"""
Named line presets and preset groups.

A preset bundles the series choice and signal parameters for one chart line,
e.g. "U-3 unemployment, 3-month averages, 13-month minimum". A group is an
ordered list of presets that are computed together and exported side by side
(the U-1 .. U-6 measures, the race and ethnicity lines, the education lines).

Both live in ``config/presets.toml``: one table per preset, plus a single
``[groups]`` table::

    [unrate]
    label = "U-3 unemployment rate"
    base = "UNRATE"
    relative = "UNRATE"
    recession = "USREC"
    k = 3
    m = 3
    time_period = 13
    seasonal = false
    alpha_threshold = 0.5
    start_date = 1965-01-01

    [groups]
    u_measures = ["u1rate", "u2rate", "unrate", "u4rate", "u5rate", "u6rate"]

``groups`` is therefore not available as a preset name.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from sahm_engine.config import SignalParams, read_toml

logger = logging.getLogger(__name__)

GROUPS_TABLE = "groups"


class LinePreset(BaseModel):
    """One preconfigured Sahm Rule line."""

    model_config = ConfigDict(frozen=True)

    name: str
    label: str = ""
    base: str
    relative: str
    recession: str = "USREC"
    k: int = 3
    m: int = 3
    time_period: int = 13
    seasonal: bool = False
    alpha_threshold: float = 0.5
    natural_rate: float = 0.0
    preceding: bool = False
    start_date: Optional[date] = None

    def to_params(self) -> SignalParams:
        """Translate preset fields into ``SignalParams``."""
        return SignalParams(
            k=self.k,
            m=self.m,
            time_period=self.time_period,
            use_seasonal=self.seasonal,
            natural_rate=self.natural_rate,
            preceding=self.preceding,
            threshold=self.alpha_threshold,
            start_date=self.start_date,
        )


def load_presets(path: Path) -> dict[str, LinePreset]:
    """Load every preset table from a TOML file (the ``[groups]`` table excepted).

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If any preset fails validation (all failures are listed).
    """
    raw = _read_presets_file(path)

    presets: dict[str, LinePreset] = {}
    errors: list[str] = []
    for name, table in raw.items():
        if name == GROUPS_TABLE:
            continue
        if not isinstance(table, dict):
            errors.append(f"  {name}: expected a table, got {type(table).__name__}")
            continue
        try:
            presets[name] = LinePreset(name=name, **table)
        except ValidationError as exc:
            errors.append(f"  {name}: {exc}")

    if errors:
        raise ValueError(f"{len(errors)} preset(s) invalid in {Path(path).name}:\n" + "\n".join(errors))

    logger.debug("Loaded %d presets from %s", len(presets), path)
    return presets


def get_preset(path: Path, name: str) -> LinePreset:
    """Return one preset by name.

    Raises:
        KeyError: If no preset called ``name`` exists.
    """
    presets = load_presets(path)
    if name not in presets:
        raise KeyError(f"Unknown preset '{name}'. Available: {', '.join(sorted(presets))}")
    return presets[name]


def load_groups(path: Path) -> dict[str, list[str]]:
    """Read the ``[groups]`` table: group name → ordered preset names.

    Every member must name a preset in the same file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If a group is not a non-empty list of known preset names.
    """
    raw = _read_presets_file(path)
    table = raw.get(GROUPS_TABLE, {})
    if not isinstance(table, dict):
        raise ValueError(f"[{GROUPS_TABLE}] in {Path(path).name} must be a table.")

    known = {name for name, t in raw.items() if name != GROUPS_TABLE and isinstance(t, dict)}
    errors: list[str] = []
    groups: dict[str, list[str]] = {}
    for group, members in table.items():
        if not isinstance(members, list) or not members:
            errors.append(f"  {group}: expected a non-empty list of preset names")
            continue
        unknown = [m for m in members if not isinstance(m, str) or m not in known]
        if unknown:
            errors.append(f"  {group}: unknown preset(s) {', '.join(map(str, unknown))}")
            continue
        if len(set(members)) != len(members):
            errors.append(f"  {group}: lists a preset more than once")
            continue
        groups[group] = list(members)

    if errors:
        raise ValueError(f"{len(errors)} group(s) invalid in {Path(path).name}:\n" + "\n".join(errors))
    return groups


def get_group(path: Path, name: str) -> list[LinePreset]:
    """Return the presets of one group, in the order the group lists them.

    Raises:
        KeyError: If no group called ``name`` exists.
    """
    groups = load_groups(path)
    if name not in groups:
        raise KeyError(f"Unknown group '{name}'. Available: {', '.join(sorted(groups))}")
    presets = load_presets(path)
    return [presets[member] for member in groups[name]]


def _read_presets_file(path: Path) -> dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Presets file not found: {path}")
    return read_toml(path)

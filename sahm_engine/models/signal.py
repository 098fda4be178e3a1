"""
Computed signal types.

``ComputedPoint`` is one output of the signal pipeline; ``value`` is ``None``
during the warm-up period (before every moving window is populated) and
wherever an input reading was missing.

``Interval`` is one closed run of 1's in a binary series. ``end`` is the date
of the first 0 after the run, or ``None`` for a run still open at the end of
the input (only produced when explicitly requested).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class ComputedPoint:
    """One date of the computed Sahm Rule signal."""

    date: date
    value: Optional[float]


@dataclass(frozen=True)
class Interval:
    """A ``{start, end}`` run of a binary series."""

    start: date
    end: Optional[date]

    @property
    def is_open(self) -> bool:
        return self.end is None


@dataclass(frozen=True)
class RecessionPeriod:
    """A numbered recession interval, as shown on charts and exports.

    Attributes:
        period: Zero-based position in chronological order.
        start:  First month flagged 1.
        end:    First month flagged 0 afterwards (``None`` while ongoing).
    """

    period: int
    start: date
    end: Optional[date]

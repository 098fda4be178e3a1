"""
Input series models — monthly observations as loaded from source files.

``Observation`` carries both the raw reading and the seasonally-adjusted
reading; the signal pipeline picks one per run. Either may be ``None`` when
the source did not provide it (FRED writes ``.`` for missing values). NaN is
stored as ``None``; infinite readings are rejected.

``TimeSeries`` wraps an ordered list of observations and guarantees strictly
increasing, unique dates. Gaps are not detected; monthly, gapless input is
the loader's contract.

Both models are frozen (immutable) after construction.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class Observation(BaseModel):
    """One monthly reading.

    Attributes:
        obs_date: First day of the observation month (or whatever day the source uses).
        value: Raw (not seasonally adjusted) reading, or ``None``.
        seasonal_value: Seasonally-adjusted reading, or ``None``.
    """

    model_config = ConfigDict(frozen=True)

    obs_date: date
    value: Optional[float] = None
    seasonal_value: Optional[float] = None

    @field_validator("value", "seasonal_value")
    @classmethod
    def nan_to_missing(cls, v: Optional[float]) -> Optional[float]:
        if v is None or math.isnan(v):
            return None
        if math.isinf(v):
            raise ValueError(f"Reading must be finite, got {v}.")
        return v

    def select(self, use_seasonal: bool) -> Optional[float]:
        """Return the seasonally-adjusted or the raw value."""
        return self.seasonal_value if use_seasonal else self.value


class TimeSeries(BaseModel):
    """An ordered monthly series.

    Attributes:
        series_id: Source identifier, e.g. ``"UNRATE"``.
        observations: Observations in strictly ascending date order.
    """

    model_config = ConfigDict(frozen=True)

    series_id: str
    observations: list[Observation]

    @field_validator("observations")
    @classmethod
    def validate_ascending(cls, v: list[Observation]) -> list[Observation]:
        for prev, cur in zip(v, v[1:]):
            if cur.obs_date <= prev.obs_date:
                raise ValueError(
                    f"Observation dates must be strictly increasing: "
                    f"{cur.obs_date} follows {prev.obs_date}."
                )
        return v

    def __len__(self) -> int:
        return len(self.observations)

    @property
    def dates(self) -> list[date]:
        return [o.obs_date for o in self.observations]

    @property
    def first_date(self) -> Optional[date]:
        return self.observations[0].obs_date if self.observations else None

    @property
    def last_date(self) -> Optional[date]:
        return self.observations[-1].obs_date if self.observations else None

    def between(self, start: date, end: date) -> "TimeSeries":
        """Return a copy restricted to ``start <= date <= end``."""
        return TimeSeries(
            series_id=self.series_id,
            observations=[o for o in self.observations if start <= o.obs_date <= end],
        )

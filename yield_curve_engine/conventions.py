from __future__ import annotations

import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Dict

from .utils import DAY_COUNTS, yearfrac

COMPOUNDING_STYLES = ("annual", "continuous", "simple")


@dataclass(frozen=True)
class BasisConvention:
    """
    Day count, compounding and fixed-leg payment frequency of a currency.

    Rates and discount factors are converted with the compounding style:
    - annual:     DF = (1 + r)^(-t)
    - continuous: DF = exp(-r t)
    - simple:     DF = 1 / (1 + r t)
    The day count is metadata for downstream pricing; curve tenors are
    already year fractions.
    """
    day_count: str
    compounding: str
    payment_frequency: int

    def __post_init__(self):
        if self.day_count.upper().replace(" ", "") not in DAY_COUNTS:
            raise ValueError(f"Unsupported day count convention: {self.day_count}")
        if self.compounding not in COMPOUNDING_STYLES:
            raise ValueError(f"Unsupported compounding: {self.compounding}")
        if self.payment_frequency <= 0:
            raise ValueError("payment_frequency must be positive")

    def year_fraction(self, start: pd.Timestamp, end: pd.Timestamp) -> float:
        return yearfrac(start, end, self.day_count)

    def discount_factor(self, rate, tenor):
        r = np.asarray(rate, dtype=float)
        t = np.asarray(tenor, dtype=float)

        if self.compounding == "annual":
            out = np.power(1.0 + r, -t)
        elif self.compounding == "continuous":
            out = np.exp(-r * t)
        else:
            out = 1.0 / (1.0 + r * t)

        return float(out) if out.ndim == 0 else out

    def zero_rate(self, discount_factor, tenor):
        """Inverse of discount_factor; tenors must be strictly positive."""
        df = np.asarray(discount_factor, dtype=float)
        t = np.asarray(tenor, dtype=float)
        if np.any(t <= 0):
            raise ValueError("Zero rate requires strictly positive tenors.")
        if np.any(df <= 0):
            raise ValueError("Non-positive discount factor.")

        if self.compounding == "annual":
            out = np.power(df, -1.0 / t) - 1.0
        elif self.compounding == "continuous":
            out = -np.log(df) / t
        else:
            out = (1.0 / df - 1.0) / t

        return float(out) if out.ndim == 0 else out

    def forward_rate(self, df_start, df_end, period):
        """Forward rate over ``period`` years between two discount factors."""
        ratio = np.asarray(df_start, dtype=float) / np.asarray(df_end, dtype=float)
        dt = np.asarray(period, dtype=float)
        if np.any(dt <= 0):
            raise ValueError("Forward period must be positive")

        if self.compounding == "annual":
            out = np.power(ratio, 1.0 / dt) - 1.0
        elif self.compounding == "continuous":
            out = np.log(ratio) / dt
        else:
            out = (ratio - 1.0) / dt

        return float(out) if out.ndim == 0 else out


DEFAULT_CONVENTION = BasisConvention(day_count="ACT/360", compounding="annual", payment_frequency=1)

BASIS_CONVENTIONS: Dict[str, BasisConvention] = {
    "USD": BasisConvention("ACT/360", "annual", 1),
    "EUR": BasisConvention("30/360", "annual", 1),
    "GBP": BasisConvention("ACT/365F", "annual", 1),
    "CHF": BasisConvention("30/360", "annual", 1),
    "JPY": BasisConvention("ACT/365F", "annual", 2),
    "CAD": BasisConvention("ACT/365F", "annual", 2),
    "AUD": BasisConvention("ACT/365F", "annual", 4),
    "SEK": BasisConvention("30/360", "annual", 1),
    "NOK": BasisConvention("30/360", "annual", 1),
}


def get_basis_convention(currency: str) -> BasisConvention:
    """Convention for ``currency`` (case-insensitive), ACT/360 annual 1x/year if unmapped."""
    key = (currency or "").strip().upper()
    return BASIS_CONVENTIONS.get(key, DEFAULT_CONVENTION)

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from . import settings


class PointSource(str, Enum):
    SWAP = "swap"
    FUTURES = "futures"
    BOND = "bond"


# lower = higher precedence
SOURCE_PRIORITY = {
    PointSource.SWAP: 1,
    PointSource.BOND: 1,
    PointSource.FUTURES: 2,
}


@dataclass(frozen=True)
class BootstrapPoint:
    """
    One rate observation at a tenor.

    Swaps (and bonds) are calibration nodes the curve reproduces exactly.
    Futures are guides: their rate may be moved to keep discount factors
    non-increasing, in which case ``adjusted`` is set.
    """
    tenor: float
    rate: float
    source: PointSource
    priority: int
    adjusted: bool = False

    def __post_init__(self):
        if not (math.isfinite(self.tenor) and self.tenor > 0):
            raise ValueError(f"Tenor must be strictly positive, got {self.tenor}")
        if not math.isfinite(self.rate):
            raise ValueError(f"Rate must be finite, got {self.rate}")
        object.__setattr__(self, "source", PointSource(self.source))

    @property
    def is_calibration(self) -> bool:
        return self.source is not PointSource.FUTURES


def swap_point(tenor: float, rate: float) -> BootstrapPoint:
    return BootstrapPoint(float(tenor), float(rate), PointSource.SWAP, SOURCE_PRIORITY[PointSource.SWAP])


def futures_point(tenor: float, rate: float) -> BootstrapPoint:
    return BootstrapPoint(float(tenor), float(rate), PointSource.FUTURES, SOURCE_PRIORITY[PointSource.FUTURES])


def bond_point(tenor: float, rate: float) -> BootstrapPoint:
    return BootstrapPoint(float(tenor), float(rate), PointSource.BOND, SOURCE_PRIORITY[PointSource.BOND])


def dedupe_points(points: Iterable[BootstrapPoint], tol: float = settings.TENOR_TOLERANCE) -> List[BootstrapPoint]:
    """
    Drop repeated (source, tenor) observations, keeping the first one seen.
    Returned in ascending tenor order.
    """
    kept: List[BootstrapPoint] = []
    for p in points:
        if any(q.source is p.source and abs(q.tenor - p.tenor) <= tol for q in kept):
            continue
        kept.append(p)
    return sorted(kept, key=lambda p: (p.tenor, p.priority))


# ---------- Curve requests ----------

@dataclass(frozen=True)
class CurrencyConfig:
    currency: str
    name: str
    description: str
    default_futures_index: str
    default_irs_currency: str


CURRENCY_CONFIGS: Tuple[CurrencyConfig, ...] = (
    CurrencyConfig("USD", "US Dollar", "SOFR futures + USD IRS", "SOFR3M", "USD"),
    CurrencyConfig("EUR", "Euro", "Euribor futures + EUR IRS", "EURIBOR3M", "EUR"),
    CurrencyConfig("GBP", "British Pound", "SONIA futures + GBP IRS", "SONIA3M", "GBP"),
    CurrencyConfig("CHF", "Swiss Franc", "SARON futures + CHF IRS", "SARON3M", "CHF"),
    CurrencyConfig("JPY", "Japanese Yen", "TONA futures + JPY IRS", "TONA3M", "JPY"),
)


def currency_config(currency: str) -> Optional[CurrencyConfig]:
    key = (currency or "").strip().upper()
    return next((c for c in CURRENCY_CONFIGS if c.currency == key), None)


@dataclass(frozen=True)
class CurveConfig:
    """One curve construction request: currency, enabled families and their feeds."""
    curve_id: str
    currency: str
    futures_index: str
    irs_currency: str
    use_futures: bool = True
    use_irs: bool = True


def _new_curve_id() -> str:
    return f"curve_{uuid.uuid4().hex[:12]}"


def default_curve_config(currency: str = "USD") -> CurveConfig:
    cc = currency_config(currency)
    if cc is None:
        raise ValueError(f"No default feeds for currency {currency!r}")

    return CurveConfig(
        curve_id=_new_curve_id(),
        currency=cc.currency,
        futures_index=cc.default_futures_index,
        irs_currency=cc.default_irs_currency,
    )


def update_curve_config(config: CurveConfig, **changes) -> CurveConfig:
    """
    New config with ``changes`` applied; ``config`` itself is untouched.

    Switching to a currency with known defaults also switches both feeds,
    unless the caller sets them in the same call.
    """
    new_currency = changes.get("currency")
    if new_currency is not None:
        changes["currency"] = new_currency.strip().upper()
        cc = currency_config(changes["currency"])
        if cc is not None and cc.currency != config.currency:
            changes.setdefault("futures_index", cc.default_futures_index)
            changes.setdefault("irs_currency", cc.default_irs_currency)

    return replace(config, **changes)

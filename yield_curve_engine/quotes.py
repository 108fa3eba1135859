from __future__ import annotations

import logging
import math
import pandas as pd
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from . import settings
from .points import BootstrapPoint, CurveConfig, futures_point, swap_point
from .utils import ParseError, maturity_to_years, parse_price, price_to_rate

logger = logging.getLogger(__name__)

QuoteBatch = Union[pd.DataFrame, Iterable[Mapping], None]


def _as_frame(quotes: QuoteBatch, required: Sequence[str]) -> pd.DataFrame:
    if quotes is None:
        return pd.DataFrame(columns=list(required))

    frame = quotes if isinstance(quotes, pd.DataFrame) else pd.DataFrame(list(quotes))
    if frame.empty:
        return pd.DataFrame(columns=list(required))

    missing = [c for c in required if c not in frame.columns]
    if missing:
        raise ValueError(f"Quote batch is missing column(s) {missing}. Available columns: {list(frame.columns)}")
    return frame


def futures_points_from_quotes(quotes: QuoteBatch, as_of: Optional[pd.Timestamp] = None) -> List[BootstrapPoint]:
    """
    Futures quotes (columns ``maturity``, ``price``) -> guide points.

    Quotes that cannot be parsed are skipped. Implied rates outside
    settings.FUTURES_RATE_BOUNDS are treated as bad ticks and dropped.
    """
    frame = _as_frame(quotes, ("maturity", "price"))
    lo, hi = settings.FUTURES_RATE_BOUNDS

    points: List[BootstrapPoint] = []
    for _, row in frame.iterrows():
        try:
            price = parse_price(row["price"])
            tenor = maturity_to_years(row["maturity"], as_of)
        except ParseError as exc:
            logger.warning("Skipping futures quote %r: %s", row["maturity"], exc)
            continue

        rate = price_to_rate(price)
        if tenor > 0 and lo < rate < hi:
            points.append(futures_point(tenor, rate))
        else:
            logger.debug("Filtered futures quote %r: tenor=%.4f rate=%.6f", row["maturity"], tenor, rate)

    return points


def swap_points_from_quotes(quotes: QuoteBatch) -> List[BootstrapPoint]:
    """IRS quotes (columns ``tenor`` in years, ``rate_pct`` in percent) -> calibration points."""
    frame = _as_frame(quotes, ("tenor", "rate_pct"))
    lo, hi = settings.SWAP_RATE_PCT_BOUNDS

    points: List[BootstrapPoint] = []
    for _, row in frame.iterrows():
        try:
            tenor = float(row["tenor"])
            rate_pct = float(row["rate_pct"])
        except (TypeError, ValueError):
            logger.warning("Skipping swap quote with non-numeric values: tenor=%r rate=%r", row["tenor"], row["rate_pct"])
            continue

        if not (math.isfinite(tenor) and math.isfinite(rate_pct)):
            logger.warning("Skipping swap quote with missing values: tenor=%r rate=%r", row["tenor"], row["rate_pct"])
            continue

        if tenor > 0 and lo < rate_pct < hi:
            points.append(swap_point(tenor, rate_pct / 100.0))
        else:
            logger.debug("Filtered swap quote: tenor=%s rate=%s%%", tenor, rate_pct)

    return points


def curve_points(
    config: CurveConfig,
    futures_quotes: QuoteBatch,
    swap_quotes: QuoteBatch,
    as_of: Optional[pd.Timestamp] = None,
) -> Tuple[List[BootstrapPoint], List[BootstrapPoint]]:
    """(swap_points, futures_points) for the instrument families enabled on ``config``."""
    swaps = swap_points_from_quotes(swap_quotes) if config.use_irs else []
    futures = futures_points_from_quotes(futures_quotes, as_of) if config.use_futures else []
    return swaps, futures

from __future__ import annotations

import logging
import numpy as np
import pandas as pd
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from . import settings
from .conventions import BasisConvention, get_basis_convention
from .nelson_siegel import NelsonSiegelParameters
from .points import BootstrapPoint, CurveConfig, PointSource, dedupe_points
from .quotes import curve_points
from .strategies import UNCORRECTED_METHODS, BootstrapMethod, CurveFit, CurveNodes, fit_curve

logger = logging.getLogger(__name__)

MethodLike = Union[str, BootstrapMethod]


@dataclass(frozen=True)
class DiscountFactorPoint:
    tenor: float
    discount_factor: float
    zero_rate: float
    forward_rate: float


@dataclass(frozen=True)
class BootstrapResult:
    """
    Output of one (curve, method) bootstrap.

    - discount_factors: ascending grid starting at tenor 0 (DF = 1); empty
      when fewer than two usable points were supplied.
    - parameters: fitted Nelson-Siegel parameters, None for other methods.
    - points: node set after merge and guide adjustment.
    """
    method: BootstrapMethod
    currency: str
    discount_factors: Tuple[DiscountFactorPoint, ...]
    basis_convention: BasisConvention
    parameters: Optional[NelsonSiegelParameters] = None
    points: Tuple[BootstrapPoint, ...] = ()

    @property
    def is_empty(self) -> bool:
        return len(self.discount_factors) == 0

    @property
    def tenors(self) -> np.ndarray:
        return np.array([p.tenor for p in self.discount_factors], dtype=float)

    @property
    def dfs(self) -> np.ndarray:
        return np.array([p.discount_factor for p in self.discount_factors], dtype=float)


def _adjust_guides(merged: Sequence[BootstrapPoint], convention: BasisConvention) -> List[BootstrapPoint]:
    """
    Clamp each futures point's discount factor between the previous node's
    (DF(0) = 1 before the first node) and the next calibration node's.
    Calibration points pass through untouched.
    """
    out: List[BootstrapPoint] = []
    upper = 1.0

    for i, p in enumerate(merged):
        df = convention.discount_factor(p.rate, p.tenor)

        if p.source is PointSource.FUTURES:
            nxt = next((q for q in merged[i + 1:] if q.is_calibration), None)
            lower = convention.discount_factor(nxt.rate, nxt.tenor) if nxt is not None else 0.0
            lower = min(lower, upper)

            clamped = min(max(df, lower), upper)
            if not np.isclose(clamped, df, rtol=0.0, atol=1e-15):
                rate = convention.zero_rate(clamped, p.tenor)
                logger.info(
                    "Adjusted futures guide at %.4fY from %.6f to %.6f to keep discount factors non-increasing",
                    p.tenor,
                    p.rate,
                    rate,
                )
                p = replace(p, rate=float(rate), adjusted=True)
                df = clamped

        out.append(p)
        upper = df

    return out


def merge_points(
    swap_points: Iterable[BootstrapPoint],
    futures_points: Iterable[BootstrapPoint],
    convention: BasisConvention,
) -> List[BootstrapPoint]:
    """
    Single ascending node set: swaps kept as calibration nodes, futures on a
    swap tenor dropped, remaining futures adjusted where they would make
    discount factors increase.
    """
    swaps = dedupe_points(swap_points)
    futures = dedupe_points(futures_points)

    kept = [f for f in futures if not any(abs(f.tenor - s.tenor) <= settings.TENOR_TOLERANCE for s in swaps)]
    if len(kept) < len(futures):
        logger.debug("Dropped %s futures point(s) sharing a swap tenor", len(futures) - len(kept))

    merged = sorted(swaps + kept, key=lambda p: (p.tenor, p.priority))
    return _adjust_guides(merged, convention)


def _neighbour_line(points: Sequence[BootstrapPoint], i: int, convention: BasisConvention) -> float:
    """-log DF at points[i] on the straight line between its neighbours (origin before the first)."""
    t = points[i].tenor
    nxt = points[i + 1]
    y1 = -np.log(convention.discount_factor(nxt.rate, nxt.tenor))
    if i == 0:
        t0, y0 = 0.0, 0.0
    else:
        prv = points[i - 1]
        t0, y0 = prv.tenor, -np.log(convention.discount_factor(prv.rate, prv.tenor))
    return y0 + (y1 - y0) * (t - t0) / (nxt.tenor - t0)


def _settle_guides(
    points: List[BootstrapPoint],
    method: BootstrapMethod,
    convention: BasisConvention,
) -> List[BootstrapPoint]:
    """
    Node discount factors can be non-increasing while the curve the method
    builds between them still rises (zero-rate interpolation across a steep
    inversion). Futures guides near a rise are pulled toward the log-linear
    line through their neighbours, pass by pass, until the raw curve stops
    rising. Calibration points never move.
    """
    if method in UNCORRECTED_METHODS or all(p.is_calibration for p in points):
        return points

    settled = list(points)
    for _ in range(settings.GUIDE_MAX_PASSES):
        fit = fit_curve(method, CurveNodes.from_points(settled, convention), monotone=False)
        rising = np.flatnonzero(np.diff(fit.discount_factors) > settings.MONOTONE_TOLERANCE)
        if rising.size == 0:
            break

        starts, ends = fit.tenors[rising], fit.tenors[rising + 1]
        moved = False
        for i, p in enumerate(settled):
            if p.is_calibration or i + 1 == len(settled):
                continue

            # a guide shapes the curve out to its second neighbour on each side
            lo = settled[i - 2].tenor if i >= 2 else 0.0
            hi = settled[min(i + 2, len(settled) - 1)].tenor
            if not np.any((starts < hi) & (ends > lo)):
                continue

            y = -np.log(convention.discount_factor(p.rate, p.tenor))
            target = _neighbour_line(settled, i, convention)
            if abs(target - y) <= settings.MONOTONE_TOLERANCE:
                continue

            y += settings.GUIDE_BLEND * (target - y)
            settled[i] = replace(p, rate=float(convention.zero_rate(np.exp(-y), p.tenor)), adjusted=True)
            moved = True

        if not moved:
            logger.debug("%s curve still rises with no futures guide left to move", method.value)
            break

    for before, after in zip(points, settled):
        if after.rate != before.rate:
            logger.info(
                "Adjusted futures guide at %.4fY from %.6f to %.6f to keep the %s curve non-increasing",
                after.tenor,
                before.rate,
                after.rate,
                method.value,
            )
    return settled


def _assemble(fit: CurveFit, convention: BasisConvention) -> Tuple[DiscountFactorPoint, ...]:
    t = fit.tenors
    dfs = fit.discount_factors

    zero = convention.zero_rate(dfs[1:], t[1:])
    fwd = convention.forward_rate(dfs[:-1], dfs[1:], np.diff(t))

    zero = np.concatenate(([zero[0]], zero))
    fwd = np.concatenate(([fwd[0]], fwd))

    return tuple(
        DiscountFactorPoint(float(ti), float(di), float(zi), float(fi))
        for ti, di, zi, fi in zip(t, dfs, zero, fwd)
    )


def _run(
    points: List[BootstrapPoint],
    method: BootstrapMethod,
    currency: str,
    convention: BasisConvention,
) -> BootstrapResult:
    if len(points) < 2:
        logger.info("Insufficient data for %s %s curve: %s usable point(s)", currency, method.value, len(points))
        return BootstrapResult(method, currency, (), convention, None, tuple(points))

    points = _settle_guides(points, method, convention)
    nodes = CurveNodes.from_points(points, convention)
    fit = fit_curve(method, nodes)
    logger.debug("Bootstrapped %s curve with %s: %s nodes, %s grid points", currency, method.value, len(points), len(fit.tenors))

    return BootstrapResult(
        method=method,
        currency=currency,
        discount_factors=_assemble(fit, convention),
        basis_convention=convention,
        parameters=fit.parameters,
        points=tuple(points),
    )


def bootstrap(
    swap_points: Iterable[BootstrapPoint],
    futures_points: Iterable[BootstrapPoint],
    method: MethodLike,
    currency: str,
) -> BootstrapResult:
    """
    Build a discount curve from swap (calibration) and futures (guide) points.

    Returns
    -------
    BootstrapResult
        Empty ``discount_factors`` when fewer than two points survive the merge.
    """
    method = BootstrapMethod.parse(method)
    currency = (currency or "").strip().upper()
    convention = get_basis_convention(currency)

    points = merge_points(list(swap_points), list(futures_points), convention)
    return _run(points, method, currency, convention)


def bootstrap_bonds(bond_points: Iterable[BootstrapPoint], method: MethodLike, currency: str) -> BootstrapResult:
    """Government bond curve: every bond yield is a calibration node."""
    method = BootstrapMethod.parse(method)
    currency = (currency or "").strip().upper()
    convention = get_basis_convention(currency)

    return _run(dedupe_points(bond_points), method, currency, convention)


def bootstrap_methods(
    swap_points: Iterable[BootstrapPoint],
    futures_points: Iterable[BootstrapPoint],
    methods: Iterable[MethodLike],
    currency: str,
) -> List[BootstrapResult]:
    """One result per method for side-by-side comparison; [] when there are no points at all."""
    swaps = list(swap_points)
    futures = list(futures_points)
    if not swaps and not futures:
        return []
    return [bootstrap(swaps, futures, m, currency) for m in methods]


def bootstrap_curve(
    config: CurveConfig,
    futures_quotes,
    swap_quotes,
    methods: Iterable[MethodLike],
    as_of: Optional[pd.Timestamp] = None,
) -> List[BootstrapResult]:
    """Run a curve request end-to-end from raw quote batches."""
    swaps, futures = curve_points(config, futures_quotes, swap_quotes, as_of=as_of)
    return bootstrap_methods(swaps, futures, methods, config.currency)


def curve_qc_report(result: BootstrapResult) -> pd.DataFrame:
    rows = pd.DataFrame(
        {
            "tenor": [p.tenor for p in result.discount_factors],
            "df": [p.discount_factor for p in result.discount_factors],
            "zero": [p.zero_rate for p in result.discount_factors],
            "forward": [p.forward_rate for p in result.discount_factors],
        },
        dtype=float,
    )
    dfs = rows["df"].to_numpy()

    rows["df_positive"] = dfs > 0
    rows["df_monotone"] = np.r_[True, np.diff(dfs) <= 1e-12] if len(dfs) else np.array([], dtype=bool)
    rows["is_node"] = rows["tenor"].isin([p.tenor for p in result.points])
    return rows

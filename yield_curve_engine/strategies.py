from __future__ import annotations

import logging
import numpy as np
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Optional, Sequence, Union

from scipy.interpolate import CubicSpline

from . import settings
from .conventions import BasisConvention
from .monotone_convex import MonotoneConvex
from .nelson_siegel import NelsonSiegelParameters, fit_nelson_siegel, ns_zero_rate
from .points import BootstrapPoint, PointSource

logger = logging.getLogger(__name__)


class BootstrapMethod(str, Enum):
    LINEAR = "linear"
    CUBIC_SPLINE = "cubic_spline"
    NELSON_SIEGEL = "nelson_siegel"
    BLOOMBERG = "bloomberg"
    QUANTLIB_LOG_LINEAR = "quantlib_log_linear"
    QUANTLIB_LOG_CUBIC = "quantlib_log_cubic"
    QUANTLIB_LINEAR_FORWARD = "quantlib_linear_forward"
    QUANTLIB_MONOTONIC_CONVEX = "quantlib_monotonic_convex"

    @classmethod
    def parse(cls, value: Union[str, "BootstrapMethod"]) -> "BootstrapMethod":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for m in cls:
            if m.value == key:
                return m
        raise ValueError(f"Unknown bootstrap method: {value}. Available: {', '.join(m.value for m in cls)}")


@dataclass(frozen=True)
class MethodInfo:
    name: str
    description: str
    category: str


METHOD_CATALOG: Dict[BootstrapMethod, MethodInfo] = {
    BootstrapMethod.LINEAR: MethodInfo("Simple/Linear", "Linear interpolation between points", "standard"),
    BootstrapMethod.CUBIC_SPLINE: MethodInfo("Cubic Spline", "Natural cubic spline interpolation", "standard"),
    BootstrapMethod.NELSON_SIEGEL: MethodInfo(
        "Nelson-Siegel", "4-parameter parametric model (beta0, beta1, beta2, lambda)", "standard"
    ),
    BootstrapMethod.BLOOMBERG: MethodInfo(
        "Bloomberg", "Log-DF interpolation + forward smoothing + monotonicity", "bloomberg"
    ),
    BootstrapMethod.QUANTLIB_LOG_LINEAR: MethodInfo(
        "QuantLib Log-Linear", "PiecewiseLogLinearDiscount - Linear on log(DF)", "quantlib"
    ),
    BootstrapMethod.QUANTLIB_LOG_CUBIC: MethodInfo(
        "QuantLib Log-Cubic", "PiecewiseLogCubicDiscount - Cubic spline on log(DF)", "quantlib"
    ),
    BootstrapMethod.QUANTLIB_LINEAR_FORWARD: MethodInfo(
        "QuantLib Linear Forward", "PiecewiseLinearForward - Linear on forwards", "quantlib"
    ),
    BootstrapMethod.QUANTLIB_MONOTONIC_CONVEX: MethodInfo(
        "QuantLib Monotonic Convex", "Hagan-West monotonic convex - Preserves forward monotonicity", "quantlib"
    ),
}


@dataclass(frozen=True)
class CurveNodes:
    """
    Finalised node set handed to a strategy: strictly ascending tenors,
    node zero rates in the convention's compounding, fit weights.
    """
    tenors: np.ndarray
    rates: np.ndarray
    weights: np.ndarray
    convention: BasisConvention

    @classmethod
    def from_points(cls, points: Sequence[BootstrapPoint], convention: BasisConvention) -> "CurveNodes":
        if len(points) < 2:
            raise ValueError("Need at least 2 points to build a curve")

        tenors = np.array([p.tenor for p in points], dtype=float)
        if np.any(np.diff(tenors) <= 0):
            raise ValueError("Node tenors must be strictly increasing (duplicates must be merged first)")

        rates = np.array([p.rate for p in points], dtype=float)
        weights = np.array(
            [settings.NS_FUTURES_WEIGHT if p.source is PointSource.FUTURES else settings.NS_SWAP_WEIGHT for p in points],
            dtype=float,
        )
        return cls(tenors, rates, weights, convention)

    @property
    def discount_factors(self) -> np.ndarray:
        return self.convention.discount_factor(self.rates, self.tenors)

    def knots(self):
        """(tenors, -log DF) with the anchor DF(0) = 1 prepended."""
        t = np.concatenate(([0.0], self.tenors))
        y = np.concatenate(([0.0], -np.log(self.discount_factors)))
        return t, y


@dataclass(frozen=True)
class CurveFit:
    tenors: np.ndarray
    discount_factors: np.ndarray
    parameters: Optional[NelsonSiegelParameters] = None


def build_grid(node_tenors, step: float = settings.GRID_STEP) -> np.ndarray:
    """0, every node tenor, and a regular grid up to the last node."""
    nodes = np.asarray(node_tenors, dtype=float)
    regular = np.arange(step, nodes[-1], step)
    if regular.size:
        gap = np.min(np.abs(regular[:, None] - nodes[None, :]), axis=1)
        regular = regular[gap > settings.TENOR_TOLERANCE]
    return np.unique(np.concatenate(([0.0], regular, nodes)))


def _from_zero_rates(nodes: CurveNodes, grid: np.ndarray, zero_rates: np.ndarray) -> np.ndarray:
    dfs = nodes.convention.discount_factor(zero_rates, grid)
    dfs[0] = 1.0
    return dfs


# ---------- Zero-rate interpolation ----------

def fit_linear(nodes: CurveNodes) -> CurveFit:
    grid = build_grid(nodes.tenors)
    zr = np.interp(grid, nodes.tenors, nodes.rates)
    return CurveFit(grid, _from_zero_rates(nodes, grid, zr))


def fit_cubic_spline(nodes: CurveNodes) -> CurveFit:
    grid = build_grid(nodes.tenors)
    if nodes.tenors.size < 3:
        # a natural spline through two points is the straight line
        return fit_linear(nodes)

    spline = CubicSpline(nodes.tenors, nodes.rates, bc_type="natural")
    zr = spline(np.clip(grid, nodes.tenors[0], nodes.tenors[-1]))
    return CurveFit(grid, _from_zero_rates(nodes, grid, zr))


def fit_nelson_siegel_curve(nodes: CurveNodes) -> CurveFit:
    grid = build_grid(nodes.tenors)
    params = fit_nelson_siegel(nodes.tenors, nodes.rates, nodes.weights)
    zr = ns_zero_rate(grid, params.beta0, params.beta1, params.beta2, params.lambda_)
    return CurveFit(grid, _from_zero_rates(nodes, grid, zr), params)


# ---------- Log discount factor interpolation ----------

def _smooth_forwards(fwd: np.ndarray) -> np.ndarray:
    """Adjacent-segment averaging with weights 1/4, 1/2, 1/4; end segments kept."""
    out = fwd.copy()
    if fwd.size >= 3:
        out[1:-1] = 0.25 * fwd[:-2] + 0.5 * fwd[1:-1] + 0.25 * fwd[2:]
    return out


def fit_bloomberg(nodes: CurveNodes) -> CurveFit:
    """
    Log-DF linear interpolation, then:
    1. forward smoothing across adjacent grid segments, shifted per node
       segment so every node keeps its discount factor;
    2. negative forwards clamped to zero;
    3. discount factors forced non-increasing.
    """
    grid = build_grid(nodes.tenors)
    knot_t, knot_y = nodes.knots()
    y = np.interp(grid, knot_t, knot_y)

    dt = np.diff(grid)
    smoothed = _smooth_forwards(np.diff(y) / dt)

    idx = np.searchsorted(grid, knot_t)
    for a, b in zip(idx[:-1], idx[1:]):
        seg = slice(a, b)
        target = y[b] - y[a]
        smoothed[seg] += (target - np.sum(smoothed[seg] * dt[seg])) / (grid[b] - grid[a])

    clamped = np.maximum(smoothed, 0.0)
    if np.any(smoothed < 0):
        logger.debug("Bloomberg: clamped %s negative forward segment(s) to zero", int(np.sum(smoothed < 0)))

    y_smooth = np.concatenate(([0.0], np.cumsum(clamped * dt)))
    dfs = np.minimum.accumulate(np.exp(-y_smooth))
    return CurveFit(grid, dfs)


def fit_log_linear(nodes: CurveNodes) -> CurveFit:
    grid = build_grid(nodes.tenors)
    knot_t, knot_y = nodes.knots()
    return CurveFit(grid, np.exp(-np.interp(grid, knot_t, knot_y)))


def fit_log_cubic(nodes: CurveNodes) -> CurveFit:
    """Natural cubic spline on log DF. Overshoot between nodes is left as is."""
    grid = build_grid(nodes.tenors)
    knot_t, knot_y = nodes.knots()
    spline = CubicSpline(knot_t, knot_y, bc_type="natural")
    return CurveFit(grid, np.exp(-spline(grid)))


# ---------- Instantaneous forward interpolation ----------

def _refine(grid: np.ndarray, substeps: int) -> np.ndarray:
    pieces = [np.linspace(a, b, substeps, endpoint=False) for a, b in zip(grid[:-1], grid[1:])]
    return np.concatenate(pieces + [grid[-1:]])


def fit_linear_forward(nodes: CurveNodes) -> CurveFit:
    """
    Each node carries the discrete forward of the segment ending there
    (the first segment's forward also anchors tenor 0); the instantaneous
    forward is linear between nodes and discount factors are the
    cumulative product of exp(-f dt) over sub-intervals.
    """
    grid = build_grid(nodes.tenors)
    knot_t, knot_y = nodes.knots()
    discrete = np.diff(knot_y) / np.diff(knot_t)
    node_fwd = np.concatenate(([discrete[0]], discrete))

    substeps = settings.FORWARD_SUBSTEPS
    fine = _refine(grid, substeps)
    f = np.interp(fine, knot_t, node_fwd)
    growth = np.exp(-0.5 * (f[:-1] + f[1:]) * np.diff(fine))
    dfs_fine = np.concatenate(([1.0], np.cumprod(growth)))

    return CurveFit(grid, dfs_fine[::substeps])


def fit_monotonic_convex(nodes: CurveNodes) -> CurveFit:
    grid = build_grid(nodes.tenors)
    knot_t, knot_y = nodes.knots()
    mc = MonotoneConvex.from_knots(knot_t, knot_y)

    dfs = np.exp(-mc.log_discount(grid))
    dfs[0] = 1.0
    return CurveFit(grid, np.minimum.accumulate(dfs))


STRATEGIES: Dict[BootstrapMethod, Callable[[CurveNodes], CurveFit]] = {
    BootstrapMethod.LINEAR: fit_linear,
    BootstrapMethod.CUBIC_SPLINE: fit_cubic_spline,
    BootstrapMethod.NELSON_SIEGEL: fit_nelson_siegel_curve,
    BootstrapMethod.BLOOMBERG: fit_bloomberg,
    BootstrapMethod.QUANTLIB_LOG_LINEAR: fit_log_linear,
    BootstrapMethod.QUANTLIB_LOG_CUBIC: fit_log_cubic,
    BootstrapMethod.QUANTLIB_LINEAR_FORWARD: fit_linear_forward,
    BootstrapMethod.QUANTLIB_MONOTONIC_CONVEX: fit_monotonic_convex,
}


# log-cubic is reported as built, overshoot included
UNCORRECTED_METHODS = frozenset({BootstrapMethod.QUANTLIB_LOG_CUBIC})


def _non_increasing(fit: CurveFit, method: BootstrapMethod) -> CurveFit:
    dfs = np.minimum.accumulate(fit.discount_factors)
    rises = int(np.sum(dfs < fit.discount_factors))
    if rises:
        logger.debug("%s: flattened %s rising grid point(s)", method.value, rises)
    return replace(fit, discount_factors=dfs)


def fit_curve(method: Union[str, BootstrapMethod], nodes: CurveNodes, monotone: bool = True) -> CurveFit:
    """
    Run the strategy for ``method``. With ``monotone`` (the default) every
    method except log-cubic gets a final pass holding discount factors
    non-increasing; ``monotone=False`` returns the raw construction.
    """
    method = BootstrapMethod.parse(method)
    fit = STRATEGIES[method](nodes)
    if monotone and method not in UNCORRECTED_METHODS:
        fit = _non_increasing(fit, method)
    return fit

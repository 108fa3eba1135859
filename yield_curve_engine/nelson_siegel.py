from __future__ import annotations

import logging
import numpy as np
from dataclasses import dataclass
from typing import Optional

from scipy.optimize import least_squares

from . import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NelsonSiegelParameters:
    """
    r(t) = beta0 + beta1 * h(t) + beta2 * (h(t) - exp(-t/lambda)),
    h(t) = (1 - exp(-t/lambda)) / (t/lambda)

    beta0 level, beta1 slope, beta2 curvature, lambda_ decay (years).
    ``converged`` is False when the fit fell back to a flat curve.
    """
    beta0: float
    beta1: float
    beta2: float
    lambda_: float
    converged: bool = True


def ns_zero_rate(tenors, beta0: float, beta1: float, beta2: float, lam: float) -> np.ndarray:
    t = np.asarray(tenors, dtype=float)
    x = t / lam
    small = x < 1e-10
    safe_x = np.where(small, 1.0, x)

    decay = np.exp(-x)
    # h -> 1 as t -> 0
    h = np.where(small, 1.0, (1.0 - decay) / safe_x)
    return beta0 + beta1 * h + beta2 * (h - decay)


def flat_parameters(rates) -> NelsonSiegelParameters:
    return NelsonSiegelParameters(
        beta0=float(np.mean(rates)),
        beta1=0.0,
        beta2=0.0,
        lambda_=settings.NS_INITIAL_LAMBDA,
        converged=False,
    )


def fit_nelson_siegel(tenors, rates, weights: Optional[np.ndarray] = None) -> NelsonSiegelParameters:
    """
    Weighted nonlinear least squares on zero rates.

    The solver runs under a fixed evaluation budget; when it does not
    converge (or fails outright) the flat curve at the mean observed rate
    is returned with ``converged=False``.
    """
    t = np.asarray(tenors, dtype=float)
    r = np.asarray(rates, dtype=float)
    w = np.ones_like(r) if weights is None else np.asarray(weights, dtype=float)
    sqrt_w = np.sqrt(w)

    lam_lo, lam_hi = settings.NS_LAMBDA_BOUNDS
    x0 = np.array([r[-1], r[0] - r[-1], 0.0, np.clip(settings.NS_INITIAL_LAMBDA, lam_lo, lam_hi)])

    def residuals(x: np.ndarray) -> np.ndarray:
        return sqrt_w * (ns_zero_rate(t, x[0], x[1], x[2], x[3]) - r)

    try:
        res = least_squares(
            residuals,
            x0,
            bounds=([-np.inf, -np.inf, -np.inf, lam_lo], [np.inf, np.inf, np.inf, lam_hi]),
            method="trf",
            max_nfev=settings.NS_MAX_EVALUATIONS,
            ftol=settings.NS_FTOL,
            xtol=settings.NS_XTOL,
        )
    except (ValueError, np.linalg.LinAlgError) as exc:
        logger.warning("Nelson-Siegel solver failed (%s); using flat curve at mean rate", exc)
        return flat_parameters(r)

    if not res.success or not np.all(np.isfinite(res.x)):
        logger.warning(
            "Nelson-Siegel fit did not converge after %s evaluations (%s); using flat curve at mean rate",
            res.nfev,
            res.message,
        )
        return flat_parameters(r)

    b0, b1, b2, lam = (float(v) for v in res.x)
    logger.debug("Nelson-Siegel fit: beta0=%s beta1=%s beta2=%s lambda=%s cost=%s", b0, b1, b2, lam, res.cost)
    return NelsonSiegelParameters(beta0=b0, beta1=b1, beta2=b2, lambda_=lam)

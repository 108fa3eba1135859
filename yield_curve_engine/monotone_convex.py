from __future__ import annotations

import numpy as np
from dataclasses import dataclass


def _g(x: float, g0: float, g1: float) -> float:
    """Forward deviation from the segment's discrete forward at x in [0, 1]."""
    if g0 == 0.0 and g1 == 0.0:
        return 0.0

    if (g0 < 0 and -0.5 * g0 <= g1 <= -2.0 * g0) or (g0 > 0 and -0.5 * g0 >= g1 >= -2.0 * g0):
        return g0 * (1.0 - 4.0 * x + 3.0 * x * x) + g1 * (-2.0 * x + 3.0 * x * x)

    if (g0 <= 0 and g1 > -2.0 * g0) or (g0 >= 0 and g1 < -2.0 * g0):
        eta = (g1 + 2.0 * g0) / (g1 - g0)
        if x <= eta:
            return g0
        return g0 + (g1 - g0) * ((x - eta) / (1.0 - eta)) ** 2

    if (g0 > 0 and 0 > g1 > -0.5 * g0) or (g0 < 0 and 0 < g1 < -0.5 * g0):
        eta = 3.0 * g1 / (g1 - g0)
        if x < eta:
            return g1 + (g0 - g1) * ((eta - x) / eta) ** 2
        return g1

    eta = g1 / (g1 + g0)
    a = -g0 * g1 / (g0 + g1)
    if x < eta:
        return a + (g0 - a) * ((eta - x) / eta) ** 2
    return a + (g1 - a) * ((x - eta) / (1.0 - eta)) ** 2


def _g_integral(x: float, g0: float, g1: float) -> float:
    """Closed-form integral of _g over [0, x]; equals zero at x = 1."""
    if g0 == 0.0 and g1 == 0.0:
        return 0.0

    if (g0 < 0 and -0.5 * g0 <= g1 <= -2.0 * g0) or (g0 > 0 and -0.5 * g0 >= g1 >= -2.0 * g0):
        return g0 * (x - 2.0 * x ** 2 + x ** 3) + g1 * (-x ** 2 + x ** 3)

    if (g0 <= 0 and g1 > -2.0 * g0) or (g0 >= 0 and g1 < -2.0 * g0):
        eta = (g1 + 2.0 * g0) / (g1 - g0)
        if x <= eta:
            return g0 * x
        return g0 * x + (g1 - g0) * (x - eta) ** 3 / (3.0 * (1.0 - eta) ** 2)

    if (g0 > 0 and 0 > g1 > -0.5 * g0) or (g0 < 0 and 0 < g1 < -0.5 * g0):
        eta = 3.0 * g1 / (g1 - g0)
        if x < eta:
            return g1 * x + (g0 - g1) * eta / 3.0 * (1.0 - ((eta - x) / eta) ** 3)
        return g1 * x + (g0 - g1) * eta / 3.0

    eta = g1 / (g1 + g0)
    a = -g0 * g1 / (g0 + g1)
    if x < eta:
        return a * x + (g0 - a) * eta / 3.0 * (1.0 - ((eta - x) / eta) ** 3)
    return a * x + (g0 - a) * eta / 3.0 + (g1 - a) * (x - eta) ** 3 / (3.0 * (1.0 - eta) ** 2)


@dataclass(frozen=True)
class MonotoneConvex:
    """
    Hagan-West monotone convex interpolation of instantaneous forwards.

    knot_tenors starts at 0; knot_log_dfs holds -log(DF) at each knot
    (0 at tenor 0). Nodal forwards are clamped to [0, 2 * discrete forward]
    so positive discrete forwards give a non-negative forward curve.
    Integrated log discount factors reproduce the knots exactly.
    """
    knot_tenors: np.ndarray
    knot_log_dfs: np.ndarray

    @classmethod
    def from_knots(cls, knot_tenors, knot_log_dfs) -> "MonotoneConvex":
        t = np.asarray(knot_tenors, dtype=float)
        y = np.asarray(knot_log_dfs, dtype=float)
        if t.size < 2 or t[0] != 0.0:
            raise ValueError("Knots must start at tenor 0 and contain at least one node.")
        if np.any(np.diff(t) <= 0):
            raise ValueError("Knot tenors must be strictly increasing.")
        return cls(t, y)

    @property
    def discrete_forwards(self) -> np.ndarray:
        return np.diff(self.knot_log_dfs) / np.diff(self.knot_tenors)

    @property
    def nodal_forwards(self) -> np.ndarray:
        t = self.knot_tenors
        fd = self.discrete_forwards
        n = fd.size
        f = np.empty(n + 1)

        if n == 1:
            f[:] = fd[0]
            return f

        for i in range(1, n):
            left = t[i] - t[i - 1]
            right = t[i + 1] - t[i]
            f[i] = (left * fd[i] + right * fd[i - 1]) / (left + right)

        f[0] = fd[0] - 0.5 * (f[1] - fd[0])
        f[n] = fd[n - 1] - 0.5 * (f[n - 1] - fd[n - 1])

        # positivity constraint
        if fd[0] > 0:
            f[0] = np.clip(f[0], 0.0, 2.0 * fd[0])
        for i in range(1, n):
            if fd[i - 1] > 0 and fd[i] > 0:
                f[i] = np.clip(f[i], 0.0, 2.0 * min(fd[i - 1], fd[i]))
        if fd[n - 1] > 0:
            f[n] = np.clip(f[n], 0.0, 2.0 * fd[n - 1])

        return f

    def _locate(self, t: float):
        i = int(np.searchsorted(self.knot_tenors, t, side="left"))
        i = min(max(i, 1), self.knot_tenors.size - 1)
        t0, t1 = self.knot_tenors[i - 1], self.knot_tenors[i]
        return i, t1 - t0, (t - t0) / (t1 - t0)

    def forward(self, tenors) -> np.ndarray:
        """Instantaneous forward (continuous) at each tenor within the knot range."""
        fd = self.discrete_forwards
        f = self.nodal_forwards
        out = []
        for t in np.atleast_1d(np.asarray(tenors, dtype=float)):
            i, _, x = self._locate(t)
            g0, g1 = f[i - 1] - fd[i - 1], f[i] - fd[i - 1]
            out.append(fd[i - 1] + _g(x, g0, g1))
        return np.array(out, dtype=float)

    def log_discount(self, tenors) -> np.ndarray:
        """-log(DF) at each tenor; past the last knot the last discrete forward is held flat."""
        fd = self.discrete_forwards
        f = self.nodal_forwards
        y = self.knot_log_dfs
        t_last = self.knot_tenors[-1]
        out = []
        for t in np.atleast_1d(np.asarray(tenors, dtype=float)):
            if t >= t_last:
                out.append(y[-1] + fd[-1] * (t - t_last))
                continue
            i, dt, x = self._locate(t)
            g0, g1 = f[i - 1] - fd[i - 1], f[i] - fd[i - 1]
            out.append(y[i - 1] + dt * (fd[i - 1] * x + _g_integral(x, g0, g1)))
        return np.array(out, dtype=float)

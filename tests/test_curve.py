import numpy as np
import pandas as pd
import pytest

from yield_curve_engine.conventions import BASIS_CONVENTIONS
from yield_curve_engine.curves import (
    bootstrap,
    bootstrap_bonds,
    bootstrap_curve,
    bootstrap_methods,
    curve_qc_report,
    merge_points,
)
from yield_curve_engine.points import (
    PointSource,
    bond_point,
    default_curve_config,
    futures_point,
    swap_point,
    update_curve_config,
)
from yield_curve_engine.strategies import BootstrapMethod


@pytest.fixture(scope="module")
def swaps():
    return [swap_point(1.0, 0.03), swap_point(5.0, 0.035), swap_point(10.0, 0.04)]


@pytest.fixture(scope="module")
def linear_curve(swaps):
    return bootstrap(swaps, [], "linear", "USD")


def _row(result, tenor):
    return next(p for p in result.discount_factors if abs(p.tenor - tenor) < 1e-12)


def test_linear_worked_example(linear_curve):
    assert _row(linear_curve, 5.0).discount_factor == pytest.approx(1 / 1.035 ** 5, abs=1e-6)
    assert _row(linear_curve, 3.0).zero_rate == pytest.approx(0.0325, abs=1e-9), "Zero rate interpolates linearly"


def test_result_grid_shape(linear_curve):
    tenors = linear_curve.tenors
    assert tenors[0] == 0.0
    assert linear_curve.dfs[0] == 1.0, "DF(0) must be exactly 1"
    assert np.all(np.diff(tenors) > 0), "Grid tenors must be strictly increasing"
    assert tenors[-1] == 10.0
    assert np.all(np.diff(linear_curve.dfs) <= 1e-12), "Discount factors should be non-increasing"
    assert linear_curve.method is BootstrapMethod.LINEAR
    assert linear_curve.parameters is None


def test_first_row_copies_second_row_rates(linear_curve):
    first, second = linear_curve.discount_factors[:2]
    assert first.zero_rate == second.zero_rate
    assert first.forward_rate == second.forward_rate


def test_basis_convention_attached(swaps):
    res = bootstrap(swaps, [], "linear", "gbp")
    assert res.currency == "GBP"
    assert res.basis_convention == BASIS_CONVENTIONS["GBP"]


@pytest.mark.parametrize("method", ["bloomberg", "quantlib_monotonic_convex", "linear", "nelson_siegel"])
def test_swap_points_never_adjusted(method, swaps):
    futures = [futures_point(0.25, 0.10), futures_point(3.0, 0.001)]
    res = bootstrap(swaps, futures, method, "USD")

    out_swaps = [p for p in res.points if p.source is PointSource.SWAP]
    assert out_swaps == list(swaps), "Calibration points pass through untouched"


@pytest.mark.parametrize("method", ["bloomberg", "quantlib_monotonic_convex"])
def test_inverting_futures_point_is_adjusted(method):
    swaps = [swap_point(1.0, 0.02), swap_point(2.0, 0.025)]
    futures = [futures_point(0.25, 0.10)]

    res = bootstrap(swaps, futures, method, "USD")
    guide = next(p for p in res.points if p.source is PointSource.FUTURES)

    assert guide.adjusted, "Futures point above the next swap discount factor should be adjusted"
    assert guide.rate < 0.10
    assert np.all(res.dfs <= 1.0 + 1e-15)
    assert np.all(np.diff(res.dfs) <= 1e-12), "Curve must stay non-increasing after adjustment"


@pytest.mark.parametrize("method", ["linear", "cubic_spline"])
def test_guide_moved_when_interpolated_curve_rises(method):
    # node DFs are monotone, but zero-rate interpolation from 5% down to 2% lifts DF before 1Y
    swaps = [swap_point(1.0, 0.02), swap_point(2.0, 0.021)]
    res = bootstrap(swaps, [futures_point(0.25, 0.05)], method, "USD")

    guide = next(p for p in res.points if p.source is PointSource.FUTURES)
    assert guide.adjusted, "Guide driving the rise should be flagged"
    assert 0.02 < guide.rate < 0.05
    assert [p for p in res.points if p.source is PointSource.SWAP] == swaps
    assert np.all(np.diff(res.dfs) <= 1e-12), f"{method}: discount factors must not rise between nodes"


@pytest.mark.parametrize("method", ["linear", "cubic_spline", "nelson_siegel", "quantlib_linear_forward"])
def test_inverted_swap_curve_stays_monotone(method):
    swaps = [swap_point(1.0, 0.10), swap_point(2.0, 0.05), swap_point(5.0, 0.045)]
    res = bootstrap(swaps, [], method, "USD")
    assert np.all(np.diff(res.dfs) <= 1e-12), f"{method}: discount factors must not rise"


def test_consistent_futures_point_left_alone():
    swaps = [swap_point(1.0, 0.03), swap_point(2.0, 0.032)]
    res = bootstrap(swaps, [futures_point(0.5, 0.029)], "bloomberg", "USD")

    guide = next(p for p in res.points if p.source is PointSource.FUTURES)
    assert not guide.adjusted
    assert guide.rate == 0.029


def test_futures_on_swap_tenor_dropped(swaps):
    merged = merge_points(swaps, [futures_point(1.0, 0.05), futures_point(0.5, 0.029)], BASIS_CONVENTIONS["USD"])

    assert [p.tenor for p in merged] == [0.5, 1.0, 5.0, 10.0]
    at_one = [p for p in merged if p.tenor == 1.0]
    assert len(at_one) == 1 and at_one[0].source is PointSource.SWAP, "Swap wins on a shared tenor"


def test_insufficient_points_give_empty_result():
    one = bootstrap([swap_point(1.0, 0.03)], [], "linear", "USD")
    assert one.is_empty
    assert len(one.points) == 1

    none = bootstrap([], [], "bloomberg", "USD")
    assert none.is_empty
    assert none.basis_convention == BASIS_CONVENTIONS["USD"]


def test_futures_only_curve():
    res = bootstrap([], [futures_point(0.25, 0.03), futures_point(0.5, 0.031)], "linear", "EUR")
    assert not res.is_empty
    assert res.tenors[-1] == 0.5


def test_unknown_method_raises(swaps):
    with pytest.raises(ValueError):
        bootstrap(swaps, [], "hermite", "USD")


def test_bootstrap_methods(swaps):
    results = bootstrap_methods(swaps, [futures_point(0.5, 0.029)], list(BootstrapMethod), "USD")

    assert [r.method for r in results] == list(BootstrapMethod)
    assert all(r.dfs[0] == 1.0 for r in results)
    assert results[2].parameters is not None, "Nelson-Siegel result carries its parameters"
    assert bootstrap_methods([], [], ["linear"], "USD") == []


def test_bootstrap_bonds():
    bonds = [bond_point(2.0, 0.04), bond_point(5.0, 0.042), bond_point(10.0, 0.045), bond_point(5.0, 0.05)]
    res = bootstrap_bonds(bonds, "quantlib_log_linear", "USD")

    assert len(res.points) == 3
    assert all(p.source is PointSource.BOND and not p.adjusted for p in res.points)
    assert _row(res, 5.0).discount_factor == pytest.approx(1 / 1.042 ** 5, abs=1e-12)


def test_bootstrap_curve_from_quotes():
    cfg = default_curve_config("USD")
    swap_quotes = pd.DataFrame({"tenor": [1.0, 2.0, 5.0], "rate_pct": [3.0, 3.2, 3.5]})
    futures_quotes = [{"maturity": "SR3H26", "price": "97.10"}]
    as_of = pd.Timestamp("2026-01-15")

    results = bootstrap_curve(cfg, futures_quotes, swap_quotes, ["linear", "bloomberg"], as_of=as_of)
    assert len(results) == 2
    assert results[0].currency == "USD"
    assert [p.source for p in results[0].points].count(PointSource.FUTURES) == 1

    swaps_only = bootstrap_curve(
        update_curve_config(cfg, use_futures=False), futures_quotes, swap_quotes, ["linear"], as_of=as_of
    )
    assert all(p.source is PointSource.SWAP for p in swaps_only[0].points)


def test_curve_qc_report_flags(swaps):
    res = bootstrap(swaps, [futures_point(0.5, 0.029)], "quantlib_monotonic_convex", "USD")
    qc = curve_qc_report(res)

    assert list(qc.columns) == ["tenor", "df", "zero", "forward", "df_positive", "df_monotone", "is_node"]
    assert len(qc) == len(res.discount_factors)
    assert qc["df_positive"].all()
    assert qc["df_monotone"].all()
    assert qc["is_node"].sum() == len(res.points)
    assert np.isfinite(qc["zero"]).all()


def test_curve_qc_report_empty():
    qc = curve_qc_report(bootstrap([], [], "linear", "USD"))
    assert qc.empty

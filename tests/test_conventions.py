import numpy as np
import pandas as pd
import pytest

from yield_curve_engine.conventions import (
    BASIS_CONVENTIONS,
    DEFAULT_CONVENTION,
    BasisConvention,
    get_basis_convention,
)


@pytest.fixture(scope="module")
def annual():
    return BasisConvention("ACT/360", "annual", 1)


def test_annual_discount_factor(annual):
    assert annual.discount_factor(0.035, 5.0) == pytest.approx(1 / 1.035 ** 5, abs=1e-15)
    assert annual.discount_factor(0.035, 0.0) == 1.0


def test_compounding_styles():
    cont = BasisConvention("ACT/365F", "continuous", 1)
    simple = BasisConvention("ACT/360", "simple", 1)

    assert cont.discount_factor(0.04, 2.0) == pytest.approx(np.exp(-0.08))
    assert simple.discount_factor(0.04, 0.5) == pytest.approx(1 / 1.02)


@pytest.mark.parametrize("compounding", ["annual", "continuous", "simple"])
def test_zero_rate_inverts_discount_factor(compounding):
    conv = BasisConvention("ACT/365F", compounding, 1)
    t = np.array([0.25, 1.0, 7.5])
    r = np.array([0.01, 0.03, 0.045])
    assert np.allclose(conv.zero_rate(conv.discount_factor(r, t), t), r, atol=1e-14)


def test_forward_rate(annual):
    df1, df2 = 1 / 1.03, 1 / 1.03 ** 2
    assert annual.forward_rate(df1, df2, 1.0) == pytest.approx(0.03)
    assert isinstance(annual.forward_rate(df1, df2, 1.0), float), "Scalar inputs should give a float"


def test_invalid_inputs(annual):
    with pytest.raises(ValueError):
        annual.zero_rate(0.99, 0.0)
    with pytest.raises(ValueError):
        annual.zero_rate(0.0, 1.0)
    with pytest.raises(ValueError):
        annual.forward_rate(0.99, 0.98, 0.0)
    with pytest.raises(ValueError):
        BasisConvention("ACT/360", "semi", 1)
    with pytest.raises(ValueError):
        BasisConvention("ACT/360", "annual", 0)
    with pytest.raises(ValueError):
        BasisConvention("BUS/252", "annual", 1)


def test_registry_lookup():
    assert get_basis_convention("usd") is BASIS_CONVENTIONS["USD"]
    assert get_basis_convention(" eur ").day_count == "30/360"
    assert get_basis_convention("JPY").payment_frequency == 2
    assert get_basis_convention("AUD").payment_frequency == 4
    assert get_basis_convention("XYZ") == DEFAULT_CONVENTION, "Unmapped currency should fall back to the default"
    assert get_basis_convention(None) == DEFAULT_CONVENTION


def test_year_fraction_uses_day_count():
    gbp = get_basis_convention("GBP")
    assert gbp.year_fraction(pd.Timestamp("2026-01-01"), pd.Timestamp("2027-01-01")) == pytest.approx(1.0)

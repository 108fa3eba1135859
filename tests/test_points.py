import math

import pytest

from yield_curve_engine.points import (
    BootstrapPoint,
    PointSource,
    bond_point,
    currency_config,
    dedupe_points,
    default_curve_config,
    futures_point,
    swap_point,
    update_curve_config,
)


def test_point_validation():
    with pytest.raises(ValueError):
        swap_point(0.0, 0.03)
    with pytest.raises(ValueError):
        swap_point(-1.0, 0.03)
    with pytest.raises(ValueError):
        futures_point(1.0, math.nan)


def test_point_roles():
    assert swap_point(1.0, 0.03).is_calibration
    assert bond_point(1.0, 0.03).is_calibration
    assert not futures_point(0.5, 0.03).is_calibration
    assert futures_point(0.5, 0.03).priority > swap_point(1.0, 0.03).priority


def test_string_source_is_coerced():
    p = BootstrapPoint(1.0, 0.03, "swap", 1)
    assert p.source is PointSource.SWAP


def test_dedupe_keeps_first_occurrence():
    pts = [swap_point(2.0, 0.03), swap_point(1.0, 0.02), swap_point(2.0, 0.05)]
    out = dedupe_points(pts)

    assert [p.tenor for p in out] == [1.0, 2.0], "Result should be ascending without duplicates"
    assert out[1].rate == 0.03, "First observation at a tenor wins"


def test_dedupe_is_per_source():
    out = dedupe_points([futures_point(1.0, 0.03), swap_point(1.0, 0.031)])
    assert len(out) == 2
    assert out[0].source is PointSource.SWAP, "Swap sorts ahead of futures at the same tenor"


def test_default_curve_config():
    cfg = default_curve_config("eur")
    assert cfg.currency == "EUR"
    assert cfg.futures_index == "EURIBOR3M"
    assert cfg.irs_currency == "EUR"
    assert cfg.use_futures and cfg.use_irs
    assert cfg.curve_id.startswith("curve_")
    assert default_curve_config().curve_id != cfg.curve_id

    with pytest.raises(ValueError):
        default_curve_config("XYZ")


def test_update_curve_config_switches_feeds():
    cfg = default_curve_config("USD")
    gbp = update_curve_config(cfg, currency="gbp")

    assert gbp.currency == "GBP"
    assert gbp.futures_index == "SONIA3M"
    assert gbp.curve_id == cfg.curve_id
    assert cfg.currency == "USD", "Original config must be untouched"


def test_update_curve_config_keeps_explicit_fields():
    cfg = default_curve_config("USD")
    out = update_curve_config(cfg, currency="CHF", futures_index="CUSTOM", use_futures=False)

    assert out.futures_index == "CUSTOM"
    assert out.irs_currency == "CHF"
    assert out.use_futures is False


def test_currency_config_lookup():
    assert currency_config("jpy").default_futures_index == "TONA3M"
    assert currency_config("XYZ") is None

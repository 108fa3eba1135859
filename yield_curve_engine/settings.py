# yield_curve_engine/settings.py

## Curve sampling
# Regular grid spacing (years) between curve nodes for the output table
GRID_STEP = 0.25

# Two tenors closer than this (years) are treated as the same tenor
TENOR_TOLERANCE = 1e-6

# Sub-intervals per grid interval when integrating instantaneous forwards
FORWARD_SUBSTEPS = 8

## Guide adjustment
# Largest rise in discount factor between grid points still treated as flat
MONOTONE_TOLERANCE = 1e-12

# Share of the gap to the neighbours' log-linear line a futures guide closes per pass
GUIDE_BLEND = 0.5
GUIDE_MAX_PASSES = 25

## Nelson-Siegel fit
NS_MAX_EVALUATIONS = 200
NS_FTOL = 1e-12
NS_XTOL = 1e-12

# Decay (years) used as the initial guess and for the fallback flat curve
NS_INITIAL_LAMBDA = 2.0
NS_LAMBDA_BOUNDS = (0.05, 30.0)

# Calibration points carry more weight than guide points in the fit
NS_SWAP_WEIGHT = 2.0
NS_FUTURES_WEIGHT = 1.0

## Quote filtering (bad ticks / noise)
# Futures implied rate (decimal), open interval
FUTURES_RATE_BOUNDS = (0.0, 0.5)

# IRS quotes arrive in percent, open interval
SWAP_RATE_PCT_BOUNDS = (0.0, 50.0)

# Maturity codes resolving further out (or further back) than this are rejected
MAX_MATURITY_YEARS = 100.0

## Export
CSV_FLOAT_FORMAT = "%.10f"
CSV_COLUMNS = ("tenor", "discountFactor", "zeroRate", "forwardRate")

"""
Yield Curve Bootstrapping Engine

Modules:
- curves: bootstrap orchestrator + result objects + QC report
- strategies: the eight curve construction methods and their dispatch
- nelson_siegel / monotone_convex: parametric fit and Hagan-West forwards
- conventions: per-currency basis conventions + rate/DF conversions
- points: rate observations + curve requests
- quotes: raw futures/IRS quote batches -> points
- export: CSV and DataFrame views of a result
- utils: maturity codes, futures prices, day counts
- settings: grid, tolerances, solver budget, filters

Callers should import from the modules directly.
"""

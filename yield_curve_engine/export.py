from __future__ import annotations

import pandas as pd

from . import settings
from .curves import BootstrapResult


def discount_factor_frame(result: BootstrapResult) -> pd.DataFrame:
    columns = list(settings.CSV_COLUMNS)
    rows = [(p.tenor, p.discount_factor, p.zero_rate, p.forward_rate) for p in result.discount_factors]
    return pd.DataFrame(rows, columns=columns, dtype=float)


def points_frame(result: BootstrapResult) -> pd.DataFrame:
    """Input node table: swaps are calibration nodes, futures are guides."""
    return pd.DataFrame(
        [
            {
                "tenor": p.tenor,
                "rate": p.rate,
                "source": p.source.value,
                "priority": p.priority,
                "role": "Calibration" if p.is_calibration else "Guide",
                "adjusted": p.adjusted,
            }
            for p in result.points
        ],
        columns=["tenor", "rate", "source", "priority", "role", "adjusted"],
    )


def export_to_csv(result: BootstrapResult) -> str:
    """
    Header plus one row per grid point, fixed decimals, '\\n' line endings.
    Writing the text anywhere is left to the caller.
    """
    return discount_factor_frame(result).to_csv(
        index=False,
        float_format=settings.CSV_FLOAT_FORMAT,
        lineterminator="\n",
    )

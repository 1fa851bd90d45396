"""
Fan-chart percentile aggregation over the simulated equity matrix.
"""

import numpy as np

from montecarlo.models import PercentileSeries

PERCENTILE_BANDS = (5, 10, 25, 50, 75, 90, 95)
# Extra outer bands reported at 99% confidence
WIDE_BANDS = (1, 5, 10, 25, 50, 75, 90, 95, 99)

# Trade indices reduced per np.percentile call; bounds the sort copy
COLUMN_BLOCK = 32


def percentile(values: np.ndarray, p: float) -> float:
    """Linear interpolation between order statistics at rank p/100 * (n-1)."""
    return float(np.percentile(np.asarray(values, dtype=float), p, method="linear"))


def aggregate_percentiles(equity: np.ndarray, confidence_level: int = 95) -> PercentileSeries:
    """
    Percentile bands per trade index.

    Each column is reduced on its own so the fan width at every trade
    reflects the actual dispersion of paths at that point. At 99% confidence
    the 1st and 99th percentiles are added.
    """
    levels = WIDE_BANDS if confidence_level == 99 else PERCENTILE_BANDS
    n_cols = equity.shape[1]
    bands = np.empty((len(levels), n_cols), dtype=float)
    for start in range(0, n_cols, COLUMN_BLOCK):
        stop = min(start + COLUMN_BLOCK, n_cols)
        bands[:, start:stop] = np.percentile(
            equity[:, start:stop], levels, axis=0, method="linear"
        )
    # Interpolation rounding can break the ordering by an ulp
    bands = np.maximum.accumulate(bands, axis=0)
    return PercentileSeries(**{
        f"p{level}": tuple(row.tolist()) for level, row in zip(levels, bands)
    })

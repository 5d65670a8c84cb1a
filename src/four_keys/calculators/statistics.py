"""Summary statistics over duration samples.

Values are returned unrounded; callers round once when placing them in a
result so mean, median and percentile of one sample set do not compound
rounding error.
"""

import math
from typing import Sequence

import numpy as np


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0 for an empty sample."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))


def median(values: Sequence[float]) -> float:
    """
    Median of the sample, 0 for an empty sample.

    For an even count this is the mean of the two middle values.
    """
    if len(values) == 0:
        return 0.0
    return float(np.median(values))


def percentile(values: Sequence[float], p: float) -> float:
    """
    Nearest-rank percentile, 0 for an empty sample.

    Picks the sorted value at index ``ceil(p / 100 * n) - 1`` (clamped to
    the first element), never interpolating between samples.
    """
    if len(values) == 0:
        return 0.0
    if not 0 <= p <= 100:
        raise ValueError("Percentile 'p' must be in the range [0, 100].")
    ordered = np.sort(np.asarray(values, dtype=float))
    index = max(0, math.ceil(p / 100 * len(ordered)) - 1)
    return float(ordered[index])

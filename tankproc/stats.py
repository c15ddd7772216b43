from __future__ import annotations
import math
import numpy as np

from .errors import EmptyInputError


def channel_stats(values) -> dict[str, float]:
    """Descriptive statistics of one channel over the analysis window.

    ``max_dev_ratio`` is (max - mean) / max, the steadiness check applied
    to carriage speed and drag records (expected below ~3%).
    """
    y = np.asarray(values, dtype=float).ravel()
    y = y[np.isfinite(y)]
    if y.size == 0:
        raise EmptyInputError("no finite samples")
    lo = float(np.min(y))
    hi = float(np.max(y))
    mean = float(np.mean(y))
    return {
        "min": lo,
        "max": hi,
        "mean": mean,
        "std": float(np.std(y, ddof=1)) if y.size > 1 else 0.0,
        "max_dev_ratio": (hi - mean) / hi if hi != 0 else math.nan,
    }


__all__ = ["channel_stats"]

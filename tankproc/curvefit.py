from __future__ import annotations
"""
Straight-line least squares with classical error propagation.

For n points (x_i, y_i) the fit y = a x + b uses

    D = n Σx² − (Σx)²
    a = (n Σxy − Σx Σy) / D
    b = (Σx² Σy − Σx Σxy) / D
    S = sqrt( Σ(y − a x − b)² / (n − 2) )
    σa = S sqrt(n / D)
    σb = S sqrt(Σx² / D)

The sums are evaluated about the mean of x, so records timestamped far
from zero fit as accurately as records starting at zero.

Relative errors are σa/a and σb/b.  They are NaN when the corresponding
coefficient is exactly zero.
"""

from dataclasses import dataclass, asdict
from typing import Iterable, Optional
import math
import numpy as np
import pandas as pd

from .errors import DegenerateInputError, InsufficientDataError, ShapeMismatchError

FIT_COLUMNS = [
    "run",
    "channel",
    "slope",
    "intercept",
    "s",
    "slope_error",
    "intercept_error",
    "rel_slope_error",
    "rel_intercept_error",
]


@dataclass(frozen=True)
class FitResult:
    slope: float
    intercept: float
    s: float                    # residual scale
    slope_error: float
    intercept_error: float
    rel_slope_error: float
    rel_intercept_error: float
    run: Optional[int] = None
    channel: Optional[str] = None

    def predict(self, x):
        return self.slope * np.asarray(x, dtype=float) + self.intercept

    def as_row(self) -> dict:
        row = asdict(self)
        return {k: row[k] for k in FIT_COLUMNS}


def _ratio(num: float, den: float) -> float:
    return num / den if den != 0 else math.nan


def linear_fit(x, y, *, run: int | None = None, channel: str | None = None) -> FitResult:
    """Fit ``y = slope * x + intercept`` and propagate standard errors.

    Non-finite pairs are discarded before fitting.

    Raises
    ------
    ShapeMismatchError
        ``x`` and ``y`` differ in length.
    InsufficientDataError
        Fewer than three finite points remain.
    DegenerateInputError
        All x values are identical (vertical line).
    """
    x = np.asarray(x, dtype=float).ravel()
    y = np.asarray(y, dtype=float).ravel()
    if x.size != y.size:
        raise ShapeMismatchError(f"x and y must have the same length ({x.size} != {y.size})")
    mask = np.isfinite(x) & np.isfinite(y)
    x, y = x[mask], y[mask]
    n = x.size
    if n < 3:
        raise InsufficientDataError(f"Need at least 3 points, got {n}")

    Sxx = float(np.sum(x * x))
    if np.ptp(x) == 0:
        raise DegenerateInputError("x has zero span; slope is undefined")
    # Sums about the mean of x: D = n Σ(x - x̄)² is free of cancellation
    xm = float(np.mean(x))
    ym = float(np.mean(y))
    xc = x - xm
    Scc = float(np.sum(xc * xc))
    denom = n * Scc

    slope = float(np.sum(xc * (y - ym))) / Scc
    intercept = ym - slope * xm
    resid = (y - ym) - slope * xc
    s = math.sqrt(float(np.sum(resid * resid)) / (n - 2))
    slope_error = s * math.sqrt(n / denom)
    intercept_error = s * math.sqrt(Sxx / denom)

    return FitResult(
        slope=float(slope),
        intercept=float(intercept),
        s=float(s),
        slope_error=float(slope_error),
        intercept_error=float(intercept_error),
        rel_slope_error=float(_ratio(slope_error, slope)),
        rel_intercept_error=float(_ratio(intercept_error, intercept)),
        run=None if run is None else int(run),
        channel=channel,
    )


def fit_table(results: Iterable[FitResult]) -> pd.DataFrame:
    """Tabulate fit results, one row per (run, channel)."""
    rows = [r.as_row() for r in results]
    return pd.DataFrame(rows, columns=FIT_COLUMNS)


__all__ = ["FitResult", "linear_fit", "fit_table", "FIT_COLUMNS"]

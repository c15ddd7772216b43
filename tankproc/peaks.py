from __future__ import annotations

from dataclasses import dataclass, field
import math
import numpy as np

from .errors import InvalidArgumentError, ShapeMismatchError


def _empty() -> np.ndarray:
    return np.empty((0, 2), dtype=float)


@dataclass(frozen=True)
class PeakTable:
    """Confirmed extrema as ``(position, value)`` rows."""

    maxima: np.ndarray = field(default_factory=_empty)
    minima: np.ndarray = field(default_factory=_empty)

    @property
    def n_maxima(self) -> int:
        return int(self.maxima.shape[0])

    @property
    def n_minima(self) -> int:
        return int(self.minima.shape[0])


def peakdet(v, delta: float, x=None, *, lookformax: bool = True) -> PeakTable:
    """Detect local maxima and minima separated by at least ``delta``.

    A point is a maximum if it is the highest value seen since the last
    confirmed minimum and the signal subsequently drops by more than
    ``delta`` below it; minima are confirmed symmetrically.

    Parameters
    ----------
    v : array_like
        Sampled signal.
    delta : float
        Positive confirmation threshold in signal units.
    x : array_like, optional
        Positions reported for each sample.  Defaults to the sample index.
    lookformax : bool, optional
        Start in max-search mode (default).  ``peakdet(-v, d,
        lookformax=False)`` mirrors ``peakdet(v, d)`` with maxima and
        minima exchanged.

    Returns
    -------
    PeakTable
        ``maxima`` and ``minima`` arrays of shape ``(k, 2)``.

    Raises
    ------
    InvalidArgumentError
        If ``delta`` is not a positive finite number.
    ShapeMismatchError
        If ``x`` and ``v`` differ in length.
    """
    v = np.asarray(v, dtype=float).ravel()
    if x is None:
        x = np.arange(v.size, dtype=float)
    else:
        x = np.asarray(x, dtype=float).ravel()
        if x.size != v.size:
            raise ShapeMismatchError(
                f"x and v must have the same length ({x.size} != {v.size})"
            )
    delta = float(delta)
    if not math.isfinite(delta) or delta <= 0:
        raise InvalidArgumentError("delta must be a positive number")

    maxtab: list[tuple[float, float]] = []
    mintab: list[tuple[float, float]] = []
    mn, mx = math.inf, -math.inf
    mnpos = mxpos = math.nan

    for pos, this in zip(x, v):
        if this > mx:
            mx, mxpos = this, pos
        if this < mn:
            mn, mnpos = this, pos
        if lookformax:
            if this < mx - delta:
                maxtab.append((mxpos, mx))
                mn, mnpos = this, pos
                lookformax = False
        else:
            if this > mn + delta:
                mintab.append((mnpos, mn))
                mx, mxpos = this, pos
                lookformax = True

    maxima = np.asarray(maxtab, dtype=float).reshape(-1, 2)
    minima = np.asarray(mintab, dtype=float).reshape(-1, 2)
    return PeakTable(maxima=maxima, minima=minima)


__all__ = ["PeakTable", "peakdet"]

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable
import numpy as np

from .errors import ShapeMismatchError


@dataclass(frozen=True)
class CalibrationPair:
    """Per-channel zero offset and calibration factor."""

    zero: float = 0.0
    factor: float = 1.0

    def apply(self, raw) -> np.ndarray:
        """real = factor * (raw - zero)"""
        return self.factor * (np.asarray(raw, dtype=float) - self.zero)


IDENTITY = CalibrationPair()


def to_real_units(raw, zero: float, factor: float) -> tuple[np.ndarray, float]:
    """Convert raw DAQ voltages to physical units.

    Returns the converted series and its mean.
    """
    real = CalibrationPair(float(zero), float(factor)).apply(raw)
    mean = float(np.mean(real)) if real.size else float("nan")
    return real, mean


def pairs_from_block(values: Iterable[float]) -> list[CalibrationPair]:
    """Split a flat ``[zero0, cf0, zero1, cf1, ...]`` vector into pairs."""
    vals = np.asarray(list(values), dtype=float).ravel()
    if vals.size % 2:
        raise ShapeMismatchError(
            f"zero/calibration block must hold pairs; got {vals.size} values"
        )
    return [CalibrationPair(float(z), float(cf)) for z, cf in vals.reshape(-1, 2)]


__all__ = ["CalibrationPair", "IDENTITY", "to_real_units", "pairs_from_block"]

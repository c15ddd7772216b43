from __future__ import annotations

from dataclasses import dataclass
import math
import numpy as np

from .curvefit import FitResult, linear_fit
from .errors import ShapeMismatchError


@dataclass(frozen=True)
class MassFlowEstimate:
    fit: FitResult
    mass_flow: float    # kg/s, slope of the collected-mass line (signed)
    overall: float      # kg/s, collected mass range over the time range
    deviation: float    # | |mass_flow| / overall - 1 |


def mass_flow_rate(time, mass_kg, *, run: int | None = None, channel: str = "wave_probe") -> MassFlowEstimate:
    """Mass flow rate from the collected-mass signal of the catch tank.

    The wave probe in the catch tank is calibrated to kg of water, so the
    slope of a straight-line fit against time is the mass flow rate.  The
    ratio of mass range to time range is reported alongside as a
    cross-check; ``deviation`` is their relative disagreement.
    """
    t = np.asarray(time, dtype=float).ravel()
    m = np.asarray(mass_kg, dtype=float).ravel()
    if t.size != m.size:
        raise ShapeMismatchError(f"time and mass must have the same length ({t.size} != {m.size})")
    fit = linear_fit(t, m, run=run, channel=channel)
    ok = np.isfinite(t) & np.isfinite(m)
    span_t = float(np.ptp(t[ok]))
    overall = float(np.ptp(m[ok])) / span_t
    deviation = abs(abs(fit.slope) / overall - 1.0) if overall != 0 else math.nan
    return MassFlowEstimate(fit=fit, mass_flow=fit.slope, overall=overall, deviation=deviation)


__all__ = ["MassFlowEstimate", "mass_flow_rate"]

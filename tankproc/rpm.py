from __future__ import annotations

from dataclasses import dataclass
import numpy as np

from .errors import InvalidArgumentError, InsufficientDataError
from .peaks import PeakTable, peakdet

# Pulse threshold used for the inductive proximity sensors (V)
DEFAULT_DELTA_V = 0.5


@dataclass(frozen=True)
class RpmEstimate:
    rpm: float
    pulses: int
    duration_s: float
    window: tuple[int, int]   # first/last sample index (inclusive) of the counting window
    peaks: PeakTable


def estimate_rpm(
    signal,
    *,
    fs: float,
    delta: float = DEFAULT_DELTA_V,
    omit_samples: int = 0,
    edge_pad: int = 2,
    pulse: str = "minima",
) -> RpmEstimate:
    """Shaft speed from the pulse train of a once-per-revolution sensor.

    Pulses are counted over the window spanning the first to the last
    detected pulse (padded by ``edge_pad`` samples on both sides), so the
    leading and trailing partial revolutions do not bias the estimate.

    ``omit_samples`` skips the start of the record (carriage acceleration).
    Peak positions in the returned table are sample indices of the full
    record.
    """
    if fs <= 0:
        raise InvalidArgumentError("fs must be > 0 Hz")
    if pulse not in ("minima", "maxima"):
        raise InvalidArgumentError(f"pulse must be 'minima' or 'maxima', got {pulse!r}")
    y = np.asarray(signal, dtype=float).ravel()
    n = y.size
    start = max(int(omit_samples), 0)
    if start >= n:
        raise InsufficientDataError(f"record has {n} samples; cannot omit {start}")

    idx = np.arange(start, n, dtype=float)
    peaks = peakdet(y[start:], delta, idx)
    tab = peaks.minima if pulse == "minima" else peaks.maxima
    if tab.shape[0] == 0:
        raise InsufficientDataError("no revolution pulses detected")

    first = max(int(tab[0, 0]) - edge_pad, 0)
    last = min(int(tab[-1, 0]) + edge_pad, n - 1)
    duration_s = (last - first + 1) / float(fs)
    pulses = int(tab.shape[0])
    rpm = pulses / (duration_s / 60.0)
    return RpmEstimate(
        rpm=float(rpm),
        pulses=pulses,
        duration_s=float(duration_s),
        window=(first, last),
        peaks=peaks,
    )


__all__ = ["RpmEstimate", "estimate_rpm", "DEFAULT_DELTA_V"]

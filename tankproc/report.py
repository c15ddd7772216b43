from __future__ import annotations
import json
import matplotlib
matplotlib.use("Agg")  # headless
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from pathlib import Path

from .curvefit import FitResult
from .io import write_results
from .rpm import RpmEstimate

def write_summary_tables(outdir: Path, frame: pd.DataFrame, stem: str, skipped=None):
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    files = write_results(frame, outdir, stem)
    if skipped:
        p = outdir / f"{stem}__skipped.json"
        p.write_text(json.dumps([{"run": r, "reason": why} for r, why in skipped], indent=2))
        files.append(str(p))
    return files

def plot_rpm_peaks(outdir: Path, signal, estimate: RpmEstimate, fs: float, title="RPM data", stem="rpm_peaks", seconds=1.0):
    """Raw proximity-sensor voltage with the counted pulses, first ``seconds`` of the window."""
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    y = np.asarray(signal, dtype=float)
    first, last = estimate.window
    stop = min(first + int(round(seconds * fs)), last) + 1
    idx = np.arange(first, stop)
    pk = estimate.peaks.minima
    pk = pk[(pk[:, 0] >= first) & (pk[:, 0] < stop)]
    fig = plt.figure(figsize=(9,4.5))
    plt.plot(idx / fs, y[first:stop], "-k", label="Raw data")
    plt.plot(pk[:, 0] / fs, pk[:, 1], "ro", label="Peak")
    plt.xlabel("Time (s)")
    plt.ylabel("Output (V)")
    plt.title(f"{title}: {estimate.rpm:.0f} RPM")
    plt.legend(loc="upper right")
    plt.grid(True, linestyle="--", alpha=0.4)
    p = outdir / f"{stem}.png"
    fig.tight_layout()
    fig.savefig(p, dpi=150)
    plt.close(fig)
    return str(p)

def plot_linear_fit(outdir: Path, x, y, fit: FitResult, title="Linear fit", stem="linear_fit", xlabel="Time (s)", ylabel="Value"):
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    x = np.asarray(x, dtype=float)
    fig = plt.figure(figsize=(9,4.5))
    plt.plot(x, y, ".", markersize=2, label="Measured")
    plt.plot(x, fit.predict(x), "-r",
             label=f"y = {fit.slope:.4g}x + {fit.intercept:.4g}  (S={fit.s:.3g})")
    plt.xlabel(xlabel)
    plt.ylabel(ylabel)
    plt.legend()
    plt.title(title)
    p = outdir / f"{stem}.png"
    fig.tight_layout()
    fig.savefig(p, dpi=150)
    plt.close(fig)
    return str(p)

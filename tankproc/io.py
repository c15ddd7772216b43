
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
import numpy as np
import pandas as pd

from .calibration import CalibrationPair, IDENTITY, pairs_from_block

DEFAULT_RUN_PATTERN = "{run:02d}.run/R{run:02d}-02_moving.dat"


@dataclass(frozen=True)
class ChannelSpec:
    """Column of a run file and how to convert it.

    ``column`` is the 0-based column in the data matrix (column 0 is time).
    ``sign`` flips channels whose transducer is mounted reversed.
    """

    name: str
    column: int
    calibrate: bool = True
    sign: float = 1.0


@dataclass
class RunRecord:
    run: int
    name: str
    time: np.ndarray
    channels: dict[str, np.ndarray] = field(default_factory=dict)
    calibration: dict[str, CalibrationPair] = field(default_factory=dict)
    specs: dict[str, ChannelSpec] = field(default_factory=dict)

    def raw(self, name: str) -> np.ndarray:
        if name not in self.channels:
            raise KeyError(f"Channel '{name}' not in run {self.run}. Available: {', '.join(self.channels)}")
        return self.channels[name]

    def real(self, name: str) -> np.ndarray:
        """Channel in physical units (calibration and sign applied)."""
        spec = self.specs.get(name)
        y = self.raw(name)
        if spec is None or spec.calibrate:
            y = self.calibration.get(name, IDENTITY).apply(y)
        sign = spec.sign if spec is not None else 1.0
        return sign * np.asarray(y, dtype=float)

    @property
    def n_samples(self) -> int:
        return int(self.time.size)

    @property
    def sample_rate(self) -> float:
        """Sample rate in Hz inferred from the record length and end time."""
        if self.time.size == 0 or self.time[-1] <= 0:
            return float("nan")
        return float(round(self.time.size / self.time[-1]))

    @property
    def record_time_s(self) -> float:
        return self.n_samples / self.sample_rate


def run_file_path(root: Path, run: int, pattern: str = DEFAULT_RUN_PATTERN) -> Path:
    return Path(root) / pattern.format(run=int(run))


def _numeric_tokens(line: str) -> list[float] | None:
    toks = line.split()
    if not toks:
        return None
    try:
        return [float(t) for t in toks]
    except ValueError:
        return None


def read_zero_calibration(path: Path, header_lines: int) -> list[CalibrationPair]:
    """Read the zero/calibration-factor block following ``header_lines`` lines.

    Consecutive numeric lines are flattened row by row into
    ``[zero, cf, zero, cf, ...]``; pair *i* belongs to data column *i*.
    """
    lines = Path(path).read_text(errors="replace").splitlines()
    values: list[float] = []
    for line in lines[header_lines:]:
        toks = _numeric_tokens(line)
        if toks is None:
            break
        values.extend(toks)
    if not values:
        raise ValueError(f"No zero/calibration values after line {header_lines} in {path}")
    return pairs_from_block(values)


def read_data_matrix(path: Path, header_lines: int) -> np.ndarray:
    df = pd.read_csv(path, sep=r"\s+", skiprows=header_lines, header=None, engine="python")
    df = df.apply(pd.to_numeric, errors="coerce").dropna(how="all")
    if df.empty:
        raise ValueError(f"No numeric samples after line {header_lines} in {path}")
    return df.to_numpy(float)


def read_run_file(
    path: Path,
    channels: list[ChannelSpec],
    *,
    run: int,
    header_lines: int,
    calib_header_lines: int,
) -> RunRecord:
    """Load one DAQ run file into a :class:`RunRecord`."""
    path = Path(path)
    data = read_data_matrix(path, header_lines)
    pairs = read_zero_calibration(path, calib_header_lines)
    ncol = data.shape[1]
    chans: dict[str, np.ndarray] = {}
    calib: dict[str, CalibrationPair] = {}
    specs: dict[str, ChannelSpec] = {}
    for spec in channels:
        if spec.column >= ncol:
            raise ValueError(f"{path.name}: column {spec.column} for '{spec.name}' missing (file has {ncol})")
        chans[spec.name] = data[:, spec.column].copy()
        calib[spec.name] = pairs[spec.column] if spec.column < len(pairs) else IDENTITY
        specs[spec.name] = spec
    return RunRecord(
        run=int(run),
        name=path.stem,
        time=data[:, 0].copy(),
        channels=chans,
        calibration=calib,
        specs=specs,
    )


def write_table(df: pd.DataFrame, path: Path, *, sep: str = ",", float_format: str = "%.4g") -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, sep=sep, index=False, float_format=float_format)
    return path


def write_results(df: pd.DataFrame, outdir: Path, stem: str, *, float_format: str = "%.4g") -> list[str]:
    """Write ``stem.csv`` and ``stem.tsv`` with header rows."""
    outdir = Path(outdir)
    csv = write_table(df, outdir / f"{stem}.csv", sep=",", float_format=float_format)
    tsv = write_table(df, outdir / f"{stem}.tsv", sep="\t", float_format=float_format)
    return [str(csv), str(tsv)]


__all__ = [
    "ChannelSpec",
    "RunRecord",
    "DEFAULT_RUN_PATTERN",
    "run_file_path",
    "read_zero_calibration",
    "read_data_matrix",
    "read_run_file",
    "write_table",
    "write_results",
]

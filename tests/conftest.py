from pathlib import Path

import numpy as np
import pytest


def _dat_text(data, pairs, header_lines, calib_header_lines):
    lines = [f"# header line {i}" for i in range(calib_header_lines)]
    flat = [v for pair in pairs for v in pair]
    for i in range(0, len(flat), 4):
        lines.append(" ".join(f"{v:g}" for v in flat[i:i + 4]))
    assert len(lines) < header_lines, "calibration block overruns the data header"
    while len(lines) < header_lines:
        lines.append("Channel data follows")
    lines.extend(" ".join(f"{v:.6f}" for v in row) for row in np.asarray(data, dtype=float))
    return "\n".join(lines) + "\n"


@pytest.fixture
def write_dat():
    """Write a DAQ run file: text header, zero/CF block, whitespace-separated samples."""

    def _write(path: Path, data, pairs, *, header_lines=27, calib_header_lines=21) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_dat_text(data, pairs, header_lines, calib_header_lines))
        return path

    return _write


def pulse_train(n: int, period: int, *, offset: int = 10, width: int = 5, high=5.0, low=0.0):
    """Proximity-sensor style signal: ``high`` with a ``low`` dip once per period."""
    y = np.full(n, high, dtype=float)
    for start in range(offset, n - width, period):
        y[start:start + width] = low
    return y


@pytest.fixture
def pulses():
    return pulse_train


FS = 800.0
FLOW_PAIRS = [(0, 1), (0.5, 10), (0, 1), (0, 1), (0, 1), (0, 1), (0, 500), (0, 500), (0, 10), (0, 10)]
RPM_PAIRS = [(0, 1)] * 8


@pytest.fixture
def flow_run(write_dat):
    """Flow-rate run file: tank filling at 1 kg/s, 1200/1500 RPM shafts."""

    def _make(root: Path, run: int, n: int = 4000) -> Path:
        t = np.arange(1, n + 1) / FS
        data = np.column_stack([
            t,
            0.5 + 0.1 * t,              # wave probe -> t kg
            np.full(n, 1.2),            # Kiel probes
            np.full(n, 1.3),
            pulse_train(n, 40),         # stbd shaft
            pulse_train(n, 32),         # port shaft
            np.full(n, 1.0),            # thrust -> 500 g
            np.full(n, 0.8),            # thrust -> 400 g
            np.full(n, 0.2),            # torque -> 2 Nm
            np.full(n, 0.25),           # torque -> 2.5 Nm
        ])
        path = Path(root) / f"{run:02d}.run" / f"R{run:02d}-02_moving.dat"
        return write_dat(path, data, FLOW_PAIRS, header_lines=27, calib_header_lines=21)

    return _make


@pytest.fixture
def rpm_run(write_dat):
    """RPM-only run file: stbd shaft at 1200 RPM, port shaft stopped."""

    def _make(root: Path, run: int, n: int = 4000) -> Path:
        t = np.arange(1, n + 1) / FS
        zeros = np.zeros(n)
        data = np.column_stack([t, zeros, zeros, zeros, zeros, zeros, pulse_train(n, 40), np.full(n, 5.0)])
        path = Path(root) / f"{run:02d}.run" / f"R{run:02d}-02_moving.dat"
        return write_dat(path, data, RPM_PAIRS, header_lines=29, calib_header_lines=23)

    return _make

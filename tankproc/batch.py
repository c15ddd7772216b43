"""Per-run reduction pipelines (load → calibrate → reduce → tabulate)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import logging, math
import numpy as np
import pandas as pd

from .curvefit import FitResult, fit_table, linear_fit
from .errors import AnalysisError, InsufficientDataError, InvalidArgumentError
from .flowrate import mass_flow_rate
from .io import ChannelSpec, DEFAULT_RUN_PATTERN, RunRecord, read_run_file, run_file_path
from .physics import grams_to_newton, shaft_power_w
from .report import plot_rpm_peaks
from .results import ResultsTable, parse_run_spec
from .rpm import DEFAULT_DELTA_V, estimate_rpm

logger = logging.getLogger(__name__)

# Column layout of the flow-rate DAT files (column 0 is time)
FLOW_CHANNELS: Tuple[ChannelSpec, ...] = (
    ChannelSpec("wave_probe", 1),                     # catch tank mass (kg)
    ChannelSpec("kp_stbd", 2, calibrate=False),       # Kiel probe, 5 PSI DPT (V)
    ChannelSpec("kp_port", 3, calibrate=False),
    ChannelSpec("rpm_stbd", 4, calibrate=False),      # proximity sensor (V)
    ChannelSpec("rpm_port", 5, calibrate=False),
    ChannelSpec("thrust_stbd", 6),                    # dynamometer (g)
    ChannelSpec("thrust_port", 7),
    ChannelSpec("torque_stbd", 8),                    # dynamometer (Nm)
    ChannelSpec("torque_port", 9),
)

RPM_CHANNELS: Tuple[ChannelSpec, ...] = (
    ChannelSpec("rpm_stbd", 6, calibrate=False),
    ChannelSpec("rpm_port", 7, calibrate=False),
)

FLOW_COLUMNS = [
    "run",
    "fs_hz",
    "n_samples",
    "record_time_s",
    "mass_flow_kg_s",
    "mass_flow_overall_kg_s",
    "mass_flow_deviation",
    "kp_stbd_v",
    "kp_port_v",
    "thrust_stbd_n",
    "thrust_port_n",
    "torque_stbd_nm",
    "torque_port_nm",
    "speed_stbd_rpm",
    "speed_port_rpm",
    "power_stbd_w",
    "power_port_w",
]

RPM_COLUMNS = ["run", "speed_stbd_rpm", "speed_port_rpm", "pulses_stbd", "pulses_port"]


def _channel_specs(channels) -> List[ChannelSpec]:
    return [c if isinstance(c, ChannelSpec) else ChannelSpec(**c) for c in channels]


@dataclass
class RpmConfig:
    """Settings for the RPM-only pass over a run range."""

    data_root: str = ".."
    runs: Any = "9-29"
    run_pattern: str = DEFAULT_RUN_PATTERN
    fs: float = 800.0
    header_lines: int = 29
    calib_header_lines: int = 23
    channels: List[ChannelSpec] = field(default_factory=lambda: list(RPM_CHANNELS))
    rpm_delta: float = DEFAULT_DELTA_V
    rpm_omit_samples: int = 8000   # first 10 s at 800 Hz: carriage acceleration

    def __post_init__(self) -> None:
        self.channels = _channel_specs(self.channels)

    def run_list(self) -> List[int]:
        return parse_run_spec(self.runs)

    def path_for(self, run: int) -> Path:
        return run_file_path(Path(self.data_root), run, self.run_pattern)


@dataclass
class FlowRateConfig(RpmConfig):
    """Settings for the flow-rate batch.

    ``cut_exceptions`` maps run number to ``(start_cut, end_cut)`` samples
    for records shorter than the standard acquisition time.
    """

    runs: Any = "1-67"
    header_lines: int = 27
    calib_header_lines: int = 21
    channels: List[ChannelSpec] = field(default_factory=lambda: list(FLOW_CHANNELS))
    start_cut: int = 4000
    end_cut: int = 4000
    cut_exceptions: Dict[int, Tuple[int, int]] = field(default_factory=dict)
    rpm_enabled: bool = True
    fit_kiel_probes: bool = True

    def __post_init__(self) -> None:
        super().__post_init__()
        self.cut_exceptions = {int(k): (int(v[0]), int(v[1])) for k, v in self.cut_exceptions.items()}
        names = [c.name for c in self.channels]
        if "wave_probe" not in names:
            raise InvalidArgumentError(
                f"Flow-rate channels must include 'wave_probe'. Configured channels: {', '.join(names)}"
            )

    def cuts_for(self, run: int) -> Tuple[int, int]:
        return self.cut_exceptions.get(int(run), (self.start_cut, self.end_cut))


def _window(n: int, start_cut: int, end_cut: int) -> slice:
    stop = n - end_cut
    if stop - start_cut < 3:
        raise InsufficientDataError(
            f"{n} samples leave no analysis window after cutting {start_cut}/{end_cut}"
        )
    return slice(start_cut, stop)


def _mean(record: RunRecord, name: str, sl: slice) -> float:
    if name not in record.channels:
        return math.nan
    return float(np.nanmean(record.real(name)[sl]))


def _shaft_rpm(record: RunRecord, name: str, cfg: RpmConfig,
               plot_dir: Optional[Path] = None) -> Tuple[float, int]:
    if name not in record.channels:
        return math.nan, 0
    try:
        est = estimate_rpm(
            record.raw(name),
            fs=cfg.fs,
            delta=cfg.rpm_delta,
            omit_samples=cfg.rpm_omit_samples,
        )
    except InsufficientDataError as e:
        logger.warning("Run %d %s: shaft speed undetermined (%s)", record.run, name, e)
        return math.nan, 0
    if plot_dir is not None:
        plot_rpm_peaks(Path(plot_dir), record.raw(name), est, cfg.fs,
                       title=f"Run {record.run:02d} {name}", stem=f"R{record.run:02d}_{name}")
    return est.rpm, est.pulses


def process_flow_run(record: RunRecord, cfg: FlowRateConfig) -> Tuple[Dict[str, Any], List[FitResult]]:
    """Reduce one flow-rate run to a results row plus its line fits."""
    start_cut, end_cut = cfg.cuts_for(record.run)
    sl = _window(record.n_samples, start_cut, end_cut)
    t = record.time[sl]

    mf = mass_flow_rate(t, record.real("wave_probe")[sl], run=record.run)
    fits: List[FitResult] = [mf.fit]
    if cfg.fit_kiel_probes:
        for name in ("kp_stbd", "kp_port"):
            if name in record.channels:
                fits.append(linear_fit(t, record.real(name)[sl], run=record.run, channel=name))

    thrust_stbd = float(grams_to_newton(_mean(record, "thrust_stbd", sl)))
    thrust_port = float(grams_to_newton(_mean(record, "thrust_port", sl)))
    torque_stbd = _mean(record, "torque_stbd", sl)
    torque_port = _mean(record, "torque_port", sl)

    rpm_stbd = rpm_port = math.nan
    if cfg.rpm_enabled:
        rpm_stbd, _ = _shaft_rpm(record, "rpm_stbd", cfg)
        rpm_port, _ = _shaft_rpm(record, "rpm_port", cfg)

    row = {
        "fs_hz": record.sample_rate,
        "n_samples": record.n_samples,
        "record_time_s": record.record_time_s,
        "mass_flow_kg_s": mf.mass_flow,
        "mass_flow_overall_kg_s": mf.overall,
        "mass_flow_deviation": mf.deviation,
        "kp_stbd_v": _mean(record, "kp_stbd", sl),
        "kp_port_v": _mean(record, "kp_port", sl),
        "thrust_stbd_n": thrust_stbd,
        "thrust_port_n": thrust_port,
        "torque_stbd_nm": torque_stbd,
        "torque_port_nm": torque_port,
        "speed_stbd_rpm": rpm_stbd,
        "speed_port_rpm": rpm_port,
        "power_stbd_w": float(shaft_power_w(torque_stbd, rpm_stbd)),
        "power_port_w": float(shaft_power_w(torque_port, rpm_port)),
    }
    return row, fits


def _load(cfg: RpmConfig, run: int) -> RunRecord:
    return read_run_file(
        cfg.path_for(run),
        cfg.channels,
        run=run,
        header_lines=cfg.header_lines,
        calib_header_lines=cfg.calib_header_lines,
    )


def run_flow_batch(cfg: FlowRateConfig) -> Tuple[ResultsTable, pd.DataFrame]:
    """Process every configured run; failing runs are logged and skipped."""
    table = ResultsTable()
    fits: List[FitResult] = []
    runs = cfg.run_list()
    logger.info("Flow-rate batch: %d runs under %s", len(runs), cfg.data_root)
    for run in runs:
        try:
            record = _load(cfg, run)
            row, run_fits = process_flow_run(record, cfg)
        except FileNotFoundError as e:
            logger.warning("Run %d skipped: file not found (%s)", run, e.filename or e)
            table.skip(run, "file not found")
            continue
        except (AnalysisError, ValueError) as e:
            logger.warning("Run %d skipped: %s", run, e)
            table.skip(run, str(e))
            continue
        table.add(run, row)
        fits.extend(run_fits)
        logger.info("Run %d: mass flow %.3f kg/s, stbd %.0f RPM, port %.0f RPM",
                    run, row["mass_flow_kg_s"], row["speed_stbd_rpm"], row["speed_port_rpm"])
    return table, fit_table(fits)


def run_rpm_batch(cfg: RpmConfig, *, plot_dir: Optional[Path] = None) -> ResultsTable:
    """RPM-only pass; ``plot_dir`` renders one peak plot per shaft and run."""
    table = ResultsTable()
    for run in cfg.run_list():
        try:
            record = _load(cfg, run)
        except FileNotFoundError as e:
            logger.warning("Run %d skipped: file not found (%s)", run, e.filename or e)
            table.skip(run, "file not found")
            continue
        except ValueError as e:
            logger.warning("Run %d skipped: %s", run, e)
            table.skip(run, str(e))
            continue
        rpm_stbd, n_stbd = _shaft_rpm(record, "rpm_stbd", cfg, plot_dir)
        rpm_port, n_port = _shaft_rpm(record, "rpm_port", cfg, plot_dir)
        table.add(run, {
            "speed_stbd_rpm": rpm_stbd,
            "speed_port_rpm": rpm_port,
            "pulses_stbd": n_stbd,
            "pulses_port": n_port,
        })
        logger.info("Run %d: STBD = %.0f RPM // PORT = %.0f RPM", run, rpm_stbd, rpm_port)
    return table


__all__ = [
    "FLOW_CHANNELS",
    "RPM_CHANNELS",
    "FLOW_COLUMNS",
    "RPM_COLUMNS",
    "RpmConfig",
    "FlowRateConfig",
    "process_flow_run",
    "run_flow_batch",
    "run_rpm_batch",
]

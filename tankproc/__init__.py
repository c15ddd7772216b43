"""
tankproc - towing tank waterjet flow-rate, RPM and resistance data reduction.
"""

__version__ = "0.1.0"

from .errors import (
    AnalysisError,
    InvalidArgumentError,
    ShapeMismatchError,
    InsufficientDataError,
    EmptyInputError,
    DegenerateInputError,
)
from .peaks import PeakTable, peakdet
from .rpm import RpmEstimate, estimate_rpm
from .curvefit import FitResult, linear_fit, fit_table
from .calibration import CalibrationPair, to_real_units
from .flowrate import MassFlowEstimate, mass_flow_rate
from .stats import channel_stats
from .averaging import (
    PropSystem,
    WaterjetConstants,
    ChannelSwap,
    RepeatSet,
    average_repeats,
    average_repeat_sets,
    load_averaging_config,
)
from .resistance import WaterProperties, ModelCondition, resistance_row, resistance_table
from .results import ResultsTable, parse_run_spec
from .io import ChannelSpec, RunRecord, read_run_file, write_results
from .batch import FlowRateConfig, RpmConfig, process_flow_run, run_flow_batch, run_rpm_batch
from .report import write_summary_tables, plot_rpm_peaks, plot_linear_fit

__all__ = [
    "__version__",
    "AnalysisError", "InvalidArgumentError", "ShapeMismatchError",
    "InsufficientDataError", "EmptyInputError", "DegenerateInputError",
    "PeakTable", "peakdet", "RpmEstimate", "estimate_rpm",
    "FitResult", "linear_fit", "fit_table",
    "CalibrationPair", "to_real_units",
    "MassFlowEstimate", "mass_flow_rate", "channel_stats",
    "PropSystem", "WaterjetConstants", "ChannelSwap", "RepeatSet",
    "average_repeats", "average_repeat_sets", "load_averaging_config",
    "WaterProperties", "ModelCondition", "resistance_row", "resistance_table",
    "ResultsTable", "parse_run_spec",
    "ChannelSpec", "RunRecord", "read_run_file", "write_results",
    "FlowRateConfig", "RpmConfig", "process_flow_run", "run_flow_batch", "run_rpm_batch",
    "write_summary_tables", "plot_rpm_peaks", "plot_linear_fit",
]

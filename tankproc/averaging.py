"""Averaging of repeated runs at one commanded shaft speed."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence
import json, logging, math
import pandas as pd

from .errors import EmptyInputError, InvalidArgumentError
from .results import ResultsTable, parse_run_spec

logger = logging.getLogger(__name__)


class PropSystem(IntEnum):
    PORT = 1
    STBD = 2
    COMBINED = 3

    @classmethod
    def parse(cls, value) -> "PropSystem":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            aliases = {"STARBOARD": "STBD", "BOTH": "COMBINED"}
            key = aliases.get(key, key)
            if key in cls.__members__:
                return cls[key]
            if key.isdigit():
                value = int(key)
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            raise InvalidArgumentError(f"Unknown propulsion system {value!r}") from None


# Port/starboard column pairs of the flow-rate results table
SWAP_PAIRS: tuple[tuple[str, str], ...] = (
    ("kp_stbd_v", "kp_port_v"),
    ("thrust_stbd_n", "thrust_port_n"),
    ("torque_stbd_nm", "torque_port_nm"),
    ("speed_stbd_rpm", "speed_port_rpm"),
    ("power_stbd_w", "power_port_w"),
)

_KEY_COLUMNS = ("run", "set_rpm", "prop_sys", "n_runs")

DERIVED_COLUMNS = [
    "volumetric_flow_m3_s",
    "flow_coefficient",
    "jet_velocity_m_s",
    "gross_thrust_n",
    "thrust_coefficient",
]


@dataclass(frozen=True)
class WaterjetConstants:
    """Model-scale waterjet geometry and fluid properties."""

    scale_ratio: float = 21.6              # full scale / model scale
    inlet_diameter_fs_mm: float = 1200.0   # used as impeller diameter
    nozzle_diameter_fs_mm: float = 720.0
    density: float = 1000.0                # fresh water, kg/m^3

    @property
    def impeller_diameter_m(self) -> float:
        return self.inlet_diameter_fs_mm / self.scale_ratio / 1000.0

    @property
    def nozzle_area_m2(self) -> float:
        d_m = self.nozzle_diameter_fs_mm / self.scale_ratio / 1000.0
        return math.pi * (d_m / 2.0) ** 2


@dataclass(frozen=True)
class ChannelSwap:
    """Runs whose port and starboard channels were wired the wrong way round.

    ``set_rpm`` / ``prop_sys`` restrict the swap to one condition; ``None``
    matches any.
    """

    runs: tuple[int, ...]
    set_rpm: float | None = None
    prop_sys: PropSystem | None = None
    pairs: tuple[tuple[str, str], ...] = SWAP_PAIRS

    def applies_to(self, set_rpm: float, prop_sys: PropSystem) -> bool:
        if self.set_rpm is not None and float(self.set_rpm) != float(set_rpm):
            return False
        if self.prop_sys is not None and PropSystem.parse(self.prop_sys) != prop_sys:
            return False
        return True


@dataclass(frozen=True)
class RepeatSet:
    set_rpm: float
    prop_sys: PropSystem
    runs: tuple[int, ...] = field(default_factory=tuple)


def _frame(rows) -> pd.DataFrame:
    if isinstance(rows, pd.DataFrame):
        return rows.copy()
    return pd.DataFrame(list(rows))


def mean_columns(rows) -> pd.Series:
    """Column-wise arithmetic mean of the numeric columns of ``rows``.

    A NaN cell makes its column mean NaN: a quantity missing from one
    repeat is undetermined for the set, not the mean of the others.
    """
    df = _frame(rows)
    if df.empty:
        raise EmptyInputError("cannot average an empty repeat set")
    return df.mean(numeric_only=True, skipna=False)


def apply_swaps(df: pd.DataFrame, swaps: Iterable[ChannelSwap], *, set_rpm: float,
                prop_sys: PropSystem) -> pd.DataFrame:
    """Exchange port/starboard columns for runs listed in a matching swap."""
    if "run" not in df.columns:
        return df
    out = df.copy()
    for sw in swaps:
        if not sw.applies_to(set_rpm, prop_sys):
            continue
        mask = out["run"].astype(int).isin([int(r) for r in sw.runs])
        if not mask.any():
            continue
        for a, b in sw.pairs:
            if a in out.columns and b in out.columns:
                out.loc[mask, [a, b]] = out.loc[mask, [b, a]].to_numpy()
    return out


def average_repeats(
    rows,
    *,
    prop_sys,
    set_rpm: float,
    constants: WaterjetConstants = WaterjetConstants(),
    swaps: Sequence[ChannelSwap] = (),
) -> dict[str, Any]:
    """Average repeated runs into one summary row.

    Measured columns are plain means over all rows; a NaN in any row (e.g.
    an undetermined shaft speed) leaves that mean NaN.  Volumetric flow, flow coefficient
    ``Q/(n D^3)``, jet velocity ``Q/A_nozzle``, gross thrust ``m_dot v_j``
    and thrust coefficient ``T_g/(rho n^2 D^4)`` are recomputed from the
    averaged mass flow rate and shaft speed.  For the combined system there
    is no single active shaft, so the per-shaft quantities are NaN.

    Raises
    ------
    EmptyInputError
        If ``rows`` is empty.
    KeyError
        If the mass flow column is missing.
    """
    prop_sys = PropSystem.parse(prop_sys)
    df = _frame(rows)
    if df.empty:
        raise EmptyInputError("cannot average an empty repeat set")
    df = apply_swaps(df, swaps, set_rpm=set_rpm, prop_sys=prop_sys)
    means = mean_columns(df.drop(columns=[c for c in _KEY_COLUMNS if c in df.columns]))
    if "mass_flow_kg_s" not in means.index:
        cols = ", ".join(map(str, df.columns))
        raise KeyError(f"Column 'mass_flow_kg_s' not found in repeat rows. Available columns: {cols}")

    out: dict[str, Any] = {"set_rpm": float(set_rpm), "prop_sys": int(prop_sys), "n_runs": int(len(df))}
    out.update({k: float(v) for k, v in means.items()})

    rho = constants.density
    D = constants.impeller_diameter_m
    mdot = out["mass_flow_kg_s"]
    Q = mdot / rho
    out["volumetric_flow_m3_s"] = Q

    speed_col = {PropSystem.PORT: "speed_port_rpm", PropSystem.STBD: "speed_stbd_rpm"}.get(prop_sys)
    phi = vj = tg = kt = math.nan
    if speed_col is not None:
        vj = Q / constants.nozzle_area_m2
        tg = mdot * vj
        n = out.get(speed_col, math.nan) / 60.0
        if math.isfinite(n) and n != 0:
            phi = Q / (n * D**3)
            kt = tg / (rho * n**2 * D**4)
    out["flow_coefficient"] = phi
    out["jet_velocity_m_s"] = vj
    out["gross_thrust_n"] = tg
    out["thrust_coefficient"] = kt
    return out


def average_repeat_sets(
    table,
    sets: Iterable[RepeatSet],
    *,
    constants: WaterjetConstants = WaterjetConstants(),
    swaps: Sequence[ChannelSwap] = (),
) -> pd.DataFrame:
    """Average every repeat set found in ``table`` (ResultsTable or DataFrame)."""
    if isinstance(table, pd.DataFrame):
        table = ResultsTable.from_frame(table)
    out_rows = []
    for rs in sets:
        runs = list(dict.fromkeys(int(r) for r in rs.runs))
        present = [table.get(r) for r in runs if r in table]
        missing = [r for r in runs if r not in table]
        if missing:
            logger.warning("Set %s rpm / %s: runs %s not in results", rs.set_rpm, PropSystem.parse(rs.prop_sys).name, missing)
        try:
            out_rows.append(
                average_repeats(present, prop_sys=rs.prop_sys, set_rpm=rs.set_rpm,
                                constants=constants, swaps=swaps)
            )
        except EmptyInputError:
            logger.warning("Set %s rpm / %s skipped: no runs available", rs.set_rpm, PropSystem.parse(rs.prop_sys).name)
    return pd.DataFrame(out_rows)


def load_averaging_config(path: Path) -> tuple[list[RepeatSet], list[ChannelSwap], WaterjetConstants]:
    """Read repeat sets, channel swaps and constants from a JSON file.

    Example::

        {"constants": {"scale_ratio": 21.6},
         "sets":  [{"set_rpm": 1000, "prop_sys": "port", "runs": "9-11"}],
         "swaps": [{"runs": [40], "set_rpm": 800, "prop_sys": "stbd"}]}
    """
    data = json.loads(Path(path).read_text())
    return config_from_dict(data)


def config_from_dict(data: Mapping[str, Any]) -> tuple[list[RepeatSet], list[ChannelSwap], WaterjetConstants]:
    constants = WaterjetConstants(**data.get("constants", {}))
    sets = [
        RepeatSet(
            set_rpm=float(s["set_rpm"]),
            prop_sys=PropSystem.parse(s["prop_sys"]),
            runs=tuple(parse_run_spec(s["runs"])),
        )
        for s in data.get("sets", [])
    ]
    swaps = [
        ChannelSwap(
            runs=tuple(parse_run_spec(s["runs"])),
            set_rpm=None if s.get("set_rpm") is None else float(s["set_rpm"]),
            prop_sys=None if s.get("prop_sys") is None else PropSystem.parse(s["prop_sys"]),
        )
        for s in data.get("swaps", [])
    ]
    return sets, swaps, constants


__all__ = [
    "PropSystem",
    "WaterjetConstants",
    "ChannelSwap",
    "RepeatSet",
    "SWAP_PAIRS",
    "DERIVED_COLUMNS",
    "mean_columns",
    "apply_swaps",
    "average_repeats",
    "average_repeat_sets",
    "load_averaging_config",
    "config_from_dict",
]

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple
import math
import pandas as pd

from .errors import InvalidArgumentError
from .physics import (
    G,
    KNOT_M_S,
    froude_number,
    full_scale_speed,
    grams_to_newton,
    grigson_friction,
    heave_mm,
    ittc57_friction,
    reynolds_number,
    stimulator_drag_n,
    total_resistance_coefficient,
    trim_deg,
)


@dataclass(frozen=True)
class WaterProperties:
    # Basin water at 18.5 °C (ITTC 7.5-02-01-03)
    density: float = 998.5048
    kinematic_viscosity: float = 1.0411e-6


@dataclass(frozen=True)
class ModelCondition:
    """Model geometry and corrections for one loading condition.

    ``stimulator_fit`` is ``(slope, intercept)`` of the turbulence-stimulator
    drag (N) against Froude number; when set, that drag is removed from the
    measured resistance.  ``post_spacing_mm`` is the distance between the
    forward and aft carriage posts carrying the LVDTs.
    """

    lwl_m: float
    wetted_area_m2: float
    scale_ratio: float = 1.0
    form_factor: float = 1.0   # (1 + k)
    stimulator_fit: Optional[Tuple[float, float]] = None
    post_spacing_mm: float = 1150.0


def resistance_row(
    speed_m_s: float,
    drag_g: float,
    condition: ModelCondition,
    water: WaterProperties = WaterProperties(),
    *,
    lvdt_fwd_mm: float | None = None,
    lvdt_aft_mm: float | None = None,
) -> dict[str, Any]:
    """Model resistance coefficients from mean carriage speed and drag.

    ``rt_n`` is the measured drag less the turbulence-stimulator drag (zero
    without a stimulator fit).  Heave and trim are NaN unless both LVDT
    means are given.
    """
    v = float(speed_m_s)
    if v <= 0:
        raise InvalidArgumentError("carriage speed must be > 0 m/s")
    fr = float(froude_number(v, condition.lwl_m))
    rt_measured = float(grams_to_newton(drag_g, G))
    rt_stim = 0.0
    if condition.stimulator_fit is not None:
        slope, intercept = condition.stimulator_fit
        rt_stim = float(stimulator_drag_n(fr, slope, intercept))
    rt = rt_measured - rt_stim
    ct = float(total_resistance_coefficient(rt, water.density, condition.wetted_area_m2, v))
    re = float(reynolds_number(v, condition.lwl_m, water.kinematic_viscosity))
    cf_grigson = float(grigson_friction(re))
    vs = float(full_scale_speed(v, condition.scale_ratio))
    heave = trim = math.nan
    if lvdt_fwd_mm is not None and lvdt_aft_mm is not None:
        heave = float(heave_mm(lvdt_fwd_mm, lvdt_aft_mm))
        trim = float(trim_deg(lvdt_fwd_mm, lvdt_aft_mm, condition.post_spacing_mm))
    return {
        "speed_m_s": v,
        "froude": fr,
        "rt_measured_n": rt_measured,
        "rt_stimulator_n": rt_stim,
        "rt_n": rt,
        "ct": ct,
        "reynolds": re,
        "cf_ittc57": float(ittc57_friction(re)),
        "cf_grigson": cf_grigson,
        "cr": ct - condition.form_factor * cf_grigson,
        "pe_w": v * rt,
        "heave_mm": heave,
        "trim_deg": trim,
        "full_scale_speed_m_s": vs,
        "full_scale_speed_kn": vs / KNOT_M_S,
    }


def resistance_table(
    df: pd.DataFrame,
    condition: ModelCondition,
    water: WaterProperties = WaterProperties(),
    *,
    speed_col: str = "speed_m_s",
    drag_col: str = "drag_g",
    fwd_col: str = "lvdt_fwd_mm",
    aft_col: str = "lvdt_aft_mm",
) -> pd.DataFrame:
    """One resistance row per input row; LVDT columns are used when both are present."""
    for col in (speed_col, drag_col):
        if col not in df.columns:
            cols = ", ".join(map(str, df.columns))
            raise KeyError(f"Column '{col}' not found in input dataframe. Available columns: {cols}")
    has_lvdt = fwd_col in df.columns and aft_col in df.columns
    rows = []
    for rec in df.to_dict(orient="records"):
        row = resistance_row(
            rec[speed_col],
            rec[drag_col],
            condition,
            water,
            lvdt_fwd_mm=rec[fwd_col] if has_lvdt else None,
            lvdt_aft_mm=rec[aft_col] if has_lvdt else None,
        )
        if "run" in rec:
            row = {"run": int(rec["run"]), **row}
        rows.append(row)
    return pd.DataFrame(rows)


__all__ = ["WaterProperties", "ModelCondition", "resistance_row", "resistance_table"]

from __future__ import annotations
import argparse, dataclasses, json, logging
from pathlib import Path
import pandas as pd

from .averaging import average_repeat_sets, load_averaging_config
from .batch import FLOW_COLUMNS, RPM_COLUMNS, RpmConfig, run_flow_batch, run_rpm_batch
from .calibration import to_real_units
from .curvefit import linear_fit
from .errors import AnalysisError
from .presets import PRESETS
from .report import plot_linear_fit, write_summary_tables
from .resistance import ModelCondition, WaterProperties, resistance_table


def _require_columns(df: pd.DataFrame, cols, src) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise SystemExit(f"Column(s) {', '.join(missing)} not found in {src}. "
                         f"Available columns: {', '.join(map(str, df.columns))}")


def _batch_config(preset: str, config: str | None, root: str | None, runs: str | None) -> RpmConfig:
    overrides = {}
    if config:
        with open(config) as fh:
            overrides = json.load(fh)
    if root:
        overrides["data_root"] = root
    if runs:
        overrides["runs"] = runs
    try:
        return dataclasses.replace(PRESETS[preset], **overrides)
    except (TypeError, ValueError) as e:
        raise SystemExit(f"Invalid {preset} config: {e}") from None


def build_parser():
    p = argparse.ArgumentParser(prog="tankproc", description="Towing tank waterjet and resistance data reduction")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = p.add_subparsers(dest="cmd", required=True)

    f = sub.add_parser("fit", help="Least-squares line through two CSV columns with error estimates")
    f.add_argument("--csv", required=True)
    f.add_argument("--x-col", required=True)
    f.add_argument("--y-col", required=True)
    f.add_argument("--run", type=int, default=None)
    f.add_argument("--channel", default=None, help="Label stored with the fit (defaults to --y-col)")
    f.add_argument("--json-out", help="Optional path to write the fit as JSON")
    f.add_argument("--plot-dir", help="Render data and fitted line as PNG here")

    c = sub.add_parser("convert", help="Apply zero offset and calibration factor to a CSV column")
    c.add_argument("--csv", required=True)
    c.add_argument("--col", required=True)
    c.add_argument("--zero", type=float, required=True)
    c.add_argument("--cf", type=float, required=True, help="Calibration factor (units per V)")
    c.add_argument("--out-col", default=None, help="Output column (default <col>_real)")
    c.add_argument("--out", required=True)

    r = sub.add_parser("rpm", help="Shaft speed of each run from the proximity sensor pulses")
    r.add_argument("--preset", default="rpm", choices=PRESETS.keys())
    r.add_argument("--config", help="JSON file overriding preset fields")
    r.add_argument("--root", help="Directory holding the NN.run folders")
    r.add_argument("--runs", help='Run list, e.g. "9-29" or "1-4,7"')
    r.add_argument("--outdir", required=True)
    r.add_argument("--plots", action="store_true", help="Write one peak plot per shaft and run")

    fr = sub.add_parser("flowrate", help="Mass flow, thrust, torque and RPM per run")
    fr.add_argument("--preset", default="flowrate", choices=PRESETS.keys())
    fr.add_argument("--config", help="JSON file overriding preset fields")
    fr.add_argument("--root", help="Directory holding the NN.run folders")
    fr.add_argument("--runs", help='Run list, e.g. "1-67"')
    fr.add_argument("--outdir", required=True)

    a = sub.add_parser("average", help="Average repeat runs per set RPM and propulsion system")
    a.add_argument("--results", required=True, help="Per-run results CSV (flowrate output)")
    a.add_argument("--sets", required=True, help="JSON with sets, swaps and constants")
    a.add_argument("--outdir", required=True)

    rs = sub.add_parser("resistance", help="Resistance coefficients from carriage speed and drag")
    rs.add_argument("--csv", required=True)
    rs.add_argument("--speed-col", default="speed_m_s")
    rs.add_argument("--drag-col", default="drag_g", help="Drag column in grams")
    rs.add_argument("--lwl", type=float, required=True, help="Model waterline length (m)")
    rs.add_argument("--wsa", type=float, required=True, help="Model wetted surface area (m^2)")
    rs.add_argument("--scale", type=float, default=1.0)
    rs.add_argument("--form-factor", type=float, default=1.0, help="(1 + k)")
    rs.add_argument("--density", type=float, default=WaterProperties.density)
    rs.add_argument("--nu", type=float, default=WaterProperties.kinematic_viscosity)
    rs.add_argument("--stimulator", type=float, nargs=2, metavar=("SLOPE", "INTERCEPT"),
                    help="Turbulence-stimulator drag line (N against Fr) to subtract")
    rs.add_argument("--post-spacing", type=float, default=1150.0, help="LVDT post spacing (mm)")
    rs.add_argument("--fwd-col", default="lvdt_fwd_mm")
    rs.add_argument("--aft-col", default="lvdt_aft_mm")
    rs.add_argument("--out", required=True)
    return p


def main(argv=None):
    ap = build_parser()
    a = ap.parse_args(argv)
    logging.basicConfig(level=getattr(logging, a.log_level), format="%(levelname)s %(name)s: %(message)s")

    if a.cmd == "fit":
        df = pd.read_csv(a.csv)
        _require_columns(df, [a.x_col, a.y_col], a.csv)
        x = pd.to_numeric(df[a.x_col], errors="coerce").to_numpy(float)
        y = pd.to_numeric(df[a.y_col], errors="coerce").to_numpy(float)
        try:
            fit = linear_fit(x, y, run=a.run, channel=a.channel or a.y_col)
        except AnalysisError as e:
            raise SystemExit(f"fit failed: {e}") from None
        res = fit.as_row()
        if a.json_out:
            Path(a.json_out).parent.mkdir(parents=True, exist_ok=True)
            with open(a.json_out, "w") as fh:
                json.dump(res, fh, indent=2)
        if a.plot_dir:
            res["plot"] = plot_linear_fit(Path(a.plot_dir), x, y, fit, title=f"{a.y_col} vs {a.x_col}",
                                          stem=f"fit_{a.y_col}", xlabel=a.x_col, ylabel=a.y_col)
        print(json.dumps(res, indent=2))
    elif a.cmd == "convert":
        df = pd.read_csv(a.csv)
        _require_columns(df, [a.col], a.csv)
        out_col = a.out_col or f"{a.col}_real"
        real, mean = to_real_units(pd.to_numeric(df[a.col], errors="coerce").to_numpy(float), a.zero, a.cf)
        out = df.copy()
        out[out_col] = real
        Path(a.out).parent.mkdir(parents=True, exist_ok=True)
        out.to_csv(a.out, index=False)
        print(json.dumps({"converted_csv": str(Path(a.out)), "column": out_col, "mean": mean}))
    elif a.cmd == "rpm":
        cfg = _batch_config(a.preset, a.config, a.root, a.runs)
        outdir = Path(a.outdir)
        table = run_rpm_batch(cfg, plot_dir=outdir / "plots" if a.plots else None)
        files = write_summary_tables(outdir, table.to_frame(RPM_COLUMNS), "rpm", skipped=table.skipped)
        print(json.dumps({"ok": True, "runs": table.runs, "skipped": table.skipped, "files": files}))
    elif a.cmd == "flowrate":
        cfg = _batch_config(a.preset, a.config, a.root, a.runs)
        outdir = Path(a.outdir)
        table, fits = run_flow_batch(cfg)
        files = write_summary_tables(outdir, table.to_frame(FLOW_COLUMNS), "flowrate", skipped=table.skipped)
        files += write_summary_tables(outdir, fits, "fits")
        print(json.dumps({"ok": True, "runs": table.runs, "skipped": table.skipped, "files": files}))
    elif a.cmd == "average":
        results = pd.read_csv(a.results)
        _require_columns(results, ["run", "mass_flow_kg_s"], a.results)
        sets, swaps, constants = load_averaging_config(Path(a.sets))
        avg = average_repeat_sets(results, sets, constants=constants, swaps=swaps)
        files = write_summary_tables(Path(a.outdir), avg, "averaged")
        print(json.dumps({"ok": True, "sets": len(avg), "files": files}))
    elif a.cmd == "resistance":
        df = pd.read_csv(a.csv)
        cond = ModelCondition(lwl_m=a.lwl, wetted_area_m2=a.wsa, scale_ratio=a.scale, form_factor=a.form_factor,
                              stimulator_fit=tuple(a.stimulator) if a.stimulator else None,
                              post_spacing_mm=a.post_spacing)
        water = WaterProperties(density=a.density, kinematic_viscosity=a.nu)
        try:
            out = resistance_table(df, cond, water, speed_col=a.speed_col, drag_col=a.drag_col,
                                   fwd_col=a.fwd_col, aft_col=a.aft_col)
        except KeyError as e:
            raise SystemExit(e.args[0]) from None
        except AnalysisError as e:
            raise SystemExit(f"resistance failed: {e}") from None
        Path(a.out).parent.mkdir(parents=True, exist_ok=True)
        out.to_csv(a.out, index=False)
        print(json.dumps({"resistance_csv": str(Path(a.out)), "rows": len(out)}))


if __name__ == "__main__":
    main()

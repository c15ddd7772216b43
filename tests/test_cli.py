import json
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from tankproc import cli


def _run(capsys, args):
    cli.main(args)
    return json.loads(capsys.readouterr().out)


def test_cli_fit(tmp_path: Path, capsys):
    x = np.arange(10.0)
    csv = tmp_path / "line.csv"
    pd.DataFrame({"t": x, "kp": 2 * x + 3}).to_csv(csv, index=False)
    json_out = tmp_path / "fit.json"
    res = _run(capsys, [
        "fit", "--csv", str(csv), "--x-col", "t", "--y-col", "kp",
        "--run", "4", "--json-out", str(json_out), "--plot-dir", str(tmp_path / "plots"),
    ])
    assert np.isclose(res["slope"], 2.0)
    assert np.isclose(res["intercept"], 3.0)
    assert res["run"] == 4
    assert res["channel"] == "kp"
    assert json.loads(json_out.read_text())["slope"] == pytest.approx(2.0)
    assert Path(res["plot"]).exists()


def test_cli_fit_errors(tmp_path: Path):
    csv = tmp_path / "short.csv"
    pd.DataFrame({"t": [0.0, 1.0], "y": [1.0, 2.0]}).to_csv(csv, index=False)
    with pytest.raises(SystemExit):
        cli.main(["fit", "--csv", str(csv), "--x-col", "t", "--y-col", "missing"])
    with pytest.raises(SystemExit):
        cli.main(["fit", "--csv", str(csv), "--x-col", "t", "--y-col", "y"])


def test_cli_convert(tmp_path: Path, capsys):
    csv = tmp_path / "raw.csv"
    pd.DataFrame({"raw": [1, 1, 1, 5, 5, 5]}).to_csv(csv, index=False)
    out = tmp_path / "real.csv"
    res = _run(capsys, ["convert", "--csv", str(csv), "--col", "raw", "--zero", "1", "--cf", "2", "--out", str(out)])
    assert res["column"] == "raw_real"
    assert res["mean"] == pytest.approx(4.0)
    assert pd.read_csv(out)["raw_real"].tolist() == [0, 0, 0, 8, 8, 8]


def test_cli_flowrate(tmp_path: Path, capsys, flow_run):
    root = tmp_path / "data"
    flow_run(root, 1)
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"start_cut": 400, "end_cut": 400, "rpm_omit_samples": 0}))
    outdir = tmp_path / "out"
    res = _run(capsys, [
        "flowrate", "--config", str(cfg), "--root", str(root), "--runs", "1-2", "--outdir", str(outdir),
    ])
    assert res["ok"] is True
    assert res["runs"] == [1]
    assert res["skipped"] == [[2, "file not found"]]
    df = pd.read_csv(outdir / "flowrate.csv")
    assert df["run"].tolist() == [1]
    assert np.isclose(df["mass_flow_kg_s"].iloc[0], 1.0, rtol=1e-3)
    assert len(pd.read_csv(outdir / "fits.tsv", sep="\t")) == 3
    assert json.loads((outdir / "flowrate__skipped.json").read_text()) == [{"run": 2, "reason": "file not found"}]


def test_cli_rpm_with_plots(tmp_path: Path, capsys, rpm_run):
    rpm_run(tmp_path, 9)
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"rpm_omit_samples": 0}))
    res = _run(capsys, [
        "rpm", "--config", str(cfg), "--root", str(tmp_path), "--runs", "9", "--outdir", str(tmp_path / "out"), "--plots",
    ])
    assert res["runs"] == [9]
    df = pd.read_csv(tmp_path / "out" / "rpm.csv")
    assert np.isclose(df["speed_stbd_rpm"].iloc[0], 1200.0, rtol=0.02)
    assert (tmp_path / "out" / "plots" / "R09_rpm_stbd.png").exists()


def test_cli_rejects_unknown_config_key(tmp_path: Path):
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"sample_rate": 800}))
    with pytest.raises(SystemExit):
        cli.main(["flowrate", "--config", str(cfg), "--outdir", str(tmp_path)])


def test_cli_average(tmp_path: Path, capsys):
    results = tmp_path / "flowrate.csv"
    pd.DataFrame({
        "run": [1, 2, 3],
        "mass_flow_kg_s": [1.0, 3.0, 2.0],
        "speed_port_rpm": [1000.0, 0.0, 1000.0],
        "speed_stbd_rpm": [0.0, 1000.0, 0.0],
    }).to_csv(results, index=False)
    sets = tmp_path / "sets.json"
    sets.write_text(json.dumps({
        "sets": [{"set_rpm": 1000, "prop_sys": "port", "runs": "1-3"}],
        "swaps": [{"runs": [2], "prop_sys": "port"}],
    }))
    res = _run(capsys, ["average", "--results", str(results), "--sets", str(sets), "--outdir", str(tmp_path / "avg")])
    assert res["sets"] == 1
    df = pd.read_csv(tmp_path / "avg" / "averaged.csv")
    assert df["n_runs"].iloc[0] == 3
    assert df["speed_port_rpm"].iloc[0] == pytest.approx(1000.0)
    assert df["mass_flow_kg_s"].iloc[0] == pytest.approx(2.0)


def test_cli_resistance(tmp_path: Path, capsys):
    csv = tmp_path / "drag.csv"
    pd.DataFrame({"run": [1, 2], "speed_m_s": [1.0, 1.5], "drag_g": [400.0, 900.0]}).to_csv(csv, index=False)
    out = tmp_path / "res.csv"
    res = _run(capsys, [
        "resistance", "--csv", str(csv), "--lwl", "2.0", "--wsa", "1.2", "--scale", "16", "--out", str(out),
    ])
    assert res["rows"] == 2
    df = pd.read_csv(out)
    assert df["run"].tolist() == [1, 2]
    assert df["full_scale_speed_m_s"].tolist() == pytest.approx([4.0, 6.0])


def test_cli_requires_subcommand():
    with pytest.raises(SystemExit):
        cli.main([])


def test_cli_rejects_flow_config_without_tank_mass_channel(tmp_path: Path):
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"channels": [{"name": "kp_stbd", "column": 2, "calibrate": False}]}))
    with pytest.raises(SystemExit, match="wave_probe"):
        cli.main(["flowrate", "--config", str(cfg), "--root", str(tmp_path), "--outdir", str(tmp_path / "out")])


def test_cli_resistance_stimulator_and_posts(tmp_path: Path, capsys):
    csv = tmp_path / "drag.csv"
    pd.DataFrame({
        "speed_m_s": [2.0], "drag_g": [1000.0], "fwd": [0.0], "aft": [-500.0],
    }).to_csv(csv, index=False)
    out = tmp_path / "res.csv"
    _run(capsys, [
        "resistance", "--csv", str(csv), "--lwl", "2.0", "--wsa", "1.0", "--out", str(out),
        "--stimulator", "3.1638", "-0.4031", "--post-spacing", "500", "--fwd-col", "fwd", "--aft-col", "aft",
    ])
    df = pd.read_csv(out)
    assert df["rt_stimulator_n"].iloc[0] > 0
    assert df["rt_n"].iloc[0] == pytest.approx(df["rt_measured_n"].iloc[0] - df["rt_stimulator_n"].iloc[0])
    assert df["trim_deg"].iloc[0] == pytest.approx(45.0)
    assert df["heave_mm"].iloc[0] == pytest.approx(-250.0)

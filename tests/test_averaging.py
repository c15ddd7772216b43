import json
import logging
import math

import numpy as np
import pandas as pd
import pytest

from tankproc.averaging import (
    ChannelSwap,
    PropSystem,
    RepeatSet,
    WaterjetConstants,
    apply_swaps,
    average_repeat_sets,
    average_repeats,
    config_from_dict,
    load_averaging_config,
    mean_columns,
)
from tankproc.errors import EmptyInputError, InvalidArgumentError


def _row(run, mdot=2.0, port=1800.0, stbd=0.0, **extra):
    row = {"run": run, "mass_flow_kg_s": mdot, "speed_port_rpm": port, "speed_stbd_rpm": stbd}
    row.update(extra)
    return row


def test_single_row_passes_through():
    out = average_repeats([_row(9, thrust_port_n=10.0)], prop_sys="port", set_rpm=1800)
    assert out["n_runs"] == 1
    assert out["prop_sys"] == int(PropSystem.PORT)
    assert out["set_rpm"] == 1800.0
    assert out["mass_flow_kg_s"] == 2.0
    assert out["thrust_port_n"] == 10.0
    assert "run" not in out


def test_column_means():
    rows = [{"run": 1, "mass_flow_kg_s": 1.0, "a": 1.0, "b": 3.0},
            {"run": 2, "mass_flow_kg_s": 2.0, "a": 2.0, "b": 4.0},
            {"run": 3, "mass_flow_kg_s": 3.0, "a": 3.0, "b": 5.0}]
    out = average_repeats(rows, prop_sys=PropSystem.STBD, set_rpm=1000)
    assert out["a"] == pytest.approx(2.0)
    assert out["b"] == pytest.approx(4.0)
    assert out["n_runs"] == 3
    assert mean_columns(pd.DataFrame(rows))["b"] == pytest.approx(4.0)


def test_derived_waterjet_quantities():
    c = WaterjetConstants()
    out = average_repeats([_row(9)], prop_sys="port", set_rpm=1800, constants=c)
    D = 1.2 / 21.6
    area = math.pi * (0.72 / 21.6 / 2) ** 2
    Q = 2.0 / 1000.0
    vj = Q / area
    n = 30.0
    assert c.impeller_diameter_m == pytest.approx(D)
    assert c.nozzle_area_m2 == pytest.approx(area)
    assert out["volumetric_flow_m3_s"] == pytest.approx(Q)
    assert out["jet_velocity_m_s"] == pytest.approx(vj)
    assert out["gross_thrust_n"] == pytest.approx(2.0 * vj)
    assert out["flow_coefficient"] == pytest.approx(Q / (n * D**3))
    assert out["thrust_coefficient"] == pytest.approx(2.0 * vj / (1000.0 * n**2 * D**4))


def test_doubling_mass_flow_doubles_flow_coefficient_and_jet_velocity():
    one = average_repeats([_row(1, mdot=1.5)], prop_sys="port", set_rpm=1500)
    two = average_repeats([_row(1, mdot=3.0)], prop_sys="port", set_rpm=1500)
    assert two["flow_coefficient"] == pytest.approx(2 * one["flow_coefficient"])
    assert two["jet_velocity_m_s"] == pytest.approx(2 * one["jet_velocity_m_s"])
    assert two["gross_thrust_n"] == pytest.approx(4 * one["gross_thrust_n"])


def test_starboard_uses_starboard_shaft():
    port = average_repeats([_row(1, port=1800.0, stbd=900.0)], prop_sys="port", set_rpm=1800)
    stbd = average_repeats([_row(1, port=1800.0, stbd=900.0)], prop_sys="stbd", set_rpm=900)
    assert stbd["flow_coefficient"] == pytest.approx(2 * port["flow_coefficient"])


def test_combined_system_has_no_per_shaft_coefficients():
    out = average_repeats([_row(1, stbd=1800.0)], prop_sys="combined", set_rpm=1800)
    assert out["volumetric_flow_m3_s"] == pytest.approx(0.002)
    for k in ("flow_coefficient", "jet_velocity_m_s", "gross_thrust_n", "thrust_coefficient"):
        assert math.isnan(out[k])


def test_zero_shaft_speed_leaves_coefficients_nan():
    out = average_repeats([_row(1, port=0.0)], prop_sys="port", set_rpm=0)
    assert math.isnan(out["flow_coefficient"])
    assert not math.isnan(out["jet_velocity_m_s"])


def test_empty_and_missing_mass_flow():
    with pytest.raises(EmptyInputError):
        average_repeats([], prop_sys="port", set_rpm=1000)
    with pytest.raises(KeyError):
        average_repeats([{"run": 1, "speed_port_rpm": 1000.0}], prop_sys="port", set_rpm=1000)


def test_swap_corrects_miswired_run():
    rows = [_row(1, port=1000.0, stbd=0.0), _row(2, port=0.0, stbd=1000.0)]
    plain = average_repeats(rows, prop_sys="port", set_rpm=1000)
    fixed = average_repeats(rows, prop_sys="port", set_rpm=1000, swaps=[ChannelSwap(runs=(2,))])
    assert plain["speed_port_rpm"] == pytest.approx(500.0)
    assert fixed["speed_port_rpm"] == pytest.approx(1000.0)
    assert fixed["speed_stbd_rpm"] == pytest.approx(0.0)


def test_swap_restricted_to_condition():
    df = pd.DataFrame([_row(2, port=0.0, stbd=1000.0)])
    swaps = [ChannelSwap(runs=(2,), set_rpm=800, prop_sys=PropSystem.PORT)]
    untouched = apply_swaps(df, swaps, set_rpm=1000, prop_sys=PropSystem.PORT)
    assert untouched["speed_port_rpm"].iloc[0] == 0.0
    swapped = apply_swaps(df, swaps, set_rpm=800, prop_sys=PropSystem.PORT)
    assert swapped["speed_port_rpm"].iloc[0] == 1000.0
    # input frame is not modified
    assert df["speed_port_rpm"].iloc[0] == 0.0


@pytest.mark.parametrize("value,expected", [
    ("port", PropSystem.PORT),
    ("Starboard", PropSystem.STBD),
    ("both", PropSystem.COMBINED),
    ("3", PropSystem.COMBINED),
    (2, PropSystem.STBD),
])
def test_prop_sys_parse(value, expected):
    assert PropSystem.parse(value) is expected


@pytest.mark.parametrize("value", ["aft", 7, None])
def test_prop_sys_parse_rejects(value):
    with pytest.raises(InvalidArgumentError):
        PropSystem.parse(value)


def test_average_repeat_sets(caplog):
    results = pd.DataFrame([
        _row(1, mdot=1.0, port=1000.0),
        _row(2, mdot=3.0, port=1000.0),
        _row(3, mdot=2.0, port=0.0, stbd=1200.0),
    ])
    sets = [
        RepeatSet(1000, PropSystem.PORT, (1, 2)),
        RepeatSet(1200, PropSystem.STBD, (3, 4)),
        RepeatSet(1400, PropSystem.COMBINED, (10,)),
    ]
    with caplog.at_level(logging.WARNING, logger="tankproc.averaging"):
        out = average_repeat_sets(results, sets)
    assert out["set_rpm"].tolist() == [1000.0, 1200.0]
    assert out["n_runs"].tolist() == [2, 1]
    assert np.allclose(out["mass_flow_kg_s"], [2.0, 2.0])
    assert "not in results" in caplog.text
    assert "no runs available" in caplog.text


def test_config_from_dict_and_file(tmp_path):
    data = {
        "constants": {"scale_ratio": 10.0},
        "sets": [{"set_rpm": 1000, "prop_sys": "port", "runs": "9-11"}],
        "swaps": [{"runs": [40], "set_rpm": 800, "prop_sys": "stbd"}, {"runs": "5-6"}],
    }
    sets, swaps, constants = config_from_dict(data)
    assert sets == [RepeatSet(1000.0, PropSystem.PORT, (9, 10, 11))]
    assert swaps[0].prop_sys is PropSystem.STBD and swaps[0].set_rpm == 800.0
    assert swaps[1].runs == (5, 6) and swaps[1].set_rpm is None
    assert constants.impeller_diameter_m == pytest.approx(0.12)

    p = tmp_path / "sets.json"
    p.write_text(json.dumps(data))
    assert load_averaging_config(p) == (sets, swaps, constants)


def test_undetermined_value_is_not_averaged_away():
    rows = [_row(1, port=1000.0), _row(2, port=float("nan")), _row(3, port=2000.0)]
    out = average_repeats(rows, prop_sys="port", set_rpm=1500)
    assert out["n_runs"] == 3
    assert math.isnan(out["speed_port_rpm"])
    assert math.isnan(out["flow_coefficient"])
    assert math.isnan(out["thrust_coefficient"])
    assert out["mass_flow_kg_s"] == pytest.approx(2.0)
    assert math.isnan(mean_columns(pd.DataFrame(rows))["speed_port_rpm"])


def test_duplicated_run_counted_once():
    results = pd.DataFrame([_row(9, mdot=1.0), _row(10, mdot=4.0), _row(11, mdot=1.0)])
    sets, _, _ = config_from_dict({"sets": [{"set_rpm": 1800, "prop_sys": "port", "runs": "9-11,10"}]})
    out = average_repeat_sets(results, sets)
    assert out["n_runs"].tolist() == [3]
    assert out["mass_flow_kg_s"].iloc[0] == pytest.approx(2.0)

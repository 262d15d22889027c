import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))
import dataclasses

import numpy as np
import pytest

from dimensional_rescaling.core.errors import DoubleInitializationError, InvalidRescaleExponentError
from dimensional_rescaling.core.param_file import ParamFile
from dimensional_rescaling.core.unit_scaling import (
    MODULE_NAME,
    UnitScale,
    UnitScaleHandle,
    rescale_factor,
    unit_scaling_end,
    unit_scaling_init,
)

from mock_objects import MockParamFile

POWERS = np.arange(-300, 301)


def init_with(**values):
    handle = UnitScaleHandle()
    US = unit_scaling_init(ParamFile(values), handle)
    return handle, US


def test_rescale_factor_zero_is_exactly_one():
    assert rescale_factor(0) == 1.0
    US = UnitScale()
    for name in ("m_to_Z", "Z_to_m", "m_to_L", "L_to_m", "s_to_T", "T_to_s"):
        assert getattr(US, name) == 1.0


def test_reciprocal_pairs_are_exact_for_all_powers():
    for p in POWERS:
        p = int(p)
        US = UnitScale.from_powers(Z_power=p, L_power=p, T_power=p)
        assert US.Z_to_m * US.m_to_Z == 1.0
        assert US.L_to_m * US.m_to_L == 1.0
        assert US.T_to_s * US.s_to_T == 1.0
        assert US.Z_to_m == 2.0 ** p


@pytest.mark.parametrize("Z_power,L_power,T_power", [
    (0, 0, 0), (2, 0, -1), (-3, 7, 5), (300, -300, 300), (-300, 300, -300), (17, 17, -17),
])
def test_derived_factors(Z_power, L_power, T_power):
    US = UnitScale.from_powers(Z_power, L_power, T_power)
    assert US.Z_to_L == US.Z_to_m * US.m_to_L
    assert US.L_to_Z == US.L_to_m * US.m_to_Z
    assert US.Z_to_L * US.L_to_Z == 1.0
    assert US.L_T_to_m_s * US.m_s_to_L_T == 1.0
    assert US.Z2_T_to_m2_s * US.m2_s_to_Z2_T == 1.0
    assert US.L_T2_to_m_s2 == US.L_to_m * US.s_to_T ** 2


def test_acceleration_has_no_inverse():
    US = UnitScale.from_powers(1, 2, 3)
    assert US.L_T2_to_m_s2 == 4.0 * 2.0 ** -6
    assert not hasattr(US, "m_s2_to_L_T2")


def test_scenario_Z2_L0_Tm1():
    """Z=2, L=0, T=-1 の具体値"""
    handle, US = init_with(Z_RESCALE_POWER=2, L_RESCALE_POWER=0, T_RESCALE_POWER=-1)
    assert (US.Z_to_m, US.m_to_Z) == (4.0, 0.25)
    assert (US.L_to_m, US.m_to_L) == (1.0, 1.0)
    assert (US.T_to_s, US.s_to_T) == (0.5, 2.0)
    assert US.Z_to_L == 4.0
    assert US.L_T_to_m_s == 2.0
    assert US.Z2_T_to_m2_s == 32.0
    assert handle.US is US


def test_defaults_are_zero_powers():
    handle, US = init_with()
    assert US.powers == (0, 0, 0)
    assert US.Z2_T_to_m2_s == 1.0


@pytest.mark.parametrize("name", ["Z_RESCALE_POWER", "L_RESCALE_POWER", "T_RESCALE_POWER"])
@pytest.mark.parametrize("power", [301, -301, 1000])
def test_out_of_range_power_is_fatal(name, power):
    handle = UnitScaleHandle()
    with pytest.raises(InvalidRescaleExponentError, match=name):
        unit_scaling_init(ParamFile({name: power}), handle)
    assert not handle.is_set


@pytest.mark.parametrize("name", ["Z_RESCALE_POWER", "L_RESCALE_POWER", "T_RESCALE_POWER"])
@pytest.mark.parametrize("power", [300, -300])
def test_range_limits_are_valid(name, power):
    handle, US = init_with(**{name: power})
    assert handle.is_set


def test_from_powers_checks_range():
    with pytest.raises(InvalidRescaleExponentError):
        UnitScale.from_powers(T_power=-301)


def test_double_initialization_is_fatal():
    handle, US = init_with(Z_RESCALE_POWER=3)
    with pytest.raises(DoubleInitializationError):
        unit_scaling_init(ParamFile({}), handle)
    # 既存のインスタンスはそのまま
    assert handle.US is US


def test_end_allows_reinitialization():
    handle, US = init_with(Z_RESCALE_POWER=3)
    unit_scaling_end(handle)
    assert handle.US is None
    US2 = unit_scaling_init(ParamFile({"Z_RESCALE_POWER": -3}), handle)
    assert US2.Z_to_m == 0.125


def test_factors_cannot_be_reassigned():
    US = UnitScale.from_powers(1, 1, 1)
    with pytest.raises(AttributeError):
        US.m_to_Z = 2.0
    with pytest.raises(AttributeError):
        US.Z_to_L = 3.0
    with pytest.raises(AttributeError):
        US.Z_power = 5
    assert US.m_to_Z == 0.5


def test_numpy_integer_powers():
    handle, US = init_with(L_RESCALE_POWER=np.int64(-4))
    assert US.L_to_m == 0.0625
    assert isinstance(US.L_power, int)


def test_parameters_are_read_and_logged():
    pf = MockParamFile({"T_RESCALE_POWER": 5})
    US = unit_scaling_init(pf, UnitScaleHandle())
    assert [c["name"] for c in pf.calls] == ["Z_RESCALE_POWER", "L_RESCALE_POWER", "T_RESCALE_POWER"]
    for call in pf.calls:
        assert call["module"] == MODULE_NAME
        assert call["units"] == "nondim"
        assert call["default"] == 0
        assert call["debugging"] is True
    assert len(pf.versions) == 1
    assert pf.versions[0][0] == MODULE_NAME
    assert US.T_to_s == 32.0


def test_parameter_doc_records_values():
    pf = ParamFile({"Z_RESCALE_POWER": -2})
    unit_scaling_init(pf, UnitScaleHandle())
    entry = pf.doc.get("Z_RESCALE_POWER")
    assert entry.value == -2
    assert entry.units == "nondim"
    assert "Valid values range from -300 to 300" in entry.description
    assert pf.doc.get("T_RESCALE_POWER").value == 0
    assert pf.doc.versions[0].module == MODULE_NAME


def test_as_dict_and_summary():
    US = UnitScale.from_powers(2, 0, -1)
    d = US.as_dict()
    assert d["Z2_T_to_m2_s"] == 32.0
    assert d["m_to_Z_restart"] == 0.0
    assert "Z_power" not in d
    s = US.summary()
    assert "2**2" in s
    assert "L_T2_to_m_s2" in s


@pytest.mark.parametrize("power", [0.3, 2.0, True, "1"])
def test_non_integer_powers_are_fatal(power):
    with pytest.raises(InvalidRescaleExponentError, match="integer"):
        UnitScale.from_powers(Z_power=power)


def test_numpy_integer_from_powers():
    US = UnitScale.from_powers(L_power=np.int16(5))
    assert US.L_to_m == 32.0
    assert type(US.L_power) is int


def test_dataclass_fields_are_factors_only():
    names = [f.name for f in dataclasses.fields(UnitScale)]
    assert "_frozen" not in names
    assert "_frozen" not in dataclasses.asdict(UnitScale.from_powers(1, 2, 3))

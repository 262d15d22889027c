"""
Core of the dimensional rescaling facility: the unit scaling factors and
the parameter handling they depend on.
"""

from .errors import (
    DoubleInitializationError,
    FatalError,
    InvalidRescaleExponentError,
    MissingParameterError,
    ParameterError,
    ParameterTypeError,
    fatal_error,
)
from .param_doc import ParameterDoc
from .param_file import ParamFile
from .unit_scaling import (
    UnitScale,
    UnitScaleHandle,
    fix_restart_unit_scaling,
    restart_rescale_factors,
    unit_scaling_end,
    unit_scaling_init,
)

__all__ = [
    "UnitScale",
    "UnitScaleHandle",
    "unit_scaling_init",
    "fix_restart_unit_scaling",
    "unit_scaling_end",
    "restart_rescale_factors",
    "ParamFile",
    "ParameterDoc",
    "fatal_error",
    "FatalError",
    "DoubleInitializationError",
    "InvalidRescaleExponentError",
    "ParameterError",
    "MissingParameterError",
    "ParameterTypeError",
]

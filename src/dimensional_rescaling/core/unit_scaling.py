"""
Dimensional unit rescaling factors.

The model stores vertical distances (Z), horizontal lengths (L) and time
intervals (T) in internal units that may be shifted away from meters and
seconds by integer powers of two. Running the same configuration with
different powers and comparing answers exposes code that silently assumes
a particular unit system. Powers of two are used so that the rescaling
itself is exact in binary floating point.

The factors are collected in a ``UnitScale`` that is built once per run by
``unit_scaling_init`` and held in a caller-owned ``UnitScaleHandle``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple, Union

import numpy as np

from .errors import DoubleInitializationError, InvalidRescaleExponentError, fatal_error

logger = logging.getLogger(__name__)

MODULE_NAME = "dimensional_rescaling.unit_scaling"
VERSION = "1.0.0"

MAX_RESCALE_POWER = 300

# Parameter name and wording for each fundamental dimension
RESCALE_PARAMETERS: Tuple[Tuple[str, str], ...] = (
    ("Z_RESCALE_POWER", "depths and heights"),
    ("L_RESCALE_POWER", "lateral distances"),
    ("T_RESCALE_POWER", "time"),
)

_FUNDAMENTAL = ("m_to_Z", "Z_to_m", "m_to_L", "L_to_m", "s_to_T", "T_to_s")
_DERIVED = (
    "Z_to_L", "L_to_Z",
    "L_T_to_m_s", "m_s_to_L_T",
    "L_T2_to_m_s2",
    "Z2_T_to_m2_s", "m2_s_to_Z2_T",
)
_RESTART = ("m_to_Z_restart", "m_to_L_restart", "s_to_T_restart")


def rescale_factor(power: int) -> float:
    """
    Return ``2.0 ** power``, with exactly 1.0 for ``power == 0``.

    Parameters
    ----------
    power : int
        Rescale power of two.

    Returns
    -------
    float
        Ratio of internal units to physical units.
    """
    factor = 1.0
    if power != 0:
        factor = 2.0 ** power
    return factor


def check_rescale_power(name: str, power: int) -> None:
    """Fail fatally if ``power`` is not an integer in [-300, 300]."""
    if isinstance(power, bool) or not isinstance(power, (int, np.integer)):
        fatal_error(
            f"unit_scaling_init: {name} must be an integer, not {power!r}.",
            InvalidRescaleExponentError,
        )
    if abs(power) > MAX_RESCALE_POWER:
        fatal_error(
            f"unit_scaling_init: {name} is outside of the valid range of "
            f"-{MAX_RESCALE_POWER} to {MAX_RESCALE_POWER}.",
            InvalidRescaleExponentError,
        )


@dataclass
class UnitScale:
    """
    Unit conversion factors for a model run.

    Attributes named ``X_to_Y`` multiply a quantity in units of X to give
    it in units of Y. Upper-case letters are the internal units (Z depth,
    L horizontal length, T time), lower-case ``m`` and ``s`` are meters and
    seconds.

    Attributes
    ----------
    m_to_Z, Z_to_m : float
        Vertical distances [Z m-1] and [m Z-1].
    m_to_L, L_to_m : float
        Horizontal lengths [L m-1] and [m L-1].
    s_to_T, T_to_s : float
        Time intervals [T s-1] and [s T-1].
    Z_to_L, L_to_Z : float
        Vertical distances to lateral lengths and back.
    L_T_to_m_s, m_s_to_L_T : float
        Lateral velocities.
    L_T2_to_m_s2 : float
        Lateral accelerations from L T-2 to m s-2. There is no inverse as
        nothing needs it.
    Z2_T_to_m2_s, m2_s_to_Z2_T : float
        Vertical diffusivities.
    m_to_Z_restart, m_to_L_restart, s_to_T_restart : float
        Copies of the physical-to-internal factors used in restart files,
        0.0 until ``fix_restart_unit_scaling`` is called.

    All factors except the restart copies are fixed once constructed.
    """

    Z_power: int = 0
    L_power: int = 0
    T_power: int = 0

    m_to_Z: float = field(init=False)
    Z_to_m: float = field(init=False)
    m_to_L: float = field(init=False)
    L_to_m: float = field(init=False)
    s_to_T: float = field(init=False)
    T_to_s: float = field(init=False)

    # Useful combinations of the fundamental factors
    Z_to_L: float = field(init=False)
    L_to_Z: float = field(init=False)
    L_T_to_m_s: float = field(init=False)
    m_s_to_L_T: float = field(init=False)
    L_T2_to_m_s2: float = field(init=False)
    Z2_T_to_m2_s: float = field(init=False)
    m2_s_to_Z2_T: float = field(init=False)

    m_to_Z_restart: float = field(default=0.0, init=False)
    m_to_L_restart: float = field(default=0.0, init=False)
    s_to_T_restart: float = field(default=0.0, init=False)

    def __post_init__(self):
        for (name, _), power in zip(RESCALE_PARAMETERS, self.powers):
            check_rescale_power(name, power)
        self.Z_power, self.L_power, self.T_power = (int(p) for p in self.powers)

        Z_rescale_factor = rescale_factor(self.Z_power)
        self.Z_to_m = 1.0 * Z_rescale_factor
        self.m_to_Z = 1.0 / Z_rescale_factor

        L_rescale_factor = rescale_factor(self.L_power)
        self.L_to_m = 1.0 * L_rescale_factor
        self.m_to_L = 1.0 / L_rescale_factor

        T_rescale_factor = rescale_factor(self.T_power)
        self.T_to_s = 1.0 * T_rescale_factor
        self.s_to_T = 1.0 / T_rescale_factor

        self.Z_to_L = self.Z_to_m * self.m_to_L
        self.L_to_Z = self.L_to_m * self.m_to_Z
        self.L_T_to_m_s = self.L_to_m * self.s_to_T
        self.m_s_to_L_T = self.m_to_L * self.T_to_s
        self.L_T2_to_m_s2 = self.L_to_m * self.s_to_T ** 2
        self.Z2_T_to_m2_s = self.Z_to_m ** 2 * self.s_to_T
        self.m2_s_to_Z2_T = self.m_to_Z ** 2 * self.T_to_s

        object.__setattr__(self, "_frozen", True)

    def __setattr__(self, name, value):
        if self.__dict__.get("_frozen", False) and name not in _RESTART:
            raise AttributeError(
                f"UnitScale.{name} is fixed at construction; only the restart "
                f"factors can be changed"
            )
        super().__setattr__(name, value)

    @classmethod
    def from_powers(cls, Z_power: int = 0, L_power: int = 0, T_power: int = 0) -> "UnitScale":
        return cls(Z_power=Z_power, L_power=L_power, T_power=T_power)

    @property
    def powers(self) -> Tuple[int, int, int]:
        return (self.Z_power, self.L_power, self.T_power)

    def restart_record(self) -> Dict[str, float]:
        """Restart factors in the form written to restart files."""
        return {name: getattr(self, name) for name in _RESTART}

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in _FUNDAMENTAL + _DERIVED + _RESTART}

    def summary(self) -> str:
        lines = [
            "Unit scaling:",
            f"  Z: 2**{self.Z_power}  Z_to_m={self.Z_to_m:.6g}  m_to_Z={self.m_to_Z:.6g}",
            f"  L: 2**{self.L_power}  L_to_m={self.L_to_m:.6g}  m_to_L={self.m_to_L:.6g}",
            f"  T: 2**{self.T_power}  T_to_s={self.T_to_s:.6g}  s_to_T={self.s_to_T:.6g}",
            "  Derived:",
        ]
        lines += [f"    {name} = {getattr(self, name):.6g}" for name in _DERIVED]
        lines.append("  Restart:")
        lines += [f"    {name} = {getattr(self, name):.6g}" for name in _RESTART]
        return "\n".join(lines)


class UnitScaleHandle:
    """
    Caller-owned slot holding at most one ``UnitScale``.

    ``unit_scaling_init`` requires the slot to be empty and fills it;
    ``unit_scaling_end`` empties it again.
    """

    def __init__(self):
        self.US: Optional[UnitScale] = None

    @property
    def is_set(self) -> bool:
        return self.US is not None

    def get(self) -> UnitScale:
        if self.US is None:
            raise RuntimeError("UnitScaleHandle has not been initialized")
        return self.US

    def __repr__(self) -> str:
        return f"UnitScaleHandle(US={self.US!r})"


def unit_scaling_init(param_file, handle: UnitScaleHandle) -> UnitScale:
    """
    Read the rescale powers and build the unit scaling factors.

    Parameters
    ----------
    param_file : ParamFile
        Parameter source; anything with ``get_param`` and ``log_version``.
    handle : UnitScaleHandle
        Empty slot that receives the new ``UnitScale``.

    Returns
    -------
    UnitScale
        The instance now held by ``handle``.

    Raises
    ------
    DoubleInitializationError
        If ``handle`` already holds a ``UnitScale``.
    InvalidRescaleExponentError
        If any power is outside of [-300, 300].
    """
    if handle.is_set:
        fatal_error(
            "unit_scaling_init: called with an already initialized unit scale handle.",
            DoubleInitializationError,
        )

    # Read all relevant parameters and write them to the model log.
    param_file.log_version(MODULE_NAME, VERSION,
                           "Parameters for doing unit scaling of variables.")
    powers = []
    for name, what in RESCALE_PARAMETERS:
        powers.append(param_file.get_param(
            MODULE_NAME, name,
            f"An integer power of 2 that is used to rescale the model's internal "
            f"units of {what}.  Valid values range from -{MAX_RESCALE_POWER} "
            f"to {MAX_RESCALE_POWER}.",
            units="nondim", default=0, debugging=True,
        ))
    US = UnitScale.from_powers(*powers)
    handle.US = US
    logger.info(f"Unit scaling initialized with powers Z={US.Z_power} L={US.L_power} T={US.T_power}")
    return US


def _resolve(US: Union[UnitScale, UnitScaleHandle]) -> UnitScale:
    if isinstance(US, UnitScaleHandle):
        return US.get()
    return US


def fix_restart_unit_scaling(US: Union[UnitScale, UnitScaleHandle]) -> None:
    """
    Set the unit scaling factors for output to restart files to the unit
    scaling factors for this run.
    """
    US = _resolve(US)
    US.m_to_Z_restart = US.m_to_Z
    US.m_to_L_restart = US.m_to_L
    US.s_to_T_restart = US.s_to_T
    logger.info("Restart unit scaling fixed to the current unit scaling")


def unit_scaling_end(handle: UnitScaleHandle) -> None:
    """Release the unit scaling held by ``handle``."""
    handle.US = None
    logger.info("Unit scaling released")


def restart_rescale_factors(
    US: Union[UnitScale, UnitScaleHandle],
    saved: Optional[Mapping[str, float]] = None,
) -> Dict[str, float]:
    """
    Factors that convert values read from a restart file into the units of
    this run.

    Parameters
    ----------
    US : UnitScale or UnitScaleHandle
        Unit scaling of the current run.
    saved : Mapping, optional
        Restart factors stored with the restart file, as returned by
        ``UnitScale.restart_record``. Defaults to the restart factors held
        by ``US``.

    Returns
    -------
    dict
        ``{"Z": ..., "L": ..., "T": ...}``. A dimension whose saved factor
        is 0.0 (unknown) or equal to the current one gets exactly 1.0.
    """
    US = _resolve(US)
    if saved is None:
        saved = US.restart_record()
    out = {}
    for dim, live_name, restart_name in (
        ("Z", "m_to_Z", "m_to_Z_restart"),
        ("L", "m_to_L", "m_to_L_restart"),
        ("T", "s_to_T", "s_to_T_restart"),
    ):
        live = getattr(US, live_name)
        stored = float(saved.get(restart_name, 0.0))
        if stored == 0.0 or stored == live:
            out[dim] = 1.0
        else:
            out[dim] = live / stored
    return out

"""
Fatal error reporting for the unit scaling facility.

Every error raised here ends the model run. Callers are not expected to
catch them except at the outermost driver level.
"""

from __future__ import annotations

import logging
from typing import NoReturn, Type

logger = logging.getLogger(__name__)


class FatalError(RuntimeError):
    """Base class for errors that terminate the model run."""


class DoubleInitializationError(FatalError):
    """A unit scale slot was initialized while already populated."""


class InvalidRescaleExponentError(FatalError):
    """A rescale power lies outside of the valid range."""


class ParameterError(FatalError):
    """Problems with a parameter read from the parameter file."""


class MissingParameterError(ParameterError):
    pass


class ParameterTypeError(ParameterError):
    pass


def fatal_error(message: str, error_cls: Type[FatalError] = FatalError) -> NoReturn:
    """
    Report a fatal error and stop the run.

    Parameters
    ----------
    message : str
        Message describing what went wrong.
    error_cls : type
        FatalError subclass to raise.

    Raises
    ------
    FatalError
        Always.
    """
    logger.critical(f"FATAL error: {message}")
    raise error_cls(message)

"""
dimensional_rescaling
=====================
Power-of-two rescaling of the model's internal units of depth, horizontal
length and time, used to test a numerical model for dimensional
consistency.
"""

from .core import *  # noqa: F401,F403
from .core import __all__ as _core_all

__version__ = "1.0.0"

__all__ = list(_core_all) + ["__version__"]

"""
Parameter source for model start-up.

``ParamFile`` holds the run-time parameters of a model run and hands them
out one at a time through ``get_param``. Every parameter that is read is
also logged to a ``ParameterDoc`` so that the full set of values used by a
run can be reproduced later.

Parameters can be supplied as

* a plain mapping,
* a YAML file (top-level mapping),
* a ``KEY = value`` input file where ``!`` starts a comment and a line
  ``#override KEY = value`` replaces an earlier setting,
* a Python parameter module whose upper-case names are the parameters.
"""

from __future__ import annotations

import importlib.util
import logging
import os
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

import numpy as np
import yaml

from .errors import MissingParameterError, ParameterError, ParameterTypeError, fatal_error
from .param_doc import ParamEntry, ParameterDoc

logger = logging.getLogger(__name__)

_ASSIGNMENT = re.compile(r"^\s*(#override\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*?)\s*$")
_INT = re.compile(r"^[+-]?\d+$")


class ParamFile:
    """
    Run-time parameters of a model run.

    Parameters
    ----------
    values : Mapping, optional
        Parameter values by name.
    doc : ParameterDoc, optional
        Where read parameters are logged. A fresh in-memory document is
        used when omitted.
    source : str
        Description of where the values came from, used in messages.
    """

    def __init__(
        self,
        values: Optional[Mapping[str, Any]] = None,
        doc: Optional[ParameterDoc] = None,
        source: str = "<dict>",
    ):
        self._values: Dict[str, Any] = dict(values or {})
        self.doc = doc if doc is not None else ParameterDoc()
        self.source = source
        self._read: Set[str] = set()

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def __repr__(self) -> str:
        return f"ParamFile(source={self.source!r}, n_params={len(self._values)})"

    # ------------------------------------------------------------------
    # loaders
    # ------------------------------------------------------------------
    @classmethod
    def from_file(cls, path: str, doc: Optional[ParameterDoc] = None) -> "ParamFile":
        """Load a parameter file, choosing the format from its suffix."""
        suffix = os.path.splitext(path)[1].lower()
        if suffix in (".yaml", ".yml"):
            return cls.from_yaml(path, doc=doc)
        if suffix == ".py":
            return cls.from_module(path, doc=doc)
        return cls.from_input_file(path, doc=doc)

    @classmethod
    def from_yaml(cls, path: str, doc: Optional[ParameterDoc] = None) -> "ParamFile":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (yaml.YAMLError, UnicodeDecodeError) as e:
            fatal_error(f"ParamFile: cannot parse {path}: {e}", ParameterError)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            fatal_error(
                f"ParamFile: {path} must contain a mapping of parameter names to values.",
                ParameterError,
            )
        logger.info(f"Read {len(data)} parameters from {path}")
        return cls(data, doc=doc, source=path)

    @classmethod
    def from_input_file(cls, path: str, doc: Optional[ParameterDoc] = None) -> "ParamFile":
        try:
            with open(path, "r", encoding="utf-8") as f:
                values = parse_input_lines(f, source=path)
        except UnicodeDecodeError as e:
            fatal_error(f"ParamFile: cannot read {path} as UTF-8: {e}", ParameterError)
        logger.info(f"Read {len(values)} parameters from {path}")
        return cls(values, doc=doc, source=path)

    @classmethod
    def from_module(cls, path: str, doc: Optional[ParameterDoc] = None) -> "ParamFile":
        spec = importlib.util.spec_from_file_location("params", path)
        mod = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(mod)  # type: ignore[union-attr]
        values = {
            k: getattr(mod, k)
            for k in dir(mod)
            if k.isupper() and not k.startswith("_")
        }
        logger.info(f"Read {len(values)} parameters from {path}")
        return cls(values, doc=doc, source=path)

    # ------------------------------------------------------------------
    # reading & logging
    # ------------------------------------------------------------------
    def get_param(
        self,
        module: str,
        name: str,
        description: str,
        units: Optional[str] = None,
        default: Any = None,
        debugging: bool = False,
        value_type: type = int,
    ) -> Any:
        """
        Read one parameter and log its value.

        Parameters
        ----------
        module : str
            Name of the module reading the parameter.
        name : str
            Parameter name.
        description : str
            Description written to the parameter log.
        units : str, optional
            Units written to the parameter log.
        default : any, optional
            Value used when the parameter is not set. Without a default a
            missing parameter is fatal.
        debugging : bool
            Whether the parameter only matters for debugging.
        value_type : type
            ``int``, ``float``, ``bool`` or ``str``.

        Returns
        -------
        any
            The parameter value converted to ``value_type``.
        """
        if name in self._values:
            value = _coerce(name, self._values[name], value_type)
            self._read.add(name)
        elif default is not None:
            value = _coerce(name, default, value_type)
        else:
            fatal_error(
                f"get_param: {name} is required by {module} but is not set in {self.source}.",
                MissingParameterError,
            )
        self.log_param(module, name, value, description, units=units,
                       default=default, debugging=debugging)
        return value

    def log_param(
        self,
        module: str,
        name: str,
        value: Any,
        description: str,
        units: Optional[str] = None,
        default: Any = None,
        debugging: bool = False,
    ) -> None:
        logger.debug(f"{module}: {name} = {value} [{units or ''}]")
        self.doc.log_param(ParamEntry(
            module=module,
            name=name,
            value=value,
            description=description,
            units=units,
            default=default,
            debugging=debugging,
        ))

    def log_version(self, module: str, version: str, description: str = "") -> None:
        logger.debug(f"{module} version {version}")
        self.doc.log_version(module, version, description)

    # ------------------------------------------------------------------
    # bookkeeping
    # ------------------------------------------------------------------
    def unused_parameters(self) -> List[str]:
        return sorted(set(self._values) - self._read)

    def close(self) -> None:
        for name in self.unused_parameters():
            logger.warning(f"Parameter {name} was set in {self.source} but was never used.")
        self.doc.close()


def parse_input_lines(lines: Iterable[str], source: str = "<input>") -> Dict[str, Any]:
    """
    Parse ``KEY = value`` lines into a dict.

    A key may only be set once unless the later setting is marked with
    ``#override``. Lines starting with ``#`` that are not overrides are
    ignored.
    """
    values: Dict[str, Any] = {}
    overridden: Set[str] = set()
    defined: Set[str] = set()
    for lineno, raw in enumerate(lines, start=1):
        line = _strip_comment(raw).strip()
        if not line:
            continue
        match = _ASSIGNMENT.match(line)
        if match is None:
            if line.startswith("#"):
                continue
            fatal_error(f"{source}:{lineno}: cannot parse line {raw.rstrip()!r}.", ParameterError)
        is_override, key, text = match.groups()
        if is_override:
            if key in overridden:
                fatal_error(f"{source}:{lineno}: {key} is overridden more than once.", ParameterError)
            overridden.add(key)
        else:
            if key in defined:
                fatal_error(f"{source}:{lineno}: {key} is defined more than once.", ParameterError)
            defined.add(key)
            if key in overridden:
                # the override wins regardless of order
                continue
        values[key] = _parse_value(text)
    return values


def _strip_comment(line: str) -> str:
    in_quote = None
    for i, ch in enumerate(line):
        if ch in "\"'":
            if in_quote is None:
                in_quote = ch
            elif in_quote == ch:
                in_quote = None
        elif ch == "!" and in_quote is None:
            return line[:i]
    return line


def _parse_value(text: str) -> Any:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1]
    if text in ("True", "true", ".true.", "T"):
        return True
    if text in ("False", "false", ".false.", "F"):
        return False
    if _INT.match(text):
        return int(text)
    try:
        return float(text.replace("d", "e").replace("D", "E"))
    except ValueError:
        return text


def _coerce(name: str, value: Any, value_type: type) -> Any:
    if isinstance(value, np.generic):
        value = value.item()
    if value_type is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and _INT.match(value.strip()):
            return int(value.strip())
    elif value_type is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                pass
    elif value_type is bool:
        if isinstance(value, bool):
            return value
    elif value_type is str:
        return str(value)
    fatal_error(
        f"get_param: {name} = {value!r} cannot be read as {value_type.__name__}.",
        ParameterTypeError,
    )

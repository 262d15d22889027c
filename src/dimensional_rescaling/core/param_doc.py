"""
Parameter documentation log.

Collects every parameter value read during model start-up, together with
its units, default and description, and writes them out as plain text.
Two documents are produced: ``<prefix>.all`` with every parameter and
``<prefix>.debugging`` with only the parameters flagged for debugging.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np

logger = logging.getLogger(__name__)

# Column at which the trailing "!" comment starts
_COMMENT_COLUMN = 32


@dataclass
class VersionEntry:
    module: str
    version: str
    description: str


@dataclass
class ParamEntry:
    module: str
    name: str
    value: Any
    description: str
    units: Optional[str] = None
    default: Any = None
    debugging: bool = False


def format_value(value: Any) -> str:
    """Format a parameter value the way it would be written in an input file."""
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


class ParameterDoc:
    """
    In-memory parameter log with optional text output.

    Parameters
    ----------
    directory : str, optional
        Where to write the documents on ``close()``. Nothing is written
        when omitted.
    prefix : str
        File name prefix for the documents.
    """

    def __init__(self, directory: Optional[str] = None, prefix: str = "parameter_doc"):
        self.directory = directory
        self.prefix = prefix
        self._blocks: List[tuple[VersionEntry, List[ParamEntry]]] = []
        self._closed = False

    # ------------------------------------------------------------------
    # logging
    # ------------------------------------------------------------------
    def log_version(self, module: str, version: str, description: str) -> None:
        self._blocks.append((VersionEntry(module, version, description), []))

    def log_param(self, entry: ParamEntry) -> None:
        block = self._block_for(entry.module)
        # a parameter is documented once per module
        for i, old in enumerate(block):
            if old.name == entry.name:
                block[i] = entry
                return
        block.append(entry)

    def _block_for(self, module: str) -> List[ParamEntry]:
        for version, params in self._blocks:
            if version.module == module:
                return params
        # parameters logged before log_version get an anonymous header
        self._blocks.append((VersionEntry(module, "", ""), []))
        return self._blocks[-1][1]

    # ------------------------------------------------------------------
    # access
    # ------------------------------------------------------------------
    @property
    def entries(self) -> List[ParamEntry]:
        return [p for _, params in self._blocks for p in params]

    @property
    def versions(self) -> List[VersionEntry]:
        return [v for v, _ in self._blocks]

    def get(self, name: str) -> Optional[ParamEntry]:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    # ------------------------------------------------------------------
    # output
    # ------------------------------------------------------------------
    def to_text(self, debugging_only: bool = False) -> str:
        lines: List[str] = []
        for version, params in self._blocks:
            selected = [p for p in params if p.debugging or not debugging_only]
            if debugging_only and not selected:
                continue
            header = f"! === module {version.module} ==="
            if version.version:
                header += f" (version {version.version})"
            lines.append(header)
            if version.description:
                lines.append(f"! {version.description}")
            for p in selected:
                lines.extend(_format_entry(p))
            lines.append("")
        return "\n".join(lines)

    def write(self, directory: Optional[str] = None) -> List[str]:
        """Write both documents and return their paths."""
        directory = directory or self.directory
        if directory is None:
            raise ValueError("No output directory given for the parameter documents")
        os.makedirs(directory, exist_ok=True)
        paths = []
        for suffix, debugging_only in (("all", False), ("debugging", True)):
            path = os.path.join(directory, f"{self.prefix}.{suffix}")
            with open(path, "w", encoding="utf-8") as f:
                f.write(self.to_text(debugging_only=debugging_only))
            logger.info(f"Wrote parameter documentation to {path}")
            paths.append(path)
        return paths

    def close(self) -> None:
        if self._closed:
            return
        if self.directory is not None:
            self.write()
        self._closed = True


def _format_entry(p: ParamEntry) -> List[str]:
    assignment = f"{p.name} = {format_value(p.value)}"
    comment = "!"
    if p.units:
        comment += f"   [{p.units}]"
    if p.default is not None:
        comment += f" default = {format_value(p.default)}"
    pad = " " * _COMMENT_COLUMN
    if len(assignment) < _COMMENT_COLUMN:
        first = assignment.ljust(_COMMENT_COLUMN) + comment
    else:
        first = f"{assignment} {comment}"
    lines = [first]
    for desc_line in p.description.splitlines() or [""]:
        if desc_line:
            lines.append(f"{pad}! {desc_line}")
    return lines

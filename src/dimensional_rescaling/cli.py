"""
dimensional_rescaling/cli.py
============================
Build the unit scaling from a parameter file and print it.

    dimensional-rescaling MOM_input --doc-dir out/ --restart
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from .core.errors import FatalError
from .core.param_doc import ParameterDoc
from .core.param_file import ParamFile
from .core.unit_scaling import (
    UnitScaleHandle,
    fix_restart_unit_scaling,
    unit_scaling_end,
    unit_scaling_init,
)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="dimensional-rescaling",
        description="Show the unit scaling factors implied by a parameter file.",
    )
    ap.add_argument("paramfile", help="parameter file (.yaml, .py or KEY = value text)")
    ap.add_argument("--doc-dir", help="write parameter documentation to this directory")
    ap.add_argument("--restart", action="store_true",
                    help="fix the restart scaling and print the restart record as JSON")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    handle = UnitScaleHandle()
    try:
        param_file = ParamFile.from_file(args.paramfile, doc=ParameterDoc(args.doc_dir))
        US = unit_scaling_init(param_file, handle)
        param_file.close()
    except FatalError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Cannot read {args.paramfile}: {e}", file=sys.stderr)
        return 1

    print(US.summary())
    if args.restart:
        fix_restart_unit_scaling(US)
        print(json.dumps(US.restart_record(), indent=2))
    unit_scaling_end(handle)
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
pngtopi1.py — PNG to Atari-ST Degas image converter (and back).

Despite its name:
 - handles PI1/PI2/PI3 and PC1/PC2/PC3 images
 - turns any Degas image back into a PNG

If output is omitted the file path is created automatically.
"""

import argparse
import logging
import sys
from enum import IntEnum
from pathlib import Path

from color_model import ColorMode, FILL_POLICIES
from converter import ConversionOptions, convert_file
from degas_errors import DegasError, FormatError

__version__ = "1.0.0"
PROGRAM_NAME = "pngtopi1"

logger = logging.getLogger(PROGRAM_NAME)


class ExitCode(IntEnum):
    E_OK = 0
    E_ERR = 1
    E_ARG = 2
    E_INT = 3
    E_INP = 4
    E_OUT = 5
    E_PNG = 6


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROGRAM_NAME,
        description="A simple PNG to Atari-ST Degas image converter.",
        epilog="If output is omitted the file path is created automatically.",
    )
    parser.add_argument("-V", "--version", action="version",
                        version=f"{PROGRAM_NAME} {__version__}")
    parser.add_argument("-q", "--quiet", action="count", default=0, help="print less messages")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="print more messages")
    parser.add_argument("-e", "--ste", action="store_true",
                        help="use STE color quantization (4 bits per component)")
    parser.add_argument("--fill", choices=FILL_POLICIES, default="replicate",
                        help="how 3/4-bit components widen to 8 bits (default: %(default)s)")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("-z", "--compress", dest="compress", action="store_const", const=True,
                       help="force image compression (pc1, pc2 or pc3)")
    group.add_argument("-r", "--raw", dest="compress", action="store_const", const=False,
                       help="force RAW image (pi1, pi2 or pi3)")
    parser.add_argument("-d", "--same-dir", action="store_true",
                        help="automatic save path includes source path")
    parser.add_argument("--histogram", metavar="FILE", type=Path,
                        help="save a color usage chart to %(metavar)s")
    parser.add_argument("input", metavar="<input>", type=Path)
    parser.add_argument("output", metavar="[output]", type=Path, nargs="?")
    return parser


def setup_logging(verbosity: int) -> None:
    if verbosity > 0:
        level = logging.DEBUG
    elif verbosity == 0:
        level = logging.INFO
    elif verbosity == -1:
        level = logging.WARNING
    else:
        level = logging.ERROR
    logging.basicConfig(level=level, format=f"{PROGRAM_NAME}: %(message)s")


def main(argv=None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return ExitCode.E_OK if exc.code == 0 else ExitCode.E_ARG

    setup_logging(args.verbose - args.quiet)
    mode = ColorMode(4 if args.ste else 3, args.fill)
    options = ConversionOptions(mode=mode, compress=args.compress,
                                same_dir=args.same_dir, histogram=args.histogram)

    try:
        convert_file(args.input, args.output, options)
    except DegasError as e:
        logger.error("%s (stage: %s)", e, getattr(e.stage, "value", "start"))
        # unreadable input vs. an image that cannot be converted
        return ExitCode.E_INP if isinstance(e, FormatError) else ExitCode.E_PNG
    except OSError as e:
        logger.error("(%s) %s -- %s", e.errno, e.strerror, e.filename)
        if e.filename is not None and Path(e.filename) == args.input:
            return ExitCode.E_INP
        return ExitCode.E_OUT
    return ExitCode.E_OK


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
# csim.py
#
# Usage:
#   python csim.py -s 4 -E 1 -b 4 -t traces/yi.trace
#   python csim.py -v -s 8 -E 2 -b 4 -t traces/yi.trace
#
# Replays a valgrind memory trace against an LRU cache and reports
# hits, misses and evictions.

import argparse
import logging
import sys
from pathlib import Path

from cache import ConfigurationError, Geometry, SimulatorError
from replay import replay_file

RESULTS_FILE = ".csim_results"

EXAMPLES = """\
Examples:
  linux>  csim -s 4 -E 1 -b 4 -t traces/yi.trace
  linux>  csim -v -s 8 -E 2 -b 4 -t traces/yi.trace
"""


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="csim",
        description="Trace-driven set-associative cache simulator (LRU)",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Optional verbose flag that displays trace info")
    ap.add_argument("-s", type=int, metavar="<num>", help="Number of set index bits")
    ap.add_argument("-E", type=int, metavar="<num>", help="Number of lines per set")
    ap.add_argument("-b", type=int, metavar="<num>", help="Number of block offset bits")
    ap.add_argument("-t", type=Path, metavar="<file>", dest="trace", help="Trace file")
    ap.add_argument("--results", type=Path, default=Path(RESULTS_FILE),
                    help=f"Where to write the summary line (default: {RESULTS_FILE})")
    ap.add_argument("--no-results", action="store_true", help="Do not write the summary file")
    return ap


def geometry_from_args(args) -> Geometry:
    """The command line is stricter than Geometry: zero counts as missing."""
    missing = [flag for flag, value in (("-s", args.s), ("-E", args.E), ("-b", args.b)) if not value]
    if missing or args.trace is None:
        if args.trace is None:
            missing.append("-t")
        raise ConfigurationError(f"missing required command line argument(s): {' '.join(missing)}")
    if args.s < 0 or args.b < 0 or args.E < 0:
        raise ConfigurationError("-s, -E and -b must be positive")
    return Geometry(args.s, args.b, args.E)


def print_summary(hits, misses, evictions, results_path=None):
    print(f"hits:{hits} misses:{misses} evictions:{evictions}")
    if results_path is not None:
        with open(results_path, "w") as f:
            f.write(f"{hits} {misses} {evictions}\n")


def main(argv=None):
    ap = build_parser()
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(levelname)s: %(message)s")
    try:
        geometry = geometry_from_args(args)
        summary = replay_file(args.trace, geometry, verbose=args.verbose)
    except SimulatorError as e:
        ap.error(str(e))

    print_summary(*summary, results_path=None if args.no_results else args.results)
    return 0


if __name__ == "__main__":
    sys.exit(main())

# replay.py
#
# Valgrind-style trace parsing and replay against a Cache.
#
#   I 0400d7d4,8
#    L 7ff0005c8,8
#    S 7ff0005d0,4
#    M 0421c7f0,4

import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from cache import Cache, Geometry, Outcome, SimulatorError, Summary

logger = logging.getLogger(__name__)

INSTRUCTION = "I"
LOAD = "L"
STORE = "S"
MODIFY = "M"
OPCODES = (INSTRUCTION, LOAD, STORE, MODIFY)

_LINE_RE = re.compile(r"^\s*(?P<op>\S)\s*(?P<addr>(?:0[xX])?[0-9a-fA-F]+)\s*,\s*(?P<size>\d+)\s*$")


class TraceSourceError(SimulatorError, OSError):
    """The trace could not be opened or read."""


class MalformedLineError(SimulatorError, ValueError):
    """A single trace line failed to parse. Replay skips it."""

    def __init__(self, lineno, text, reason):
        super().__init__(f"line {lineno}: {reason}: {text!r}")
        self.lineno = lineno
        self.text = text
        self.reason = reason


@dataclass(frozen=True)
class TraceOp:
    op: str
    address: int
    size: int

    def __str__(self):
        return f"{self.op} {self.address:x},{self.size}"

    def to_line(self) -> str:
        # data accesses carry a leading space, instruction fetches don't
        prefix = "" if self.op == INSTRUCTION else " "
        return prefix + str(self)


def parse_line(text: str, lineno: int = 0) -> Optional[TraceOp]:
    """
    Parse one trace line. Blank lines give None; anything else that is not
    `<op> <hex-address>,<size>` with op in I/L/S/M raises MalformedLineError.
    """
    if not text.strip():
        return None
    m = _LINE_RE.match(text)
    if not m:
        raise MalformedLineError(lineno, text, "expected '<op> <hex-address>,<size>'")
    op = m.group("op")
    if op not in OPCODES:
        raise MalformedLineError(lineno, text, f"unknown operation {op!r}")
    return TraceOp(op, int(m.group("addr"), 16), int(m.group("size")))


def parse_trace(lines: Iterable[str]) -> Iterator[TraceOp]:
    """Yield the well-formed operations of a trace, skipping the rest."""
    for lineno, text in enumerate(lines, start=1):
        try:
            op = parse_line(text, lineno)
        except MalformedLineError as e:
            logger.debug("skipping %s", e)
            continue
        if op is not None:
            yield op


def read_trace(path) -> List[str]:
    """Read a whole trace file. OS failures become TraceSourceError."""
    path = Path(path)
    try:
        # undecodable bytes reach parse_line as U+FFFD and the line is skipped there
        with path.open("r", encoding="utf-8", errors="replace") as f:
            return f.readlines()
    except OSError as e:
        raise TraceSourceError(f"cannot read trace {path}: {e}") from e


def write_trace(ops: Iterable[TraceOp], path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w") as f:
        for op in ops:
            f.write(op.to_line() + "\n")
    return path


def apply(op: TraceOp, cache: Cache) -> List[Outcome]:
    """Run one operation; returns the outcome of each access it made."""
    if op.op == INSTRUCTION:
        return []
    first = cache.access(op.address).outcome
    if op.op != MODIFY:
        return [first]
    # load then store of the same block: the store always hits
    second = cache.access(op.address).outcome
    if second is not Outcome.HIT:
        raise SimulatorError(f"store half of modify {op} missed")
    return [first, second]


def format_op(op: TraceOp, outcomes: List[Outcome]) -> str:
    return " ".join([str(op)] + [o.value for o in outcomes])


def replay(ops: Iterable[TraceOp], cache: Cache, verbose: bool = False, out=None) -> Summary:
    """
    Feed operations to the cache in order. Instruction fetches are ignored.
    With verbose set, every evaluated operation is echoed with its outcomes.
    """
    out = out or sys.stdout
    for op in ops:
        outcomes = apply(op, cache)
        if verbose and outcomes:
            print(format_op(op, outcomes), file=out)
    return cache.stats.snapshot()


def replay_lines(lines: Iterable[str], geometry: Geometry, verbose: bool = False, out=None) -> Summary:
    cache = Cache(geometry)
    return replay(parse_trace(lines), cache, verbose=verbose, out=out)


def replay_file(path, geometry: Geometry, verbose: bool = False, out=None) -> Summary:
    """Simulate a trace file; the trace is read before the cache exists."""
    lines = read_trace(path)
    logger.info("replaying %s (%d lines) with s=%d b=%d E=%d",
                path, len(lines), geometry.s, geometry.b, geometry.E)
    summary = replay_lines(lines, geometry, verbose=verbose, out=out)
    logger.info("done: %s", summary)
    return summary

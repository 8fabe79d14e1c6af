# cache.py
import enum
import logging
from collections import namedtuple
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

ADDRESS_BITS = 64
ADDRESS_MASK = (1 << ADDRESS_BITS) - 1


class SimulatorError(Exception):
    """Base class for everything the simulator raises on purpose."""


class ConfigurationError(SimulatorError, ValueError):
    """Geometry values out of range. Raised before any cache is allocated."""


@dataclass(frozen=True)
class Geometry:
    """
    Cache shape: s set-index bits, b block-offset bits, E lines per set.
    S and B are derived once here and never recomputed.
    """
    s: int
    b: int
    E: int
    S: int = field(init=False)
    B: int = field(init=False)

    def __post_init__(self):
        for name in ("s", "b", "E"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
        if self.s < 0 or self.b < 0:
            raise ConfigurationError(f"s and b must be non-negative (s={self.s}, b={self.b})")
        if self.E < 1:
            raise ConfigurationError(f"E must be at least 1 (E={self.E})")
        if self.s + self.b > ADDRESS_BITS:
            raise ConfigurationError(f"s + b may not exceed {ADDRESS_BITS} address bits")
        # frozen dataclass: derived fields go through object.__setattr__
        object.__setattr__(self, "S", 1 << self.s)
        object.__setattr__(self, "B", 1 << self.b)

    @property
    def tag_bits(self) -> int:
        return ADDRESS_BITS - self.s - self.b


DecodedAddress = namedtuple("DecodedAddress", ["offset", "set_index", "tag"])


def decode(addr: int, geometry: Geometry) -> DecodedAddress:
    """Split a 64-bit address into (offset, set index, tag)."""
    addr &= ADDRESS_MASK
    offset = addr & (geometry.B - 1)
    set_index = (addr >> geometry.b) & (geometry.S - 1)
    tag = addr >> (geometry.s + geometry.b)
    return DecodedAddress(offset, set_index, tag)


class Outcome(enum.Enum):
    HIT = "hit"
    MISS = "miss"
    MISS_EVICT = "miss eviction"

    @property
    def is_hit(self) -> bool:
        return self is Outcome.HIT


Summary = namedtuple("Summary", ["hits", "misses", "evictions"])


@dataclass
class Stats:
    """Monotone hit/miss/eviction counters for one run."""
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    def record(self, outcome: Outcome) -> None:
        if outcome is Outcome.HIT:
            self.hits += 1
            return
        self.misses += 1
        if outcome is Outcome.MISS_EVICT:
            self.evictions += 1

    def snapshot(self) -> Summary:
        return Summary(self.hits, self.misses, self.evictions)


@dataclass
class CacheLine:
    valid: bool = False
    tag: int = 0
    recency: int = 0


@dataclass
class CacheSet:
    lines: List[CacheLine]

    def find(self, tag: int) -> Optional[int]:
        for i, line in enumerate(self.lines):
            if line.valid and line.tag == tag:
                return i
        return None

    def first_free(self) -> Optional[int]:
        for i, line in enumerate(self.lines):
            if not line.valid:
                return i
        return None

    def resident_tags(self) -> List[int]:
        return [line.tag for line in self.lines if line.valid]


def select_victim(cache_set: CacheSet) -> int:
    """
    LRU replacement: index of the line with the smallest recency stamp.
    Ties go to the lowest index. Only defined when every line is valid.
    """
    if not all(line.valid for line in cache_set.lines):
        raise ValueError("select_victim needs a fully occupied set")
    victim = 0
    for i, line in enumerate(cache_set.lines):
        if line.recency < cache_set.lines[victim].recency:
            victim = i
    return victim


@dataclass(frozen=True)
class AccessResult:
    """What one access did to the cache."""
    outcome: Outcome
    set_index: int
    tag: int
    line_index: int
    evicted_tag: Optional[int] = None


class Cache:
    """
    Set-associative cache with true LRU replacement.
    S sets of E lines each, allocated once from a Geometry.
    """

    def __init__(self, geometry: Geometry):
        self.geometry = geometry
        self.sets = [CacheSet([CacheLine() for _ in range(geometry.E)]) for _ in range(geometry.S)]
        self.stats = Stats()
        self._clock = 0

    def _tick(self) -> int:
        self._clock += 1
        return self._clock

    def access(self, addr: int) -> AccessResult:
        """
        Access byte address `addr`, update LRU state and stats.
        Touches exactly one line.
        """
        decoded = decode(addr, self.geometry)
        now = self._tick()
        target = self.sets[decoded.set_index]

        hit = target.find(decoded.tag)
        if hit is not None:
            target.lines[hit].recency = now
            return self._finish(Outcome.HIT, decoded, hit)

        free = target.first_free()
        if free is not None:
            line = target.lines[free]
            line.valid = True
            line.tag = decoded.tag
            line.recency = now
            return self._finish(Outcome.MISS, decoded, free)

        victim = select_victim(target)
        line = target.lines[victim]
        evicted = line.tag
        line.tag = decoded.tag
        line.recency = now
        return self._finish(Outcome.MISS_EVICT, decoded, victim, evicted)

    def _finish(self, outcome, decoded, line_index, evicted_tag=None) -> AccessResult:
        self.stats.record(outcome)
        logger.debug("set %d tag %#x -> %s", decoded.set_index, decoded.tag, outcome.value)
        return AccessResult(outcome, decoded.set_index, decoded.tag, line_index, evicted_tag)

    def contains(self, addr: int) -> bool:
        """Residency check that leaves LRU state alone."""
        decoded = decode(addr, self.geometry)
        return self.sets[decoded.set_index].find(decoded.tag) is not None

    def occupancy(self) -> int:
        return sum(len(s.resident_tags()) for s in self.sets)

    def summary(self) -> dict:
        g = self.geometry
        hits, misses, evictions = self.stats.snapshot()
        return {
            "s": g.s,
            "b": g.b,
            "E": g.E,
            "num_sets": g.S,
            "block_size": g.B,
            "tag_bits": g.tag_bits,
            "cache_size_bytes": g.S * g.E * g.B,
            "used_lines": self.occupancy(),
            "hits": hits,
            "misses": misses,
            "evictions": evictions,
        }

# benchmark.py
import os
import json
import time
import logging
import numpy as np
from cache import Cache, Geometry, Outcome
from replay import INSTRUCTION, LOAD, MODIFY, STORE, TraceOp, apply

logger = logging.getLogger(__name__)

PATTERNS = ("sequential", "random", "mixed", "strided")


class TraceGenerator:
    """
    Synthetic data trace over a working set of cache blocks.
    Addresses are byte addresses; each lands somewhere inside its block.
    """

    def __init__(self, rng, num_blocks, block_size, pattern="mixed", stride=1,
                 read_ratio=0.8, modify_ratio=0.0, instruction_ratio=0.0):
        if pattern not in PATTERNS:
            raise ValueError(f"unknown access pattern {pattern!r}, expected one of {PATTERNS}")
        if read_ratio + modify_ratio > 1.0:
            raise ValueError("read_ratio + modify_ratio must not exceed 1")
        self.rng = rng
        self.num_blocks = max(1, num_blocks)
        self.block_size = block_size
        self.pattern = pattern
        self.stride = stride
        self.read_ratio = read_ratio
        self.modify_ratio = modify_ratio
        self.instruction_ratio = instruction_ratio

    def _blocks(self, n):
        if self.pattern == "sequential":
            return np.arange(n) % self.num_blocks
        if self.pattern == "strided":
            return (np.arange(n) * self.stride) % self.num_blocks
        if self.pattern == "random":
            return self.rng.integers(0, self.num_blocks, size=n)
        # mixed: mostly sequential with some random jumps
        seq = np.arange(n) % self.num_blocks
        jumps = self.rng.integers(0, self.num_blocks, size=n)
        return np.where(self.rng.random(n) < 0.8, seq, jumps)

    def _opcodes(self, n):
        draw = self.rng.random(n)
        ops = np.full(n, STORE)
        ops[draw < self.read_ratio + self.modify_ratio] = MODIFY
        ops[draw < self.read_ratio] = LOAD
        if self.instruction_ratio > 0:
            ops[self.rng.random(n) < self.instruction_ratio] = INSTRUCTION
        return ops

    def generate(self, n):
        blocks = self._blocks(n)
        # random byte inside each block, so the offset bits vary too
        offsets = self.rng.integers(0, self.block_size, size=n)
        addrs = blocks.astype(np.int64) * self.block_size + offsets
        ops = self._opcodes(n)
        sizes = self.rng.choice([1, 2, 4, 8], size=n)
        return [TraceOp(str(op), int(a), int(sz)) for op, a, sz in zip(ops, addrs, sizes)]


class BenchmarkRunner:
    def __init__(self, cfg):
        self.cfg = cfg
        bench = cfg.get("benchmark", {})
        cache_cfg = cfg.get("cache", {})
        self.geometry = Geometry(
            s=cache_cfg.get("s", 4),
            b=cache_cfg.get("b", 6),
            E=cache_cfg.get("E", 4),
        )
        self.seed = bench.get("random_seed", None)
        self.rng = np.random.default_rng(self.seed)
        self.working_set_kb = bench.get("working_set_kb", 64)
        # block space: one block per cache line
        self.num_blocks = max(1, (self.working_set_kb * 1024) // self.geometry.B)
        self.num_requests = bench.get("num_requests", 10000)
        self.access_pattern = bench.get("access_pattern", "mixed")
        self.sweep_associativity = bench.get("sweep_associativity", [1, 2, 4, 8])
        self.generator = TraceGenerator(
            self.rng,
            self.num_blocks,
            self.geometry.B,
            pattern=self.access_pattern,
            stride=bench.get("stride", 1),
            read_ratio=bench.get("read_ratio", 0.8),
            modify_ratio=bench.get("modify_ratio", 0.0),
            instruction_ratio=bench.get("instruction_ratio", 0.0),
        )
        self._trace = None

    @property
    def trace(self):
        # generated once so every run and sweep point sees the same accesses
        if self._trace is None:
            self._trace = self.generator.generate(self.num_requests)
        return self._trace

    def run(self, geometry=None):
        geometry = geometry or self.geometry
        cache = Cache(geometry)
        outcomes = []
        start = time.time()
        for op in self.trace:
            outcomes.extend(apply(op, cache))
        end = time.time()

        hits, misses, evictions = cache.stats.snapshot()
        total = hits + misses
        summary = cache.summary()
        summary.update({
            "access_pattern": self.access_pattern,
            "total_accesses": total,
            "hit_rate": hits / total if total else 0,
            "miss_rate": misses / total if total else 0,
            "duration_s": end - start,
            "accesses_per_sec": total / (end - start) if (end - start) > 0 else 0,
        })
        logger.info("s=%d b=%d E=%d: hits=%d misses=%d evictions=%d",
                    geometry.s, geometry.b, geometry.E, hits, misses, evictions)
        return summary, outcomes

    def sweep(self, associativities=None):
        """Replay the same trace once per associativity, keeping s and b."""
        results = []
        for E in associativities or self.sweep_associativity:
            g = Geometry(self.geometry.s, self.geometry.b, E)
            summary, _ = self.run(g)
            results.append(summary)
        return results

    def save_results(self, summary, out_cfg):
        results_dir = out_cfg.get("results_dir", "results")
        os.makedirs(results_dir, exist_ok=True)
        path = os.path.join(results_dir, out_cfg.get("results_file", "results.json"))
        with open(path, "w") as f:
            json.dump(summary, f, indent=2)
        return path


def outcome_counts(outcomes):
    """Tally a per-access outcome sequence into hit, plain miss and evicting miss counts."""
    labels = np.array([o.value for o in outcomes], dtype=str)
    return {
        "hit": int(np.count_nonzero(labels == Outcome.HIT.value)),
        "miss": int(np.count_nonzero(labels == Outcome.MISS.value)),
        "miss_eviction": int(np.count_nonzero(labels == Outcome.MISS_EVICT.value)),
    }

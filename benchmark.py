# benchmark.py
import json
import logging
import os
import time

import numpy as np

from config import CONFIG_KEYS, DEFAULT_MAX_SETS, validate_geometry
from errors import ConfigurationError
from replay import simulate
from tracefile import TraceRecord, read_trace

logger = logging.getLogger(__name__)

ACCESS_PATTERNS = ("sequential", "random", "mixed")


class SyntheticTrace:
    """
    Generates a reproducible trace over a working set of cache blocks.
    Addresses are block-aligned; the pattern decides the block order and the
    read/modify ratios decide the op codes.
    """

    def __init__(self, bench_cfg):
        self.rng = np.random.default_rng(bench_cfg.get("random_seed", None))
        self.line_size = bench_cfg.get("line_size_bytes", 16)
        self.working_set_kb = bench_cfg.get("working_set_kb", 64)
        self.num_requests = bench_cfg.get("num_requests", 10000)
        self.read_ratio = bench_cfg.get("read_ratio", 0.8)
        self.modify_ratio = bench_cfg.get("modify_ratio", 0.0)
        self.access_pattern = bench_cfg.get("access_pattern", "mixed")
        if self.access_pattern not in ACCESS_PATTERNS:
            raise ConfigurationError(
                f"access_pattern must be one of {', '.join(ACCESS_PATTERNS)}, got {self.access_pattern!r}"
            )
        if self.line_size < 1 or self.working_set_kb < 0 or self.num_requests < 0:
            raise ConfigurationError(
                "line_size_bytes must be positive, working_set_kb and num_requests non-negative"
            )
        self.num_blocks = max(1, (self.working_set_kb * 1024) // self.line_size)
        self._seq_ptr = 0

    def _next_sequential(self):
        block = self._seq_ptr
        self._seq_ptr = (block + 1) % self.num_blocks
        return block

    def _next_block(self):
        if self.access_pattern == "sequential":
            return self._next_sequential()
        elif self.access_pattern == "random":
            return int(self.rng.integers(0, self.num_blocks))
        else:  # mixed: mostly sequential with some random
            if self.rng.random() < 0.8:
                return self._next_sequential()
            return int(self.rng.integers(0, self.num_blocks))

    def _next_code(self):
        if self.rng.random() < self.modify_ratio:
            return "M"
        return "L" if self.rng.random() < self.read_ratio else "S"

    def records(self):
        size = min(self.line_size, 8)
        records = []
        for _ in range(self.num_requests):
            address = self._next_block() * self.line_size
            code = self._next_code()
            records.append(TraceRecord(code, address, size, f"{code} {address:x},{size}"))
        return records


class SweepRunner:
    """Replays one trace against every configured cache geometry."""

    def __init__(self, cfg):
        self.cfg = cfg
        bench_cfg = cfg.get("benchmark", {})
        max_sets = cfg.get("cache", {}).get("max_sets", DEFAULT_MAX_SETS)
        geometries = cfg.get("sweep", {}).get("geometries")
        if not geometries:
            if "cache" not in cfg:
                raise ConfigurationError("config needs a 'sweep.geometries' list or a 'cache' section")
            geometries = [cfg["cache"]]
        self.geometries = [self._geometry(g, max_sets) for g in geometries]
        trace_path = bench_cfg.get("trace")
        if trace_path:
            self.source = trace_path
            self.records = read_trace(trace_path)
        else:
            self.source = "synthetic:" + bench_cfg.get("access_pattern", "mixed")
            self.records = SyntheticTrace(bench_cfg).records()

    @staticmethod
    def _geometry(entry, max_sets):
        if not isinstance(entry, dict):
            raise ConfigurationError(f"each sweep geometry must be a JSON object, got {entry!r}")
        return validate_geometry(
            entry.get("set_bits"), entry.get("lines_per_set"), entry.get("offset_bits"),
            entry.get("max_sets", max_sets), names=CONFIG_KEYS,
        )

    def run(self):
        results = []
        for geometry in self.geometries:
            start = time.perf_counter()
            counters = simulate(geometry, self.records)
            duration = time.perf_counter() - start
            logger.info("%s -> %s", geometry.label(), counters.summary())
            results.append({
                "set_bits": geometry.set_bits,
                "lines_per_set": geometry.lines_per_set,
                "offset_bits": geometry.offset_bits,
                "hits": counters.hits,
                "misses": counters.misses,
                "evictions": counters.evictions,
                "hit_rate": counters.hit_rate,
                "duration_s": duration,
            })
        return results

    def save_results(self, results, out_cfg):
        results_dir = out_cfg.get("results_dir", "results")
        os.makedirs(results_dir, exist_ok=True)
        path = os.path.join(results_dir, out_cfg.get("results_file", "sweep.json"))
        with open(path, "w") as f:
            json.dump({"source": self.source, "records": len(self.records), "results": results}, f, indent=2)
        return path

import logging
import random

import pytest

from cache import Cache
from config import CacheGeometry
from errors import CacheInvariantError
from replay import Counters, TraceReplayer, simulate
from tracefile import Operation, TraceRecord


def _replayer(set_bits=1, lines_per_set=1, offset_bits=0):
    return TraceReplayer(Cache(CacheGeometry(set_bits, lines_per_set, offset_bits)))


def _loads(*addresses):
    return [TraceRecord("L", a, 1) for a in addresses]


def test_counters_start_fresh():
    first = _replayer()
    first.replay("L", 0)
    second = _replayer()
    assert second.counters == Counters()
    assert first.counters.misses == 1


def test_counters_summary_and_rate():
    counters = Counters(hits=3, misses=1, evictions=0)
    assert counters.summary() == "hits:3 misses:1 evictions:0"
    assert counters.hit_rate == 0.75
    assert Counters().hit_rate == 0.0


def test_scenario_different_sets():
    # addresses 0 and 1 differ only in the set-index bit
    counters = _replayer().run(_loads(0x0, 0x1))
    assert counters.summary() == "hits:0 misses:2 evictions:0"


def test_scenario_repeat_hits():
    counters = _replayer().run(_loads(0x0, 0x0))
    assert counters.summary() == "hits:1 misses:1 evictions:0"


def test_scenario_same_set_conflict():
    counters = _replayer().run(_loads(0x0, 0x8))
    assert counters.summary() == "hits:0 misses:2 evictions:1"


@pytest.mark.parametrize("geometry", [(1, 1, 0), (4, 2, 4), (8, 4, 6)])
def test_scenario_modify_fresh_address(geometry):
    counters = _replayer(*geometry).run([TraceRecord("M", 0xABC, 1)])
    assert counters.summary() == "hits:1 misses:1 evictions:0"


def test_modify_second_access_always_hits():
    replayer = _replayer(set_bits=2, lines_per_set=1, offset_bits=2)
    rng = random.Random(7)
    for _ in range(500):
        first, second = replayer.replay(Operation.MODIFY, rng.randrange(1 << 10))
        assert second.hit
        assert not second.eviction


def test_load_and_store_access_once():
    replayer = _replayer()
    assert len(replayer.replay(Operation.LOAD, 4)) == 1
    assert len(replayer.replay("S", 4)) == 1
    assert replayer.counters.summary() == "hits:1 misses:1 evictions:0"


@pytest.mark.parametrize("code", ["I", "X", "l", ""])
def test_other_operations_are_ignored(code):
    replayer = _replayer()
    assert replayer.replay(code, 0x40) == []
    assert replayer.counters == Counters()


def test_run_counts_yi_trace():
    records = [
        TraceRecord("I", 0x400, 4),
        TraceRecord("L", 0x10, 1),
        TraceRecord("M", 0x20, 1),
        TraceRecord("L", 0x22, 1),
        TraceRecord("S", 0x18, 1),
        TraceRecord("L", 0x110, 1),
        TraceRecord("L", 0x210, 1),
        TraceRecord("M", 0x12, 1),
    ]
    counters = simulate(CacheGeometry(4, 1, 4), records)
    assert counters.summary() == "hits:4 misses:5 evictions:3"


def test_eviction_count_is_distinct_tags_minus_capacity():
    # every address maps to set 0 with a new tag
    capacity = 3
    records = _loads(*(i << 1 for i in range(10)))
    counters = _replayer(set_bits=1, lines_per_set=capacity).run(records)
    assert counters.misses == 10
    assert counters.evictions == 10 - capacity


def test_observer_sees_every_record():
    seen = []
    records = [TraceRecord("I", 0, 1), TraceRecord("M", 0, 1)]
    replayer = TraceReplayer(Cache(CacheGeometry(1, 1, 0)), observer=lambda r, res: seen.append((r.code, len(res))))
    replayer.run(records)
    assert seen == [("I", 0), ("M", 2)]


def test_counters_are_monotonic_and_cache_stays_valid():
    replayer = _replayer(set_bits=2, lines_per_set=2, offset_bits=1)
    rng = random.Random(3)
    previous = (0, 0, 0)
    for _ in range(1000):
        replayer.replay(rng.choice("LSMI"), rng.randrange(64))
        c = replayer.counters
        current = (c.hits, c.misses, c.evictions)
        assert all(a >= b for a, b in zip(current, previous))
        previous = current
        replayer.cache.check_invariants()


def test_debug_replay_checks_touched_set(caplog):
    caplog.set_level(logging.DEBUG, logger="replay")
    replayer = _replayer(set_bits=1, lines_per_set=1, offset_bits=0)
    replayer.replay("L", 0)
    replayer.cache.sets[0]._lines[99] = None
    with pytest.raises(CacheInvariantError):
        replayer.replay("L", 0)


def test_replay_skips_invariant_check_below_debug(caplog):
    caplog.set_level(logging.WARNING, logger="replay")
    replayer = _replayer(set_bits=1, lines_per_set=1, offset_bits=0)
    replayer.replay("L", 0)
    replayer.cache.sets[0]._lines[99] = None
    assert replayer.replay("L", 0)[0].hit


def test_run_dispatches_on_record_operation():
    records = [TraceRecord("M", 0x10, 1), TraceRecord("I", 0x10, 1), TraceRecord("S", 0x10, 1)]
    counters = _replayer().run(records)
    assert counters.summary() == "hits:2 misses:1 evictions:0"

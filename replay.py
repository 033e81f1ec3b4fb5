# replay.py
import logging
from dataclasses import dataclass

from cache import Cache
from tracefile import Operation

logger = logging.getLogger(__name__)

ACCESSES_PER_OPERATION = {
    Operation.LOAD: 1,
    Operation.STORE: 1,
    # a load immediately followed by a store to the same address
    Operation.MODIFY: 2,
}


@dataclass
class Counters:
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    def record(self, result):
        if result.hit:
            self.hits += 1
        else:
            self.misses += 1
        if result.eviction:
            self.evictions += 1

    @property
    def accesses(self):
        return self.hits + self.misses

    @property
    def hit_rate(self):
        return self.hits / self.accesses if self.accesses else 0.0

    def summary(self):
        return f"hits:{self.hits} misses:{self.misses} evictions:{self.evictions}"


class TraceReplayer:
    """
    Feeds trace records to a Cache and keeps the hit/miss/eviction counts.
    Each replayer owns a fresh Counters instance; build a new one per run.
    """

    def __init__(self, cache: Cache, observer=None):
        self.cache = cache
        self.counters = Counters()
        self.observer = observer

    def replay(self, operation, address):
        """
        Replay one operation at `address` and return its AccessResults.
        `operation` is an Operation or a raw trace op code; codes that are not
        data operations (such as instruction fetches) are ignored.
        """
        if not isinstance(operation, Operation):
            operation = Operation.from_code(operation)
        if operation is None:
            return []

        checking = logger.isEnabledFor(logging.DEBUG)
        results = []
        for _ in range(ACCESSES_PER_OPERATION[operation]):
            result = self.cache.access(address)
            if checking:
                self.cache.sets[result.set_index].check_invariants()
            self.counters.record(result)
            results.append(result)
        return results

    def run(self, records):
        for record in records:
            results = self.replay(record.operation, record.address)
            if self.observer is not None:
                self.observer(record, results)
        logger.info("Replay finished: %s", self.counters.summary())
        return self.counters


def simulate(geometry, records, observer=None):
    """Replay `records` against a freshly built cache and return the counters."""
    replayer = TraceReplayer(Cache(geometry), observer=observer)
    return replayer.run(records)

# cache.py
import collections
import logging
from typing import NamedTuple, Optional

from errors import AllocationError, CacheInvariantError, ConfigurationError

logger = logging.getLogger(__name__)


class AccessResult(NamedTuple):
    hit: bool
    evicted_tag: Optional[int] = None
    set_index: int = 0
    tag: int = 0

    @property
    def eviction(self):
        return self.evicted_tag is not None


def decode_address(address: int, set_bits: int, offset_bits: int):
    """
    Split an address into (tag, set_index).
    The low offset_bits are dropped, the next set_bits select the set and
    everything above them is the tag.
    """
    block = address >> offset_bits
    set_index = block & ((1 << set_bits) - 1)
    tag = block >> set_bits
    return tag, set_index


class CacheSet:
    """
    One associative set with true LRU replacement.
    Tags live in an OrderedDict: first key = least recently used, last key =
    most recently used.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ConfigurationError(f"a cache set needs at least one line, got {capacity}")
        self.capacity = capacity
        self._lines = collections.OrderedDict()

    def __len__(self):
        return len(self._lines)

    def __contains__(self, tag):
        return tag in self._lines

    def tags(self):
        """Resident tags ordered from least to most recently used."""
        return list(self._lines)

    def access(self, tag, set_index=0):
        if tag in self._lines:
            # hit -> move to end (most recently used)
            self._lines.move_to_end(tag)
            return AccessResult(True, None, set_index, tag)

        evicted = None
        if len(self._lines) >= self.capacity:
            evicted, _ = self._lines.popitem(last=False)
        self._lines[tag] = None
        return AccessResult(False, evicted, set_index, tag)

    def check_invariants(self):
        if len(self._lines) > self.capacity:
            raise CacheInvariantError(
                f"set holds {len(self._lines)} lines, capacity is {self.capacity}"
            )
        if len(set(self._lines)) != len(self._lines):
            raise CacheInvariantError("set holds a duplicate tag")


class Cache:
    """
    Set-associative cache model that tracks only which tags are resident.
    The set table is built once from a validated CacheGeometry and never
    changes shape afterwards.
    """

    def __init__(self, geometry):
        self.geometry = geometry
        set_count = geometry.set_count
        if set_count > geometry.max_sets:
            raise AllocationError(
                f"{set_count} sets requested ({geometry.label()}), limit is {geometry.max_sets}"
            )
        try:
            self.sets = tuple(CacheSet(geometry.lines_per_set) for _ in range(set_count))
        except (MemoryError, OverflowError) as exc:
            raise AllocationError(f"cannot allocate {set_count} cache sets") from exc
        logger.debug("Built cache with %d sets of %d lines", set_count, geometry.lines_per_set)

    def access(self, address):
        """
        Access `address`, updating LRU state in its set.
        Returns the AccessResult of the set.
        """
        tag, set_index = decode_address(address, self.geometry.set_bits, self.geometry.offset_bits)
        result = self.sets[set_index].access(tag, set_index)
        logger.debug(
            "addr=%#x set=%d tag=%#x %s%s",
            address, set_index, tag,
            "hit" if result.hit else "miss",
            " eviction" if result.eviction else "",
        )
        return result

    def check_invariants(self):
        for cache_set in self.sets:
            cache_set.check_invariants()

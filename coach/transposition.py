"""
Transposition cache: bounded, thread-safe memoization for the search.

Keys are ``(fen, remaining depth, maximizing)``. The search only stores
exact minimax values (never alpha-beta bounds), so an entry always equals
what an uncached search at the same key would compute. That makes the cache
a pure-function memo: concurrent writers of one key always write the same
value and a lost race costs nothing but the duplicated work.

The cache is owned by whoever constructs the engine. Eviction is LRU with a
fixed capacity; a single lock guards every operation.
"""

import threading
from collections import OrderedDict
from dataclasses import dataclass

from coach.constants import DEFAULT_CACHE_SIZE

CacheKey = tuple[str, int, bool]


@dataclass(frozen=True)
class TranspositionEntry:
    """
    Exact search result for one cache key.

    Attributes:
        score:     White-positive minimax value at this node.
        best_move: UCI of the move that achieved ``score``, or None for
                   leaves and terminal positions.
    """

    score: int
    best_move: str | None = None


class TranspositionCache:
    """
    LRU map from search keys to exact results.

    Attributes:
        max_size: Capacity; the least recently used entry is evicted once
                  this many entries are stored.
        hits:     Lookups that found an entry.
        misses:   Lookups that did not.
    """

    def __init__(self, max_size: int = DEFAULT_CACHE_SIZE) -> None:
        if max_size < 1:
            raise ValueError(f"cache size must be positive, got {max_size}")
        self.max_size = max_size
        self.hits = 0
        self.misses = 0
        self._entries: OrderedDict[CacheKey, TranspositionEntry] = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def make_key(fen: str, depth: int, maximizing: bool) -> CacheKey:
        return (fen, depth, maximizing)

    def get(self, key: CacheKey) -> TranspositionEntry | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return entry

    def put(self, key: CacheKey, entry: TranspositionEntry) -> None:
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def items(self) -> list[tuple[CacheKey, TranspositionEntry]]:
        """Snapshot of all entries, oldest first."""
        with self._lock:
            return list(self._entries.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

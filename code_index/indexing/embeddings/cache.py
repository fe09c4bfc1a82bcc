"""
Bounded, content-addressed cache of embedding vectors.
"""

import hashlib
from collections import OrderedDict
from typing import Dict, List, Optional

from ...config import EMBEDDING_CACHE_SIZE


def hash_text(text: str) -> str:
    """Deterministic content hash used as the cache key"""
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


class EmbeddingCache:
    """Maps content hashes to vectors, evicting the oldest insertion first.

    The cache is advisory: a miss only costs a provider call. Reads do not
    refresh an entry's position.
    """

    def __init__(self, max_size: int = EMBEDDING_CACHE_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._entries: "OrderedDict[str, List[float]]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[List[float]]:
        vector = self._entries.get(key)
        if vector is None:
            self.misses += 1
            return None
        self.hits += 1
        return list(vector)

    def put(self, key: str, vector: List[float]):
        if key in self._entries:
            return
        while len(self._entries) >= self.max_size:
            self._entries.popitem(last=False)
        self._entries[key] = list(vector)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self):
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> Dict[str, int]:
        return {
            'size': len(self._entries),
            'max_size': self.max_size,
            'hits': self.hits,
            'misses': self.misses
        }

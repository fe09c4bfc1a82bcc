"""
Pending chunks waiting to be embedded and persisted.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List

from ..models import CodeChunk


@dataclass(frozen=True)
class QueuedChunk:
    chunk: CodeChunk
    file_path: str
    file_hash: str


class ChunkQueue:
    """Accumulates chunks in arrival order until a flush drains them.

    Chunks of one file are added in a single call, so draining never separates
    a file's chunks.
    """

    def __init__(self, batch_size: int):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.batch_size = batch_size
        self._items: List[QueuedChunk] = []

    def add_file(self, file_path: str, file_hash: str, chunks: List[CodeChunk]):
        self._items.extend(QueuedChunk(chunk, file_path, file_hash) for chunk in chunks)

    def is_full(self) -> bool:
        return len(self._items) >= self.batch_size

    def drain(self) -> List[QueuedChunk]:
        items, self._items = self._items, []
        return items

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)


def group_by_file(items: List[QueuedChunk]) -> Dict[str, List[int]]:
    """Positions of each file's chunks within a drained batch, files in arrival order"""
    groups: "OrderedDict[str, List[int]]" = OrderedDict()
    for position, item in enumerate(items):
        groups.setdefault(item.file_path, []).append(position)
    return groups

"""
In-memory adapter implementing LocalSnapshotStore.
Perfect for demos and testing - data is lost on restart.
"""
import copy
from typing import Dict, List

from .base import LocalSnapshotStore


class MemoryAdapter(LocalSnapshotStore):
    """
    In-memory snapshot store.
    Keeps a deep copy of the last saved snapshot so callers cannot mutate it.
    """

    def __init__(self):
        self._records: List[Dict] = []
        self.save_count = 0

    async def initialize(self):
        """Initialize store (clears any previous data, useful for testing)."""
        self._records = []
        self.save_count = 0

    async def close(self):
        """Close store (no-op for in-memory)."""
        pass

    async def load_snapshot(self) -> List[Dict]:
        return copy.deepcopy(self._records)

    async def save_snapshot(self, records: List[Dict]) -> None:
        self._records = copy.deepcopy(records)
        self.save_count += 1

"""
JSON file-based adapter implementing LocalSnapshotStore.
Stores the document collection in a single JSON file named after the storage
key. Data persists between restarts, no database setup needed.
"""
import asyncio
import json
import os
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional

from .base import LocalSnapshotStore
from ...core.config import DB_DIR, STORAGE_KEY
from ...core.exceptions import PersistenceError
from ...core.logging_config import get_logger

logger = get_logger(__name__)

SNAPSHOT_VERSION = 1


class JSONAdapter(LocalSnapshotStore):
    """
    JSON file-based snapshot store.
    Writes go to a temporary file which then replaces the snapshot, so a
    crash mid-write never leaves a truncated file behind.
    """

    def __init__(self, data_dir: Optional[Path] = None, storage_key: str = STORAGE_KEY):
        """
        Initialize JSON adapter.

        Args:
            data_dir: Directory holding the snapshot (defaults to DB_DIR)
            storage_key: Snapshot name; the file is <storage_key>.json
        """
        self.data_dir = Path(data_dir) if data_dir else DB_DIR
        self.storage_key = storage_key
        self.snapshot_file = self.data_dir / f"{storage_key}.json"

        # Lock for thread-safe file operations
        self._lock = Lock()

    async def initialize(self):
        """Initialize store - make sure the data directory exists."""
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Could not create data directory {self.data_dir}: {e}")

    async def close(self):
        """Nothing to flush; every save is written through."""
        pass

    def _read(self) -> List[Dict]:
        if not self.snapshot_file.exists():
            return []
        try:
            with open(self.snapshot_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise PersistenceError(f"Could not load {self.snapshot_file.name}: {e}")

        documents = data.get("documents") if isinstance(data, dict) else data
        if not isinstance(documents, list):
            raise PersistenceError(f"Unexpected snapshot format in {self.snapshot_file.name}")
        return documents

    def _write(self, records: List[Dict]) -> None:
        payload = {
            "version": SNAPSHOT_VERSION,
            "storage_key": self.storage_key,
            "documents": records,
        }
        tmp_file = self.snapshot_file.with_name(self.snapshot_file.name + ".tmp")
        with self._lock:
            try:
                with open(tmp_file, 'w', encoding='utf-8') as f:
                    json.dump(payload, f, indent=2, ensure_ascii=False)
                os.replace(tmp_file, self.snapshot_file)
            except (OSError, TypeError, ValueError) as e:
                raise PersistenceError(f"Error saving {self.snapshot_file.name}: {e}")

    async def load_snapshot(self) -> List[Dict]:
        loop = asyncio.get_running_loop()
        records = await loop.run_in_executor(None, self._read)
        logger.info(f"Loaded {len(records)} document(s) from {self.snapshot_file}")
        return records

    async def save_snapshot(self, records: List[Dict]) -> None:
        # Run in executor to avoid blocking
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, records)

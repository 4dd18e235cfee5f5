"""
Database Factory for creating persistence adapters.
Implements Factory Pattern for plug-and-play snapshot and mirror support.
"""
from pathlib import Path
from typing import Optional

from .base import LocalSnapshotStore, RemoteMirror
from .json_adapter import JSONAdapter
from .memory_adapter import MemoryAdapter
from .supabase_mirror import SupabaseMirror
from ...core.config import (
    DATABASE_TYPE,
    STORAGE_KEY,
    SUPABASE_KEY,
    SUPABASE_TABLE,
    SUPABASE_URL,
    SUPABASE_USER_ID,
)
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class DatabaseFactory:
    """
    Factory for creating persistence adapters.
    Supports JSON (file-based) and Memory (in-memory) local stores, and an
    optional Supabase remote mirror.
    """

    @staticmethod
    def create(database_type: Optional[str] = None, **kwargs) -> LocalSnapshotStore:
        """
        Create a local snapshot store.

        Args:
            database_type: 'json', 'memory', or None to use DATABASE_TYPE
            **kwargs: data_dir and storage_key for the JSON adapter

        Returns:
            LocalSnapshotStore instance

        Examples:
            # JSON (file-based, persistent)
            db = DatabaseFactory.create('json', data_dir=Path('data'))

            # Memory (in-memory, non-persistent)
            db = DatabaseFactory.create('memory')
        """
        database_type = (database_type or DATABASE_TYPE).lower()

        if database_type == "json":
            return DatabaseFactory._create_json(**kwargs)
        elif database_type == "memory":
            return MemoryAdapter()
        else:
            raise ValueError(
                f"Unsupported database type: {database_type}. "
                f"Supported types: 'json', 'memory'"
            )

    @staticmethod
    def _create_json(**kwargs) -> JSONAdapter:
        data_dir = kwargs.get("data_dir")
        if data_dir:
            data_dir = Path(data_dir) if isinstance(data_dir, str) else data_dir
        return JSONAdapter(data_dir=data_dir, storage_key=kwargs.get("storage_key") or STORAGE_KEY)

    @staticmethod
    async def create_and_initialize(database_type: Optional[str] = None, **kwargs) -> LocalSnapshotStore:
        """Create a local snapshot store and initialize it."""
        db = DatabaseFactory.create(database_type, **kwargs)
        await db.initialize()
        return db

    @staticmethod
    def create_mirror() -> Optional[RemoteMirror]:
        """
        Create the remote mirror when Supabase is fully configured.

        Returns:
            SupabaseMirror, or None when URL, key or user id is missing
        """
        if not (SUPABASE_URL and SUPABASE_KEY):
            logger.info("Supabase not configured, remote mirror disabled")
            return None
        if not SUPABASE_USER_ID:
            logger.warning("⚠️  SUPABASE_USER_ID not set, remote mirror disabled")
            return None
        try:
            mirror = SupabaseMirror(SUPABASE_URL, SUPABASE_KEY, SUPABASE_TABLE, SUPABASE_USER_ID)
        except Exception as e:
            logger.warning(f"⚠️  Could not create Supabase client, remote mirror disabled: {e}")
            return None
        logger.info(f"Remote mirror enabled: supabase table '{SUPABASE_TABLE}'")
        return mirror

"""
Persistence abstraction layer for plug-and-play storage support.
Local snapshot: JSON (file-based) or Memory (in-memory).
Remote mirror: Supabase (optional, best-effort).
"""
from .base import LocalSnapshotStore, RemoteMirror
from .memory_adapter import MemoryAdapter
from .json_adapter import JSONAdapter
from .supabase_mirror import SupabaseMirror
from .factory import DatabaseFactory

__all__ = [
    "LocalSnapshotStore",
    "RemoteMirror",
    "MemoryAdapter",
    "JSONAdapter",
    "SupabaseMirror",
    "DatabaseFactory"
]

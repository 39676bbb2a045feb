"""State management module."""
from src.state.database import DatabaseManager, DatabaseError
from src.state.kv_store import KeyValueStore, MemoryKeyValueStore, SqliteKeyValueStore
from src.state.repositories import KeyValueRepository
__all__ = ["DatabaseManager", "DatabaseError",
           "KeyValueStore", "MemoryKeyValueStore", "SqliteKeyValueStore",
           "KeyValueRepository"]

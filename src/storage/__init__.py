"""Key-value persistence."""

from src.storage.kv_store import KeyValueStore, SQLiteKVStore

__all__ = ["KeyValueStore", "SQLiteKVStore"]

"""
Storage layer — KV store adapters and the namespaced repositories built on them.
"""

from backend_energy.storage.kv import KVStore, MemoryKVStore, RedisKVStore, create_kv_store

__all__ = ["KVStore", "MemoryKVStore", "RedisKVStore", "create_kv_store"]
